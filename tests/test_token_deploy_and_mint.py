from __future__ import annotations

import pytest

from casty.ledger.constants import INITIAL_SUPPLY, MINT_COOLDOWN_SECONDS, UNIT
from casty.runtime.clock import ManualClock
from casty.runtime.errors import ApplyError
from casty.runtime.executor import CastyTokenExecutor
from casty.testing.sigtools import address_for_label


DEPLOY_TS = 1_700_000_000


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start_s=DEPLOY_TS)


@pytest.fixture
def owner() -> str:
    return address_for_label("owner")


@pytest.fixture
def account1() -> str:
    return address_for_label("account1")


@pytest.fixture
def token(clock: ManualClock, owner: str) -> CastyTokenExecutor:
    return CastyTokenExecutor.deploy(deployer=owner, clock=clock)


def test_deploy_initializes_metadata_and_supply(token: CastyTokenExecutor) -> None:
    assert token.name() == "CastyToken"
    assert token.symbol() == "TY"
    assert token.decimals() == 18
    assert token.total_supply() == INITIAL_SUPPLY
    assert token.total_supply() == 10_000_000_000 * 10**18


def test_deploy_credits_initial_supply_to_owner(token: CastyTokenExecutor, owner: str) -> None:
    assert token.owner() == owner
    assert token.balance_of(owner) == token.total_supply()
    assert token.last_mint_ts() == DEPLOY_TS


def test_view_is_a_detached_snapshot(token: CastyTokenExecutor, owner: str, clock: ManualClock) -> None:
    view = token.view()
    assert view.balance_of(owner.upper().replace("0X", "0x")) == INITIAL_SUPPLY
    assert view.to_json() == {
        "name": "CastyToken",
        "symbol": "TY",
        "decimals": 18,
        "total_supply": str(INITIAL_SUPPLY),
        "owner": owner,
        "last_mint_ts": DEPLOY_TS,
        "deployed_ts": DEPLOY_TS,
    }

    clock.increase(MINT_COOLDOWN_SECONDS)
    token.mint(owner, owner, UNIT)
    assert view.total_supply == INITIAL_SUPPLY
    assert token.view().total_supply == INITIAL_SUPPLY + UNIT


def test_deploy_starts_locked(token: CastyTokenExecutor) -> None:
    status = token.emission_status()
    assert status["locked"] is True
    assert status["mintable_amount"] == 0
    assert status["next_mint_ts"] == DEPLOY_TS + MINT_COOLDOWN_SECONDS


def test_deploy_rejects_malformed_deployer(clock: ManualClock) -> None:
    with pytest.raises(ApplyError):
        CastyTokenExecutor.deploy(deployer="not-an-address", clock=clock)
    with pytest.raises(ApplyError):
        CastyTokenExecutor.deploy(deployer="0x" + "0" * 40, clock=clock)


def test_mintable_amount_increases_each_30_days(
    token: CastyTokenExecutor, clock: ManualClock, owner: str
) -> None:
    amount = INITIAL_SUPPLY * 2 // 100

    clock.increase_to(DEPLOY_TS + MINT_COOLDOWN_SECONDS)
    assert token.mintable_amount() == amount
    assert amount == 200_000_000 * UNIT

    receipt = token.mint(owner, owner, amount)
    assert receipt["ok"] is True
    assert token.balance_of(owner) == INITIAL_SUPPLY + amount
    assert token.total_supply() == INITIAL_SUPPLY + amount
    assert token.total_supply() == 10_200_000_000 * UNIT


def test_only_owner_may_mint(
    token: CastyTokenExecutor, clock: ManualClock, owner: str, account1: str
) -> None:
    amount = INITIAL_SUPPLY * 2 // 100
    clock.increase_to(DEPLOY_TS + MINT_COOLDOWN_SECONDS)

    # not owner
    r = token.mint(account1, account1, amount)
    assert r["ok"] is False
    assert r["error"] == "unauthorized_account"
    assert r["code"] == "forbidden"

    # owner
    r = token.mint(owner, owner, amount)
    assert r["ok"] is True
    assert token.balance_of(owner) == INITIAL_SUPPLY + amount


def test_mint_to_third_party(
    token: CastyTokenExecutor, clock: ManualClock, owner: str, account1: str
) -> None:
    clock.increase(MINT_COOLDOWN_SECONDS)
    amount = 5 * UNIT

    r = token.mint(owner, account1, amount)

    assert r["ok"] is True
    assert r["to"] == account1
    assert token.balance_of(account1) == amount
    assert token.balance_of(owner) == INITIAL_SUPPLY
    assert token.total_supply() == INITIAL_SUPPLY + amount


def test_second_mint_in_same_window_is_rejected(
    token: CastyTokenExecutor, clock: ManualClock, owner: str
) -> None:
    clock.increase(MINT_COOLDOWN_SECONDS)
    first = token.mint(owner, owner, token.mintable_amount())
    assert first["ok"] is True
    assert token.last_mint_ts() == clock.now_s()

    again = token.mint(owner, owner, 1)
    assert again["ok"] is False
    assert again["error"] == "cooldown_not_elapsed"

    clock.increase(MINT_COOLDOWN_SECONDS - 1)
    assert token.mint(owner, owner, 1)["error"] == "cooldown_not_elapsed"

    clock.increase(1)
    assert token.mint(owner, owner, 1)["ok"] is True


def test_zero_amount_mint_resets_the_clock(
    token: CastyTokenExecutor, clock: ManualClock, owner: str
) -> None:
    clock.increase(MINT_COOLDOWN_SECONDS)
    r = token.mint(owner, owner, 0)

    assert r["ok"] is True
    assert token.total_supply() == INITIAL_SUPPLY
    assert token.last_mint_ts() == clock.now_s()
    assert token.mintable_amount() == 0


def test_explicit_now_overrides_clock(token: CastyTokenExecutor, owner: str) -> None:
    now = DEPLOY_TS + MINT_COOLDOWN_SECONDS
    assert token.mintable_amount(now=now) == INITIAL_SUPPLY * 2 // 100

    r = token.mint(owner, owner, 1, now=now)
    assert r["ok"] is True
    assert token.last_mint_ts() == now
