from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path

import pytest

from casty.ledger.constants import INITIAL_SUPPLY, MINT_COOLDOWN_SECONDS
from casty.runtime.clock import ManualClock
from casty.runtime.emission import EmissionPolicy
from casty.runtime.executor import CastyTokenExecutor, ExecutorError
from casty.runtime.sqlite_db import SqliteDB, SqliteTokenStore, canon_json
from casty.testing.sigtools import address_for_label


DEPLOY_TS = 1_700_000_000
OWNER = address_for_label("owner")
BOB = address_for_label("bob")


def test_state_survives_restart(tmp_path: Path) -> None:
    db_path = str(tmp_path / "casty.db")
    clock = ManualClock(start_s=DEPLOY_TS)

    ex = CastyTokenExecutor.deploy(deployer=OWNER, clock=clock, db_path=db_path)
    clock.increase(MINT_COOLDOWN_SECONDS)
    amount = ex.mintable_amount()
    assert ex.mint(OWNER, BOB, amount)["ok"] is True

    # Reboot: deployer argument is ignored once a snapshot exists.
    ex2 = CastyTokenExecutor(deployer=BOB, clock=clock, db_path=db_path)

    assert ex2.owner() == OWNER
    assert ex2.total_supply() == INITIAL_SUPPLY + amount
    assert ex2.balance_of(BOB) == amount
    assert ex2.last_mint_ts() == DEPLOY_TS + MINT_COOLDOWN_SECONDS
    assert ex2.mint(OWNER, OWNER, 1)["error"] == "cooldown_not_elapsed"


def test_uint256_values_round_trip_exactly(tmp_path: Path) -> None:
    store = SqliteTokenStore(db=SqliteDB(path=str(tmp_path / "s.db")))
    big = 2**255 + 12345
    st = {"token": {"total_supply": big}, "emission": {"last_mint_ts": 7}}

    store.write(st)

    assert store.exists() is True
    assert store.read() == st
    assert json.loads(canon_json(st))["token"]["total_supply"] == big


def test_read_missing_snapshot_raises(tmp_path: Path) -> None:
    store = SqliteTokenStore(db=SqliteDB(path=str(tmp_path / "empty.db")))
    assert store.exists() is False
    with pytest.raises(FileNotFoundError):
        store.read()


def test_failed_snapshot_write_leaves_memory_unchanged(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    db_path = str(tmp_path / "casty.db")
    clock = ManualClock(start_s=DEPLOY_TS)
    ex = CastyTokenExecutor.deploy(deployer=OWNER, clock=clock, db_path=db_path)
    clock.increase(MINT_COOLDOWN_SECONDS)
    before = deepcopy(ex.read_state())

    def _fail_write(self, st):
        raise OSError("disk full")

    monkeypatch.setattr(SqliteTokenStore, "write", _fail_write)

    with pytest.raises(OSError):
        ex.mint(OWNER, OWNER, 1)

    assert ex.read_state() == before
    monkeypatch.undo()

    # Disk still holds the deployment snapshot.
    reloaded = CastyTokenExecutor(deployer=OWNER, clock=clock, db_path=db_path)
    assert reloaded.read_state() == before


def test_refuses_to_start_on_corrupt_snapshot(tmp_path: Path) -> None:
    db_path = str(tmp_path / "casty.db")
    ex = CastyTokenExecutor.deploy(deployer=OWNER, clock=ManualClock(start_s=DEPLOY_TS), db_path=db_path)

    st = deepcopy(ex.read_state())
    st["token"]["total_supply"] += 1  # balances no longer sum to supply
    SqliteTokenStore(db=SqliteDB(path=db_path)).write(st)

    with pytest.raises(ExecutorError, match="token_state_invalid"):
        CastyTokenExecutor(deployer=OWNER, db_path=db_path)


def test_refuses_to_start_on_policy_mismatch(tmp_path: Path) -> None:
    db_path = str(tmp_path / "casty.db")
    CastyTokenExecutor.deploy(deployer=OWNER, clock=ManualClock(start_s=DEPLOY_TS), db_path=db_path)

    with pytest.raises(ExecutorError, match="policy mismatch"):
        CastyTokenExecutor(deployer=OWNER, db_path=db_path, policy=EmissionPolicy(cooldown_seconds=60))
