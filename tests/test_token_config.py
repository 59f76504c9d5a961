from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from casty.ledger.constants import INITIAL_SUPPLY, MINT_COOLDOWN_SECONDS
from casty.runtime.emission import EmissionPolicy
from casty.runtime.executor_boot import build_executor
from casty.runtime.token_config import (
    apply_token_config_to_env,
    default_token_config,
    load_token_config,
    read_token_config_file,
    token_config_from_dict,
)
from casty.testing.sigtools import address_for_label


OWNER = address_for_label("owner")


def _write(tmp_path: Path, obj: dict) -> str:
    p = tmp_path / "token_config.json"
    p.write_text(json.dumps(obj), encoding="utf-8")
    return str(p)


def test_defaults_match_token_constants() -> None:
    d = default_token_config()
    assert d.mode == "prod"
    assert d.name == "CastyToken"
    assert d.symbol == "TY"
    assert d.decimals == 18
    assert d.initial_supply == INITIAL_SUPPLY
    assert d.emission_policy() == EmissionPolicy()
    assert d.mint_cooldown_seconds == MINT_COOLDOWN_SECONDS


def test_defaults_alone_fail_without_deployer() -> None:
    with pytest.raises(ValueError, match="deployer"):
        token_config_from_dict({})


def test_file_overlays_defaults(tmp_path: Path) -> None:
    path = _write(tmp_path, {"mode": "DEV", "deployer": OWNER.upper().replace("0X", "0x"), "db_path": ""})
    cfg = read_token_config_file(path)

    assert cfg.mode == "dev"
    assert cfg.deployer == OWNER
    assert cfg.db_path == ""
    assert cfg.mint_rate_numerator == 2
    assert cfg.mint_rate_denominator == 100


@pytest.mark.parametrize(
    "override",
    [
        {"mode": "staging"},
        {"deployer": "0x" + "0" * 40},
        {"decimals": 78},
        {"mint_cooldown_seconds": 0},
        {"mint_rate_denominator": 0},
        {"mint_rate_numerator": 101},
        {"api_port": 70000},
        {"name": " "},
    ],
)
def test_validation_fails_fast(override: dict) -> None:
    raw = {"deployer": OWNER}
    raw.update(override)
    with pytest.raises(ValueError):
        token_config_from_dict(raw)


def test_non_object_file_is_rejected(tmp_path: Path) -> None:
    p = tmp_path / "cfg.json"
    p.write_text("[1, 2, 3]", encoding="utf-8")
    with pytest.raises(ValueError):
        read_token_config_file(str(p))


def test_load_prefers_config_path_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = _write(tmp_path, {"deployer": OWNER, "mode": "testnet"})
    monkeypatch.setenv("CASTY_TOKEN_CONFIG_PATH", path)
    monkeypatch.setenv("CASTY_DEPLOYER", "ignored")

    assert load_token_config().mode == "testnet"


def test_load_from_casty_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CASTY_TOKEN_CONFIG_PATH", raising=False)
    monkeypatch.setenv("CASTY_DEPLOYER", OWNER)
    monkeypatch.setenv("CASTY_MODE", "dev")
    monkeypatch.setenv("CASTY_API_PORT", "9090")

    cfg = load_token_config()
    assert cfg.deployer == OWNER
    assert cfg.mode == "dev"
    assert cfg.api_port == 9090


def test_apply_to_env_round_trips(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so monkeypatch restores (removes) whatever apply_token_config_to_env writes.
    for k in (
        "CASTY_MODE",
        "CASTY_DEPLOYER",
        "CASTY_DB_PATH",
        "CASTY_API_HOST",
        "CASTY_API_PORT",
        "CASTY_LOG_LEVEL",
        "CASTY_TOKEN_CONFIG_PATH",
    ):
        monkeypatch.setenv(k, "")
        monkeypatch.delenv(k)

    cfg = token_config_from_dict({"deployer": OWNER, "mode": "dev", "db_path": ""})
    apply_token_config_to_env(cfg)

    assert os.environ["CASTY_DEPLOYER"] == OWNER
    assert load_token_config() == cfg


def test_build_executor_from_config() -> None:
    cfg = token_config_from_dict(
        {
            "deployer": OWNER,
            "mode": "dev",
            "db_path": "",
            "symbol": "TYT",
            "initial_supply_whole": 1_000,
            "mint_cooldown_seconds": 60,
        }
    )
    ex = build_executor(cfg)

    assert ex.symbol() == "TYT"
    assert ex.total_supply() == 1_000 * 10**18
    assert ex.balance_of(OWNER) == ex.total_supply()
    assert ex.policy.cooldown_seconds == 60


def test_dotenv_loads_once_without_overriding(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    from casty import env

    p = tmp_path / ".env"
    p.write_text(f"CASTY_DEPLOYER={OWNER}\nCASTY_MODE=testnet\n", encoding="utf-8")

    monkeypatch.setattr(env, "_LOADED", False)
    monkeypatch.setenv("CASTY_MODE", "dev")
    monkeypatch.setenv("CASTY_DEPLOYER", "")
    monkeypatch.delenv("CASTY_DEPLOYER")
    monkeypatch.delenv("CASTY_TOKEN_CONFIG_PATH", raising=False)

    assert env.load_dotenv_if_present(str(p)) is True
    assert env.load_dotenv_if_present(str(p)) is False

    cfg = load_token_config()
    assert cfg.deployer == OWNER
    assert cfg.mode == "dev"
