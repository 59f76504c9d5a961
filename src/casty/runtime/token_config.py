# src/casty/runtime/token_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from casty.ledger.constants import (
    INITIAL_SUPPLY_WHOLE,
    MAX_UINT256,
    MINT_COOLDOWN_SECONDS,
    MINT_RATE_DENOMINATOR,
    MINT_RATE_NUMERATOR,
    TOKEN_DECIMALS,
    TOKEN_NAME,
    TOKEN_SYMBOL,
)
from casty.ledger.types import is_zero_address, normalize_address
from casty.runtime.emission import EmissionPolicy

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class TokenConfig:
    mode: str  # "dev" | "testnet" | "prod"

    # Address that receives the initial supply and becomes owner.
    deployer: str

    # SQLite snapshot path. "" or ":memory:" keeps state in-process only.
    db_path: str

    name: str
    symbol: str
    decimals: int
    initial_supply_whole: int

    mint_cooldown_seconds: int
    mint_rate_numerator: int
    mint_rate_denominator: int

    api_host: str
    api_port: int

    log_level: str

    @property
    def initial_supply(self) -> int:
        return int(self.initial_supply_whole) * 10 ** int(self.decimals)

    def emission_policy(self) -> EmissionPolicy:
        return EmissionPolicy(
            cooldown_seconds=int(self.mint_cooldown_seconds),
            rate_numerator=int(self.mint_rate_numerator),
            rate_denominator=int(self.mint_rate_denominator),
        )


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_token_config(cfg: TokenConfig) -> None:
    """Fail-fast validation for operator config."""

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    addr = normalize_address(cfg.deployer)
    if addr is None or is_zero_address(addr):
        raise ValueError(f"deployer must be a non-zero 0x address; got: {cfg.deployer!r}")

    for name, v in (("name", cfg.name), ("symbol", cfg.symbol)):
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    # 10**78 already exceeds uint256.
    if not 0 <= int(cfg.decimals) <= 77:
        raise ValueError(f"decimals must be 0..77; got: {cfg.decimals}")

    if int(cfg.initial_supply_whole) < 0 or cfg.initial_supply > MAX_UINT256:
        raise ValueError(f"initial_supply_whole out of uint256 range; got: {cfg.initial_supply_whole}")

    if int(cfg.mint_cooldown_seconds) <= 0:
        raise ValueError(f"mint_cooldown_seconds must be > 0; got: {cfg.mint_cooldown_seconds}")

    if int(cfg.mint_rate_denominator) <= 0:
        raise ValueError(f"mint_rate_denominator must be > 0; got: {cfg.mint_rate_denominator}")

    if not 0 <= int(cfg.mint_rate_numerator) <= int(cfg.mint_rate_denominator):
        raise ValueError(
            "mint_rate_numerator must be within 0..mint_rate_denominator; "
            f"got: {cfg.mint_rate_numerator}/{cfg.mint_rate_denominator}"
        )

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def default_token_config() -> TokenConfig:
    return TokenConfig(
        # Production-safe default. The deployer must always be explicit.
        mode="prod",
        deployer="",
        db_path="./data/casty.db",
        name=TOKEN_NAME,
        symbol=TOKEN_SYMBOL,
        decimals=TOKEN_DECIMALS,
        initial_supply_whole=INITIAL_SUPPLY_WHOLE,
        mint_cooldown_seconds=MINT_COOLDOWN_SECONDS,
        mint_rate_numerator=MINT_RATE_NUMERATOR,
        mint_rate_denominator=MINT_RATE_DENOMINATOR,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def token_config_from_dict(raw: Json) -> TokenConfig:
    if not isinstance(raw, dict):
        raise ValueError("token config must be a JSON object")

    d = default_token_config()

    cfg = TokenConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        deployer=_as_str(raw.get("deployer"), d.deployer).strip().lower(),
        db_path=_as_str(raw.get("db_path"), d.db_path) if raw.get("db_path") != "" else "",
        name=_as_str(raw.get("name"), d.name),
        symbol=_as_str(raw.get("symbol"), d.symbol),
        decimals=_as_int(raw.get("decimals"), d.decimals),
        initial_supply_whole=_as_int(raw.get("initial_supply_whole"), d.initial_supply_whole),
        mint_cooldown_seconds=_as_int(raw.get("mint_cooldown_seconds"), d.mint_cooldown_seconds),
        mint_rate_numerator=_as_int(raw.get("mint_rate_numerator"), d.mint_rate_numerator),
        mint_rate_denominator=_as_int(raw.get("mint_rate_denominator"), d.mint_rate_denominator),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
    )

    validate_token_config(cfg)
    return cfg


def read_token_config_file(path: str) -> TokenConfig:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    return token_config_from_dict(raw)


def load_token_config(*, config_path: Optional[str] = None) -> TokenConfig:
    """Load operator config from a JSON file, or from CASTY_* env vars.

    CASTY_TOKEN_CONFIG_PATH wins when set. Otherwise CASTY_DEPLOYER (required),
    CASTY_MODE and CASTY_DB_PATH overlay the defaults.
    """
    p = config_path or os.environ.get("CASTY_TOKEN_CONFIG_PATH")
    if p:
        return read_token_config_file(p)

    raw: Json = {}
    for key, env in (
        ("deployer", "CASTY_DEPLOYER"),
        ("mode", "CASTY_MODE"),
        ("db_path", "CASTY_DB_PATH"),
        ("log_level", "CASTY_LOG_LEVEL"),
        ("api_host", "CASTY_API_HOST"),
        ("api_port", "CASTY_API_PORT"),
    ):
        v = os.environ.get(env)
        if v is not None:
            raw[key] = v
    return token_config_from_dict(raw)


def apply_token_config_to_env(cfg: TokenConfig) -> None:
    validate_token_config(cfg)
    os.environ["CASTY_MODE"] = (cfg.mode or "prod").strip().lower()
    os.environ["CASTY_DEPLOYER"] = cfg.deployer
    os.environ["CASTY_DB_PATH"] = cfg.db_path
    os.environ["CASTY_API_HOST"] = cfg.api_host
    os.environ["CASTY_API_PORT"] = str(int(cfg.api_port))
    os.environ["CASTY_LOG_LEVEL"] = cfg.log_level
