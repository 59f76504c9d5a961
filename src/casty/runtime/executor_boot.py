# src/casty/runtime/executor_boot.py

from __future__ import annotations

from typing import Optional

from casty.runtime.clock import Clock
from casty.runtime.executor import CastyTokenExecutor, TokenMetadata
from casty.runtime.token_config import TokenConfig, load_token_config


def build_executor(cfg: Optional[TokenConfig] = None, *, clock: Optional[Clock] = None) -> CastyTokenExecutor:
    """
    Build a CastyTokenExecutor from an explicit config or, if omitted, from
    CASTY_TOKEN_CONFIG_PATH / CASTY_* environment variables.

    `casty.api.app` calls build_executor() with no args in production.
    """
    c = cfg or load_token_config()
    return CastyTokenExecutor(
        deployer=c.deployer,
        clock=clock,
        db_path=c.db_path,
        policy=c.emission_policy(),
        metadata=TokenMetadata(
            name=c.name,
            symbol=c.symbol,
            decimals=int(c.decimals),
            initial_supply=c.initial_supply,
        ),
    )
