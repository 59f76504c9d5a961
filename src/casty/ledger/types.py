"""casty.ledger.types

Token state schema helpers.

This module defines:
  - address normalization (0x-prefixed, 20-byte hex, lowercase)
  - uint256 coercion for balances and amounts
  - validate_token_state: strict check run before a persisted snapshot is trusted
"""

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from casty.ledger.constants import MAX_UINT256, ZERO_ADDRESS

Json = Dict[str, Any]

STATE_VERSION: int = 1

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")
# ASCII only; a uint256 never needs more than 78 digits.
_DECIMAL_RE = re.compile(r"[0-9]{1,78}")


def normalize_address(v: Any) -> Optional[str]:
    """Return the canonical lowercase form of an address, or None if malformed."""
    if not isinstance(v, str):
        return None
    s = v.strip().lower()
    if not _ADDRESS_RE.match(s):
        return None
    return s


def is_zero_address(v: Any) -> bool:
    return normalize_address(v) == ZERO_ADDRESS


def as_uint256(v: Any) -> Optional[int]:
    """Coerce to an int in [0, 2**256). Returns None for anything else.

    Accepts ints and decimal strings (amounts travel as strings over JSON).
    """
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        n = v
    elif isinstance(v, str) and _DECIMAL_RE.fullmatch(v.strip()):
        n = int(v.strip())
    else:
        return None
    if n < 0 or n > MAX_UINT256:
        return None
    return n


def _require_dict(st: Json, key: str) -> Json:
    v = st.get(key)
    if not isinstance(v, dict):
        raise ValueError(f"token state schema error: field '{key}' must be dict (got {type(v).__name__})")
    return v


def _require_uint(v: Any, *, field: str) -> int:
    n = as_uint256(v)
    if n is None:
        raise ValueError(f"token state schema error: field '{field}' must be uint256 (got {v!r})")
    return n


def validate_token_state(st: Json) -> None:
    """Fail-closed validation of a token state snapshot.

    Raises ValueError on schema violations or if balances do not sum to total_supply.
    """
    if not isinstance(st, dict):
        raise ValueError("token state must be a JSON object")

    version = st.get("state_version")
    if version != STATE_VERSION:
        raise ValueError(f"unsupported state_version: {version!r} (expected {STATE_VERSION})")

    token = _require_dict(st, "token")
    for k in ("name", "symbol"):
        if not isinstance(token.get(k), str) or not token[k].strip():
            raise ValueError(f"token state schema error: token.{k} must be a non-empty string")
    _require_uint(token.get("decimals"), field="token.decimals")
    total = _require_uint(token.get("total_supply"), field="token.total_supply")

    balances = token.get("balances")
    if not isinstance(balances, dict):
        raise ValueError("token state schema error: token.balances must be dict")
    acc = 0
    for addr, bal in balances.items():
        if normalize_address(addr) != addr:
            raise ValueError(f"token state schema error: bad balance address {addr!r}")
        acc += _require_uint(bal, field=f"token.balances[{addr}]")
    if acc != total:
        raise ValueError(f"token state invariant violation: balances sum {acc} != total_supply {total}")

    owner = _require_dict(st, "owner")
    acct = owner.get("account")
    if acct is not None and normalize_address(acct) != acct:
        raise ValueError(f"token state schema error: bad owner address {acct!r}")

    emission = _require_dict(st, "emission")
    _require_uint(emission.get("last_mint_ts"), field="emission.last_mint_ts")
    _require_uint(emission.get("deployed_ts"), field="emission.deployed_ts")

    params = _require_dict(st, "params")
    _require_uint(params.get("mint_cooldown_seconds"), field="params.mint_cooldown_seconds")
    _require_uint(params.get("mint_rate_numerator"), field="params.mint_rate_numerator")
    den = _require_uint(params.get("mint_rate_denominator"), field="params.mint_rate_denominator")
    if den == 0:
        raise ValueError("token state schema error: params.mint_rate_denominator must be > 0")
