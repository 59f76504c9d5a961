# src/casty/runtime/emission.py
from __future__ import annotations

"""Time-gated emission schedule.

CastyToken starts with a fixed initial supply. After that the owner may mint,
but only once per cooldown window and only up to a ceiling:

  mintable_amount(now) = 0                                     if now - last_mint_ts < cooldown
                       = total_supply * numerator // denominator  otherwise

A successful mint advances last_mint_ts to the mint's execution time, which
locks the schedule again for a full cooldown.

The ceiling is computed once from the supply at call time. Skipped periods do
not accumulate: minting after 90 days yields a single 2% ceiling, not three.

State assumptions:
  state["token"]["total_supply"]: uint256
  state["emission"]["last_mint_ts"]: unix seconds (int)
  state["params"]["mint_cooldown_seconds" | "mint_rate_numerator" | "mint_rate_denominator"]
"""

from dataclasses import dataclass
from typing import Any, Dict

from casty.ledger.constants import (
    MINT_COOLDOWN_SECONDS,
    MINT_RATE_DENOMINATOR,
    MINT_RATE_NUMERATOR,
)
from casty.ledger.token_ledger import TokenLedger
from casty.ledger.types import as_uint256
from casty.runtime.access_gate import AccessGate
from casty.runtime.errors import (
    AmountExceedsCeilingError,
    CooldownNotElapsedError,
    InvalidAmountError,
)

Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


@dataclass(frozen=True)
class EmissionPolicy:
    cooldown_seconds: int = MINT_COOLDOWN_SECONDS
    rate_numerator: int = MINT_RATE_NUMERATOR
    rate_denominator: int = MINT_RATE_DENOMINATOR

    def __post_init__(self) -> None:
        if int(self.cooldown_seconds) <= 0:
            raise ValueError(f"cooldown_seconds must be > 0; got: {self.cooldown_seconds}")
        if int(self.rate_denominator) <= 0:
            raise ValueError(f"rate_denominator must be > 0; got: {self.rate_denominator}")
        if not 0 <= int(self.rate_numerator) <= int(self.rate_denominator):
            raise ValueError(
                f"rate_numerator must be within 0..rate_denominator; got: {self.rate_numerator}"
            )

    def ceiling_for(self, total_supply: int) -> int:
        return int(total_supply) * int(self.rate_numerator) // int(self.rate_denominator)

    def to_params(self) -> Json:
        return {
            "mint_cooldown_seconds": int(self.cooldown_seconds),
            "mint_rate_numerator": int(self.rate_numerator),
            "mint_rate_denominator": int(self.rate_denominator),
        }

    @classmethod
    def from_params(cls, params: Json) -> "EmissionPolicy":
        p = params if isinstance(params, dict) else {}
        return cls(
            cooldown_seconds=_as_int(p.get("mint_cooldown_seconds"), MINT_COOLDOWN_SECONDS),
            rate_numerator=_as_int(p.get("mint_rate_numerator"), MINT_RATE_NUMERATOR),
            rate_denominator=_as_int(p.get("mint_rate_denominator"), MINT_RATE_DENOMINATOR),
        )


def _ensure_emission_root(state: Json) -> Json:
    em = state.get("emission")
    if not isinstance(em, dict):
        em = {}
        state["emission"] = em
    em.setdefault("last_mint_ts", 0)
    em.setdefault("deployed_ts", int(em["last_mint_ts"]))
    return em


def last_mint_ts(state: Json) -> int:
    em = state.get("emission")
    return _as_int(em.get("last_mint_ts"), 0) if isinstance(em, dict) else 0


def is_cooldown_elapsed(state: Json, now_s: int, policy: EmissionPolicy) -> bool:
    """True if a full cooldown has passed since the last mint (or deployment)."""

    return int(now_s) - last_mint_ts(state) >= int(policy.cooldown_seconds)


def next_mint_ts(state: Json, policy: EmissionPolicy) -> int:
    return last_mint_ts(state) + int(policy.cooldown_seconds)


class EmissionScheduler:
    """Sizes and gates mint operations against wall-clock time and current supply.

    The scheduler owns state["emission"] and is the only writer of
    last_mint_ts. It mutates whatever state dict it is given, so callers that
    need all-or-nothing semantics hand it a working copy (see runtime.atomic).
    """

    def __init__(self, state: Json, *, policy: EmissionPolicy | None = None) -> None:
        self._state = state
        self.policy = policy or EmissionPolicy.from_params(state.get("params") or {})
        self._ledger = TokenLedger(state)
        self._gate = AccessGate(state)

    def last_mint_ts(self) -> int:
        return last_mint_ts(self._state)

    def next_mint_ts(self) -> int:
        return next_mint_ts(self._state, self.policy)

    def is_locked(self, now_s: int) -> bool:
        return not is_cooldown_elapsed(self._state, now_s, self.policy)

    def mintable_amount(self, now_s: int) -> int:
        if self.is_locked(now_s):
            return 0
        return self.policy.ceiling_for(self._ledger.total_supply())

    def apply_mint(self, caller: Any, to: Any, amount: Any, now_s: int) -> Json:
        # Authorization runs before any scheduler logic.
        self._gate.require_owner(caller)

        amt = as_uint256(amount)
        if amt is None:
            raise InvalidAmountError({"amount": str(amount)})

        now = int(now_s)
        if self.is_locked(now):
            raise CooldownNotElapsedError(
                {"last_mint_ts": self.last_mint_ts(), "next_mint_ts": self.next_mint_ts(), "now": now}
            )

        ceiling = self.mintable_amount(now)
        if amt > ceiling:
            raise AmountExceedsCeilingError({"amount": str(amt), "ceiling": str(ceiling)})

        event = self._ledger.increase_supply(to, amt)
        _ensure_emission_root(self._state)["last_mint_ts"] = now

        return {
            "applied": "MINT",
            "to": event["to"],
            "amount": amt,
            "total_supply": self._ledger.total_supply(),
            "last_mint_ts": now,
            "events": [event],
        }
