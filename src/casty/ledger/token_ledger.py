# src/casty/ledger/token_ledger.py
from __future__ import annotations

from typing import Any, Dict

from casty.ledger.constants import MAX_UINT256, ZERO_ADDRESS
from casty.ledger.types import as_uint256, normalize_address
from casty.runtime.errors import InvalidAmountError, InvalidReceiverError, SupplyOverflowError

Json = Dict[str, Any]


def _ensure_token_root(state: Json) -> Json:
    tok = state.get("token")
    if not isinstance(tok, dict):
        tok = {}
        state["token"] = tok
    tok.setdefault("total_supply", 0)
    tok.setdefault("balances", {})
    return tok


class TokenLedger:
    """Balance ledger over the ``token`` section of a state dict.

    The ledger never decides *whether* supply may grow; callers (the emission
    scheduler, deployment) do. It only credits balances and total supply.
    """

    def __init__(self, state: Json) -> None:
        self._state = state

    @property
    def _token(self) -> Json:
        # Read-only: the write path goes through _ensure_token_root.
        tok = self._state.get("token")
        return tok if isinstance(tok, dict) else {}

    def name(self) -> str:
        return str(self._token.get("name") or "")

    def symbol(self) -> str:
        return str(self._token.get("symbol") or "")

    def decimals(self) -> int:
        return int(self._token.get("decimals") or 0)

    def total_supply(self) -> int:
        return int(self._token.get("total_supply") or 0)

    def balance_of(self, account: str) -> int:
        addr = normalize_address(account)
        if addr is None:
            return 0
        return int((self._token.get("balances") or {}).get(addr, 0))

    def increase_supply(self, account: str, amount: int) -> Json:
        """Credit ``amount`` to ``account`` and to total supply.

        Returns the ERC20-style Transfer event (from the zero address).
        """
        addr = normalize_address(account)
        if addr is None or addr == ZERO_ADDRESS:
            raise InvalidReceiverError({"to": account})

        amt = as_uint256(amount)
        if amt is None:
            raise InvalidAmountError({"amount": str(amount)})

        tok = _ensure_token_root(self._state)
        new_total = int(tok["total_supply"]) + amt
        if new_total > MAX_UINT256:
            raise SupplyOverflowError({"total_supply": str(tok["total_supply"]), "amount": str(amt)})

        balances = tok["balances"]
        balances[addr] = int(balances.get(addr, 0)) + amt
        tok["total_supply"] = new_total

        return {"event": "Transfer", "from": ZERO_ADDRESS, "to": addr, "value": amt}
