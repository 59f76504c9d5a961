# src/casty/runtime/access_gate.py
from __future__ import annotations

"""Single-owner access gate.

The gate holds exactly one privileged account (or none, once renounced) in
state["owner"]["account"]. Privileged operations consult it explicitly:

  - is_owner: capability query, never raises
  - require_owner: raises UnauthorizedError before any state is touched
  - transfer_ownership / renounce_ownership: owner-only changes to the gate itself
"""

from typing import Any, Dict, Optional

from casty.ledger.types import is_zero_address, normalize_address
from casty.runtime.errors import InvalidOwnerError, UnauthorizedError

Json = Dict[str, Any]


def _ensure_owner_root(state: Json) -> Json:
    root = state.get("owner")
    if not isinstance(root, dict):
        root = {"account": None}
        state["owner"] = root
    root.setdefault("account", None)
    return root


class AccessGate:
    def __init__(self, state: Json) -> None:
        self._state = state

    def current_owner(self) -> Optional[str]:
        root = self._state.get("owner")
        return normalize_address(root.get("account")) if isinstance(root, dict) else None

    def is_owner(self, caller: Any) -> bool:
        owner = self.current_owner()
        if owner is None:
            return False
        return normalize_address(caller) == owner

    def require_owner(self, caller: Any) -> None:
        if not self.is_owner(caller):
            raise UnauthorizedError({"account": str(caller)})

    def initialize(self, owner: str) -> Json:
        addr = normalize_address(owner)
        if addr is None or is_zero_address(addr):
            raise InvalidOwnerError({"owner": str(owner)})
        root = _ensure_owner_root(self._state)
        previous = root.get("account")
        root["account"] = addr
        return {"event": "OwnershipTransferred", "previous_owner": previous, "new_owner": addr}

    def transfer_ownership(self, caller: Any, new_owner: Any) -> Json:
        self.require_owner(caller)
        addr = normalize_address(new_owner)
        if addr is None or is_zero_address(addr):
            raise InvalidOwnerError({"owner": str(new_owner)})
        root = _ensure_owner_root(self._state)
        previous = root.get("account")
        root["account"] = addr
        return {"event": "OwnershipTransferred", "previous_owner": previous, "new_owner": addr}

    def renounce_ownership(self, caller: Any) -> Json:
        self.require_owner(caller)
        root = _ensure_owner_root(self._state)
        previous = root.get("account")
        root["account"] = None
        return {"event": "OwnershipTransferred", "previous_owner": previous, "new_owner": None}
