from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class TokenView:
    """
    Immutable read-only token view used by the API and status endpoints.
    """

    name: str = ""
    symbol: str = ""
    decimals: int = 0
    total_supply: int = 0
    balances: Dict[str, int] = field(default_factory=dict)
    owner: Optional[str] = None

    # emission bookkeeping
    last_mint_ts: int = 0
    deployed_ts: int = 0

    @classmethod
    def from_state(cls, state: Dict[str, Any]) -> "TokenView":
        tok = state.get("token") if isinstance(state.get("token"), dict) else {}
        owner = state.get("owner") if isinstance(state.get("owner"), dict) else {}
        emission = state.get("emission") if isinstance(state.get("emission"), dict) else {}
        return cls(
            name=str(tok.get("name") or ""),
            symbol=str(tok.get("symbol") or ""),
            decimals=int(tok.get("decimals") or 0),
            total_supply=int(tok.get("total_supply") or 0),
            balances=copy.deepcopy(tok.get("balances") or {}),
            owner=owner.get("account"),
            last_mint_ts=int(emission.get("last_mint_ts") or 0),
            deployed_ts=int(emission.get("deployed_ts") or 0),
        )

    def balance_of(self, account: str) -> int:
        try:
            return int(self.balances.get(str(account).strip().lower(), 0))
        except Exception:
            return 0

    def to_json(self) -> Json:
        """JSON-safe summary; big integers are rendered as decimal strings."""
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": int(self.decimals),
            "total_supply": str(self.total_supply),
            "owner": self.owner,
            "last_mint_ts": int(self.last_mint_ts),
            "deployed_ts": int(self.deployed_ts),
        }
