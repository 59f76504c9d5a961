from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from casty.ledger.constants import INITIAL_SUPPLY, TOKEN_DECIMALS, TOKEN_NAME, TOKEN_SYMBOL
from casty.ledger.state import TokenView
from casty.ledger.token_ledger import TokenLedger
from casty.ledger.types import STATE_VERSION, validate_token_state
from casty.runtime import metrics
from casty.runtime.access_gate import AccessGate
from casty.runtime.atomic import atomic_apply
from casty.runtime.clock import Clock, SystemClock
from casty.runtime.emission import EmissionPolicy, EmissionScheduler
from casty.runtime.errors import ApplyError
from casty.runtime.event_log import log_event
from casty.runtime.sqlite_db import SqliteDB, SqliteTokenStore

Json = Dict[str, Any]

log = logging.getLogger("casty.executor")


class ExecutorError(RuntimeError):
    pass


@dataclass(frozen=True)
class TokenMetadata:
    name: str = TOKEN_NAME
    symbol: str = TOKEN_SYMBOL
    decimals: int = TOKEN_DECIMALS
    initial_supply: int = INITIAL_SUPPLY


class CastyTokenExecutor:
    """CastyToken runtime: ledger + access gate + emission scheduler.

    Every state-changing call is serialized under one lock and applied to a
    deep copy of the state. The copy is persisted (when a DB is configured) and
    only then published, so a rejected or failed call leaves nothing behind.
    Readers take a reference to the current state and never see a half-applied
    mint.
    """

    def __init__(
        self,
        *,
        deployer: str,
        clock: Optional[Clock] = None,
        db_path: str = "",
        policy: Optional[EmissionPolicy] = None,
        metadata: Optional[TokenMetadata] = None,
    ) -> None:
        self.clock: Clock = clock or SystemClock()
        self.policy = policy or EmissionPolicy()
        self.metadata = metadata or TokenMetadata()
        self._lock = threading.Lock()

        self.db_path = str(db_path or "")
        self._store: Optional[SqliteTokenStore] = None
        if self.db_path and self.db_path != ":memory:":
            self._store = SqliteTokenStore(db=SqliteDB(path=self.db_path))

        if self._store is not None and self._store.exists():
            self.state: Json = self._load_persisted_state()
        else:
            self.state = self._genesis_state(deployer=deployer, now_s=self.clock.now_s())
            if self._store is not None:
                self._store.write(self.state)
            log_event(log, "token_deployed", db_path=self.db_path, **TokenView.from_state(self.state).to_json())

    @classmethod
    def deploy(
        cls,
        *,
        deployer: str,
        clock: Optional[Clock] = None,
        db_path: str = "",
        policy: Optional[EmissionPolicy] = None,
        metadata: Optional[TokenMetadata] = None,
    ) -> "CastyTokenExecutor":
        return cls(deployer=deployer, clock=clock, db_path=db_path, policy=policy, metadata=metadata)

    def _genesis_state(self, *, deployer: str, now_s: int) -> Json:
        md = self.metadata
        st: Json = {
            "state_version": STATE_VERSION,
            "token": {
                "name": md.name,
                "symbol": md.symbol,
                "decimals": int(md.decimals),
                "total_supply": 0,
                "balances": {},
            },
            "owner": {"account": None},
            "emission": {"last_mint_ts": int(now_s), "deployed_ts": int(now_s)},
            "params": self.policy.to_params(),
        }
        # Deployment itself is all-or-nothing: a bad deployer address aborts it.
        with atomic_apply(st) as working:
            AccessGate(working).initialize(deployer)
            TokenLedger(working).increase_supply(deployer, int(md.initial_supply))
        return st

    def _load_persisted_state(self) -> Json:
        assert self._store is not None
        st = self._store.read()
        try:
            validate_token_state(st)
        except ValueError as e:
            raise ExecutorError(f"token_state_invalid: {e}. Refuse to start.") from e

        stored = EmissionPolicy.from_params(st.get("params") or {})
        if stored != self.policy:
            raise ExecutorError(
                f"emission policy mismatch: db={stored!r} executor={self.policy!r}. Refuse to start."
            )
        return st

    def _commit(self, working: Json) -> None:
        if self._store is not None:
            self._store.write(working)
        self.state = working

    # ----------------------------
    # Read accessors
    # ----------------------------

    def read_state(self) -> Json:
        """Deep copy of the published state; edits to it never reach the executor."""
        return copy.deepcopy(self.state)

    def view(self) -> TokenView:
        return TokenView.from_state(self.state)

    def name(self) -> str:
        return TokenLedger(self.state).name()

    def symbol(self) -> str:
        return TokenLedger(self.state).symbol()

    def decimals(self) -> int:
        return TokenLedger(self.state).decimals()

    def total_supply(self) -> int:
        return TokenLedger(self.state).total_supply()

    def balance_of(self, account: str) -> int:
        return TokenLedger(self.state).balance_of(account)

    def owner(self) -> Optional[str]:
        return AccessGate(self.state).current_owner()

    def last_mint_ts(self) -> int:
        return EmissionScheduler(self.state, policy=self.policy).last_mint_ts()

    def next_mint_ts(self) -> int:
        return EmissionScheduler(self.state, policy=self.policy).next_mint_ts()

    def mintable_amount(self, *, now: Optional[int] = None) -> int:
        now_s = self.clock.now_s() if now is None else int(now)
        return EmissionScheduler(self.state, policy=self.policy).mintable_amount(now_s)

    def emission_status(self, *, now: Optional[int] = None) -> Json:
        now_s = self.clock.now_s() if now is None else int(now)
        sched = EmissionScheduler(self.state, policy=self.policy)
        return {
            "now": now_s,
            "locked": sched.is_locked(now_s),
            "mintable_amount": sched.mintable_amount(now_s),
            "last_mint_ts": sched.last_mint_ts(),
            "next_mint_ts": sched.next_mint_ts(),
            "cooldown_seconds": int(self.policy.cooldown_seconds),
            "rate_numerator": int(self.policy.rate_numerator),
            "rate_denominator": int(self.policy.rate_denominator),
        }

    # ----------------------------
    # State-changing calls
    # ----------------------------

    def mint(self, caller: str, to: str, amount: Any, *, now: Optional[int] = None) -> Json:
        """Mint ``amount`` to ``to`` on behalf of ``caller``.

        Returns a receipt: {"ok": True, "applied": "MINT", ...} on success, or
        {"ok": False, "error": <reason>, "code": <code>, "details": {...}} when
        the call is rejected. Rejections never mutate state.
        """
        with self._lock:
            now_s = self.clock.now_s() if now is None else int(now)
            try:
                with atomic_apply(self.state, commit=self._commit) as working:
                    res = EmissionScheduler(working, policy=self.policy).apply_mint(caller, to, amount, now_s)
            except ApplyError as e:
                receipt = e.to_receipt()
                log_event(
                    log,
                    "mint_rejected",
                    caller=str(caller),
                    to=str(to),
                    amount=str(amount),
                    now=now_s,
                    code=e.code,
                    reason=e.reason,
                    details=e.details,
                )
                metrics.record_mint_receipt(receipt, unit=10 ** self.decimals())
                return receipt

            receipt = {"ok": True}
            receipt.update(res)
            log_event(
                log,
                "mint_applied",
                caller=str(caller),
                to=res["to"],
                amount=res["amount"],
                total_supply=res["total_supply"],
                last_mint_ts=res["last_mint_ts"],
            )
            metrics.record_mint_receipt(receipt, unit=10 ** self.decimals())
            return receipt

    def transfer_ownership(self, caller: str, new_owner: str) -> Json:
        return self._apply_owner_change(caller, lambda gate: gate.transfer_ownership(caller, new_owner))

    def renounce_ownership(self, caller: str) -> Json:
        return self._apply_owner_change(caller, lambda gate: gate.renounce_ownership(caller))

    def _apply_owner_change(self, caller: str, change) -> Json:
        with self._lock:
            try:
                with atomic_apply(self.state, commit=self._commit) as working:
                    event = change(AccessGate(working))
            except ApplyError as e:
                log_event(log, "ownership_change_rejected", caller=str(caller), code=e.code, reason=e.reason)
                return e.to_receipt()

            log_event(
                log,
                "ownership_transferred",
                previous_owner=event["previous_owner"],
                new_owner=event["new_owner"],
            )
            return {"ok": True, "applied": "OWNERSHIP_TRANSFER", "events": [event]}
