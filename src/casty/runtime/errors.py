from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ApplyError(Exception):
    """Canonical error type for token apply failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

    def to_receipt(self) -> dict:
        return {
            "ok": False,
            "error": self.reason,
            "code": self.code,
            "details": self.details if self.details is not None else {},
        }


class UnauthorizedError(ApplyError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("forbidden", "unauthorized_account", details)


class CooldownNotElapsedError(ApplyError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("time_locked", "cooldown_not_elapsed", details)


class AmountExceedsCeilingError(ApplyError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("invalid_payload", "amount_exceeds_ceiling", details)


class InvalidReceiverError(ApplyError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("invalid_payload", "invalid_receiver", details)


class InvalidAmountError(ApplyError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("invalid_payload", "invalid_amount", details)


class InvalidOwnerError(ApplyError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("invalid_payload", "invalid_owner", details)


class SupplyOverflowError(ApplyError):
    def __init__(self, details: Any | None = None) -> None:
        super().__init__("invalid_state", "supply_overflow", details)
