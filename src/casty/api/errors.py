from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from casty.runtime.errors import ApplyError


@dataclass(frozen=True, slots=True)
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def conflict(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(409, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    def to_body(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}


# Rejected-receipt code -> HTTP status.
_STATUS_BY_CODE = {
    "forbidden": 403,
    "time_locked": 409,
    "invalid_payload": 400,
    "invalid_state": 409,
}


def api_error_from_receipt(receipt: Dict[str, Any]) -> ApiError:
    code = str(receipt.get("code") or "")
    reason = str(receipt.get("error") or "rejected")
    details = receipt.get("details") if isinstance(receipt.get("details"), dict) else {}
    return ApiError(_STATUS_BY_CODE.get(code, 400), reason, f"{code or 'rejected'}:{reason}", details)


def api_error_from_apply_error(e: ApplyError) -> ApiError:
    return api_error_from_receipt(e.to_receipt())
