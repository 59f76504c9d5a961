from __future__ import annotations

import logging
import os
import sys
import time
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from casty.runtime.event_log import log_event

_HANDLER_NAME = "casty-jsonl"


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Send log records to stdout as bare messages.

    Messages are already JSON lines (see casty.runtime.event_log). The level
    comes from the argument, else CASTY_LOG_LEVEL. Repeat calls only adjust the
    level; handlers installed by others (pytest's caplog) are left alone.
    """
    level = logging.getLevelName((level_name or os.environ.get("CASTY_LOG_LEVEL") or "INFO").strip().upper())
    if not isinstance(level, int):
        level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One ``http_request`` line per request on logger ``casty.http``.

    Mint calls also carry the caller address derived by the route
    (request.state.mint_caller) and, when refused, the rejection code the
    error handlers record in request.state.rejection. Set
    CASTY_LOG_REQUESTS=0 to disable.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        raw = (os.environ.get("CASTY_LOG_REQUESTS") or "1").strip().lower()
        self._enabled = raw not in {"0", "false", "no", "off"}
        self._logger = logging.getLogger("casty.http")

    async def dispatch(self, request: Request, call_next):
        if not self._enabled:
            return await call_next(request)

        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        started = time.monotonic()
        response = await call_next(request)

        fields = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": int((time.monotonic() - started) * 1000),
        }
        caller = getattr(request.state, "mint_caller", None)
        if caller:
            fields["caller"] = caller
        rejection = getattr(request.state, "rejection", None)
        if rejection:
            fields["rejection"] = rejection
        log_event(self._logger, "http_request", **fields)

        response.headers["x-request-id"] = request_id
        return response
