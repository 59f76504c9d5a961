from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from casty.api.errors import ApiError, api_error_from_apply_error
from casty.api.routes_token import router as token_router
from casty.api.structured_logging import RequestLogMiddleware, configure_structured_logging
from casty.runtime.errors import ApplyError
from casty.runtime.executor_boot import build_executor as _build_executor


def build_executor():
    """Build a CastyTokenExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `casty.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load token config + attach executor
      - False: keep lightweight for unit tests / import-time validation
    """
    mode = os.environ.get("CASTY_MODE", "prod").strip().lower()

    configure_structured_logging()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="CastyToken API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="CastyToken API")

    app.state.executor = build_executor() if boot_runtime else None

    @app.exception_handler(ApiError)
    async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
        request.state.rejection = exc.code
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())

    @app.exception_handler(ApplyError)
    async def _apply_error_handler(request: Request, exc: ApplyError) -> JSONResponse:
        err = api_error_from_apply_error(exc)
        request.state.rejection = err.code
        return JSONResponse(status_code=err.status_code, content=err.to_body())

    app.add_middleware(RequestLogMiddleware)

    app.include_router(token_router, prefix="/v1", tags=["token"])

    return app
