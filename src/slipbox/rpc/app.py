# src/slipbox/rpc/app.py

"""
FastAPI application exposing the RPC surface.

Routes:
- POST /call            operation envelope -> result/error envelope
- GET  /call            405 with a pointer to POST
- GET  /.well-known/ops registered operations
- GET  /healthz         liveness
"""

from __future__ import annotations

import json
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..core.state import AppState
from .operations import registry as default_registry
from .registry import OperationRegistry
from .router import handle_call

logger = logging.getLogger(__name__)


def _envelope_error(
    status: int, code: str, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={
            "requestId": str(uuid.uuid4()),
            "state": "error",
            "error": {"code": code, "message": message},
        },
        headers=headers,
    )


def create_app(state: AppState, *, registry: OperationRegistry | None = None) -> FastAPI:
    ops = registry or default_registry
    app = FastAPI(title=str(getattr(state.settings, "app_name", "slipbox")))

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/.well-known/ops")
    async def well_known_ops() -> dict[str, object]:
        return {"operations": ops.describe()}

    @app.get("/call")
    async def get_call_not_allowed() -> JSONResponse:
        return _envelope_error(
            405, "METHOD_NOT_ALLOWED", "Use POST /call to invoke operations.", {"Allow": "POST"}
        )

    @app.post("/call")
    async def call_endpoint(request: Request) -> JSONResponse:
        try:
            envelope = json.loads(await request.body())
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _envelope_error(400, "INVALID_REQUEST", "Invalid JSON in request body")

        auth_header = request.headers.get("authorization")
        # Store work is blocking sqlite; keep it off the event loop.
        result = await run_in_threadpool(handle_call, state, ops, envelope, auth_header)
        return JSONResponse(status_code=result["status"], content=result["body"])

    logger.debug("RPC app created ops=%d", len(ops.names()))
    return app
