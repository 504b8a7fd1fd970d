# src/slipbox/rpc/router.py

"""
Envelope dispatch for POST /call.

handle_call() never raises: every outcome becomes {"status": int, "body": dict}
with body {"requestId", "state": "complete", "result"} or
{"requestId", "state": "error", "error": {"code", "message"}}.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from ..core.errors import ErrorKind, ServiceError
from ..core.state import AppState
from .registry import OperationRegistry

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.INVALID_ARGUMENT: 400,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.UNAUTHORIZED: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ALREADY_EXISTS: 409,
    ErrorKind.INTERNAL: 500,
    ErrorKind.UNIMPLEMENTED: 501,
}


def _error(base: dict[str, Any], status: int, code: str, message: str) -> dict[str, Any]:
    return {
        "status": status,
        "body": {**base, "state": "error", "error": {"code": code, "message": message}},
    }


def error_for(base: dict[str, Any], exc: ServiceError) -> dict[str, Any]:
    status = STATUS_BY_KIND.get(exc.kind, 500)
    return _error(base, status, exc.kind.value.upper(), exc.message)


def handle_call(
    state: AppState,
    registry: OperationRegistry,
    envelope: Any,
    auth_header: str | None = None,
) -> dict[str, Any]:
    if not isinstance(envelope, dict):
        return _error({"requestId": str(uuid.uuid4())}, 400, "INVALID_REQUEST", "Envelope must be a JSON object")

    ctx = envelope.get("ctx") or {}
    request_id = ctx.get("requestId") if isinstance(ctx, dict) else None
    if not isinstance(request_id, str) or not request_id:
        request_id = str(uuid.uuid4())
    base: dict[str, Any] = {"requestId": request_id}

    op = envelope.get("op")
    if not op or not isinstance(op, str):
        return _error(base, 400, "INVALID_REQUEST", "Missing or invalid 'op' field")

    handler = registry.get(op)
    if handler is None:
        return _error(base, 400, "UNKNOWN_OP", f"Unknown operation: {op}")

    args = envelope.get("args")
    if args is None:
        args = {}
    if not isinstance(args, dict):
        return _error(base, 400, "INVALID_REQUEST", "'args' must be a JSON object")

    try:
        owner_id = "" if state.identity.is_public(op) else state.identity.resolve(auth_header)
    except ServiceError as e:
        logger.info("call rejected op=%s request_id=%s kind=%s", op, base["requestId"], e.kind)
        return error_for(base, e)

    try:
        result = handler(state, owner_id, args)
    except ServiceError as e:
        if e.kind is ErrorKind.INTERNAL:
            logger.error("operation failed op=%s request_id=%s: %s", op, base["requestId"], e.message)
        else:
            logger.debug("operation error op=%s kind=%s message=%s", op, e.kind, e.message)
        return error_for(base, e)
    except Exception:
        logger.exception("unexpected error op=%s request_id=%s", op, base["requestId"])
        return _error(base, 500, "INTERNAL", f"failed to handle {op}")

    return {"status": 200, "body": {**base, "state": "complete", "result": result}}
