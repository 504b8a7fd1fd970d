# src/slipbox/core/errors.py

"""
Error taxonomy shared by every component.

Services and stores raise ServiceError subclasses; the RPC router turns them
into error envelopes. Anything that is not a ServiceError is treated as an
internal failure and never shown to the caller verbatim.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    INVALID_ARGUMENT = "invalid_argument"
    UNAUTHENTICATED = "unauthenticated"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    INTERNAL = "internal"
    UNIMPLEMENTED = "unimplemented"


class ServiceError(Exception):
    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.kind.value.replace("_", " ")


class InvalidArgumentError(ServiceError):
    kind = ErrorKind.INVALID_ARGUMENT


class UnauthenticatedError(ServiceError):
    kind = ErrorKind.UNAUTHENTICATED


class UnauthorizedError(ServiceError):
    kind = ErrorKind.UNAUTHORIZED


class NotFoundError(ServiceError):
    kind = ErrorKind.NOT_FOUND


class AlreadyExistsError(ServiceError):
    kind = ErrorKind.ALREADY_EXISTS


class InternalError(ServiceError):
    kind = ErrorKind.INTERNAL


class UnimplementedError(ServiceError):
    kind = ErrorKind.UNIMPLEMENTED


class InvalidOrderError(InvalidArgumentError):
    """Checklist reorder list does not match the task's current item set."""

    def __init__(self, message: str = "item_ids must include all checklist item IDs exactly once") -> None:
        super().__init__(message)
