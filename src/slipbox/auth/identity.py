# src/slipbox/auth/identity.py

from __future__ import annotations

import logging

from ..core.errors import ServiceError, UnauthenticatedError
from ..core.ports import ClaimsVerifier, TokenValidator
from ..core.validation import parse_uuid

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"
API_TOKEN_SCHEME = "API-Token"

# Operations that establish identity rather than consume it.
PUBLIC_OPERATIONS: frozenset[str] = frozenset(
    {
        "GetAuthorizationURL",
        "HandleCallback",
        "RefreshToken",
    }
)


class IdentityResolver:
    """
    Maps an Authorization header to the caller's owner id.

    - "Bearer <jwt>": verified by the credential verifier (scheme matched case-insensitively)
    - "API-Token <uuid>": looked up by the API token service (exact scheme)
    Anything else is UnauthenticatedError.
    """

    def __init__(
        self,
        verifier: ClaimsVerifier,
        tokens: TokenValidator,
        *,
        log: logging.Logger | None = None,
    ) -> None:
        self._verifier = verifier
        self._tokens = tokens
        self._log = log or logger

    @staticmethod
    def is_public(op: str) -> bool:
        return op in PUBLIC_OPERATIONS

    def resolve(self, header: str | None) -> str:
        if not header or not header.strip():
            raise UnauthenticatedError("missing authorization header")

        scheme, _, value = header.strip().partition(" ")
        value = value.strip()

        if scheme.lower() == BEARER_SCHEME:
            if not value:
                raise UnauthenticatedError("invalid authorization header format")
            claims = self._verifier.verify(value)
            return self._verifier.extract_user_id(claims)

        if scheme == API_TOKEN_SCHEME:
            return self._resolve_api_token(value)

        raise UnauthenticatedError(
            f"unsupported authentication scheme (expected 'Bearer' or '{API_TOKEN_SCHEME}')"
        )

    def _resolve_api_token(self, value: str) -> str:
        try:
            token_value = parse_uuid(value, "api token")
        except ServiceError:
            raise UnauthenticatedError("invalid api token format") from None

        try:
            return self._tokens.validate(token_value)
        except UnauthenticatedError:
            raise
        except ServiceError as e:
            # NotFound and friends must not leak as anything but a failed login.
            self._log.debug("api token rejected kind=%s", e.kind)
            raise UnauthenticatedError(f"invalid api token: {e.message}") from None
