# src/slipbox/auth/credentials.py

"""
Credential Verifier.

Verifies RS-signed access tokens issued by the external identity authority.
The public keys come from the authority's JWKS endpoint, fetched once at
startup; keys rotated after that are not picked up until restart.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import httpx
import jwt
from jwt.algorithms import RSAAlgorithm

from ..core.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

ALGORITHMS = ["RS256", "RS384", "RS512"]
ACCESS_TOKEN_TYPE = "access"


class InvalidTokenError(UnauthenticatedError):
    def __init__(self, message: str = "invalid token") -> None:
        super().__init__(message)


class InvalidTokenTypeError(UnauthenticatedError):
    def __init__(self, message: str = "token type must be 'access'") -> None:
        super().__init__(message)


class InvalidIssuerError(UnauthenticatedError):
    def __init__(self, message: str = "invalid token issuer") -> None:
        super().__init__(message)


class TokenExpiredError(UnauthenticatedError):
    def __init__(self, message: str = "token has expired") -> None:
        super().__init__(message)


class UnknownKeyError(UnauthenticatedError):
    def __init__(self, message: str = "unknown signing key") -> None:
        super().__init__(message)


class MissingUserIDError(UnauthenticatedError):
    def __init__(self, message: str = "no user ID found in token claims") -> None:
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class VerifiedClaims:
    """Claims of a token that passed every check."""

    issuer: str
    token_type: str
    subject: str | None = None
    uid: str | None = None
    expires_at: float | None = None
    raw: dict[str, Any] = field(default_factory=dict)


def fetch_jwks(
    url: str,
    *,
    client: httpx.Client | None = None,
    timeout: float = 10.0,
) -> dict[str, Any]:
    """
    Download the JWKS and return a {kid: RSA public key} map.

    Non-RSA keys are skipped. Any transport, status or parse failure raises.
    """
    own_client = client is None
    http = client or httpx.Client(timeout=timeout)
    try:
        resp = http.get(url)
        resp.raise_for_status()
        payload = resp.json()
    finally:
        if own_client:
            http.close()

    keys: dict[str, Any] = {}
    for jwk in payload.get("keys", []) or []:
        if not isinstance(jwk, dict) or jwk.get("kty") != "RSA":
            continue
        kid = jwk.get("kid")
        if not kid:
            logger.debug("JWKS key without kid skipped")
            continue
        keys[str(kid)] = RSAAlgorithm.from_jwk(json.dumps(jwk))

    logger.info("JWKS loaded url=%s keys=%d", url, len(keys))
    return keys


class AccessTokenVerifier:
    def __init__(self, keys: dict[str, Any], expected_issuer: str) -> None:
        self._keys = dict(keys)
        self._expected_issuer = expected_issuer

    @property
    def key_ids(self) -> list[str]:
        return sorted(self._keys)

    def verify(self, token: str) -> VerifiedClaims:
        """
        Verify signature and claims. Checks, in order after the signature:
        token type == "access", issuer == expected issuer, expiry in the future.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"invalid token: {e}") from None

        kid = header.get("kid")
        if not isinstance(kid, str) or not kid:
            raise InvalidTokenError("missing kid in token header")
        key = self._keys.get(kid)
        if key is None:
            raise UnknownKeyError(f"unknown kid: {kid}")

        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=ALGORITHMS,
                options={"verify_exp": False, "verify_aud": False},
            )
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(f"invalid token: {e}") from None

        if claims.get("typ") != ACCESS_TOKEN_TYPE:
            raise InvalidTokenTypeError()
        if claims.get("iss") != self._expected_issuer:
            raise InvalidIssuerError()

        exp = claims.get("exp")
        if exp is not None:
            try:
                exp_ts = float(exp)
            except (TypeError, ValueError):
                raise InvalidTokenError("invalid exp claim") from None
            if exp_ts <= time.time():
                raise TokenExpiredError()
        else:
            exp_ts = None

        return VerifiedClaims(
            issuer=str(claims["iss"]),
            token_type=ACCESS_TOKEN_TYPE,
            subject=_str_or_none(claims.get("sub")),
            uid=_str_or_none(claims.get("uid")),
            expires_at=exp_ts,
            raw=claims,
        )

    @staticmethod
    def extract_user_id(claims: VerifiedClaims) -> str:
        """The dedicated uid claim wins; sub is the fallback."""
        if claims.uid:
            return claims.uid
        if claims.subject:
            return claims.subject
        raise MissingUserIDError()


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None
