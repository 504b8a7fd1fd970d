# tests/test_credentials.py

from __future__ import annotations

import json
import time
from collections.abc import Callable

import httpx
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from slipbox.auth.credentials import (
    AccessTokenVerifier,
    InvalidIssuerError,
    InvalidTokenError,
    InvalidTokenTypeError,
    MissingUserIDError,
    TokenExpiredError,
    UnknownKeyError,
    VerifiedClaims,
    fetch_jwks,
)
from slipbox.core.errors import UnauthenticatedError

from .conftest import ISSUER, KID, OWNER

MakeJwt = Callable[..., str]


def test_valid_access_token(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    claims = verifier.verify(make_jwt())

    assert isinstance(claims, VerifiedClaims)
    assert claims.issuer == ISSUER
    assert claims.subject == OWNER
    assert claims.expires_at is not None and claims.expires_at > time.time()
    assert verifier.extract_user_id(claims) == OWNER


def test_token_without_exp_is_accepted(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    claims = verifier.verify(make_jwt(exp=None))
    assert claims.expires_at is None


def test_uid_claim_wins_over_sub(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    claims = verifier.verify(make_jwt(sub="subject-id", uid="uid-id"))
    assert verifier.extract_user_id(claims) == "uid-id"

    only_uid = verifier.verify(make_jwt(sub=None, uid="uid-id"))
    assert verifier.extract_user_id(only_uid) == "uid-id"


def test_missing_user_id(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    claims = verifier.verify(make_jwt(sub=None))
    with pytest.raises(MissingUserIDError):
        verifier.extract_user_id(claims)


@pytest.mark.parametrize("typ", ["refresh", None, "ACCESS"])
def test_non_access_token_type_is_rejected(verifier: AccessTokenVerifier, make_jwt: MakeJwt, typ) -> None:
    with pytest.raises(InvalidTokenTypeError):
        verifier.verify(make_jwt(typ=typ))


def test_wrong_issuer_is_rejected(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    with pytest.raises(InvalidIssuerError):
        verifier.verify(make_jwt(iss="someone-else"))
    with pytest.raises(InvalidIssuerError):
        verifier.verify(make_jwt(iss=None))


def test_expired_token_is_rejected(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    with pytest.raises(TokenExpiredError):
        verifier.verify(make_jwt(exp=int(time.time()) - 60))


def test_unknown_kid_is_rejected(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    with pytest.raises(UnknownKeyError):
        verifier.verify(make_jwt(kid="rotated-away"))


def test_missing_kid_is_invalid(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    with pytest.raises(InvalidTokenError, match="missing kid"):
        verifier.verify(make_jwt(kid=None))


def test_signature_from_other_key_is_invalid(verifier: AccessTokenVerifier, make_jwt: MakeJwt) -> None:
    impostor = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    with pytest.raises(InvalidTokenError):
        verifier.verify(make_jwt(key=impostor))


def test_garbage_is_invalid(verifier: AccessTokenVerifier) -> None:
    with pytest.raises(InvalidTokenError):
        verifier.verify("not.a.jwt")


def test_all_failures_are_unauthenticated() -> None:
    for cls in (
        InvalidTokenError,
        InvalidTokenTypeError,
        InvalidIssuerError,
        TokenExpiredError,
        UnknownKeyError,
        MissingUserIDError,
    ):
        assert issubclass(cls, UnauthenticatedError)


# ---- JWKS ----


def _jwk(public_key, kid: str) -> dict:
    data = json.loads(RSAAlgorithm.to_jwk(public_key))
    data["kid"] = kid
    data["use"] = "sig"
    data["alg"] = "RS256"
    return data


def test_fetch_jwks_builds_key_map(rsa_key: rsa.RSAPrivateKey, make_jwt: MakeJwt) -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(
            200,
            json={
                "keys": [
                    _jwk(rsa_key.public_key(), KID),
                    {"kty": "EC", "kid": "ec-key", "crv": "P-256", "x": "AA", "y": "AA"},
                ]
            },
        )

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        keys = fetch_jwks("https://issuer.test/.well-known/jwks.json", client=client)

    assert requested == ["https://issuer.test/.well-known/jwks.json"]
    assert list(keys) == [KID]

    verifier = AccessTokenVerifier(keys, ISSUER)
    assert verifier.key_ids == [KID]
    assert verifier.extract_user_id(verifier.verify(make_jwt())) == OWNER


def test_fetch_jwks_raises_on_http_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"error": "unavailable"})

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(httpx.HTTPStatusError):
            fetch_jwks("https://issuer.test/jwks", client=client)
