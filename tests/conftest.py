# tests/conftest.py

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterator
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from slipbox.auth.credentials import AccessTokenVerifier
from slipbox.cli.bootstrap import create_state
from slipbox.core.detached import DetachedRunner
from slipbox.core.state import AppState
from slipbox.storage.database import Database
from slipbox.tags.tag_service import TagService
from slipbox.tags.tag_store import TagStore
from slipbox.tasks.task_service import TaskService
from slipbox.tasks.task_store import TaskStore
from slipbox.tokens.token_service import ApiTokenService
from slipbox.tokens.token_store import ApiTokenStore

ISSUER = "identra"
KID = "test-key"
OWNER = "user-1"
OTHER_OWNER = "user-2"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and AppState.

    A SimpleNamespace rather than the real config, so tests never read the
    environment or a local .env.
    """
    return SimpleNamespace(
        app_name="slipbox-test",
        log_level="DEBUG",
        host="127.0.0.1",
        port=0,
        data_dir=tmp_path,
        db_path=tmp_path / "slipbox.sqlite3",
        jwks_url="http://jwks.invalid/.well-known/jwks.json",
        expected_issuer=ISSUER,
        jwks_timeout_seconds=1.0,
        detached_workers=2,
    )


@pytest.fixture()
def db(settings: SimpleNamespace) -> Database:
    return Database(settings.db_path)


@pytest.fixture()
def tag_service(db: Database) -> TagService:
    return TagService(TagStore(db))


@pytest.fixture()
def task_service(db: Database, tag_service: TagService) -> TaskService:
    return TaskService(db, TaskStore(db), tag_service)


@pytest.fixture()
def detached() -> Iterator[DetachedRunner]:
    runner = DetachedRunner(max_workers=2)
    yield runner
    runner.shutdown(wait=True)


@pytest.fixture()
def token_store(db: Database) -> ApiTokenStore:
    return ApiTokenStore(db)


@pytest.fixture()
def token_service(token_store: ApiTokenStore, detached: DetachedRunner) -> ApiTokenService:
    return ApiTokenService(token_store, detached=detached)


# ---- signed access tokens ----


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture()
def verifier(rsa_key: rsa.RSAPrivateKey) -> AccessTokenVerifier:
    return AccessTokenVerifier({KID: rsa_key.public_key()}, ISSUER)


@pytest.fixture()
def make_jwt(rsa_key: rsa.RSAPrivateKey) -> Callable[..., str]:
    """
    Build a signed token. Claims default to a valid access token for OWNER;
    keyword overrides replace claims, and a value of None drops the claim.
    """

    def _make(*, kid: str | None = KID, key: Any = None, **overrides: Any) -> str:
        claims: dict[str, Any] = {
            "typ": "access",
            "iss": ISSUER,
            "sub": OWNER,
            "exp": int(time.time()) + 300,
            "jti": str(uuid.uuid4()),
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        headers = {"kid": kid} if kid is not None else None
        return jwt.encode(claims, key or rsa_key, algorithm="RS256", headers=headers)

    return _make


@pytest.fixture()
def state(settings: SimpleNamespace, verifier: AccessTokenVerifier) -> Iterator[AppState]:
    """
    AppState built by the real composition root, with the JWKS fetch replaced
    by a verifier over the test key.
    """
    app_state = create_state(settings=settings, verifier=verifier)
    yield app_state
    app_state.close()
