# src/slipbox/cli/bootstrap.py

"""
Composition root.

- ensures local (gitignored) directories exist,
- opens the database,
- loads the identity authority's signing keys (once, at startup),
- wires stores and services into AppState.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..auth.credentials import AccessTokenVerifier, fetch_jwks
from ..auth.identity import IdentityResolver
from ..config import get_settings
from ..core.detached import DetachedRunner
from ..core.ports import ClaimsVerifier
from ..core.state import AppState
from ..storage.database import Database
from ..tags.tag_service import TagService
from ..tags.tag_store import TagStore
from ..tasks.task_service import TaskService
from ..tasks.task_store import TaskStore
from ..tokens.token_service import ApiTokenService
from ..tokens.token_store import ApiTokenStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)
    Path(settings.db_path).parent.mkdir(parents=True, exist_ok=True)


def load_verifier(settings) -> AccessTokenVerifier:
    """Fetch the JWKS and build the verifier. Failure here aborts startup."""
    keys = fetch_jwks(settings.jwks_url, timeout=float(settings.jwks_timeout_seconds))
    verifier = AccessTokenVerifier(keys, settings.expected_issuer)
    if verifier.key_ids:
        logger.info("Loaded signing keys from %s: %s", settings.jwks_url, ", ".join(verifier.key_ids))
    else:
        logger.warning("JWKS at %s has no usable RSA keys; every bearer token will be rejected", settings.jwks_url)
    return verifier


def create_state(*, settings=None, verifier: ClaimsVerifier | None = None) -> AppState:
    """
    Build AppState from settings.

    verifier is injectable so tests (and offline runs) skip the JWKS fetch.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    db = Database(settings.db_path)
    detached = DetachedRunner(max_workers=int(getattr(settings, "detached_workers", 2)))

    tags = TagService(TagStore(db))
    tasks = TaskService(db, TaskStore(db), tags)
    tokens = ApiTokenService(ApiTokenStore(db), detached=detached)

    if verifier is None:
        verifier = load_verifier(settings)

    return AppState(
        settings=settings,
        db=db,
        tasks=tasks,
        tags=tags,
        tokens=tokens,
        identity=IdentityResolver(verifier, tokens),
        detached=detached,
    )
