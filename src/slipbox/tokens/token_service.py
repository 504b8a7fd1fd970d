# src/slipbox/tokens/token_service.py

from __future__ import annotations

import logging
import time

from ..core.errors import NotFoundError, UnauthenticatedError, UnauthorizedError
from ..core.ports import BackgroundRunner
from ..core.validation import MAX_TOKEN_NAME_LENGTH, validate_length, validate_not_empty
from .token_models import ApiToken
from .token_store import ApiTokenStore

logger = logging.getLogger(__name__)


class ApiTokenNotFoundError(NotFoundError):
    def __init__(self, message: str = "api token not found") -> None:
        super().__init__(message)


class ApiTokenInactiveError(UnauthenticatedError):
    def __init__(self, message: str = "api token is inactive") -> None:
        super().__init__(message)


class ApiTokenExpiredError(UnauthenticatedError):
    def __init__(self, message: str = "api token has expired") -> None:
        super().__init__(message)


class ApiTokenService:
    """
    API token lifecycle.

    get/revoke/delete compare the stored owner with the caller and answer a
    mismatch with UnauthorizedError. validate() is the only unauthenticated
    entry point; it schedules the last-used update as detached work.
    """

    def __init__(
        self,
        store: ApiTokenStore,
        *,
        detached: BackgroundRunner | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._store = store
        self._detached = detached
        self._log = log or logger

    def _owned(self, owner_id: str, token_id: str, action: str) -> ApiToken:
        token = self._store.get_by_id(token_id)
        if token.user_id != owner_id:
            self._log.warning(
                "unauthorized api token %s attempt token_id=%s requester=%s",
                action,
                token_id,
                owner_id,
            )
            raise UnauthorizedError("unauthorized: user mismatch")
        return token

    def create_token(self, owner_id: str, name: str, expires_at: float | None = None) -> ApiToken:
        validate_not_empty(name, "name")
        validate_length(name, "name", MAX_TOKEN_NAME_LENGTH)
        token = self._store.create(owner_id, name, expires_at)
        self._log.info("api token created id=%s owner_id=%s", token.id, owner_id)
        return token

    def get_token(self, owner_id: str, token_id: str) -> ApiToken:
        return self._owned(owner_id, token_id, "read")

    def list_tokens(self, owner_id: str) -> list[ApiToken]:
        tokens = self._store.list_by_user(owner_id)
        self._log.debug("listed api tokens owner_id=%s count=%d", owner_id, len(tokens))
        return tokens

    def revoke_token(self, owner_id: str, token_id: str) -> None:
        self._owned(owner_id, token_id, "revoke")
        self._store.revoke(token_id)
        self._log.info("api token revoked id=%s owner_id=%s", token_id, owner_id)

    def delete_token(self, owner_id: str, token_id: str) -> None:
        self._owned(owner_id, token_id, "delete")
        self._store.delete(token_id)
        self._log.info("api token deleted id=%s owner_id=%s", token_id, owner_id)

    def validate(self, token_value: str) -> str:
        """
        Return the owner id for a presented token value.

        Raises ApiTokenNotFoundError, ApiTokenInactiveError or ApiTokenExpiredError.
        """
        token = self._store.get_by_token(token_value)
        if token is None:
            self._log.debug("api token not found")
            raise ApiTokenNotFoundError()

        now = time.time()
        if not token.is_active:
            self._log.info("inactive api token presented id=%s", token.id)
            raise ApiTokenInactiveError()
        if token.is_expired(now):
            self._log.info("expired api token presented id=%s", token.id)
            raise ApiTokenExpiredError()

        self._schedule_touch(token.id, now)
        return token.user_id

    def _schedule_touch(self, token_id: str, now: float) -> None:
        if self._detached is None:
            self._touch_quietly(token_id, now)
            return
        self._detached.submit("api-token-last-used", self._store.touch_last_used, token_id, now)

    def _touch_quietly(self, token_id: str, now: float) -> None:
        try:
            self._store.touch_last_used(token_id, now)
        except Exception:
            self._log.warning("failed to update api token last_used_at id=%s", token_id, exc_info=True)
