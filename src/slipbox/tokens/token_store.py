# src/slipbox/tokens/token_store.py

from __future__ import annotations

import logging
import sqlite3
import time
import uuid

from ..core.errors import NotFoundError
from ..storage.database import Database
from .token_models import ApiToken

logger = logging.getLogger(__name__)


class ApiTokenStore:
    """
    API token rows.

    Lookups by id are not owner-filtered: the service compares owners itself so
    it can answer a mismatch with Unauthorized rather than NotFound.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_token(row: sqlite3.Row) -> ApiToken:
        return ApiToken(
            id=str(row["id"]),
            token=str(row["token"]),
            user_id=str(row["user_id"]),
            name=str(row["name"]),
            created_at=float(row["created_at"] or 0.0),
            expires_at=float(row["expires_at"]) if row["expires_at"] is not None else None,
            last_used_at=float(row["last_used_at"]) if row["last_used_at"] is not None else None,
            is_active=bool(row["is_active"]),
        )

    def create(self, user_id: str, name: str, expires_at: float | None = None) -> ApiToken:
        token = ApiToken(
            id=str(uuid.uuid4()),
            token=str(uuid.uuid4()),
            user_id=user_id,
            name=name,
            created_at=time.time(),
            expires_at=expires_at,
        )
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO api_tokens(id, token, user_id, name, created_at, expires_at, last_used_at, is_active)
                VALUES (?, ?, ?, ?, ?, ?, NULL, 1)
                """,
                (token.id, token.token, token.user_id, token.name, token.created_at, token.expires_at),
            )
        logger.debug("ApiToken added id=%s owner=%s", token.id, user_id)
        return token

    def get_by_id(self, token_id: str) -> ApiToken:
        with self._db.connection() as conn:
            row = conn.execute("SELECT * FROM api_tokens WHERE id = ?", (token_id,)).fetchone()
        if row is None:
            raise NotFoundError("api token not found")
        return self._row_to_token(row)

    def get_by_token(self, token_value: str) -> ApiToken | None:
        with self._db.connection() as conn:
            row = conn.execute("SELECT * FROM api_tokens WHERE token = ?", (token_value,)).fetchone()
        return self._row_to_token(row) if row else None

    def list_by_user(self, user_id: str) -> list[ApiToken]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM api_tokens
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                """,
                (user_id,),
            ).fetchall()
        return [self._row_to_token(r) for r in rows]

    def touch_last_used(self, token_id: str, now: float | None = None) -> None:
        with self._db.connection() as conn:
            conn.execute(
                "UPDATE api_tokens SET last_used_at = ? WHERE id = ?",
                (time.time() if now is None else now, token_id),
            )

    def revoke(self, token_id: str) -> None:
        with self._db.connection() as conn:
            cur = conn.execute("UPDATE api_tokens SET is_active = 0 WHERE id = ?", (token_id,))
            if cur.rowcount != 1:
                raise NotFoundError("api token not found")

    def delete(self, token_id: str) -> None:
        with self._db.connection() as conn:
            cur = conn.execute("DELETE FROM api_tokens WHERE id = ?", (token_id,))
            if cur.rowcount != 1:
                raise NotFoundError("api token not found")
