# src/slipbox/tags/tag_store.py

from __future__ import annotations

import logging
import sqlite3
import time
import uuid

from ..core.errors import AlreadyExistsError, NotFoundError
from ..storage.database import Database, is_unique_violation
from .tag_models import Tag

logger = logging.getLogger(__name__)


class TagStore:
    """
    Owner-scoped tag rows.

    Every lookup filters by owner_id, so a tag belonging to someone else is
    indistinguishable from a missing one.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    @staticmethod
    def _row_to_tag(row: sqlite3.Row) -> Tag:
        return Tag(
            id=str(row["id"]),
            name=str(row["name"]),
            owner_id=str(row["owner_id"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    # ---- public API ----

    def create(self, name: str, owner_id: str, *, conn: sqlite3.Connection | None = None) -> Tag:
        now = time.time()
        tag = Tag(id=str(uuid.uuid4()), name=name, owner_id=owner_id, created_at=now, updated_at=now)
        with self._db.using(conn) as c:
            try:
                c.execute(
                    """
                    INSERT INTO tags(id, name, owner_id, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (tag.id, tag.name, tag.owner_id, tag.created_at, tag.updated_at),
                )
            except sqlite3.IntegrityError as e:
                if is_unique_violation(e):
                    raise AlreadyExistsError(f"tag {name!r} already exists") from e
                raise
        logger.debug("Tag added id=%s owner=%s", tag.id, owner_id)
        return tag

    def get(self, tag_id: str, owner_id: str) -> Tag:
        with self._db.connection() as conn:
            row = conn.execute(
                "SELECT * FROM tags WHERE id = ? AND owner_id = ?",
                (tag_id, owner_id),
            ).fetchone()
        if row is None:
            raise NotFoundError("tag not found")
        return self._row_to_tag(row)

    def find_by_name(
        self, name: str, owner_id: str, *, conn: sqlite3.Connection | None = None
    ) -> Tag | None:
        with self._db.using(conn) as c:
            row = c.execute(
                "SELECT * FROM tags WHERE owner_id = ? AND name = ?",
                (owner_id, name),
            ).fetchone()
        return self._row_to_tag(row) if row else None

    def get_or_create(self, name: str, owner_id: str, *, conn: sqlite3.Connection | None = None) -> Tag:
        """
        Return the (owner_id, name) tag, inserting it if needed.

        A concurrent insert of the same pair loses on the UNIQUE constraint;
        the loser re-reads and returns the winner's row.
        """
        existing = self.find_by_name(name, owner_id, conn=conn)
        if existing is not None:
            return existing
        try:
            return self.create(name, owner_id, conn=conn)
        except AlreadyExistsError:
            logger.debug("get_or_create race on tag name owner=%s; re-reading", owner_id)
            winner = self.find_by_name(name, owner_id, conn=conn)
            if winner is None:
                raise
            return winner

    def update(self, tag_id: str, owner_id: str, name: str) -> Tag:
        now = time.time()
        with self._db.connection() as conn:
            try:
                cur = conn.execute(
                    "UPDATE tags SET name = ?, updated_at = ? WHERE id = ? AND owner_id = ?",
                    (name, now, tag_id, owner_id),
                )
            except sqlite3.IntegrityError as e:
                if is_unique_violation(e):
                    raise AlreadyExistsError(f"tag {name!r} already exists") from e
                raise
            if cur.rowcount != 1:
                raise NotFoundError("tag not found")
        return self.get(tag_id, owner_id)

    def delete(self, tag_id: str, owner_id: str) -> None:
        with self._db.connection() as conn:
            cur = conn.execute(
                "DELETE FROM tags WHERE id = ? AND owner_id = ?",
                (tag_id, owner_id),
            )
            if cur.rowcount != 1:
                raise NotFoundError("tag not found")

    def list_tags(self, owner_id: str, *, limit: int, offset: int) -> list[Tag]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT *
                FROM tags
                WHERE owner_id = ?
                ORDER BY name ASC
                    LIMIT ? OFFSET ?
                """,
                (owner_id, int(limit), int(offset)),
            ).fetchall()
        return [self._row_to_tag(r) for r in rows]

    def delete_orphans(self, owner_id: str) -> int:
        """Delete the owner's tags that no task references. Returns the number removed."""
        with self._db.connection() as conn:
            cur = conn.execute(
                """
                DELETE FROM tags
                WHERE owner_id = ?
                  AND NOT EXISTS (
                    SELECT 1 FROM task_tags tt WHERE tt.tag_id = tags.id
                  )
                """,
                (owner_id,),
            )
            return int(cur.rowcount)
