# src/slipbox/tags/tag_service.py

from __future__ import annotations

import logging
import sqlite3

from ..core.errors import NotFoundError
from ..core.validation import validate_tag_name
from .tag_models import Tag
from .tag_store import TagStore

logger = logging.getLogger(__name__)


class TagService:
    """
    Tag lifecycle: owner-scoped CRUD, get-or-create by name, orphan cleanup.

    Callers pass the resolved identity as owner_id on every call.
    """

    def __init__(self, store: TagStore, *, log: logging.Logger | None = None) -> None:
        self._store = store
        self._log = log or logger

    def create_tag(self, owner_id: str, name: str) -> Tag:
        validate_tag_name(name)
        tag = self._store.create(name, owner_id)
        self._log.info("tag created id=%s owner_id=%s", tag.id, owner_id)
        return tag

    def get_tag(self, owner_id: str, tag_id: str) -> Tag:
        try:
            return self._store.get(tag_id, owner_id)
        except NotFoundError:
            self._log.debug("tag not found id=%s owner_id=%s", tag_id, owner_id)
            raise

    def update_tag(self, owner_id: str, tag_id: str, name: str) -> Tag:
        validate_tag_name(name)
        tag = self._store.update(tag_id, owner_id, name)
        self._log.info("tag updated id=%s", tag_id)
        return tag

    def delete_tag(self, owner_id: str, tag_id: str) -> None:
        self._store.delete(tag_id, owner_id)
        self._log.info("tag deleted id=%s", tag_id)

    def list_tags(self, owner_id: str, *, limit: int, offset: int = 0) -> list[Tag]:
        return self._store.list_tags(owner_id, limit=limit, offset=offset)

    def get_or_create(
        self,
        owner_id: str,
        name: str,
        *,
        conn: sqlite3.Connection | None = None,
    ) -> Tag:
        validate_tag_name(name)
        return self._store.get_or_create(name, owner_id, conn=conn)

    def resolve_names(
        self,
        owner_id: str,
        names: list[str],
        *,
        conn: sqlite3.Connection | None = None,
    ) -> list[str]:
        """
        Map tag names to tag ids, creating missing tags.

        Duplicate names collapse to one id; first-seen order is kept.
        """
        ids: list[str] = []
        seen: set[str] = set()
        for name in names:
            tag = self.get_or_create(owner_id, name, conn=conn)
            if tag.id not in seen:
                seen.add(tag.id)
                ids.append(tag.id)
        return ids

    def delete_orphans(self, owner_id: str) -> int:
        removed = self._store.delete_orphans(owner_id)
        if removed:
            self._log.info("orphan tags removed owner_id=%s count=%d", owner_id, removed)
        return removed

    def cleanup_orphans_quietly(self, owner_id: str) -> None:
        """
        Post-commit hook for task update/delete.

        Cleanup is best-effort: a failure is logged and never reaches the
        operation that triggered it.
        """
        try:
            self.delete_orphans(owner_id)
        except Exception:
            self._log.warning("failed to clean up orphan tags owner_id=%s", owner_id, exc_info=True)
