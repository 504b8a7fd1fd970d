# src/slipbox/tasks/task_service.py

"""
Task engine.

Owns the task rules that cut across storage tables:
- tag names are resolved (and created) per owner before a task is written,
  inside the same transaction as the task row
- the start-date classification only changes when a change is supplied
- orphan tags are cleaned up after update/delete, without ever failing them
- checklist reorders are all-or-nothing
"""

from __future__ import annotations

import logging
import time

from ..core.errors import InvalidArgumentError, InvalidOrderError, NotFoundError
from ..core.validation import (
    MAX_CHECKLIST_ITEM_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_TITLE_LENGTH,
    validate_length,
    validate_not_empty,
)
from ..storage.database import Database
from ..tags.tag_service import TagService
from .task_models import ArchiveFilter, ChecklistItem, StartDate, Task
from .task_store import TaskStore

logger = logging.getLogger(__name__)


def _validate_title_notes(title: str, notes: str) -> None:
    validate_not_empty(title, "title")
    validate_length(title, "title", MAX_TITLE_LENGTH)
    validate_length(notes, "notes", MAX_NOTES_LENGTH)


def _validate_item_content(content: str) -> None:
    validate_not_empty(content, "content")
    validate_length(content, "content", MAX_CHECKLIST_ITEM_LENGTH)


class TaskService:
    def __init__(
        self,
        db: Database,
        store: TaskStore,
        tags: TagService,
        *,
        log: logging.Logger | None = None,
    ) -> None:
        self._db = db
        self._store = store
        self._tags = tags
        self._log = log or logger

    # ---- tasks ----

    def create_task(
        self,
        owner_id: str,
        *,
        title: str,
        notes: str = "",
        tag_names: list[str] | None = None,
        start_date: StartDate | None = None,
        checklist: list[str] | None = None,
    ) -> Task:
        """
        Create a task. start_date=None means inbox. Checklist items are seeded
        in the given order at positions 0..n-1.
        """
        tag_names = list(tag_names or [])
        checklist = list(checklist or [])
        _validate_title_notes(title, notes)
        for content in checklist:
            _validate_item_content(content)
        start_date = start_date or StartDate.inbox()

        with self._db.transaction() as conn:
            tag_ids = self._tags.resolve_names(owner_id, tag_names, conn=conn)
            task_id = self._store.insert(
                title=title,
                notes=notes,
                owner_id=owner_id,
                tag_ids=tag_ids,
                start_date=start_date,
                checklist=checklist,
                conn=conn,
            )
            task = self._store.get(task_id, owner_id, conn=conn)

        self._log.info("task created id=%s owner_id=%s", task.id, owner_id)
        return task

    def get_task(self, owner_id: str, task_id: str) -> Task:
        try:
            return self._store.get(task_id, owner_id)
        except NotFoundError:
            self._log.debug("task not found id=%s owner_id=%s", task_id, owner_id)
            raise

    def update_task(
        self,
        owner_id: str,
        task_id: str,
        *,
        title: str,
        notes: str = "",
        tag_names: list[str] | None = None,
        start_date: StartDate | None = None,
    ) -> Task:
        """
        Replace title, notes and the tag set.

        start_date is a change request: None leaves the stored classification
        as it is, StartDate.inbox() clears it, StartDate.scheduled(d) sets it.
        """
        _validate_title_notes(title, notes)

        with self._db.transaction() as conn:
            tag_ids = self._tags.resolve_names(owner_id, list(tag_names or []), conn=conn)
            self._store.update(
                task_id,
                owner_id,
                title=title,
                notes=notes,
                tag_ids=tag_ids,
                start_date=start_date,
                conn=conn,
            )
            task = self._store.get(task_id, owner_id, conn=conn)

        self._tags.cleanup_orphans_quietly(owner_id)
        self._log.info("task updated id=%s", task_id)
        return task

    def delete_task(self, owner_id: str, task_id: str) -> None:
        self._store.delete(task_id, owner_id)
        self._tags.cleanup_orphans_quietly(owner_id)
        self._log.info("task deleted id=%s", task_id)

    def archive_task(self, owner_id: str, task_id: str) -> Task:
        task = self._store.set_archived_at(task_id, owner_id, time.time())
        self._log.info("task archived id=%s", task_id)
        return task

    def unarchive_task(self, owner_id: str, task_id: str) -> Task:
        task = self._store.set_archived_at(task_id, owner_id, None)
        self._log.info("task unarchived id=%s", task_id)
        return task

    def list_tasks(
        self,
        owner_id: str,
        *,
        filter_tag_ids: list[str] | None = None,
        limit: int = 30,
        offset: int = 0,
        archive_filter: ArchiveFilter = ArchiveFilter.ACTIVE_ONLY,
    ) -> list[Task]:
        return self._store.list_tasks(
            owner_id,
            filter_tag_ids=list(filter_tag_ids or []),
            limit=limit,
            offset=offset,
            archive_filter=archive_filter,
        )

    # ---- checklist ----

    def add_checklist_item(self, owner_id: str, task_id: str, content: str) -> ChecklistItem:
        _validate_item_content(content)
        item = self._store.add_item(task_id, owner_id, content)
        self._log.debug("checklist item added id=%s task_id=%s", item.id, task_id)
        return item

    def update_checklist_item_content(self, owner_id: str, item_id: str, content: str) -> ChecklistItem:
        _validate_item_content(content)
        return self._store.update_item_content(item_id, owner_id, content)

    def set_checklist_item_completed(self, owner_id: str, item_id: str, completed: bool) -> ChecklistItem:
        return self._store.set_item_completed(item_id, owner_id, bool(completed))

    def delete_checklist_item(self, owner_id: str, item_id: str) -> None:
        self._store.delete_item(item_id, owner_id)
        self._log.debug("checklist item deleted id=%s", item_id)

    def list_checklist_items(self, owner_id: str, task_id: str) -> list[ChecklistItem]:
        return self._store.list_items(task_id, owner_id)

    def reorder_checklist_items(self, owner_id: str, task_id: str, item_ids: list[str]) -> list[ChecklistItem]:
        if not item_ids:
            raise InvalidArgumentError("item_ids cannot be empty")
        try:
            items = self._store.reorder_items(task_id, owner_id, list(item_ids))
        except InvalidOrderError:
            self._log.info("checklist reorder rejected task_id=%s supplied=%d", task_id, len(item_ids))
            raise
        self._log.debug("checklist reordered task_id=%s items=%d", task_id, len(items))
        return items
