# src/slipbox/tasks/task_store.py

from __future__ import annotations

import logging
import sqlite3
import time
import uuid
from collections.abc import Iterable
from datetime import date
from typing import Any

from ..core.errors import InvalidOrderError, NotFoundError
from ..storage.database import Database
from .task_models import ArchiveFilter, ChecklistItem, StartDate, StartDateKind, Task

logger = logging.getLogger(__name__)


class TaskStore:
    """
    SQLite task store: tasks, their tag links and their checklist items.

    Every query is filtered by owner_id (checklist items through their parent
    task), so rows owned by someone else behave exactly like missing rows.

    Methods that take `conn` run inside the caller's transaction when one is
    given; otherwise they open their own connection.
    """

    def __init__(self, db: Database) -> None:
        self._db = db

    # ---- row mapping ----

    @staticmethod
    def _row_to_start_date(row: sqlite3.Row) -> StartDate:
        kind = StartDateKind(row["start_date_kind"] or StartDateKind.INBOX.value)
        raw = row["start_date"]
        return StartDate(kind, date.fromisoformat(raw) if raw else None)

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> ChecklistItem:
        return ChecklistItem(
            id=str(row["id"]),
            task_id=str(row["task_id"]),
            content=str(row["content"]),
            completed=bool(row["completed"]),
            sort_order=int(row["sort_order"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
        )

    def _row_to_task(
        self,
        row: sqlite3.Row,
        tag_ids: list[str],
        checklist: list[ChecklistItem],
    ) -> Task:
        return Task(
            id=str(row["id"]),
            title=str(row["title"]),
            notes=str(row["notes"] or ""),
            owner_id=str(row["owner_id"]),
            created_at=float(row["created_at"] or 0.0),
            updated_at=float(row["updated_at"] or 0.0),
            archived_at=float(row["archived_at"]) if row["archived_at"] is not None else None,
            start_date=self._row_to_start_date(row),
            tag_ids=tag_ids,
            checklist=checklist,
        )

    @staticmethod
    def _start_date_params(start_date: StartDate) -> tuple[str, str | None]:
        return start_date.kind.value, start_date.on.isoformat() if start_date.on else None

    def _load_tag_ids(self, conn: sqlite3.Connection, task_ids: list[str]) -> dict[str, list[str]]:
        out: dict[str, list[str]] = {tid: [] for tid in task_ids}
        if not task_ids:
            return out
        placeholders = ",".join("?" for _ in task_ids)
        rows = conn.execute(
            f"""
            SELECT task_id, tag_id
            FROM task_tags
            WHERE task_id IN ({placeholders})
            ORDER BY created_at ASC, rowid ASC
            """,
            task_ids,
        ).fetchall()
        for r in rows:
            out[str(r["task_id"])].append(str(r["tag_id"]))
        return out

    def _load_checklists(
        self, conn: sqlite3.Connection, task_ids: list[str]
    ) -> dict[str, list[ChecklistItem]]:
        out: dict[str, list[ChecklistItem]] = {tid: [] for tid in task_ids}
        if not task_ids:
            return out
        placeholders = ",".join("?" for _ in task_ids)
        rows = conn.execute(
            f"""
            SELECT *
            FROM task_checklist_items
            WHERE task_id IN ({placeholders})
            ORDER BY sort_order ASC, created_at ASC
            """,
            task_ids,
        ).fetchall()
        for r in rows:
            out[str(r["task_id"])].append(self._row_to_item(r))
        return out

    def _hydrate(self, conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[Task]:
        ids = [str(r["id"]) for r in rows]
        tags = self._load_tag_ids(conn, ids)
        checklists = self._load_checklists(conn, ids)
        return [self._row_to_task(r, tags[str(r["id"])], checklists[str(r["id"])]) for r in rows]

    @staticmethod
    def _replace_tags(conn: sqlite3.Connection, task_id: str, tag_ids: Iterable[str], now: float) -> None:
        conn.execute("DELETE FROM task_tags WHERE task_id = ?", (task_id,))
        conn.executemany(
            "INSERT OR IGNORE INTO task_tags(task_id, tag_id, created_at) VALUES (?, ?, ?)",
            [(task_id, tag_id, now) for tag_id in tag_ids],
        )

    @staticmethod
    def _require_task(conn: sqlite3.Connection, task_id: str, owner_id: str) -> None:
        row = conn.execute(
            "SELECT 1 FROM tasks WHERE id = ? AND owner_id = ?",
            (task_id, owner_id),
        ).fetchone()
        if row is None:
            raise NotFoundError("task not found")

    # ---- tasks ----

    def insert(
        self,
        *,
        title: str,
        notes: str,
        owner_id: str,
        tag_ids: list[str],
        start_date: StartDate,
        checklist: list[str],
        conn: sqlite3.Connection,
    ) -> str:
        """
        Insert a task with its tag links and seeded checklist.

        Must run inside a transaction so the task never exists half-built.
        """
        task_id = str(uuid.uuid4())
        now = time.time()
        kind, start = self._start_date_params(start_date)
        conn.execute(
            """
            INSERT INTO tasks(
                id, title, notes, owner_id,
                created_at, updated_at, archived_at,
                start_date_kind, start_date
            )
            VALUES (?, ?, ?, ?, ?, ?, NULL, ?, ?)
            """,
            (task_id, title, notes, owner_id, now, now, kind, start),
        )
        self._replace_tags(conn, task_id, tag_ids, now)
        conn.executemany(
            """
            INSERT INTO task_checklist_items(
                id, task_id, content, completed, sort_order, created_at, updated_at
            )
            VALUES (?, ?, ?, 0, ?, ?, ?)
            """,
            [(str(uuid.uuid4()), task_id, content, i, now, now) for i, content in enumerate(checklist)],
        )
        logger.debug("Task inserted id=%s owner=%s tags=%d items=%d", task_id, owner_id, len(tag_ids), len(checklist))
        return task_id

    def get(self, task_id: str, owner_id: str, *, conn: sqlite3.Connection | None = None) -> Task:
        with self._db.using(conn) as c:
            row = c.execute(
                "SELECT * FROM tasks WHERE id = ? AND owner_id = ?",
                (task_id, owner_id),
            ).fetchone()
            if row is None:
                raise NotFoundError("task not found")
            return self._hydrate(c, [row])[0]

    def update(
        self,
        task_id: str,
        owner_id: str,
        *,
        title: str,
        notes: str,
        tag_ids: list[str],
        start_date: StartDate | None,
        conn: sqlite3.Connection,
    ) -> None:
        """
        Replace title, notes and the full tag set. start_date=None leaves the
        stored classification untouched. owner_id is never written.
        """
        now = time.time()
        fields = ["title = ?", "notes = ?", "updated_at = ?"]
        params: list[Any] = [title, notes, now]
        if start_date is not None:
            kind, start = self._start_date_params(start_date)
            fields += ["start_date_kind = ?", "start_date = ?"]
            params += [kind, start]
        params += [task_id, owner_id]

        cur = conn.execute(
            f"UPDATE tasks SET {', '.join(fields)} WHERE id = ? AND owner_id = ?",
            params,
        )
        if cur.rowcount != 1:
            raise NotFoundError("task not found")
        self._replace_tags(conn, task_id, tag_ids, now)

    def delete(self, task_id: str, owner_id: str) -> None:
        """Delete a task; tag links and checklist items go with it (ON DELETE CASCADE)."""
        with self._db.connection() as conn:
            cur = conn.execute(
                "DELETE FROM tasks WHERE id = ? AND owner_id = ?",
                (task_id, owner_id),
            )
            if cur.rowcount != 1:
                raise NotFoundError("task not found")

    def set_archived_at(self, task_id: str, owner_id: str, archived_at: float | None) -> Task:
        with self._db.transaction() as conn:
            cur = conn.execute(
                "UPDATE tasks SET archived_at = ?, updated_at = ? WHERE id = ? AND owner_id = ?",
                (archived_at, time.time(), task_id, owner_id),
            )
            if cur.rowcount != 1:
                raise NotFoundError("task not found")
            return self.get(task_id, owner_id, conn=conn)

    def list_tasks(
        self,
        owner_id: str,
        *,
        filter_tag_ids: list[str],
        limit: int,
        offset: int,
        archive_filter: ArchiveFilter,
    ) -> list[Task]:
        """
        Owner's tasks, newest first.

        filter_tag_ids: keep tasks linked to at least one of these tags (empty = no filter).
        """
        where = ["t.owner_id = ?"]
        params: list[Any] = [owner_id]

        if archive_filter is ArchiveFilter.ACTIVE_ONLY:
            where.append("t.archived_at IS NULL")
        elif archive_filter is ArchiveFilter.ARCHIVED_ONLY:
            where.append("t.archived_at IS NOT NULL")

        if filter_tag_ids:
            placeholders = ",".join("?" for _ in filter_tag_ids)
            where.append(
                f"EXISTS (SELECT 1 FROM task_tags tt WHERE tt.task_id = t.id AND tt.tag_id IN ({placeholders}))"
            )
            params.extend(filter_tag_ids)

        params += [int(limit), int(offset)]
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT t.*
                FROM tasks t
                WHERE {' AND '.join(where)}
                ORDER BY t.created_at DESC, t.rowid DESC
                    LIMIT ? OFFSET ?
                """,
                params,
            ).fetchall()
            return self._hydrate(conn, rows)

    # ---- checklist ----

    def list_items(self, task_id: str, owner_id: str, *, conn: sqlite3.Connection | None = None) -> list[ChecklistItem]:
        with self._db.using(conn) as c:
            self._require_task(c, task_id, owner_id)
            return self._load_checklists(c, [task_id])[task_id]

    def _get_item(self, conn: sqlite3.Connection, item_id: str, owner_id: str) -> ChecklistItem:
        row = conn.execute(
            """
            SELECT ci.*
            FROM task_checklist_items ci
            JOIN tasks t ON t.id = ci.task_id
            WHERE ci.id = ? AND t.owner_id = ?
            """,
            (item_id, owner_id),
        ).fetchone()
        if row is None:
            raise NotFoundError("checklist item not found")
        return self._row_to_item(row)

    def add_item(self, task_id: str, owner_id: str, content: str) -> ChecklistItem:
        now = time.time()
        item_id = str(uuid.uuid4())
        with self._db.transaction() as conn:
            self._require_task(conn, task_id, owner_id)
            (next_pos,) = conn.execute(
                "SELECT COALESCE(MAX(sort_order) + 1, 0) FROM task_checklist_items WHERE task_id = ?",
                (task_id,),
            ).fetchone()
            conn.execute(
                """
                INSERT INTO task_checklist_items(
                    id, task_id, content, completed, sort_order, created_at, updated_at
                )
                VALUES (?, ?, ?, 0, ?, ?, ?)
                """,
                (item_id, task_id, content, int(next_pos), now, now),
            )
            return self._get_item(conn, item_id, owner_id)

    def update_item_content(self, item_id: str, owner_id: str, content: str) -> ChecklistItem:
        with self._db.transaction() as conn:
            self._get_item(conn, item_id, owner_id)
            conn.execute(
                "UPDATE task_checklist_items SET content = ?, updated_at = ? WHERE id = ?",
                (content, time.time(), item_id),
            )
            return self._get_item(conn, item_id, owner_id)

    def set_item_completed(self, item_id: str, owner_id: str, completed: bool) -> ChecklistItem:
        with self._db.transaction() as conn:
            self._get_item(conn, item_id, owner_id)
            conn.execute(
                "UPDATE task_checklist_items SET completed = ?, updated_at = ? WHERE id = ?",
                (1 if completed else 0, time.time(), item_id),
            )
            return self._get_item(conn, item_id, owner_id)

    def delete_item(self, item_id: str, owner_id: str) -> None:
        """Delete one item and close the gap it leaves in the ordering."""
        with self._db.transaction() as conn:
            item = self._get_item(conn, item_id, owner_id)
            conn.execute("DELETE FROM task_checklist_items WHERE id = ?", (item_id,))
            conn.execute(
                """
                UPDATE task_checklist_items
                SET sort_order = sort_order - 1
                WHERE task_id = ? AND sort_order > ?
                """,
                (item.task_id, item.sort_order),
            )

    def reorder_items(self, task_id: str, owner_id: str, item_ids: list[str]) -> list[ChecklistItem]:
        """
        Assign sort positions 0..n-1 following item_ids.

        item_ids must be exactly the task's current item set (same size, same
        members). Otherwise InvalidOrderError is raised and nothing changes.
        """
        now = time.time()
        with self._db.transaction() as conn:
            current = self.list_items(task_id, owner_id, conn=conn)
            current_ids = sorted(i.id for i in current)
            if len(current_ids) != len(item_ids) or current_ids != sorted(item_ids):
                raise InvalidOrderError()
            conn.executemany(
                "UPDATE task_checklist_items SET sort_order = ?, updated_at = ? WHERE id = ? AND task_id = ?",
                [(pos, now, item_id, task_id) for pos, item_id in enumerate(item_ids)],
            )
            return self._load_checklists(conn, [task_id])[task_id]
