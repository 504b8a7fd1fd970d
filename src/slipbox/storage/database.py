# src/slipbox/storage/database.py

from __future__ import annotations

import contextlib
import logging
import sqlite3
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)


class Database:
    """
    SQLite database shared by the task, tag and API-token stores.

    The schema is migration-safe:
    - create tables/indexes if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    Thread-safety:
    - every operation opens its own short-lived connection
    - uniqueness and ownership rules are enforced by constraints, not in-process locks
    """

    def __init__(self, db_path: str | Path = "slipbox.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        logger.info("Database ready db=%s", self._db_path)

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- connections ----

    def connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0, isolation_level=None)
        conn.row_factory = sqlite3.Row
        self._configure_conn(conn)
        return conn

    @staticmethod
    def _configure_conn(conn: sqlite3.Connection) -> None:
        conn.execute("PRAGMA foreign_keys=ON")
        with contextlib.suppress(sqlite3.DatabaseError):
            conn.execute("PRAGMA journal_mode=WAL")

    @contextlib.contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Autocommit connection for single-statement work."""
        conn = self.connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextlib.contextmanager
    def using(self, conn: sqlite3.Connection | None) -> Iterator[sqlite3.Connection]:
        """Reuse the caller's connection (inside its transaction) or open a fresh one."""
        if conn is not None:
            yield conn
            return
        with self.connection() as own:
            yield own

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        BEGIN IMMEDIATE ... COMMIT, or ROLLBACK if the block raises.

        IMMEDIATE takes the write lock up front so read-then-write sequences
        (e.g. checklist reorder) see a stable snapshot.
        """
        conn = self.connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                with contextlib.suppress(sqlite3.Error):
                    conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")
        finally:
            conn.close()

    # ---- schema ----

    def _ensure_schema(self) -> None:
        with self.connection() as conn:
            cur = conn.cursor()

            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    title TEXT NOT NULL,
                    notes TEXT NOT NULL DEFAULT '',
                    owner_id TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    archived_at REAL,
                    start_date_kind TEXT NOT NULL DEFAULT 'inbox',
                    start_date TEXT,
                    CHECK (
                        (start_date_kind = 'inbox' AND start_date IS NULL)
                        OR (start_date_kind = 'specific_date' AND start_date IS NOT NULL)
                    )
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tags (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    owner_id TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL,
                    UNIQUE (owner_id, name)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_tags (
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    tag_id TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
                    created_at REAL NOT NULL,
                    PRIMARY KEY (task_id, tag_id)
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS task_checklist_items (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                    content TEXT NOT NULL,
                    completed INTEGER NOT NULL DEFAULT 0,
                    sort_order INTEGER NOT NULL,
                    created_at REAL NOT NULL,
                    updated_at REAL NOT NULL
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS api_tokens (
                    id TEXT PRIMARY KEY,
                    token TEXT NOT NULL UNIQUE,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    expires_at REAL,
                    last_used_at REAL,
                    is_active INTEGER NOT NULL DEFAULT 1
                )
                """
            )

            # Migrations (safe): add columns missing from older files.
            def add_col(table: str, name: str, decl: str) -> None:
                cur.execute(f"PRAGMA table_info({table})")
                cols = {row["name"] for row in cur.fetchall()}
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE {table} ADD COLUMN {name} {decl}")
                logger.info("Database migration: added column %s.%s", table, name)

            add_col("tasks", "archived_at", "REAL")
            add_col("tasks", "start_date_kind", "TEXT NOT NULL DEFAULT 'inbox'")
            add_col("tasks", "start_date", "TEXT")
            add_col("api_tokens", "last_used_at", "REAL")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_owner_archived ON tasks(owner_id, archived_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tags_owner ON tags(owner_id)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_task_tags_tag_id ON task_tags(tag_id)")
            cur.execute(
                "CREATE INDEX IF NOT EXISTS idx_checklist_task_sort "
                "ON task_checklist_items(task_id, sort_order)"
            )
            cur.execute("CREATE INDEX IF NOT EXISTS idx_api_tokens_user ON api_tokens(user_id)")


def is_unique_violation(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.IntegrityError) and "UNIQUE constraint failed" in str(exc)
