# src/slipbox/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..auth.identity import IdentityResolver
from ..storage.database import Database
from ..tags.tag_service import TagService
from ..tasks.task_service import TaskService
from ..tokens.token_service import ApiTokenService
from .detached import DetachedRunner


@dataclass
class AppState:
    """Everything a request handler needs, wired once by cli.bootstrap."""

    settings: Any
    db: Database
    tasks: TaskService
    tags: TagService
    tokens: ApiTokenService
    identity: IdentityResolver
    detached: DetachedRunner

    def close(self) -> None:
        self.detached.shutdown(wait=True)
        self.db.close()
