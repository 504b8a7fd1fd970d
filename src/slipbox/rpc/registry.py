# src/slipbox/rpc/registry.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..core.state import AppState

# (state, owner_id, args) -> JSON-serializable result
OperationHandler = Callable[[AppState, str, dict[str, Any]], Any]

logger = logging.getLogger(__name__)


class OperationRegistry:
    """Name -> handler table for the /call endpoint."""

    def __init__(self) -> None:
        self._handlers: dict[str, OperationHandler] = {}
        self._help: dict[str, str] = {}

    def register(self, name: str, handler: OperationHandler, help_text: str) -> None:
        if name in self._handlers:
            raise ValueError(f"operation already registered: {name}")
        self._handlers[name] = handler
        self._help[name] = help_text

    def get(self, name: str) -> OperationHandler | None:
        return self._handlers.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def names(self) -> list[str]:
        return sorted(self._handlers)

    def describe(self) -> list[dict[str, str]]:
        return [{"op": name, "description": self._help[name]} for name in self.names()]
