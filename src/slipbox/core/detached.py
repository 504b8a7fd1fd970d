# src/slipbox/core/detached.py

"""
Detached work: background jobs that intentionally outlive the request that
scheduled them.

A job never reports back to its caller. Failures are logged and dropped.
The runner owns its threads, so shutdown (and tests) can drain it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Any

logger = logging.getLogger(__name__)


class DetachedRunner:
    def __init__(self, *, max_workers: int = 2, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, int(max_workers)),
            thread_name_prefix="detached",
        )
        self._pending: set[Future[None]] = set()
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, name: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
        """
        Schedule fn(*args, **kwargs). Returns False (and runs nothing) after shutdown.
        """

        def _run() -> None:
            try:
                fn(*args, **kwargs)
            except Exception:
                self._log.warning("detached job %s failed", name, exc_info=True)

        with self._lock:
            if self._closed:
                self._log.debug("detached job %s dropped: runner is shut down", name)
                return False
            fut = self._executor.submit(_run)
            self._pending.add(fut)
        fut.add_done_callback(self._forget)
        return True

    def _forget(self, fut: Future[None]) -> None:
        with self._lock:
            self._pending.discard(fut)

    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until every job scheduled so far has finished. True if drained."""
        with self._lock:
            snapshot = list(self._pending)
        if not snapshot:
            return True
        _, not_done = wait_futures(snapshot, timeout=timeout)
        return not not_done

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
