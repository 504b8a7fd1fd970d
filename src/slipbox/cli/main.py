# src/slipbox/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then serves the RPC app with uvicorn
in a background thread until SIGINT/SIGTERM.
"""

from __future__ import annotations

import contextlib
import logging
import signal
import threading

import uvicorn

from ..cli.bootstrap import create_state
from ..config import get_settings
from ..logging_setup import setup_logging
from ..rpc.app import create_app

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        pending = state.detached.pending_count()
        if pending:
            logger.info("Waiting for %d detached job(s)...", pending)
        state.close()
    except Exception:
        logger.exception("Shutdown failed.")


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=getattr(settings, "data_dir", ".local/slipbox"), console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "slipbox"))

    state = create_state(settings=settings)
    app = create_app(state)

    server = uvicorn.Server(
        uvicorn.Config(app, host=settings.host, port=settings.port, log_config=None)
    )
    # uvicorn skips its own signal handlers off the main thread; main owns them.
    server_thread = threading.Thread(target=server.run, name="http", daemon=True)

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    with contextlib.suppress(ValueError, OSError):
        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

    server_thread.start()
    logger.info("Listening on http://%s:%d", settings.host, settings.port)

    try:
        while not stop_main.is_set() and server_thread.is_alive():
            stop_main.wait(timeout=0.5)
    finally:
        server.should_exit = True
        server_thread.join(timeout=10.0)
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
