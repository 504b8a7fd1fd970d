# tests/test_detached.py

from __future__ import annotations

import logging
import threading

import pytest

from slipbox.core.detached import DetachedRunner


def test_jobs_run_in_background_and_drain() -> None:
    runner = DetachedRunner(max_workers=2)
    done = threading.Event()
    seen: list[int] = []

    assert runner.submit("record", seen.append, 42)
    assert runner.submit("signal", done.set)

    assert runner.wait_idle(timeout=5)
    assert done.is_set()
    assert seen == [42]
    runner.shutdown()


def test_failures_are_logged_and_dropped(caplog: pytest.LogCaptureFixture) -> None:
    log = logging.getLogger("tests.detached")
    runner = DetachedRunner(max_workers=1, log=log)
    after: list[str] = []

    def boom() -> None:
        raise RuntimeError("kaput")

    with caplog.at_level(logging.WARNING, logger="tests.detached"):
        runner.submit("boom", boom)
        runner.submit("after", after.append, "still running")
        assert runner.wait_idle(timeout=5)

    assert after == ["still running"]
    records = [r for r in caplog.records if r.name == "tests.detached"]
    assert len(records) == 1
    assert "detached job boom failed" in records[0].getMessage()
    assert records[0].exc_info is not None
    runner.shutdown()


def test_wait_idle_times_out_while_job_is_blocked() -> None:
    runner = DetachedRunner(max_workers=1)
    release = threading.Event()

    runner.submit("blocked", release.wait, 5)
    assert runner.wait_idle(timeout=0.05) is False
    assert runner.pending_count() == 1

    release.set()
    assert runner.wait_idle(timeout=5)
    runner.shutdown()


def test_submit_after_shutdown_is_refused() -> None:
    runner = DetachedRunner()
    runner.shutdown()

    ran: list[bool] = []
    assert runner.submit("late", ran.append, True) is False
    assert ran == []
    assert runner.wait_idle(timeout=0)
