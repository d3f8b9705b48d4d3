from __future__ import annotations

import datetime as dt
from collections.abc import Callable
from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any

import pytest

from eventsync.records import EventRecord


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("EVENTSYNC_CONFIG", str(tmp_path / "config.json"))
    for name in (
        "EVENTSYNC_COLLECTION",
        "EVENTSYNC_REMOTE_URL",
        "EVENTSYNC_REMOTE_TIMEOUT_S",
        "EVENTSYNC_POLL_INTERVAL_S",
        "EVENTSYNC_ROLLBACK_FAILED_CREATE",
        "EVENTSYNC_DISPLAY_TZ",
        "EVENTSYNC_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


class DeferredExecutor(Executor):
    """Holds submitted calls until the test runs them, in any order."""

    def __init__(self) -> None:
        self.pending: list[tuple[Callable[[], Any], Future[Any]]] = []

    def submit(self, fn, /, *args, **kwargs) -> Future[Any]:
        future: Future[Any] = Future()
        self.pending.append((lambda: fn(*args, **kwargs), future))
        return future

    def run(self, index: int) -> None:
        fn, future = self.pending.pop(index)
        try:
            future.set_result(fn())
        except BaseException as exc:
            future.set_exception(exc)


@pytest.fixture
def deferred() -> DeferredExecutor:
    return DeferredExecutor()


def make_event(
    record_id: str,
    title: str = "Tech Meetup",
    location: str = "Hall A",
    when: dt.datetime | None = None,
) -> EventRecord:
    return EventRecord(
        id=record_id,
        title=title,
        location=location,
        occurs_at=when or dt.datetime(2025, 10, 15, 12, 0, tzinfo=dt.UTC),
    )
