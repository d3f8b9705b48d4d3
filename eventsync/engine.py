from __future__ import annotations

import dataclasses
import datetime as dt
import logging
import time
from collections.abc import Callable
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from functools import partial

from .codec import to_wire
from .collection import LocalCollection
from .feed import ChangeFeedListener
from .observers import ChangeNotifier, Observer
from .records import EventRecord
from .remote.types import RemoteStore, WriteOutcome
from .search import search_events
from .tasks import TaskQueue

logger = logging.getLogger(__name__)


def _completed(value: bool) -> Future[bool]:
    future: Future[bool] = Future()
    future.set_result(value)
    return future


class EventSyncEngine:
    """Keeps a local list of events in step with a remote document store.

    Mutations apply locally and notify observers before returning; the remote
    write then runs on ``executor`` and its outcome is reconciled on the task
    queue. Without an explicit executor the engine owns a single worker
    thread, so remote writes leave in order and never block the caller. A failed write is rolled back and observers are notified again.
    A rollback only happens while the collection still holds the value that
    write produced, so a late failure cannot clobber a newer value.

    Each mutation returns a future resolving to True once the remote write
    succeeded (or immediately when there is no remote), and False when the
    call was a no-op or the write failed.
    """

    def __init__(
        self,
        remote: RemoteStore | None = None,
        *,
        collection: str = "events",
        tasks: TaskQueue | None = None,
        executor: Executor | None = None,
        rollback_failed_create: bool = True,
        display_tz: dt.tzinfo | None = None,
    ) -> None:
        self._remote = remote
        self._collection_key = collection
        self._items = LocalCollection()
        self._notifier = ChangeNotifier(self._items.snapshot)
        self.tasks = tasks or TaskQueue()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="eventsync-remote"
        )
        self.rollback_failed_create = rollback_failed_create
        self.display_tz = display_tz
        self._listener = (
            ChangeFeedListener(self._items, self._notifier, remote, collection, self.tasks)
            if remote is not None
            else None
        )

    @property
    def events(self) -> tuple[EventRecord, ...]:
        return self._items.snapshot()

    @property
    def initialized(self) -> bool:
        return self._listener is not None and self._listener.initialized

    @property
    def connected(self) -> bool:
        return self._listener is not None and self._listener.connected

    @property
    def notify_count(self) -> int:
        return self._notifier.notify_count

    def get(self, record_id: str) -> EventRecord | None:
        return self._items.get(record_id)

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        return self._notifier.subscribe(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self._notifier.unsubscribe(observer)

    def start(self) -> bool:
        """Attach the change feed. Returns False when running local-only."""
        if self._listener is None:
            return False
        return self._listener.start()

    def close(self) -> None:
        if self._listener is not None:
            self._listener.stop()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def wait_for(self, pending: Future[bool], timeout: float | None = None) -> bool:
        """Block until a mutation is reconciled and return its outcome.

        Drains the task queue while waiting unless a worker thread owns it.
        Returns False if ``timeout`` expires first.
        """
        if self.tasks.running() and not self.tasks.on_worker():
            try:
                return pending.result(timeout)
            except TimeoutError:
                return False
        deadline = None if timeout is None else time.monotonic() + timeout
        while not pending.done():
            if self.tasks.drain():
                continue
            if deadline is not None and time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return pending.result()

    def search(self, query: str) -> list[EventRecord]:
        return search_events(self.events, query, tz=self.display_tz)

    def create(self, record: EventRecord) -> Future[bool]:
        def _apply() -> bool:
            if self._items.index_of(record.id) >= 0:
                logger.debug("create %s ignored, id already present", record.id)
                return False
            self._items.append(record)
            self._notifier.notify()
            return True

        if not self.tasks.call(_apply):
            return _completed(False)
        return self._remote_leg(
            "create",
            record.id,
            lambda remote: remote.write(self._collection_key, record.id, to_wire(record)),
            partial(self._rollback_create, record),
        )

    def update(self, record_id: str, record: EventRecord) -> Future[bool]:
        if record.id != record_id:
            record = dataclasses.replace(record, id=record_id)

        def _apply() -> EventRecord | None:
            index = self._items.index_of(record_id)
            if index < 0:
                return None
            previous = self._items.at(index)
            self._items.replace_at(index, record)
            self._notifier.notify()
            return previous

        previous = self.tasks.call(_apply)
        if previous is None:
            logger.debug("update %s ignored, not found", record_id)
            return _completed(False)
        return self._remote_leg(
            "update",
            record_id,
            lambda remote: remote.patch(self._collection_key, record_id, to_wire(record)),
            partial(self._rollback_update, record, previous),
        )

    def delete(self, record_id: str) -> Future[bool]:
        def _apply() -> tuple[int, EventRecord] | None:
            index = self._items.index_of(record_id)
            if index < 0:
                return None
            removed = self._items.remove_at(index)
            self._notifier.notify()
            return index, removed

        removed = self.tasks.call(_apply)
        if removed is None:
            logger.debug("delete %s ignored, not found", record_id)
            return _completed(False)
        index, record = removed
        return self._remote_leg(
            "delete",
            record_id,
            lambda remote: remote.delete(self._collection_key, record_id),
            partial(self._rollback_delete, index, record),
        )

    def _remote_leg(
        self,
        action: str,
        record_id: str,
        call: Callable[[RemoteStore], WriteOutcome | None],
        rollback: Callable[[], None],
    ) -> Future[bool]:
        remote = self._remote
        if remote is None:
            return _completed(True)
        result: Future[bool] = Future()

        def _leg() -> str | None:
            try:
                outcome = call(remote)
            except Exception as exc:
                return str(exc) or type(exc).__name__
            if outcome is not None and not outcome.ok:
                return outcome.error or "rejected"
            return None

        def _reconcile(error: str | None) -> None:
            if error is None:
                result.set_result(True)
                return
            logger.warning("%s of event %s failed, rolling back: %s", action, record_id, error)
            try:
                rollback()
            finally:
                result.set_result(False)

        def _done(leg: Future[str | None]) -> None:
            try:
                error = leg.result()
            except Exception as exc:
                error = str(exc) or type(exc).__name__
            self.tasks.post(partial(_reconcile, error))

        try:
            leg = self._executor.submit(_leg)
        except RuntimeError as exc:
            self.tasks.post(partial(_reconcile, f"executor unavailable: {exc}"))
            return result
        leg.add_done_callback(_done)
        return result

    def _rollback_create(self, record: EventRecord) -> None:
        if not self.rollback_failed_create:
            return
        index = self._items.index_of(record.id)
        if index < 0 or self._items.at(index) is not record:
            logger.debug("create rollback of %s skipped, record changed since", record.id)
            return
        self._items.remove_at(index)
        self._notifier.notify()

    def _rollback_update(self, written: EventRecord, previous: EventRecord) -> None:
        index = self._items.index_of(written.id)
        if index < 0 or self._items.at(index) is not written:
            logger.debug("update rollback of %s skipped, record changed since", written.id)
            return
        self._items.replace_at(index, previous)
        self._notifier.notify()

    def _rollback_delete(self, index: int, record: EventRecord) -> None:
        if self._items.index_of(record.id) >= 0:
            logger.debug("delete rollback of %s skipped, id present again", record.id)
            return
        self._items.insert(index, record)
        self._notifier.notify()
