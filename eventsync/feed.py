from __future__ import annotations

import contextlib
import logging
from functools import partial

from .codec import from_wire
from .collection import LocalCollection
from .observers import ChangeNotifier
from .records import EventRecord
from .remote.types import (
    Added,
    ChangeEvent,
    Changed,
    Payload,
    RemoteStore,
    Removed,
    Snapshot,
    Subscription,
)
from .tasks import TaskQueue

logger = logging.getLogger(__name__)


def _decode(key: str, payload: Payload) -> EventRecord | None:
    try:
        return from_wire(key, payload)
    except Exception as exc:
        logger.exception("skipping undecodable document %s", key, exc_info=exc)
        return None


class ChangeFeedListener:
    """Folds remote change notifications into the local collection.

    Deliveries may arrive on any thread; each one is posted to the task
    queue and folded there.
    """

    def __init__(
        self,
        collection: LocalCollection,
        notifier: ChangeNotifier,
        remote: RemoteStore,
        collection_key: str,
        tasks: TaskQueue,
    ) -> None:
        self._collection = collection
        self._notifier = notifier
        self._remote = remote
        self._collection_key = collection_key
        self._tasks = tasks
        self._subscription: Subscription | None = None
        self._active = False
        self.connected = False
        self.initialized = False

    def start(self) -> bool:
        if self._subscription is not None:
            return True
        self._active = True
        try:
            self._subscription = self._remote.subscribe(self._collection_key, self._deliver)
        except Exception as exc:
            self._active = False
            self.connected = False
            logger.warning(
                "change feed unavailable for %s; continuing local-only",
                self._collection_key,
                exc_info=exc,
            )
            return False
        self.connected = True
        return True

    def stop(self) -> None:
        self._active = False
        self.connected = False
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            with contextlib.suppress(Exception):
                subscription.cancel()

    def _deliver(self, event: ChangeEvent) -> None:
        if not self._active:
            return
        self._tasks.post(partial(self.fold, event))

    def fold(self, event: ChangeEvent) -> None:
        if not self._active:
            return
        if isinstance(event, Snapshot):
            self._fold_snapshot(event)
        elif isinstance(event, Added):
            self._fold_added(event)
        elif isinstance(event, Changed):
            self._fold_changed(event)
        elif isinstance(event, Removed):
            self._fold_removed(event)
        else:
            logger.warning("ignoring unknown change event %r", event)

    def _fold_added(self, event: Added) -> None:
        record = _decode(event.key, event.payload)
        if record is None:
            return
        if self._collection.index_of(record.id) >= 0:
            logger.debug("added %s already present", record.id)
            return
        self._collection.append(record)
        self._notifier.notify()

    def _fold_changed(self, event: Changed) -> None:
        record = _decode(event.key, event.payload)
        if record is None:
            return
        index = self._collection.index_of(record.id)
        if index < 0:
            logger.debug("changed %s not present, ignoring", record.id)
            return
        self._collection.replace_at(index, record)
        self._notifier.notify()

    def _fold_removed(self, event: Removed) -> None:
        index = self._collection.index_of(event.key)
        if index < 0:
            return
        self._collection.remove_at(index)
        self._notifier.notify()

    def _fold_snapshot(self, event: Snapshot) -> None:
        records: list[EventRecord] = []
        seen: set[str] = set()
        for key, payload in event.entries:
            record = _decode(key, payload)
            if record is None or record.id in seen:
                continue
            seen.add(record.id)
            records.append(record)
        self._collection.reset(records)
        self.initialized = True
        logger.debug("snapshot folded: %d records", len(records))
        self._notifier.notify()
