from __future__ import annotations

import threading
from typing import Any, Literal

from ..errors import SubscriptionError
from .types import (
    Added,
    ChangeCallback,
    ChangeEvent,
    Changed,
    Payload,
    Removed,
    Snapshot,
    WriteOutcome,
)

DeliveryMode = Literal["incremental", "snapshot"]


class _MemorySubscription:
    def __init__(self, store: InMemoryRemoteStore, collection: str, callback: ChangeCallback):
        self._store = store
        self._collection = collection
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._store._unsubscribe(self._collection, self._callback)


class InMemoryRemoteStore:
    """Dict-backed document store that honours the remote store contract.

    Used for local development, tests, and as the reference for how a store
    should deliver changes: ``mode="incremental"`` sends per-document
    Added/Changed/Removed events, ``mode="snapshot"`` resends the whole
    collection after every change. Failures can be injected with
    ``fail_writes``, ``fail_subscribe`` and ``rejected_keys``.
    """

    def __init__(self, *, mode: DeliveryMode = "incremental", fail_subscribe: bool = False):
        if mode not in {"incremental", "snapshot"}:
            raise ValueError(f"unknown delivery mode: {mode}")
        self.mode = mode
        self.fail_subscribe = fail_subscribe
        self.fail_writes = False
        self.rejected_keys: set[str] = set()
        self.calls: list[tuple[str, str, str]] = []
        self._docs: dict[str, dict[str, dict[str, Any]]] = {}
        self._subscribers: dict[str, list[ChangeCallback]] = {}
        self._lock = threading.Lock()

    def documents(self, collection: str) -> dict[str, dict[str, Any]]:
        with self._lock:
            return {key: dict(data) for key, data in self._docs.get(collection, {}).items()}

    def seed(self, collection: str, key: str, data: Payload) -> None:
        """Store a document without failure checks, as another client would."""
        self._put(collection, key, dict(data))

    def subscribe(self, collection: str, callback: ChangeCallback) -> _MemorySubscription:
        if self.fail_subscribe:
            raise SubscriptionError("remote store unavailable")
        with self._lock:
            self._subscribers.setdefault(collection, []).append(callback)
            docs = list(self._docs.get(collection, {}).items())
        if self.mode == "snapshot":
            callback(Snapshot(tuple((key, dict(data)) for key, data in docs)))
        else:
            for key, data in docs:
                callback(Added(key, dict(data)))
        return _MemorySubscription(self, collection, callback)

    def write(self, collection: str, key: str, payload: Payload) -> WriteOutcome:
        self.calls.append(("write", collection, key))
        rejected = self._rejection(key)
        if rejected:
            return WriteOutcome.failure(rejected)
        self._put(collection, key, dict(payload))
        return WriteOutcome.success()

    def patch(self, collection: str, key: str, payload: Payload) -> WriteOutcome:
        self.calls.append(("patch", collection, key))
        rejected = self._rejection(key)
        if rejected:
            return WriteOutcome.failure(rejected)
        with self._lock:
            current = self._docs.get(collection, {}).get(key)
            if current is None:
                return WriteOutcome.failure("not_found")
            merged = {**current, **payload}
        self._put(collection, key, merged)
        return WriteOutcome.success()

    def delete(self, collection: str, key: str) -> WriteOutcome:
        self.calls.append(("delete", collection, key))
        rejected = self._rejection(key)
        if rejected:
            return WriteOutcome.failure(rejected)
        with self._lock:
            existed = self._docs.get(collection, {}).pop(key, None) is not None
        if existed:
            self._emit(collection, Removed(key))
        return WriteOutcome.success()

    def _rejection(self, key: str) -> str | None:
        if self.fail_writes:
            return "unavailable"
        if key in self.rejected_keys:
            return "permission_denied"
        return None

    def _put(self, collection: str, key: str, data: dict[str, Any]) -> None:
        with self._lock:
            docs = self._docs.setdefault(collection, {})
            existed = key in docs
            docs[key] = data
        event: ChangeEvent = Changed(key, dict(data)) if existed else Added(key, dict(data))
        self._emit(collection, event)

    def _emit(self, collection: str, event: ChangeEvent) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(collection, []))
            docs = list(self._docs.get(collection, {}).items())
        if self.mode == "snapshot":
            event = Snapshot(tuple((key, dict(data)) for key, data in docs))
        for callback in callbacks:
            callback(event)

    def _unsubscribe(self, collection: str, callback: ChangeCallback) -> None:
        with self._lock:
            callbacks = self._subscribers.get(collection, [])
            if callback in callbacks:
                callbacks.remove(callback)
