from __future__ import annotations

import logging
import threading
from typing import Any
from urllib.parse import quote

from ..errors import SubscriptionError
from . import http_client
from .types import ChangeCallback, Payload, Snapshot, WriteOutcome

logger = logging.getLogger(__name__)


def _error_detail(status: int, payload: dict[str, Any] | None) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        reason = payload.get("reason")
        if isinstance(error, str) and isinstance(reason, str):
            return f"{status}: {error}:{reason}"
        if isinstance(error, str):
            return f"{status}: {error}"
    return str(status)


def extract_documents(payload: object) -> tuple[tuple[str, Payload], ...]:
    if not isinstance(payload, dict):
        return ()
    docs = payload.get("docs")
    if not isinstance(docs, list):
        return ()
    entries: list[tuple[str, Payload]] = []
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        key = doc.get("key")
        if not isinstance(key, str):
            continue
        # Malformed data is passed through; the feed listener skips it.
        entries.append((key, doc.get("data")))  # type: ignore[arg-type]
    return tuple(entries)


class _PollingSubscription:
    def __init__(
        self,
        store: HttpRemoteStore,
        collection: str,
        callback: ChangeCallback,
        last: tuple[tuple[str, Payload], ...],
    ) -> None:
        self._store = store
        self._collection = collection
        self._callback = callback
        self._last = last
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name=f"eventsync-poll-{collection}", daemon=True
        )

    def start(self) -> None:
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(self._store.timeout_s + 1.0)

    def poll_once(self) -> bool:
        entries = self._store.fetch_documents(self._collection)
        if entries == self._last or self._stop.is_set():
            return False
        self._last = entries
        self._callback(Snapshot(entries))
        return True

    def _run(self) -> None:
        while not self._stop.wait(self._store.poll_interval_s):
            try:
                self.poll_once()
            except Exception as exc:
                logger.warning(
                    "change feed poll failed for %s", self._collection, exc_info=exc
                )


class HttpRemoteStore:
    """JSON document store reached over HTTP.

    Documents live under ``/v1/collections/<collection>/docs/<key>``. The
    change feed is a polling loop that delivers a full snapshot whenever the
    document set differs from the last one seen.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 3.0,
        poll_interval_s: float = 2.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.base_url = http_client.build_base_url(base_url)
        if not self.base_url:
            raise ValueError("remote url is required")
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self.headers = dict(headers or {})

    def _collection_url(self, collection: str) -> str:
        return f"{self.base_url}/v1/collections/{quote(collection, safe='')}/docs"

    def _doc_url(self, collection: str, key: str) -> str:
        return f"{self._collection_url(collection)}/{quote(key, safe='')}"

    def fetch_documents(self, collection: str) -> tuple[tuple[str, Payload], ...]:
        status, payload = http_client.request_json(
            "GET",
            self._collection_url(collection),
            headers=self.headers,
            timeout_s=self.timeout_s,
        )
        if status != 200:
            raise RuntimeError(f"document listing failed ({_error_detail(status, payload)})")
        return extract_documents(payload)

    def subscribe(self, collection: str, callback: ChangeCallback) -> _PollingSubscription:
        try:
            entries = self.fetch_documents(collection)
        except Exception as exc:
            raise SubscriptionError(f"cannot reach {self.base_url}: {exc}") from exc
        subscription = _PollingSubscription(self, collection, callback, entries)
        callback(Snapshot(entries))
        subscription.start()
        return subscription

    def write(self, collection: str, key: str, payload: Payload) -> WriteOutcome:
        return self._send("PUT", self._doc_url(collection, key), dict(payload))

    def patch(self, collection: str, key: str, payload: Payload) -> WriteOutcome:
        return self._send("PATCH", self._doc_url(collection, key), dict(payload))

    def delete(self, collection: str, key: str) -> WriteOutcome:
        return self._send("DELETE", self._doc_url(collection, key), None)

    def _send(self, method: str, url: str, body: dict[str, Any] | None) -> WriteOutcome:
        try:
            status, payload = http_client.request_json(
                method,
                url,
                headers=self.headers,
                body=body,
                timeout_s=self.timeout_s,
            )
        except (OSError, ValueError, TypeError) as exc:
            return WriteOutcome.failure(f"{method} {url} failed: {exc}")
        if 200 <= status < 300:
            return WriteOutcome.success()
        return WriteOutcome.failure(f"{method} {url} rejected ({_error_detail(status, payload)})")
