from __future__ import annotations

import logging
from collections.abc import Callable

from .records import EventRecord

logger = logging.getLogger(__name__)

Observer = Callable[[tuple[EventRecord, ...]], None]


class ChangeNotifier:
    """Observer subject; observers receive an immutable snapshot of the collection."""

    def __init__(self, snapshot: Callable[[], tuple[EventRecord, ...]]) -> None:
        self._snapshot = snapshot
        self._observers: list[Observer] = []
        self.notify_count = 0

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        if observer not in self._observers:
            self._observers.append(observer)
        return lambda: self.unsubscribe(observer)

    def unsubscribe(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def notify(self) -> None:
        self.notify_count += 1
        snapshot = self._snapshot()
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as exc:
                logger.exception("event observer failed", exc_info=exc)
