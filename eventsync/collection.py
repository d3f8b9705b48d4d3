from __future__ import annotations

from .records import EventRecord


class LocalCollection:
    """Ordered id -> record list. Only the engine and its feed listener mutate it."""

    def __init__(self) -> None:
        self._items: list[EventRecord] = []

    def __len__(self) -> int:
        return len(self._items)

    def snapshot(self) -> tuple[EventRecord, ...]:
        return tuple(self._items)

    def index_of(self, record_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == record_id:
                return index
        return -1

    def get(self, record_id: str) -> EventRecord | None:
        index = self.index_of(record_id)
        return self._items[index] if index >= 0 else None

    def at(self, index: int) -> EventRecord:
        return self._items[index]

    def append(self, record: EventRecord) -> None:
        self._items.append(record)

    def insert(self, index: int, record: EventRecord) -> None:
        self._items.insert(min(max(index, 0), len(self._items)), record)

    def replace_at(self, index: int, record: EventRecord) -> None:
        self._items[index] = record

    def remove_at(self, index: int) -> EventRecord:
        return self._items.pop(index)

    def reset(self, records: list[EventRecord]) -> None:
        self._items = list(records)
