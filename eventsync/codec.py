from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .errors import DecodeError
from .records import EventRecord
from .timestamps import StoreTimestamp, normalize_timestamp

# Field aliases seen across store schema versions; first present wins.
TITLE_KEYS = ("name", "eventname", "eventName", "title")
LOCATION_KEYS = ("venue", "location")
TIMESTAMP_KEYS = ("dateTime", "date", "timestamp")
ID_KEY = "id"


def _first_present(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def to_wire(record: EventRecord) -> dict[str, Any]:
    return {
        ID_KEY: record.id,
        TITLE_KEYS[0]: record.title,
        LOCATION_KEYS[0]: record.location,
        TIMESTAMP_KEYS[0]: StoreTimestamp.from_datetime(record.occurs_at),
    }


def from_wire(key: str | None, data: object) -> EventRecord:
    if not isinstance(data, Mapping):
        raise DecodeError(f"payload for {key!r} is {type(data).__name__}, expected a mapping")
    record_id = (key or "").strip() or _text(data.get(ID_KEY))
    return EventRecord(
        id=record_id,
        title=_text(_first_present(data, TITLE_KEYS)),
        location=_text(_first_present(data, LOCATION_KEYS)),
        occurs_at=normalize_timestamp(_first_present(data, TIMESTAMP_KEYS)),
    )
