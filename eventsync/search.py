from __future__ import annotations

import datetime as dt
from collections.abc import Iterable

from .records import EventRecord
from .timestamps import format_display


def matches(record: EventRecord, needle: str, tz: dt.tzinfo | None = None) -> bool:
    return (
        needle in record.title.lower()
        or needle in record.location.lower()
        or needle in format_display(record.occurs_at, tz).lower()
    )


def search_events(
    events: Iterable[EventRecord], query: str, tz: dt.tzinfo | None = None
) -> list[EventRecord]:
    """Filter by title, location, or displayed date; blank queries return everything."""
    items = list(events)
    if not query.strip():
        return items
    needle = query.lower()
    return [record for record in items if matches(record, needle, tz)]
