from __future__ import annotations

import datetime as dt
import threading
import time
from dataclasses import dataclass

_id_lock = threading.Lock()
_last_id = 0


@dataclass(frozen=True)
class EventRecord:
    id: str
    title: str
    location: str
    occurs_at: dt.datetime


def new_record_id(now_ms: int | None = None) -> str:
    """Time based id: milliseconds since the epoch, bumped to stay unique in-process."""
    global _last_id
    candidate = now_ms if now_ms is not None else int(time.time() * 1000)
    with _id_lock:
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
    return str(candidate)


def validate_fields(title: str | None, location: str | None) -> tuple[str, str]:
    clean_title = (title or "").strip()
    clean_location = (location or "").strip()
    if not clean_title:
        raise ValueError("title is required")
    if not clean_location:
        raise ValueError("location is required")
    return clean_title, clean_location
