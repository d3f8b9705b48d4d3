from __future__ import annotations

import datetime as dt
import logging
import numbers
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal

logger = logging.getLogger(__name__)

EPOCH = dt.datetime(1970, 1, 1, tzinfo=dt.UTC)

# Epoch values above this are milliseconds; below it, seconds.
EPOCH_MILLIS_THRESHOLD = 1_000_000_000_000

MONTH_ABBREVIATIONS = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)
MONTH_NAMES = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)

# "October 23, 2025 at 3:40:11 PM"
HUMAN_DATE_RE = re.compile(
    r"""
    ^\s*(?P<month>[a-z]+)\.?
    \s+(?P<day>\d{1,2})\s*,?
    \s*(?P<year>\d{4})
    \s+at\s+
    (?P<hour>\d{1,2})\s*:\s*(?P<minute>\d{2})(?:\s*:\s*(?P<second>\d{2}))?
    \s*(?P<ampm>[ap]\.?\s*m\.?)\s*$
    """,
    re.IGNORECASE | re.VERBOSE,
)
UTC_OFFSET_RE = re.compile(r"^\s*(?P<sign>[+-])\s*(?P<hours>\d{1,2})(?::?(?P<minutes>\d{2}))?\s*$")
UTC_SEPARATOR = " UTC"
NUMERIC_RE = re.compile(r"^\s*[+-]?\d+(?:\.\d+)?\s*$")


@dataclass(frozen=True)
class StoreTimestamp:
    """Point in time as the document store keeps it: whole seconds plus nanoseconds."""

    seconds: int
    nanoseconds: int = 0

    @classmethod
    def from_datetime(cls, value: dt.datetime) -> StoreTimestamp:
        delta = value.astimezone(dt.UTC) - EPOCH
        return cls(
            seconds=delta.days * 86400 + delta.seconds,
            nanoseconds=delta.microseconds * 1000,
        )

    def to_datetime(self) -> dt.datetime:
        return EPOCH + dt.timedelta(seconds=self.seconds, microseconds=self.nanoseconds // 1000)

    def to_json(self) -> dict[str, int]:
        return {"_seconds": self.seconds, "_nanoseconds": self.nanoseconds}


def _local(value: dt.datetime) -> dt.datetime:
    # astimezone() treats naive values as local wall-clock time.
    return value.astimezone()


def _from_epoch_millis(millis: int) -> dt.datetime:
    return _local(EPOCH + dt.timedelta(milliseconds=millis))


def _parse_native(value: object) -> dt.datetime | None:
    if isinstance(value, StoreTimestamp):
        return _local(value.to_datetime())
    if isinstance(value, dt.datetime):
        return _local(value)
    seconds = getattr(value, "seconds", None)
    nanos = getattr(value, "nanoseconds", getattr(value, "nanos", None))
    if isinstance(seconds, int) and isinstance(nanos, int) and not isinstance(value, Mapping):
        return _from_epoch_millis(seconds * 1000 + nanos // 1_000_000)
    return None


def _first_key(data: Mapping[object, object], keys: tuple[str, ...]) -> object | None:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _parse_seconds_map(value: object) -> dt.datetime | None:
    if not isinstance(value, Mapping):
        return None
    seconds = _first_key(value, ("_seconds", "seconds"))
    if seconds is None or isinstance(seconds, bool):
        return None
    nanos = _first_key(value, ("_nanoseconds", "nanoseconds"))
    if isinstance(nanos, bool):
        return None
    millis = int(seconds) * 1000 + int(nanos or 0) // 1_000_000  # type: ignore[call-overload]
    return _from_epoch_millis(millis)


def epoch_to_millis(value: int) -> int:
    if abs(value) > EPOCH_MILLIS_THRESHOLD:
        return value
    return value * 1000


def _parse_epoch(value: object) -> dt.datetime | None:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    return _from_epoch_millis(epoch_to_millis(int(value)))


def _parse_numeric_string(value: object) -> dt.datetime | None:
    if not isinstance(value, str) or not NUMERIC_RE.match(value):
        return None
    text = value.strip()
    # Eight bare digits are a basic ISO date (YYYYMMDD), not an epoch.
    if len(text) == 8 and text.isdigit():
        return None
    return _from_epoch_millis(epoch_to_millis(int(Decimal(text))))


def _parse_iso(value: object) -> dt.datetime | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return _local(dt.datetime.fromisoformat(value.strip()))


def _parse_human(text: str) -> dt.datetime | None:
    match = HUMAN_DATE_RE.match(text)
    if not match:
        return None
    month_text = match.group("month").lower()
    month = None
    for index, name in enumerate(MONTH_NAMES, start=1):
        if name == month_text or (len(month_text) >= 3 and name.startswith(month_text)):
            month = index
            break
    if month is None:
        return None
    hour = int(match.group("hour"))
    if not 1 <= hour <= 12:
        return None
    is_pm = match.group("ampm").lower().startswith("p")
    hour = hour % 12 + (12 if is_pm else 0)
    return dt.datetime(
        int(match.group("year")),
        month,
        int(match.group("day")),
        hour,
        int(match.group("minute")),
        int(match.group("second") or 0),
    )


def _parse_utc_offset(text: str) -> dt.timedelta | None:
    if not text.strip():
        return dt.timedelta(0)
    match = UTC_OFFSET_RE.match(text)
    if not match:
        return None
    offset = dt.timedelta(hours=int(match.group("hours")), minutes=int(match.group("minutes") or 0))
    return -offset if match.group("sign") == "-" else offset


def _parse_offset_string(value: object) -> dt.datetime | None:
    if not isinstance(value, str) or UTC_SEPARATOR not in value:
        return None
    left, right = value.split(UTC_SEPARATOR, 1)
    wall = _parse_human(left)
    offset = _parse_utc_offset(right)
    if wall is None or offset is None:
        return None
    # Wall-clock at +offset means UTC is behind it by that offset.
    return _local((wall - offset).replace(tzinfo=dt.UTC))


def _parse_plain_string(value: object) -> dt.datetime | None:
    if not isinstance(value, str):
        return None
    wall = _parse_human(value)
    return _local(wall) if wall is not None else None


TIMESTAMP_PARSERS: tuple[Callable[[object], dt.datetime | None], ...] = (
    _parse_native,
    _parse_seconds_map,
    _parse_epoch,
    _parse_numeric_string,
    _parse_iso,
    _parse_offset_string,
    _parse_plain_string,
)


def normalize_timestamp(value: object, *, now: Callable[[], dt.datetime] | None = None) -> dt.datetime:
    """Resolve any supported wire time value to an aware datetime in the local zone.

    Never raises. Each parser is tried in order and the first one returning a
    value wins; values nothing recognizes (None, garbage strings, other types)
    resolve to the current time.
    """
    if value is not None:
        for parser in TIMESTAMP_PARSERS:
            try:
                parsed = parser(value)
            except (ValueError, TypeError, OverflowError, OSError):
                continue
            if parsed is not None:
                return parsed
        logger.debug("unrecognized timestamp %r, using current time", value)
    current = now() if now is not None else dt.datetime.now(dt.UTC)
    return _local(current)


def format_display(value: dt.datetime, tz: dt.tzinfo | None = None) -> str:
    local = value.astimezone(tz)
    month = MONTH_ABBREVIATIONS[local.month - 1]
    return f"{local.day} {month} {local.year} {local.hour:02d}:{local.minute:02d}"
