from __future__ import annotations

import datetime as dt

import pytest
from conftest import make_event

from eventsync.codec import from_wire, to_wire
from eventsync.errors import DecodeError
from eventsync.timestamps import StoreTimestamp


def test_to_wire_emits_fixed_field_set() -> None:
    when = dt.datetime(2025, 10, 23, 15, 40, 11, tzinfo=dt.timezone(dt.timedelta(hours=5, minutes=30)))
    wire = to_wire(make_event("42", when=when))

    assert set(wire) == {"id", "name", "venue", "dateTime"}
    assert wire["id"] == "42"
    assert wire["name"] == "Tech Meetup"
    assert wire["venue"] == "Hall A"
    assert wire["dateTime"] == StoreTimestamp.from_datetime(when)
    assert wire["dateTime"].to_datetime() == dt.datetime(2025, 10, 23, 10, 10, 11, tzinfo=dt.UTC)


def test_round_trip_preserves_fields() -> None:
    record = make_event(
        "1761214211000",
        title="Art Show",
        location="Tech Park",
        when=dt.datetime(2025, 10, 23, 10, 10, 11, 654321, tzinfo=dt.UTC),
    )

    decoded = from_wire(record.id, to_wire(record))

    assert decoded.id == record.id
    assert decoded.title == record.title
    assert decoded.location == record.location
    assert abs(decoded.occurs_at - record.occurs_at) < dt.timedelta(seconds=1)


def test_from_wire_reads_title_aliases_in_order() -> None:
    assert from_wire("a", {"eventname": "Legacy"}).title == "Legacy"
    assert from_wire("a", {"eventName": "Camel"}).title == "Camel"
    assert from_wire("a", {"name": "Current", "eventName": "Camel"}).title == "Current"
    assert from_wire("a", {"name": None, "eventname": "Fallback"}).title == "Fallback"


def test_from_wire_reads_location_aliases_in_order() -> None:
    assert from_wire("a", {"location": "Old"}).location == "Old"
    assert from_wire("a", {"venue": "New", "location": "Old"}).location == "New"


def test_from_wire_reads_timestamp_aliases() -> None:
    seconds = int(dt.datetime(2025, 10, 23, tzinfo=dt.UTC).timestamp())

    assert from_wire("a", {"date": seconds}).occurs_at == dt.datetime(2025, 10, 23, tzinfo=dt.UTC)
    assert from_wire("a", {"timestamp": {"_seconds": seconds}}).occurs_at == dt.datetime(
        2025, 10, 23, tzinfo=dt.UTC
    )
    assert from_wire("a", {"dateTime": "2025-10-23T00:00:00Z", "date": 0}).occurs_at == (
        dt.datetime(2025, 10, 23, tzinfo=dt.UTC)
    )


def test_from_wire_missing_fields_default_to_empty_strings() -> None:
    record = from_wire("k1", {})

    assert record.id == "k1"
    assert record.title == ""
    assert record.location == ""
    assert isinstance(record.occurs_at, dt.datetime)


def test_from_wire_identity_falls_back_to_payload_then_empty() -> None:
    assert from_wire(None, {"id": "in-payload"}).id == "in-payload"
    assert from_wire("", {"id": "in-payload"}).id == "in-payload"
    assert from_wire("store-key", {"id": "in-payload"}).id == "store-key"
    assert from_wire(None, {}).id == ""


def test_from_wire_stringifies_non_text_fields() -> None:
    record = from_wire("a", {"name": 2025, "venue": 7})

    assert record.title == "2025"
    assert record.location == "7"


def test_from_wire_rejects_non_mapping_payload() -> None:
    with pytest.raises(DecodeError):
        from_wire("bad", ["not", "a", "mapping"])
