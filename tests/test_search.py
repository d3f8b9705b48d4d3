from __future__ import annotations

import datetime as dt

from conftest import make_event

from eventsync.engine import EventSyncEngine
from eventsync.search import search_events

MEETUP = make_event("1", title="Tech Meetup", location="Hall A")
ART = make_event("2", title="Art Show", location="Tech Park")
CONCERT = make_event(
    "3",
    title="Concert",
    location="Arena",
    when=dt.datetime(2025, 3, 14, 12, 30, tzinfo=dt.UTC),
)
EVENTS = (MEETUP, ART, CONCERT)


def test_query_matches_title_or_location_case_insensitively() -> None:
    assert search_events(EVENTS, "tech") == [MEETUP, ART]
    assert search_events(EVENTS, "TECH") == [MEETUP, ART]
    assert search_events(EVENTS, "hall") == [MEETUP]


def test_blank_query_returns_everything_in_order() -> None:
    assert search_events(EVENTS, "") == list(EVENTS)
    assert search_events(EVENTS, "   ") == list(EVENTS)


def test_no_match_returns_empty() -> None:
    assert search_events(EVENTS, "xyz") == []


def test_query_matches_rendered_date() -> None:
    assert search_events(EVENTS, "mar", tz=dt.UTC) == [CONCERT]
    assert search_events(EVENTS, "Mar 2025", tz=dt.UTC) == [CONCERT]
    assert search_events(EVENTS, "12:30", tz=dt.UTC) == [CONCERT]
    assert search_events(EVENTS, "15 oct", tz=dt.UTC) == [MEETUP, ART]


def test_search_does_not_mutate_input() -> None:
    events = list(EVENTS)
    search_events(events, "art")

    assert events == list(EVENTS)


def test_engine_search_uses_current_collection() -> None:
    engine = EventSyncEngine(None, display_tz=dt.UTC)
    for record in EVENTS:
        engine.create(record)

    assert engine.search("tech") == [MEETUP, ART]
    assert engine.search("") == list(EVENTS)
    assert engine.search("14 mar") == [CONCERT]
    assert engine.events == EVENTS
