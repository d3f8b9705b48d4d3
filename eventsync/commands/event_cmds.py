from __future__ import annotations

import dataclasses
import threading

import typer
from rich import print
from rich.markup import escape

from ..records import EventRecord, new_record_id, validate_fields
from ..timestamps import normalize_timestamp
from .common import format_event, open_engine


def _print_events(engine, events) -> None:
    if not events:
        print("No events.")
        return
    for record in events:
        print(format_event(record, engine))


def _finish(engine, pending, *, success: str, failure: str) -> None:
    """Reconcile the remote leg of a mutation and report how it ended."""
    if engine.wait_for(pending):
        print(success)
        return
    print(f"[red]{failure}[/red]")
    raise typer.Exit(code=1)


def _parse_when(when: str | None):
    if when is None:
        return None
    return normalize_timestamp(when.strip() or None)


def list_cmd(*, cfg, url: str | None) -> None:
    """Show every event in the collection."""

    engine = open_engine(cfg, url)
    try:
        _print_events(engine, engine.events)
    finally:
        engine.close()


def search_cmd(*, cfg, url: str | None, query: str) -> None:
    """Show events whose title, location, or date contains the query."""

    engine = open_engine(cfg, url)
    try:
        _print_events(engine, engine.search(query))
    finally:
        engine.close()


def add_cmd(*, cfg, url: str | None, title: str, location: str, when: str) -> None:
    """Create an event."""

    try:
        clean_title, clean_location = validate_fields(title, location)
    except ValueError as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1) from exc
    record = EventRecord(
        id=new_record_id(),
        title=clean_title,
        location=clean_location,
        occurs_at=normalize_timestamp(when),
    )
    engine = open_engine(cfg, url)
    try:
        pending = engine.create(record)
        _finish(
            engine,
            pending,
            success=f"Created event {escape(record.id)}",
            failure=f"Create of {escape(record.id)} failed; change reverted",
        )
    finally:
        engine.close()


def update_cmd(
    *,
    cfg,
    url: str | None,
    event_id: str,
    title: str | None,
    location: str | None,
    when: str | None,
) -> None:
    """Edit fields of an existing event."""

    engine = open_engine(cfg, url)
    try:
        current = engine.get(event_id)
        if current is None:
            print(f"[red]Event {escape(event_id)} not found[/red]")
            raise typer.Exit(code=1)
        try:
            clean_title, clean_location = validate_fields(
                current.title if title is None else title,
                current.location if location is None else location,
            )
        except ValueError as exc:
            print(f"[red]{exc}[/red]")
            raise typer.Exit(code=1) from exc
        updated = dataclasses.replace(
            current,
            title=clean_title,
            location=clean_location,
            occurs_at=_parse_when(when) or current.occurs_at,
        )
        pending = engine.update(event_id, updated)
        _finish(
            engine,
            pending,
            success=f"Updated event {escape(event_id)}",
            failure=f"Update of {escape(event_id)} failed; change reverted",
        )
    finally:
        engine.close()


def delete_cmd(*, cfg, url: str | None, event_id: str, yes: bool) -> None:
    """Delete an event after confirmation."""

    engine = open_engine(cfg, url)
    try:
        current = engine.get(event_id)
        if current is None:
            print(f"[red]Event {escape(event_id)} not found[/red]")
            raise typer.Exit(code=1)
        if not yes and not typer.confirm(f"Delete '{current.title}'?"):
            print("Cancelled.")
            return
        pending = engine.delete(event_id)
        _finish(
            engine,
            pending,
            success=f"Deleted event {escape(event_id)}",
            failure=f"Delete of {escape(event_id)} failed; event restored",
        )
    finally:
        engine.close()


def watch_cmd(*, cfg, url: str | None, stop_event: threading.Event | None = None) -> None:
    """Print the collection every time it changes until interrupted."""

    engine = open_engine(cfg, url)
    stop = stop_event or threading.Event()

    def _on_change(events) -> None:
        print(f"--- {len(events)} event(s)")
        _print_events(engine, events)

    engine.subscribe(_on_change)
    try:
        _on_change(engine.events)
        while not stop.wait(0.2):
            engine.tasks.drain()
    except KeyboardInterrupt:
        pass
    finally:
        engine.close()
