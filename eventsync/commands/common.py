from __future__ import annotations

import logging
from typing import Any

import typer
from rich import print
from rich.markup import escape

from ..config import EventSyncConfig, load_config, read_config_file, write_config_file
from ..engine import EventSyncEngine
from ..records import EventRecord
from ..remote import HttpRemoteStore, RemoteStore
from ..timestamps import format_display


def load_config_or_exit() -> EventSyncConfig:
    try:
        return load_config()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def read_config_or_exit() -> dict[str, Any]:
    try:
        return read_config_file()
    except ValueError as exc:
        print(f"[red]Invalid config file: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def write_config_or_exit(data: dict[str, Any]) -> None:
    try:
        write_config_file(data)
    except OSError as exc:
        print(f"[red]Failed to write config: {exc}[/red]")
        raise typer.Exit(code=1) from exc


def configure_logging(level: str, *, verbose: bool = False) -> None:
    resolved = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(level=resolved, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def remote_from_config(cfg: EventSyncConfig, url: str | None) -> RemoteStore:
    target = (url or cfg.remote_url or "").strip()
    if not target:
        print("[red]No remote configured. Pass --url or set EVENTSYNC_REMOTE_URL.[/red]")
        raise typer.Exit(code=1)
    return HttpRemoteStore(
        target,
        timeout_s=cfg.remote_timeout_s,
        poll_interval_s=cfg.poll_interval_s,
    )


def open_engine(cfg: EventSyncConfig, url: str | None) -> EventSyncEngine:
    engine = EventSyncEngine(
        remote_from_config(cfg, url),
        collection=cfg.collection,
        rollback_failed_create=cfg.rollback_failed_create,
        display_tz=cfg.tzinfo(),
    )
    if not engine.start():
        engine.close()
        print("[red]Remote store unavailable.[/red]")
        raise typer.Exit(code=1)
    engine.tasks.drain()
    return engine


def format_event(record: EventRecord, engine: EventSyncEngine) -> str:
    when = format_display(record.occurs_at, engine.display_tz)
    return escape(f"[{record.id}] {record.title} @ {record.location} ({when})")
