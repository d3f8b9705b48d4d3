from __future__ import annotations

import typer

from . import __version__
from .commands.common import configure_logging, load_config_or_exit
from .commands.config_cmds import config_set_cmd, config_show_cmd
from .commands.event_cmds import (
    add_cmd,
    delete_cmd,
    list_cmd,
    search_cmd,
    update_cmd,
    watch_cmd,
)

app = typer.Typer(help="eventsync: keep a local event list in sync with a remote document store")
config_app = typer.Typer(help="Inspect and edit configuration")
app.add_typer(config_app, name="config")

URL_OPTION = typer.Option(None, "--url", help="Remote store base URL (overrides config)")


def _version_callback(value: bool) -> None:
    if value:
        print(__version__)
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    cfg = load_config_or_exit()
    configure_logging(cfg.log_level, verbose=verbose)
    ctx.obj = cfg


@app.command("list")
def list_events(ctx: typer.Context, url: str = URL_OPTION) -> None:
    """List events."""
    list_cmd(cfg=ctx.obj, url=url)


@app.command()
def search(ctx: typer.Context, query: str, url: str = URL_OPTION) -> None:
    """Search events by title, location, or date."""
    search_cmd(cfg=ctx.obj, url=url, query=query)


@app.command()
def add(
    ctx: typer.Context,
    title: str = typer.Option(..., help="Event title"),
    location: str = typer.Option(..., help="Event location"),
    when: str = typer.Option(
        ..., help="Date and time (ISO-8601, epoch, or 'October 23, 2025 at 3:40:11 PM')"
    ),
    url: str = URL_OPTION,
) -> None:
    """Create an event."""
    add_cmd(cfg=ctx.obj, url=url, title=title, location=location, when=when)


@app.command()
def update(
    ctx: typer.Context,
    event_id: str,
    title: str | None = typer.Option(None, help="New title"),
    location: str | None = typer.Option(None, help="New location"),
    when: str | None = typer.Option(None, help="New date and time"),
    url: str = URL_OPTION,
) -> None:
    """Edit an event."""
    update_cmd(
        cfg=ctx.obj,
        url=url,
        event_id=event_id,
        title=title,
        location=location,
        when=when,
    )


@app.command()
def delete(
    ctx: typer.Context,
    event_id: str,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    url: str = URL_OPTION,
) -> None:
    """Delete an event."""
    delete_cmd(cfg=ctx.obj, url=url, event_id=event_id, yes=yes)


@app.command()
def watch(ctx: typer.Context, url: str = URL_OPTION) -> None:
    """Print the event list whenever it changes."""
    watch_cmd(cfg=ctx.obj, url=url)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show effective configuration."""
    config_show_cmd(cfg=ctx.obj)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Setting name, e.g. remote_url"),
    value: str = typer.Argument(..., help="New value; empty clears optional settings"),
) -> None:
    """Store a setting in the config file."""
    config_set_cmd(key=key, value=value)


if __name__ == "__main__":
    app()
