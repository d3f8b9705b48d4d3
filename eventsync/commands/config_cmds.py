from __future__ import annotations

import json

import typer
from rich import print
from rich.markup import escape

from ..config import coerce_config_value, get_config_path
from .common import read_config_or_exit, write_config_or_exit


def config_show_cmd(*, cfg) -> None:
    """Print the effective configuration as JSON."""

    print(json.dumps(cfg.as_dict(), indent=2))


def config_set_cmd(*, key: str, value: str) -> None:
    """Store one setting in the config file."""

    try:
        stored = coerce_config_value(key, value)
    except ValueError as exc:
        print(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(code=1) from exc
    data = read_config_or_exit()
    if stored is None:
        data.pop(key, None)
    else:
        data[key] = stored
    write_config_or_exit(data)
    print(f"Set {key} in {escape(str(get_config_path()))}")
