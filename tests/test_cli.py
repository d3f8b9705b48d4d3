from __future__ import annotations

import datetime as dt
import json
import threading
from pathlib import Path

import pytest
from conftest import make_event
from typer.testing import CliRunner

from eventsync.cli import app
from eventsync.codec import to_wire
from eventsync.commands import common
from eventsync.remote import InMemoryRemoteStore

runner = CliRunner()


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> InMemoryRemoteStore:
    store = InMemoryRemoteStore()
    store.seed("events", "1", to_wire(make_event("1", title="Tech Meetup", location="Hall A")))
    store.seed(
        "events",
        "2",
        to_wire(
            make_event(
                "2",
                title="Art Show",
                location="Tech Park",
                when=dt.datetime(2025, 3, 14, 12, 30, tzinfo=dt.UTC),
            )
        ),
    )
    monkeypatch.setenv("EVENTSYNC_DISPLAY_TZ", "UTC")
    monkeypatch.setattr(common, "remote_from_config", lambda cfg, url: store)
    return store


def test_root_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for name in ("list", "search", "add", "update", "delete", "watch", "config"):
        assert name in result.stdout


def test_list_prints_events(store: InMemoryRemoteStore) -> None:
    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert "[1] Tech Meetup @ Hall A (15 Oct 2025 12:00)" in result.stdout
    assert "[2] Art Show @ Tech Park (14 Mar 2025 12:30)" in result.stdout


def test_search_filters_events(store: InMemoryRemoteStore) -> None:
    result = runner.invoke(app, ["search", "mar"])

    assert result.exit_code == 0
    assert "Art Show" in result.stdout
    assert "Tech Meetup" not in result.stdout

    result = runner.invoke(app, ["search", "xyz"])
    assert "No events." in result.stdout


def test_add_creates_remote_document(store: InMemoryRemoteStore) -> None:
    result = runner.invoke(
        app,
        [
            "add",
            "--title",
            "  Launch  ",
            "--location",
            "Dock 4",
            "--when",
            "October 23, 2025 at 3:40:11 PM UTC+5:30",
        ],
    )

    assert result.exit_code == 0, result.stdout
    assert "Created event" in result.stdout
    created = [doc for key, doc in store.documents("events").items() if key not in {"1", "2"}]
    assert len(created) == 1
    assert created[0]["name"] == "Launch"
    assert created[0]["dateTime"].to_datetime() == dt.datetime(2025, 10, 23, 10, 10, 11, tzinfo=dt.UTC)


def test_add_reports_reverted_write(store: InMemoryRemoteStore) -> None:
    store.fail_writes = True

    result = runner.invoke(
        app, ["add", "--title", "Launch", "--location", "Dock 4", "--when", "2025-10-23T10:00:00Z"]
    )

    assert result.exit_code == 1
    assert "reverted" in result.stdout
    assert set(store.documents("events")) == {"1", "2"}


def test_add_requires_title(store: InMemoryRemoteStore) -> None:
    result = runner.invoke(app, ["add", "--title", "   ", "--location", "Dock", "--when", "now"])

    assert result.exit_code == 1
    assert "title is required" in result.stdout


def test_update_changes_fields(store: InMemoryRemoteStore) -> None:
    result = runner.invoke(app, ["update", "1", "--location", "Hall B"])

    assert result.exit_code == 0, result.stdout
    doc = store.documents("events")["1"]
    assert doc["venue"] == "Hall B"
    assert doc["name"] == "Tech Meetup"


def test_update_unknown_event(store: InMemoryRemoteStore) -> None:
    result = runner.invoke(app, ["update", "404", "--title", "Nope"])

    assert result.exit_code == 1
    assert "not found" in result.stdout


def test_delete_requires_confirmation(store: InMemoryRemoteStore) -> None:
    result = runner.invoke(app, ["delete", "1"], input="n\n")

    assert result.exit_code == 0
    assert "Cancelled." in result.stdout
    assert "1" in store.documents("events")

    result = runner.invoke(app, ["delete", "1", "--yes"])
    assert result.exit_code == 0
    assert "1" not in store.documents("events")


def test_delete_failure_restores(store: InMemoryRemoteStore) -> None:
    store.rejected_keys.add("2")

    result = runner.invoke(app, ["delete", "2", "--yes"])

    assert result.exit_code == 1
    assert "event restored" in result.stdout


def test_unavailable_remote_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    down = InMemoryRemoteStore(fail_subscribe=True)
    monkeypatch.setattr(common, "remote_from_config", lambda cfg, url: down)

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 1
    assert "Remote store unavailable" in result.stdout


def test_missing_remote_url() -> None:
    result = runner.invoke(app, ["list"])

    assert result.exit_code == 1
    assert "No remote configured" in result.stdout


def test_config_show(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EVENTSYNC_COLLECTION", "meetups")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["collection"] == "meetups"


def test_watch_prints_current_events(
    store: InMemoryRemoteStore, capsys: pytest.CaptureFixture[str]
) -> None:
    from eventsync.commands.event_cmds import watch_cmd
    from eventsync.config import load_config

    stop = threading.Event()
    stop.set()
    watch_cmd(cfg=load_config(), url=None, stop_event=stop)

    out = capsys.readouterr().out
    assert "--- 2 event(s)" in out
    assert "Tech Meetup" in out


def test_invalid_config_file_exits(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    config_path = tmp_path / "broken.json"
    config_path.write_text("{broken")
    monkeypatch.setenv("EVENTSYNC_CONFIG", str(config_path))

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 1
    assert "Invalid config file: invalid config json" in result.stdout


def test_config_is_loaded_once_per_invocation(
    store: InMemoryRemoteStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    from eventsync import config

    loads: list[int] = []
    real_load = config.load_config

    def _counting_load(path=None):
        loads.append(1)
        return real_load(path)

    monkeypatch.setattr(common, "load_config", _counting_load)

    result = runner.invoke(app, ["list"])

    assert result.exit_code == 0
    assert len(loads) == 1


def test_config_set_writes_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "set", "remote_timeout_s", "5"])
    assert result.exit_code == 0, result.stdout
    result = runner.invoke(app, ["config", "set", "remote_url", "localhost:8080"])
    assert result.exit_code == 0, result.stdout

    data = json.loads((tmp_path / "config.json").read_text())
    assert data == {"remote_timeout_s": 5.0, "remote_url": "localhost:8080"}

    result = runner.invoke(app, ["config", "show"])
    shown = json.loads(result.stdout)
    assert shown["remote_timeout_s"] == 5.0
    assert shown["remote_url"] == "localhost:8080"

    result = runner.invoke(app, ["config", "set", "remote_url", ""])
    assert result.exit_code == 0
    assert "remote_url" not in json.loads((tmp_path / "config.json").read_text())


def test_config_set_rejects_bad_values(tmp_path: Path) -> None:
    result = runner.invoke(app, ["config", "set", "colour", "blue"])
    assert result.exit_code == 1
    assert "unknown config key: colour" in result.stdout

    result = runner.invoke(app, ["config", "set", "poll_interval_s", "-2"])
    assert result.exit_code == 1
    assert "must be a positive number" in result.stdout
    assert not (tmp_path / "config.json").exists()
