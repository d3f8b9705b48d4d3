from __future__ import annotations

import datetime as dt
import json
import os
import warnings
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_CONFIG_PATH = Path("~/.config/eventsync/config.json").expanduser()

CONFIG_ENV_OVERRIDES = {
    "collection": "EVENTSYNC_COLLECTION",
    "remote_url": "EVENTSYNC_REMOTE_URL",
    "remote_timeout_s": "EVENTSYNC_REMOTE_TIMEOUT_S",
    "poll_interval_s": "EVENTSYNC_POLL_INTERVAL_S",
    "rollback_failed_create": "EVENTSYNC_ROLLBACK_FAILED_CREATE",
    "display_tz": "EVENTSYNC_DISPLAY_TZ",
    "log_level": "EVENTSYNC_LOG_LEVEL",
}

FLOAT_KEYS = {"remote_timeout_s", "poll_interval_s"}
BOOL_KEYS = {"rollback_failed_create"}
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "off", "no"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("EVENTSYNC_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class EventSyncConfig:
    collection: str = "events"
    remote_url: str | None = None
    remote_timeout_s: float = 3.0
    poll_interval_s: float = 2.0

    # When False, a local create whose remote write fails is kept instead of
    # being removed again.
    rollback_failed_create: bool = True

    # IANA zone used for rendering and searching dates; None means the system zone.
    display_tz: str | None = None
    log_level: str = "WARNING"

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def tzinfo(self) -> dt.tzinfo | None:
        if not self.display_tz:
            return None
        if self.display_tz.upper() in {"UTC", "Z"}:
            return dt.UTC
        try:
            return ZoneInfo(self.display_tz)
        except (ZoneInfoNotFoundError, ValueError):
            warnings.warn(
                f"Unknown display_tz: {self.display_tz!r}", RuntimeWarning, stacklevel=2
            )
            return None


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in TRUE_VALUES:
        return True
    if value.lower() in FALSE_VALUES:
        return False
    return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    if parsed <= 0:
        warnings.warn(f"Invalid number for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default
    return parsed


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> EventSyncConfig:
    cfg = _apply_dict(EventSyncConfig(), read_config_file(path))
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: EventSyncConfig, data: dict[str, Any]) -> EventSyncConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in FLOAT_KEYS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key in BOOL_KEYS:
            setattr(cfg, key, _coerce_bool(value, getattr(cfg, key), key=key))
            continue
        if value is not None and not isinstance(value, str):
            warnings.warn(f"Invalid string for {key}: {value!r}", RuntimeWarning, stacklevel=2)
            continue
        if key == "collection" and not (value or "").strip():
            continue
        setattr(cfg, key, value.strip() if isinstance(value, str) else value)
    return cfg


def coerce_config_value(key: str, value: str) -> Any:
    """Turn a command-line string into the value stored in the config file."""
    if key not in CONFIG_ENV_OVERRIDES:
        raise ValueError(f"unknown config key: {key}")
    text = value.strip()
    if key in FLOAT_KEYS:
        try:
            parsed = float(text)
        except ValueError:
            parsed = 0.0
        if not parsed > 0:
            raise ValueError(f"{key} must be a positive number")
        return parsed
    if key in BOOL_KEYS:
        if text.lower() in TRUE_VALUES:
            return True
        if text.lower() in FALSE_VALUES:
            return False
        raise ValueError(f"{key} must be true or false")
    if key == "collection" and not text:
        raise ValueError("collection must not be empty")
    return text or None
