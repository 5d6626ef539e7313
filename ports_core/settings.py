from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

STATE_DIR = Path(".ports/state")
SETTINGS_FILE = STATE_DIR / "settings.json"

DEFAULTS = {
    "refresh_interval": 5.0,
    "lsof_path": "lsof",
    "kill_path": "kill",
    "web_host": "127.0.0.1",
    "web_port": 7861,
    "log_level": "INFO",
    "log_format": "console",
}


def _ensure() -> None:
    STATE_DIR.mkdir(parents=True, exist_ok=True)


def load_settings() -> dict:
    _ensure()
    if not SETTINGS_FILE.exists():
        return dict(DEFAULTS)
    try:
        data = json.loads(SETTINGS_FILE.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Unreadable settings file {SETTINGS_FILE}, using defaults: {e}")
        return dict(DEFAULTS)
    if not isinstance(data, dict):
        return dict(DEFAULTS)
    merged = {**DEFAULTS, **data}
    try:
        _coerce("refresh_interval", merged["refresh_interval"])
    except (TypeError, ValueError) as e:
        logger.warning(f"Ignoring refresh_interval from {SETTINGS_FILE}: {e}")
        merged["refresh_interval"] = DEFAULTS["refresh_interval"]
    return merged


def save_settings(data: dict) -> dict:
    _ensure()
    SETTINGS_FILE.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return data


def _coerce(key: str, value):
    default = DEFAULTS.get(key)
    if isinstance(value, str) and default is not None and not isinstance(default, str):
        value = type(default)(value)
    if key == "refresh_interval" and not float(value) > 0:
        raise ValueError(f"refresh_interval must be positive, got {value}")
    return value


def set_setting(key: str, value) -> dict:
    data = load_settings()
    data[key] = _coerce(key, value)
    return save_settings(data)
