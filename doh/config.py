"""Persistent JSON config helpers.

Stores pager, transfer and picker preferences plus the last local directory.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "doh"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

DEFAULT_TAB_WIDTH = 4
PICKER_KINDS = ("auto", "dialog", "prompt")


@dataclass(frozen=True)
class Settings:
    """Effective settings for one session."""

    tab_width: int = DEFAULT_TAB_WIDTH
    request_timeout: float | None = None
    show_progress: bool = True
    picker: str = "auto"
    last_local_dir: Path | None = None


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Filesystem errors are ignored to keep a session running when config
    cannot be written.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError:
        pass


def _coerce_tab_width(value: object) -> int:
    """Booleans, non-integers and values below one fall back to the default."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        return DEFAULT_TAB_WIDTH
    return value


def _coerce_timeout(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return None
    return float(value)


def _coerce_picker(value: object) -> str:
    if not isinstance(value, str):
        return "auto"
    stripped = value.strip().lower()
    return stripped if stripped in PICKER_KINDS else "auto"


def load_last_local_dir() -> Path | None:
    """Return the remembered transfer directory if it still exists."""
    value = load_config().get("last_local_dir")
    if not isinstance(value, str) or not value:
        return None
    path = Path(value)
    return path if path.is_dir() else None


def save_last_local_dir(directory: Path) -> None:
    """Remember ``directory`` as the start point of the next picker."""
    config = load_config()
    config["last_local_dir"] = str(directory)
    save_config(config)


def load_settings() -> Settings:
    """Build ``Settings`` from the config file, sanitizing every value."""
    data = load_config()
    show_progress = data.get("show_progress")
    return Settings(
        tab_width=_coerce_tab_width(data.get("tab_width")),
        request_timeout=_coerce_timeout(data.get("request_timeout")),
        show_progress=show_progress if isinstance(show_progress, bool) else True,
        picker=_coerce_picker(data.get("picker")),
        last_local_dir=load_last_local_dir(),
    )
