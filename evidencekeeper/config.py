"""Application configuration and persisted user settings, stored as JSON files."""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable, Iterable
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any

from evidencekeeper.models import Tag

log = logging.getLogger(__name__)

ACCESS_SETTING = "accessKey"
SIGNING_SETTING = "secretKey"
API_URL = "apiURL"
EVIDENCE_REPO = "evidenceRepo"
COMMAND_SCREENSHOT = "screenshotCommand"
COMMAND_CAPTUREWINDOW = "captureWindowExec"
SHORTCUT_SCREENSHOT = "screenshotShortcut"
SHORTCUT_CAPTUREWINDOW = "captureWindowShortcut"
SHORTCUT_CAPTURECLIPBOARD = "captureClipboardShortcut"
SHOW_WELCOME_SCREEN = "showWelcomeScreen"

VALID_KEYS = frozenset(
    {
        ACCESS_SETTING,
        SIGNING_SETTING,
        API_URL,
        EVIDENCE_REPO,
        COMMAND_SCREENSHOT,
        COMMAND_CAPTUREWINDOW,
        SHORTCUT_SCREENSHOT,
        SHORTCUT_CAPTUREWINDOW,
        SHORTCUT_CAPTURECLIPBOARD,
        SHOW_WELCOME_SCREEN,
    }
)

# Keys carried over when importing another configuration file.
IMPORTED_KEYS = frozenset({ACCESS_SETTING, SIGNING_SETTING, API_URL})

DEFAULT_API_URL = "http://localhost:8080"

_SHORTCUT_DEFAULTS = {
    SHORTCUT_CAPTURECLIPBOARD: "Meta+Alt+v",
    SHORTCUT_CAPTUREWINDOW: "Meta+Alt+4",
    SHORTCUT_SCREENSHOT: "Meta+Alt+3",
}

_COMMAND_DEFAULTS = {
    "win32": {
        COMMAND_SCREENSHOT: r'"C:\Program Files\IrfanView\i_view64.exe" /capture=4 /convert=%file',
        COMMAND_CAPTUREWINDOW: r'"C:\Program Files\IrfanView\i_view64.exe" /capture=0 /convert=%file',
    },
    "darwin": {
        COMMAND_SCREENSHOT: "screencapture -s %file",
        COMMAND_CAPTUREWINDOW: "screencapture -w %file",
    },
}

_OP_NAME_SETTING = "operation/name"
_OP_SLUG_SETTING = "operation/slug"
_LAST_USED_TAGS_SETTING = "gather/tags"

_TAG_FIELDS = frozenset(f.name for f in fields(Tag))


def _read_json(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        log.warning("Error parsing settings: %s", exc)
        return {}
    return data if isinstance(data, dict) else {}


def _write_json(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=4), encoding="utf-8")


class AppConfig:
    """Configuration values with defaults, plus separately stored user settings.

    The configuration file holds only the keys in ``VALID_KEYS``; anything else
    found there is dropped on load.
    """

    def __init__(
        self, config_file: str | Path, settings_file: str | Path, app_data_dir: str | Path
    ) -> None:
        self.config_file = Path(config_file)
        self.settings_file = Path(settings_file)
        self.app_data_dir = Path(app_data_dir)
        self.operation_changed: list[Callable[[str, str], None]] = []
        self._config = _read_json(self.config_file)
        self._settings = _read_json(self.settings_file)
        self._validate()

    def _validate(self) -> None:
        invalid = [key for key in self._config if key not in VALID_KEYS]
        for key in invalid:
            del self._config[key]
        if invalid:
            self._save_config()

    def _save_config(self) -> None:
        _write_json(self.config_file, self._config)

    def _save_settings(self) -> None:
        _write_json(self.settings_file, self._settings)

    def value(self, key: str) -> str:
        """Return the configured value for key, or its default."""
        if key in self._config:
            stored = self._config[key]
            return "" if stored is None else str(stored)
        return self.default_value(key)

    def set_value(self, key: str, value: str | None) -> None:
        """Store value under key; None removes it. Unknown keys are ignored."""
        if key not in VALID_KEYS:
            return
        if self.value(key) == value:
            return
        if value is None:
            self._config.pop(key, None)
        else:
            self._config[key] = value
        self._save_config()

    def default_value(self, key: str) -> str:
        """Return the default value for key ("" where there is none)."""
        if not key or key in (ACCESS_SETTING, SIGNING_SETTING):
            return ""
        if key == EVIDENCE_REPO:
            return str(self.app_data_dir / "evidence")
        if key == API_URL:
            return DEFAULT_API_URL
        if key == SHOW_WELCOME_SCREEN:
            return "true"
        if key in _SHORTCUT_DEFAULTS:
            return "" if key in self._settings else _SHORTCUT_DEFAULTS[key]
        if key in (COMMAND_SCREENSHOT, COMMAND_CAPTUREWINDOW):
            return _COMMAND_DEFAULTS.get(sys.platform, {}).get(key, "")
        return ""

    def export_config(self, file_name: str | Path) -> None:
        """Write every stored configuration value to file_name."""
        if not str(file_name):
            raise ValueError("an export file name is required")
        _write_json(Path(file_name), dict(self._config))

    def import_config(self, file_name: str | Path) -> None:
        """Load connection settings from file_name, clearing other keys it names."""
        if not str(file_name):
            raise ValueError("an import file name is required")
        other = _read_json(Path(file_name))
        for key, imported in other.items():
            if key in IMPORTED_KEYS:
                self.set_value(key, "" if imported is None else str(imported))
            else:
                self.set_value(key, None)

    def operation_name(self) -> str:
        """Return the name of the currently selected operation."""
        return str(self._settings.get(_OP_NAME_SETTING, ""))

    def operation_slug(self) -> str:
        """Return the slug of the currently selected operation."""
        return str(self._settings.get(_OP_SLUG_SETTING, ""))

    def set_operation_details(self, operation_slug: str, operation_name: str) -> None:
        """Select an operation and notify the operation_changed listeners."""
        self._settings[_OP_NAME_SETTING] = operation_name
        self._settings[_OP_SLUG_SETTING] = operation_slug
        self._save_settings()
        for listener in self.operation_changed:
            listener(operation_slug, operation_name)

    def last_used_tags(self) -> list[Tag]:
        """Return the tags most recently applied to evidence."""
        stored = self._settings.get(_LAST_USED_TAGS_SETTING, [])
        if not isinstance(stored, list):
            return []
        return [
            Tag(**{k: v for k, v in item.items() if k in _TAG_FIELDS})
            for item in stored
            if isinstance(item, dict)
        ]

    def set_last_used_tags(self, tags: Iterable[Tag]) -> None:
        """Remember the given tags as the most recently used ones."""
        self._settings[_LAST_USED_TAGS_SETTING] = [asdict(tag) for tag in tags]
        self._save_settings()