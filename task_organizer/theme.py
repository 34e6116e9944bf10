"""Light/dark theme preference for a device."""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, Literal, Optional, Protocol

logger = logging.getLogger(__name__)

Theme = Literal["light", "dark"]
THEMES = ("light", "dark")
DEFAULT_THEME: Theme = "light"
THEME_KEY = "theme"


class PreferenceStorage(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryPreferenceStorage:
    def __init__(self, values: Optional[Dict[str, str]] = None) -> None:
        self.values: Dict[str, str] = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.values[key] = value


class PreferenceFileCorrupt(ValueError):
    """Raised when the preferences file cannot be parsed."""


_file_locks: Dict[Path, threading.Lock] = {}
_file_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _file_locks_guard:
        return _file_locks.setdefault(path.resolve(), threading.Lock())


class FilePreferenceStorage:
    """Preferences kept in a JSON file, one namespace per device.

    Writes hold a per-file lock for the whole read-modify-write and replace
    the file atomically, so readers never see a partial document. A corrupt
    file is left untouched rather than overwritten.
    """

    def __init__(self, path: Path, namespace: str) -> None:
        self.path = Path(path)
        self.namespace = namespace

    def _read(self) -> Dict[str, Dict[str, str]]:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise PreferenceFileCorrupt(f"Corrupt preferences file {self.path}") from exc

    def get(self, key: str) -> Optional[str]:
        try:
            data = self._read()
        except PreferenceFileCorrupt:
            logger.warning("Ignoring corrupt preferences file %s", self.path)
            return None
        return data.get(self.namespace, {}).get(key)

    def set(self, key: str, value: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with _lock_for(self.path):
            data = self._read()
            data.setdefault(self.namespace, {})[key] = value
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                os.unlink(tmp_name)
                raise


class ThemeController:
    """Tracks the theme and persists every explicit change.

    Construction always yields the default theme; ``initialize`` then picks
    up the saved preference or the system hint. Splitting the two keeps the
    first render consistent.
    """

    def __init__(self, storage: PreferenceStorage) -> None:
        self._storage = storage
        self._theme: Theme = DEFAULT_THEME
        self._initialized = False
        self.document_class: str = DEFAULT_THEME

    @property
    def theme(self) -> Theme:
        return self._theme

    @property
    def initialized(self) -> bool:
        return self._initialized

    def initialize(self, system_prefers_dark: bool = False) -> Theme:
        if self._initialized:
            return self._theme
        self._initialized = True

        try:
            saved = self._storage.get(THEME_KEY)
        except Exception:
            logger.exception("Error reading theme preference")
            saved = None

        if saved in THEMES:
            self._theme = saved  # type: ignore[assignment]
        elif system_prefers_dark:
            self._theme = "dark"
        # Only set/toggle write storage; a first visit leaves no trace.
        self.document_class = self._theme
        return self._theme

    def set_theme(self, theme: str) -> Theme:
        if theme not in THEMES:
            raise ValueError(f"Invalid theme '{theme}'. Valid: {list(THEMES)}")
        self._theme = theme  # type: ignore[assignment]
        self._apply()
        return self._theme

    def toggle_theme(self) -> Theme:
        return self.set_theme("light" if self._theme == "dark" else "dark")

    def _apply(self) -> None:
        self.document_class = self._theme
        try:
            self._storage.set(THEME_KEY, self._theme)
        except Exception:
            logger.exception("Error saving theme preference")
