"""Project settings read from ``<project>/.hcltide/settings.json``."""

from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

from hcltide.settings_models import HclTideSettings, SettingsPaths, default_settings


def merge_settings(defaults: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Overlay user values on the defaults; nested sections are merged key by key."""
    merged = deepcopy(dict(defaults))
    for key, value in overrides.items():
        base = merged.get(key)
        if isinstance(base, dict) and isinstance(value, dict):
            merged[key] = merge_settings(base, value)
        else:
            merged[key] = deepcopy(value)
    return merged


def dot_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    current: Any = data
    for part in key.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


class JsonSettingsStore:
    """Read-only view of the project's HclTide settings.

    A missing file means "all defaults". A file that cannot be read or is not a
    JSON object is left untouched; the defaults are used and the problem is
    kept in ``last_error`` for the caller to report.
    """

    def __init__(self, path: str | Path, defaults: Mapping[str, Any] | None = None) -> None:
        self.path = Path(path)
        self._defaults: dict[str, Any] = deepcopy(dict(default_settings() if defaults is None else defaults))
        self._data: dict[str, Any] = deepcopy(self._defaults)
        self.last_error: str | None = None

    @classmethod
    def for_project(cls, project_root: str | Path) -> JsonSettingsStore:
        return cls(SettingsPaths(project_root=Path(project_root)).settings_file)

    def load(self) -> HclTideSettings:
        self.last_error = None
        overrides: Any = {}
        if self.path.is_file():
            try:
                overrides = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                self.last_error = f"Could not read {self.path}: {exc}"
                overrides = {}
        if not isinstance(overrides, dict):
            self.last_error = f"{self.path}: expected a JSON object, found {type(overrides).__name__}."
            overrides = {}
        self._data = merge_settings(self._defaults, overrides)
        return self.snapshot()

    def get(self, key: str, default: Any = None) -> Any:
        return dot_get(self._data, key, default)

    def section(self, name: str) -> dict[str, Any]:
        """Copy of one top-level section (``indent``, ``checker``...), or ``{}``."""
        value = self._data.get(name)
        return deepcopy(value) if isinstance(value, dict) else {}

    def snapshot(self) -> HclTideSettings:
        return deepcopy(self._data)  # type: ignore[return-value]


__all__ = ["JsonSettingsStore", "dot_get", "merge_settings"]
