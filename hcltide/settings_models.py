from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import TypedDict


class IndentSettings(TypedDict, total=False):
    width: int
    tab_width: int


class CheckerSettings(TypedDict, total=False):
    enabled: bool
    command: list[str]
    debounce_ms: int
    max_problems: int
    cwd: str


class FormatSettings(TypedDict, total=False):
    command: list[str]


class OutlineSettings(TypedDict, total=False):
    include_attributes: bool


class HclTideSettings(TypedDict, total=False):
    indent: IndentSettings
    checker: CheckerSettings
    format: FormatSettings
    outline: OutlineSettings


@dataclass(slots=True, frozen=True)
class SettingsPaths:
    project_root: Path
    settings_filename: str = ".hcltide/settings.json"
    settings_file: Path = field(init=False)

    def __post_init__(self) -> None:
        project_root = Path(self.project_root).expanduser().resolve()
        object.__setattr__(self, "project_root", project_root)
        object.__setattr__(self, "settings_file", project_root / self.settings_filename)


def default_settings() -> HclTideSettings:
    defaults: HclTideSettings = {
        "indent": {
            "width": 2,
            "tab_width": 8,
        },
        "checker": {
            "enabled": True,
            "command": ["terraform", "fmt", "-no-color", "-"],
            "debounce_ms": 600,
            "max_problems": 200,
            "cwd": "",
        },
        "format": {
            "command": ["terraform", "fmt", "-no-color", "-"],
        },
        "outline": {
            "include_attributes": True,
        },
    }
    return deepcopy(defaults)

