"""Configuration for tsk.

Settings live in a JSON file under a ``"Tasks"`` section:

    {
      "Tasks": {
        "dataPath": "~/work/tasks",
        "defaultProject": "Inbox",
        "defaultPriority": "High"
      }
    }

The file is ``$TSK_CONFIG`` if set, otherwise ``~/.config/tsk/config.json``.
``$TSK_DATA_PATH`` overrides ``dataPath``. Without either, data is kept in
``~/.tsk``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from tsk_mcp.enums import TaskPriority
from tsk_mcp.exceptions import TskError

CONFIG_ENV = "TSK_CONFIG"
DATA_PATH_ENV = "TSK_DATA_PATH"
SECTION_NAME = "Tasks"
DEFAULT_CONFIG_PATH = Path("~/.config/tsk/config.json")
DEFAULT_DATA_DIR = Path("~/.tsk")

# Lower-cased key -> attribute name
_KEYS = {
    "datapath": "data_path",
    "defaultproject": "default_project",
    "defaultpriority": "default_priority",
}


class TasksOptions(BaseModel):
    """User-tunable settings."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    data_path: str | None = None
    default_project: str | None = None
    default_priority: str = TaskPriority.MEDIUM.value

    @property
    def priority(self) -> TaskPriority:
        """The default priority, falling back to Medium when the setting is not a priority name."""
        for p in TaskPriority:
            if p.value.lower() == self.default_priority.strip().lower():
                return p
        return TaskPriority.MEDIUM


def config_path() -> Path:
    env = os.environ.get(CONFIG_ENV)
    return Path(env).expanduser() if env else DEFAULT_CONFIG_PATH.expanduser()


def _read_root(path: Path) -> dict[str, Any]:
    if not path.is_file():
        return {}
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        root = json.loads(text)
    except json.JSONDecodeError as e:
        raise TskError(f"Invalid config file {path}: {e}") from e
    if not isinstance(root, dict):
        raise TskError(f"Invalid config file {path}: expected a JSON object")
    return root


def load_options(path: Path | None = None) -> TasksOptions:
    """Load settings from the config file; missing file or section gives defaults."""
    path = path or config_path()
    section = _read_root(path).get(SECTION_NAME) or {}
    try:
        return TasksOptions.model_validate(section)
    except ValidationError as e:
        raise TskError(f"Invalid '{SECTION_NAME}' section in {path}: {e}") from e


def save_options(options: TasksOptions, path: Path | None = None) -> Path:
    """Write settings back, preserving any other sections of the file."""
    path = path or config_path()
    root = _read_root(path)
    root[SECTION_NAME] = options.model_dump(by_alias=True)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(root, indent=2) + "\n", encoding="utf-8")
    return path


def data_directory(options: TasksOptions, config_file: Path | None = None) -> Path:
    """Resolve (and create) the directory holding the unit files."""
    raw = os.environ.get(DATA_PATH_ENV) or options.data_path
    if raw:
        expanded = Path(os.path.expandvars(raw)).expanduser()
        if not expanded.is_absolute():
            expanded = (config_file or config_path()).parent / expanded
    else:
        expanded = DEFAULT_DATA_DIR.expanduser()
    expanded.mkdir(parents=True, exist_ok=True)
    return expanded


def get_value(options: TasksOptions, key: str) -> str | None:
    """Look up a setting by its (case-insensitive) key; unknown keys give None."""
    attr = _KEYS.get(key.lower())
    return getattr(options, attr) if attr else None


def set_value(options: TasksOptions, key: str, value: str) -> bool:
    """Change a setting in place.

    Returns False for unknown keys and for priorities that are not one of
    Low, Medium, High or Critical. An empty value clears optional settings.
    """
    attr = _KEYS.get(key.lower())
    if attr is None:
        return False

    if attr == "default_priority":
        match = next((p for p in TaskPriority if p.value.lower() == value.strip().lower()), None)
        if match is None:
            return False
        options.default_priority = match.value
        return True

    setattr(options, attr, value or None)
    return True


def all_values(options: TasksOptions) -> dict[str, str | None]:
    return options.model_dump(by_alias=True)
