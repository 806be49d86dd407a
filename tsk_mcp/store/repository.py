"""Unit repositories: where project units live.

A unit is keyed by its project id; the default unit (tasks without a
project) uses the key ``None``. The store only talks to this interface, so
tests can run against ``InMemoryRepository`` while the CLI and MCP server use
``JsonFileRepository``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from tsk_mcp.models.task import ProjectData

logger = logging.getLogger(__name__)

DEFAULT_UNIT_FILE = "_default.json"


class UnitRepository(ABC):
    """Load and save project units by key."""

    @abstractmethod
    def keys(self) -> list[str | None]:
        """Return the keys of every stored unit, in a stable order."""

    @abstractmethod
    def exists(self, key: str | None) -> bool:
        """Return True if a unit is stored under ``key``."""

    @abstractmethod
    def load(self, key: str | None) -> ProjectData:
        """Load a unit. A missing or unreadable unit loads as empty."""

    @abstractmethod
    def save(self, key: str | None, data: ProjectData) -> None:
        """Write a unit, replacing any previous contents."""

    @abstractmethod
    def delete(self, key: str | None) -> bool:
        """Remove a unit. Returns False if nothing was stored."""


class InMemoryRepository(UnitRepository):
    """Repository backed by a dict of serialized units.

    Units are stored as JSON text so that objects handed out by ``load`` never
    share state with what is stored.
    """

    def __init__(self) -> None:
        self._units: dict[str | None, str] = {}

    def keys(self) -> list[str | None]:
        return sorted(self._units, key=lambda k: "" if k is None else k)

    def exists(self, key: str | None) -> bool:
        return key in self._units

    def load(self, key: str | None) -> ProjectData:
        raw = self._units.get(key)
        if raw is None:
            return ProjectData()
        return ProjectData.model_validate_json(raw)

    def save(self, key: str | None, data: ProjectData) -> None:
        self._units[key] = data.model_dump_json(by_alias=True)

    def delete(self, key: str | None) -> bool:
        return self._units.pop(key, None) is not None


class JsonFileRepository(UnitRepository):
    """One pretty-printed JSON file per unit inside ``data_dir``.

    Layout:
        <data_dir>/_default.json     # unassigned tasks
        <data_dir>/<projectId>.json  # one file per project
    """

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str | None) -> Path:
        return self.data_dir / (DEFAULT_UNIT_FILE if not key else f"{key}.json")

    def keys(self) -> list[str | None]:
        if not self.data_dir.is_dir():
            return []
        keys: list[str | None] = []
        for path in sorted(self.data_dir.glob("*.json")):
            keys.append(None if path.name == DEFAULT_UNIT_FILE else path.stem)
        return keys

    def exists(self, key: str | None) -> bool:
        return self.path_for(key).is_file()

    def load(self, key: str | None) -> ProjectData:
        path = self.path_for(key)
        if not path.is_file():
            return ProjectData()

        try:
            text = path.read_text(encoding="utf-8-sig")
            if not text.strip():
                return ProjectData()
            return ProjectData.model_validate(json.loads(text))
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            logger.warning("Unreadable unit %s, treating as empty: %s", path, e)
            return ProjectData()

    def save(self, key: str | None, data: ProjectData) -> None:
        path = self.path_for(key)
        payload = json.dumps(data.model_dump(mode="json", by_alias=True), indent=2)

        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=".tmp-", suffix=".part")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.write("\n")
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Saved unit %s (%d tasks)", path.name, len(data.tasks))

    def delete(self, key: str | None) -> bool:
        path = self.path_for(key)
        if not path.is_file():
            return False
        path.unlink()
        return True
