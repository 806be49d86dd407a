"""Persistence for tsk: unit repositories and the task store."""

from tsk_mcp.store.repository import DEFAULT_UNIT_FILE, InMemoryRepository, JsonFileRepository, UnitRepository
from tsk_mcp.store.task_store import TaskStore, is_clear_value

__all__ = [
    "DEFAULT_UNIT_FILE",
    "UnitRepository",
    "InMemoryRepository",
    "JsonFileRepository",
    "TaskStore",
    "is_clear_value",
]
