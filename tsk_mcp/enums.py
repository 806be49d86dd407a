"""Enums for tsk."""

from enum import Enum


class ResponseFormat(str, Enum):
    """Output format for tool responses."""

    CONCISE = "concise"  # One line per task, for chaining
    MARKDOWN = "markdown"  # Human-readable (default)
    JSON = "json"  # Machine-readable with all fields


class TaskStatus(str, Enum):
    """Lifecycle state of a task."""

    TODO = "Todo"
    IN_PROGRESS = "InProgress"
    DONE = "Done"
    BLOCKED = "Blocked"
    CANCELLED = "Cancelled"

    @property
    def is_closed(self) -> bool:
        """Done and Cancelled tasks no longer block anything."""
        return self in (TaskStatus.DONE, TaskStatus.CANCELLED)


class TaskPriority(str, Enum):
    """Task priority levels, lowest first."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.CRITICAL: 3,
}
