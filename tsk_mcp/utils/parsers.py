"""Parser helpers for user-supplied task data."""

from datetime import date, datetime, time, timedelta, timezone

from tsk_mcp.enums import TaskPriority, TaskStatus
from tsk_mcp.models.task import Task, TaskRef

_PRIORITY_ALIASES = {
    "low": TaskPriority.LOW,
    "l": TaskPriority.LOW,
    "medium": TaskPriority.MEDIUM,
    "m": TaskPriority.MEDIUM,
    "high": TaskPriority.HIGH,
    "h": TaskPriority.HIGH,
    "critical": TaskPriority.CRITICAL,
    "c": TaskPriority.CRITICAL,
}

_STATUS_ALIASES = {
    "todo": TaskStatus.TODO,
    "inprogress": TaskStatus.IN_PROGRESS,
    "in_progress": TaskStatus.IN_PROGRESS,
    "in-progress": TaskStatus.IN_PROGRESS,
    "wip": TaskStatus.IN_PROGRESS,
    "started": TaskStatus.IN_PROGRESS,
    "done": TaskStatus.DONE,
    "complete": TaskStatus.DONE,
    "completed": TaskStatus.DONE,
    "blocked": TaskStatus.BLOCKED,
    "cancelled": TaskStatus.CANCELLED,
    "canceled": TaskStatus.CANCELLED,
}


def _parse_priority(value: str | TaskPriority | None) -> TaskPriority | None:
    """
    Parse a priority name or one-letter shorthand.

    Args:
        value: e.g. "high", "H", "Critical"

    Returns:
        The matching TaskPriority, or None if the value is empty or unknown
    """
    if value is None or isinstance(value, TaskPriority):
        return value
    return _PRIORITY_ALIASES.get(value.strip().lower())


def _parse_status(value: str | TaskStatus | None) -> TaskStatus | None:
    """
    Parse a status name or alias such as "wip" or "complete".

    Returns:
        The matching TaskStatus, or None if the value is empty or unknown
    """
    if value is None or isinstance(value, TaskStatus):
        return value
    return _STATUS_ALIASES.get(value.strip().lower())


def _parse_due_date(value: str | datetime | None) -> datetime | None:
    """
    Parse a due date.

    Accepts ISO 8601 dates and datetimes plus "today" and "tomorrow". Dates
    without a time become midnight UTC; naive datetimes are taken as UTC.

    Raises:
        ValueError: if the value cannot be parsed
    """
    if value is None or isinstance(value, datetime):
        return value

    text = value.strip()
    if not text:
        return None

    keyword = text.lower()
    if keyword in ("today", "tomorrow"):
        day = datetime.now(timezone.utc).date()
        if keyword == "tomorrow":
            day += timedelta(days=1)
        return datetime.combine(day, time.min, tzinfo=timezone.utc)

    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.combine(date.fromisoformat(text), time.min)
        except ValueError:
            raise ValueError(f"Invalid date: '{value}' (use YYYY-MM-DD, an ISO datetime, today or tomorrow)") from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_tags(value: str | list[str] | None) -> list[str] | None:
    """Split a comma-separated tag string (or clean a list), dropping blanks."""
    if value is None:
        return None
    parts = value.split(",") if isinstance(value, str) else value
    return [tag.strip() for tag in parts if tag and tag.strip()]


def _task_ref(task: Task) -> TaskRef:
    return TaskRef(id=task.id, title=task.title, status=task.status)
