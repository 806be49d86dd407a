"""Core task and project models for tsk."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tsk_mcp.enums import TaskPriority, TaskStatus


def new_id() -> str:
    """Generate an 8-character lowercase hex identifier."""
    return uuid.uuid4().hex[:8]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Task(BaseModel):
    """A single task as persisted in a project unit."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    parent_id: str | None = None
    project_id: str | None = None
    title: str = ""
    description: str | None = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    tags: list[str] = Field(default_factory=list)
    order: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    due_date: datetime | None = None
    completed_at: datetime | None = None
    depends_on: list[str] = Field(default_factory=list)

    @field_validator("created_at", "updated_at", "due_date", "completed_at")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)

    def to_record(self) -> dict[str, Any]:
        """Serialize with the camelCase field names used on disk and in JSON output."""
        return self.model_dump(mode="json", by_alias=True)


class Project(BaseModel):
    """Project metadata stored at the head of its unit."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: str = Field(default_factory=new_id)
    name: str = ""
    description: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    def to_record(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ProjectData(BaseModel):
    """Contents of one unit: project metadata (absent for the default unit) and its tasks."""

    project: Project | None = None
    tasks: list[Task] = Field(default_factory=list)


class TaskRef(BaseModel):
    """Lightweight reference to a related task.

    Carries enough information about a dependency or dependent for callers to
    understand a blocking relationship without another lookup.
    """

    id: str
    title: str
    status: TaskStatus


class TaskNode(BaseModel):
    """A task positioned in a hierarchy view. Never persisted."""

    task: Task
    depth: int = 0
    children: list[TaskNode] = Field(default_factory=list)
    blocking_dependency_ids: list[str] = Field(default_factory=list)


class TaskStats(BaseModel):
    """Aggregate counts over a set of tasks."""

    total: int = 0
    todo: int = 0
    in_progress: int = 0
    done: int = 0
    blocked: int = 0
    cancelled: int = 0
    by_priority: dict[TaskPriority, int] = Field(default_factory=dict)

    @property
    def percent_done(self) -> int:
        return self.done * 100 // self.total if self.total else 0


class TaskSpec(BaseModel):
    """Nested description of tasks to create in one call."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    description: str | None = None
    priority: TaskPriority | None = None
    tags: list[str] | None = None
    due_date: datetime | None = None
    parent_id: str | None = None
    project_id: str | None = None
    subtasks: list[TaskSpec] = Field(default_factory=list)

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v: Any) -> Any:
        # "high" -> "High"
        if isinstance(v, str):
            return v.strip().capitalize() or None
        return v

    @field_validator("due_date")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class TaskUpdate(BaseModel):
    """Partial task update.

    Only fields present in ``model_fields_set`` are applied, so an explicit
    ``None`` (clear the value) is distinguishable from an omitted field.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: str | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    tags: list[str] | None = None
    due_date: datetime | None = None
    parent_id: str | None = None
    order: int | None = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip() if v is not None else v

    @field_validator("due_date")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        return _as_utc(v)


class ProjectUpdate(BaseModel):
    """Partial project update, same provided-vs-absent rules as TaskUpdate."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Project name cannot be empty")
        return v.strip() if v is not None else v
