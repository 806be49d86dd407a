"""Input models for tsk MCP tools."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tsk_mcp.enums import ResponseFormat, TaskPriority, TaskStatus
from tsk_mcp.models.task import TaskSpec
from tsk_mcp.utils.parsers import _parse_due_date, _parse_priority, _parse_status, _parse_tags


def _priority_or_none(v: Any) -> Any:
    if not isinstance(v, str):
        return v
    if not v.strip():
        return None
    parsed = _parse_priority(v)
    if parsed is None:
        raise ValueError(f"Invalid priority: '{v}' (use Low, Medium, High or Critical)")
    return parsed


def _status_or_none(v: Any) -> Any:
    if not isinstance(v, str):
        return v
    if not v.strip():
        return None
    parsed = _parse_status(v)
    if parsed is None:
        raise ValueError(f"Invalid status: '{v}' (use Todo, InProgress, Done, Blocked or Cancelled)")
    return parsed


# ============================================================================
# Project Input Models
# ============================================================================


class ProjectCreateInput(BaseModel):
    """Input model for creating a project."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., description="Project name (required)", min_length=1, max_length=200)
    description: str | None = Field(default=None, description="Optional project description")


class ProjectListInput(BaseModel):
    """Input model for listing projects."""

    model_config = ConfigDict(str_strip_whitespace=True)

    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for human-readable or 'json' for machine-readable",
    )


class ProjectUpdateInput(BaseModel):
    """Input model for renaming or re-describing a project."""

    model_config = ConfigDict(str_strip_whitespace=True)

    project_id: str = Field(..., description="Project ID, ID prefix, or name", min_length=1)
    name: str | None = Field(default=None, description="New project name")
    description: str | None = Field(default=None, description="New description (use empty string to remove)")


class ProjectDeleteInput(BaseModel):
    """Input model for deleting a project."""

    model_config = ConfigDict(str_strip_whitespace=True)

    project_id: str = Field(..., description="Project ID, ID prefix, or name", min_length=1)
    cascade: bool = Field(
        default=False,
        description="Delete the project's tasks too; otherwise they move to the unassigned list",
    )


# ============================================================================
# Task Input Models
# ============================================================================


class TaskAddInput(BaseModel):
    """Input model for adding a new task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., description="Task title (required)", min_length=1, max_length=500)
    description: str | None = Field(default=None, description="Longer task description")
    priority: TaskPriority | None = Field(
        default=None, description="Task priority: Low, Medium, High or Critical (default from config)"
    )
    tags: list[str] | None = Field(default=None, description="List of tags to apply", max_length=20)
    due_date: datetime | None = Field(
        default=None, description="Due date (e.g., 'today', 'tomorrow', '2024-12-31')"
    )
    parent_id: str | None = Field(default=None, description="Parent task ID (or ID prefix) to nest under")
    project_id: str | None = Field(default=None, description="Project ID, ID prefix, or name")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Title cannot be empty")
        return v.strip()

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v: Any) -> Any:
        return _priority_or_none(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return _parse_due_date(v) if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v: Any) -> Any:
        return _parse_tags(v) if isinstance(v, str) else v


class TaskAddManyInput(BaseModel):
    """Input model for creating a batch of (possibly nested) tasks."""

    model_config = ConfigDict(str_strip_whitespace=True)

    tasks: list[TaskSpec] = Field(
        ...,
        description="Tasks to create; each may carry a 'subtasks' list of the same shape",
        min_length=1,
        max_length=200,
    )
    project_id: str | None = Field(default=None, description="Project for every task without its own")
    parent_id: str | None = Field(default=None, description="Parent for every top-level task without its own")


class TaskListInput(BaseModel):
    """Input model for listing tasks."""

    model_config = ConfigDict(str_strip_whitespace=True)

    status: TaskStatus | None = Field(
        default=None, description="Only tasks with this status: Todo, InProgress, Done, Blocked, Cancelled"
    )
    priority: TaskPriority | None = Field(default=None, description="Only tasks with this priority")
    tag: str | None = Field(default=None, description="Only tasks carrying this tag (case-insensitive)")
    project_id: str | None = Field(default=None, description="Restrict to one project (ID, prefix, or name)")
    include_completed: bool = Field(default=False, description="Include Done and Cancelled tasks")
    limit: int | None = Field(default=50, description="Maximum number of tasks to return", ge=1, le=500)
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'concise', 'markdown' or 'json'",
    )

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> Any:
        return _status_or_none(v)

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v: Any) -> Any:
        return _priority_or_none(v)


class TaskTreeInput(BaseModel):
    """Input model for viewing the task hierarchy."""

    model_config = ConfigDict(str_strip_whitespace=True)

    project_id: str | None = Field(default=None, description="Restrict to one project (ID, prefix, or name)")
    include_completed: bool = Field(default=False, description="Include Done and Cancelled tasks")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="'concise' for a box-drawing tree, 'markdown' for a checklist, 'json' for nested data",
    )


class TaskGetInput(BaseModel):
    """Input model for getting a single task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix to retrieve", min_length=1)
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for human-readable or 'json' for machine-readable",
    )


class TaskSubtasksInput(BaseModel):
    """Input model for listing a task's subtasks."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Parent task ID or ID prefix", min_length=1)
    recursive: bool = Field(default=False, description="Include grandchildren and deeper descendants")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'concise', 'markdown' or 'json'",
    )


class TaskUpdateInput(BaseModel):
    """Input model for updating a task.

    Only the fields that are sent are changed. An empty string clears
    description, due_date and parent_id.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix to update", min_length=1)
    title: str | None = Field(default=None, description="New title")
    description: str | None = Field(default=None, description="New description (empty string to remove)")
    status: TaskStatus | None = Field(default=None, description="New status")
    priority: TaskPriority | None = Field(default=None, description="New priority")
    tags: list[str] | None = Field(default=None, description="Replacement tag list")
    due_date: datetime | None = Field(default=None, description="New due date (empty string to remove)")
    parent_id: str | None = Field(
        default=None, description="New parent task ID ('none' or empty string to make it top-level)"
    )
    order: int | None = Field(default=None, description="New position among siblings", ge=0)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: Any) -> Any:
        return _status_or_none(v)

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v: Any) -> Any:
        return _priority_or_none(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return _parse_due_date(v) if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def parse_tags(cls, v: Any) -> Any:
        return _parse_tags(v) if isinstance(v, str) else v

    def changes(self) -> dict[str, Any]:
        """The fields that were actually sent, ready for ``TaskStore.update_task``."""
        sent = self.model_fields_set - {"task_id"}
        result = {name: getattr(self, name) for name in sent}
        if result.get("description") == "":
            result["description"] = None
        return result


class TaskDeleteInput(BaseModel):
    """Input model for deleting a task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix to delete", min_length=1)
    cascade: bool = Field(
        default=False, description="Delete all subtasks too; otherwise they move up to this task's parent"
    )


class TaskCompleteInput(BaseModel):
    """Input model for completing a task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix to complete", min_length=1)
    recursive: bool = Field(default=False, description="Also mark every subtask Done")


class TaskStartInput(BaseModel):
    """Input model for starting a task."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix to start", min_length=1)


class TaskBlockInput(BaseModel):
    """Input model for marking a task blocked."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix to block", min_length=1)


class TaskMoveInput(BaseModel):
    """Input model for moving a task (and its subtasks) to another project."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix to move", min_length=1)
    project_id: str | None = Field(
        default=None, description="Target project (ID, prefix, or name); omit or 'none' for unassigned"
    )


class TaskReorderInput(BaseModel):
    """Input model for changing a task's position among its siblings."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix to reorder", min_length=1)
    order: int = Field(..., description="New zero-based position", ge=0)


class TaskStatsInput(BaseModel):
    """Input model for task statistics."""

    model_config = ConfigDict(str_strip_whitespace=True)

    project_id: str | None = Field(default=None, description="Restrict to one project, or None for all tasks")
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for the text report or 'json' for counts",
    )


# ============================================================================
# Dependency Input Models
# ============================================================================


class DependencyAddInput(BaseModel):
    """Input model for adding a dependency edge."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="The task that is blocked", min_length=1)
    depends_on_id: str = Field(..., description="The task it waits for", min_length=1)


class DependencyRemoveInput(BaseModel):
    """Input model for removing a dependency edge."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="The dependent task", min_length=1)
    depends_on_id: str = Field(..., description="The dependency to remove", min_length=1)


class DependencyListInput(BaseModel):
    """Input model for listing a task's dependencies and dependents."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix", min_length=1)
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' for human-readable or 'json' for machine-readable",
    )


class DependencyCheckInput(BaseModel):
    """Input model for checking whether a task can start or complete."""

    model_config = ConfigDict(str_strip_whitespace=True)

    task_id: str = Field(..., description="Task ID or ID prefix", min_length=1)
