"""Pydantic models for tsk."""

from tsk_mcp.models.task import (
    Project,
    ProjectData,
    ProjectUpdate,
    Task,
    TaskNode,
    TaskRef,
    TaskSpec,
    TaskStats,
    TaskUpdate,
)
from tsk_mcp.models.inputs import (
    DependencyAddInput,
    DependencyCheckInput,
    DependencyListInput,
    DependencyRemoveInput,
    ProjectCreateInput,
    ProjectDeleteInput,
    ProjectListInput,
    ProjectUpdateInput,
    TaskAddInput,
    TaskAddManyInput,
    TaskBlockInput,
    TaskCompleteInput,
    TaskDeleteInput,
    TaskGetInput,
    TaskListInput,
    TaskMoveInput,
    TaskReorderInput,
    TaskStartInput,
    TaskStatsInput,
    TaskSubtasksInput,
    TaskTreeInput,
    TaskUpdateInput,
)

__all__ = [
    # Data models
    "Task",
    "Project",
    "ProjectData",
    "TaskRef",
    "TaskNode",
    "TaskStats",
    "TaskSpec",
    "TaskUpdate",
    "ProjectUpdate",
    # Project input models
    "ProjectCreateInput",
    "ProjectListInput",
    "ProjectUpdateInput",
    "ProjectDeleteInput",
    # Task input models
    "TaskAddInput",
    "TaskAddManyInput",
    "TaskListInput",
    "TaskTreeInput",
    "TaskGetInput",
    "TaskSubtasksInput",
    "TaskUpdateInput",
    "TaskDeleteInput",
    "TaskCompleteInput",
    "TaskStartInput",
    "TaskBlockInput",
    "TaskMoveInput",
    "TaskReorderInput",
    "TaskStatsInput",
    # Dependency input models
    "DependencyAddInput",
    "DependencyRemoveInput",
    "DependencyListInput",
    "DependencyCheckInput",
]
