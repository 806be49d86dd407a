"""
Hierarchical task tracker with an MCP server.

Tasks live in one JSON file per project plus a default file for unassigned
tasks. Tasks nest into parent/child trees and can depend on each other
(with cycle prevention). The same store backs the ``tsk`` CLI and the MCP
tools.
"""

# Re-export enums
from tsk_mcp.enums import ResponseFormat, TaskPriority, TaskStatus

# Re-export errors and config
from tsk_mcp.exceptions import TaskValidationError, TskError
from tsk_mcp.config import TasksOptions, load_options, save_options

# Re-export models
from tsk_mcp.models import (
    DependencyAddInput,
    DependencyCheckInput,
    DependencyListInput,
    DependencyRemoveInput,
    Project,
    ProjectCreateInput,
    ProjectData,
    ProjectDeleteInput,
    ProjectListInput,
    ProjectUpdateInput,
    Task,
    TaskAddInput,
    TaskAddManyInput,
    TaskBlockInput,
    TaskCompleteInput,
    TaskDeleteInput,
    TaskGetInput,
    TaskListInput,
    TaskMoveInput,
    TaskNode,
    TaskRef,
    TaskReorderInput,
    TaskSpec,
    TaskStartInput,
    TaskStats,
    TaskStatsInput,
    TaskSubtasksInput,
    TaskTreeInput,
    TaskUpdateInput,
)

# Re-export the store
from tsk_mcp.store import InMemoryRepository, JsonFileRepository, TaskStore, UnitRepository

# Re-export MCP server instance
from tsk_mcp.server import get_store, mcp, set_store

# Re-export tools
from tsk_mcp.tools import (
    dependency_add,
    dependency_check,
    dependency_list,
    dependency_remove,
    project_create,
    project_delete,
    project_list,
    project_update,
    task_add,
    task_add_many,
    task_block,
    task_complete,
    task_delete,
    task_get,
    task_list,
    task_move,
    task_reorder,
    task_start,
    task_stats,
    task_subtasks,
    task_tree,
    task_update,
)

# Re-export utilities (including private functions used by tests)
from tsk_mcp.utils import (
    _format_stats,
    _format_task_concise,
    _format_task_markdown,
    _format_tasks_concise,
    _format_tasks_markdown,
    _format_tree,
    _format_tree_markdown,
    _parse_due_date,
    _parse_priority,
    _parse_status,
)

__all__ = [
    # Enums
    "ResponseFormat",
    "TaskStatus",
    "TaskPriority",
    # Errors and config
    "TskError",
    "TaskValidationError",
    "TasksOptions",
    "load_options",
    "save_options",
    # Data models
    "Task",
    "Project",
    "ProjectData",
    "TaskRef",
    "TaskNode",
    "TaskStats",
    "TaskSpec",
    # Input models
    "ProjectCreateInput",
    "ProjectListInput",
    "ProjectUpdateInput",
    "ProjectDeleteInput",
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
    "DependencyAddInput",
    "DependencyRemoveInput",
    "DependencyListInput",
    "DependencyCheckInput",
    # Store
    "TaskStore",
    "UnitRepository",
    "InMemoryRepository",
    "JsonFileRepository",
    # Utility functions
    "_parse_priority",
    "_parse_status",
    "_parse_due_date",
    "_format_task_concise",
    "_format_tasks_concise",
    "_format_task_markdown",
    "_format_tasks_markdown",
    "_format_tree",
    "_format_tree_markdown",
    "_format_stats",
    # Project tools
    "project_create",
    "project_list",
    "project_update",
    "project_delete",
    # Task tools
    "task_add",
    "task_add_many",
    "task_list",
    "task_tree",
    "task_get",
    "task_subtasks",
    "task_update",
    "task_delete",
    "task_complete",
    "task_start",
    "task_block",
    "task_move",
    "task_reorder",
    "task_stats",
    # Dependency tools
    "dependency_add",
    "dependency_remove",
    "dependency_list",
    "dependency_check",
    # MCP server
    "mcp",
    "get_store",
    "set_store",
]
