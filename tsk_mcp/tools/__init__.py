"""MCP tool definitions for tsk."""

# Import all tools to register them with the MCP server
from tsk_mcp.tools.dependencies import (
    dependency_add,
    dependency_check,
    dependency_list,
    dependency_remove,
)
from tsk_mcp.tools.projects import project_create, project_delete, project_list, project_update
from tsk_mcp.tools.tasks import (
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

__all__ = [
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
]
