"""Utility functions for tsk."""

from tsk_mcp.utils.formatters import (
    _format_dependencies_markdown,
    _format_not_found,
    _format_projects_markdown,
    _format_stats,
    _format_task_concise,
    _format_task_markdown,
    _format_tasks_concise,
    _format_tasks_markdown,
    _format_tree,
    _format_tree_markdown,
    _group_by_project,
)
from tsk_mcp.utils.parsers import (
    _parse_due_date,
    _parse_priority,
    _parse_status,
    _parse_tags,
    _task_ref,
)

__all__ = [
    "_parse_priority",
    "_parse_status",
    "_parse_due_date",
    "_parse_tags",
    "_task_ref",
    "_format_task_concise",
    "_format_tasks_concise",
    "_format_task_markdown",
    "_format_tasks_markdown",
    "_format_tree",
    "_format_tree_markdown",
    "_group_by_project",
    "_format_stats",
    "_format_projects_markdown",
    "_format_dependencies_markdown",
    "_format_not_found",
]
