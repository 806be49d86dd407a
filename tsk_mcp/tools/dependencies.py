"""MCP tools for the task dependency graph."""

import json

from mcp.types import ToolAnnotations

from tsk_mcp.enums import ResponseFormat
from tsk_mcp.models.inputs import (
    DependencyAddInput,
    DependencyCheckInput,
    DependencyListInput,
    DependencyRemoveInput,
)
from tsk_mcp.server import get_store, mcp
from tsk_mcp.utils.formatters import _format_dependencies_markdown, _format_not_found
from tsk_mcp.utils.parsers import _task_ref

_TASK_TIP = "Use task_list or task_tree to find valid task IDs."


@mcp.tool(
    name="dependency_add",
    annotations=ToolAnnotations(
        title="Add Dependency",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def dependency_add(params: DependencyAddInput) -> str:
    """
    Record that a task cannot proceed until another task is finished.

    USE THIS WHEN:
    - One task needs the result of another (e.g., "Deploy" waits for "Tests")

    DO NOT USE WHEN:
    - The relationship is a breakdown of work → use parent_id on task_add/task_update

    A task cannot depend on itself, and an edge that would create a cycle
    (A waits for B, B waits for A) is refused.

    Args:
        params: DependencyAddInput containing task_id and depends_on_id

    Returns:
        Confirmation or an explanation of why the edge was refused

    Examples:
        - Deploy waits for tests: params with task_id="<deploy>", depends_on_id="<tests>"
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)
    dependency = store.get_task(params.depends_on_id)
    if dependency is None:
        return _format_not_found("Task", params.depends_on_id, _TASK_TIP)

    if task.id == dependency.id:
        return "Error: A task cannot depend on itself."

    if not store.add_dependency(task.id, dependency.id):
        return (
            f"Error: Adding this dependency would create a cycle.\n"
            f"Tip: Use dependency_list on [{dependency.id}] to see what it already waits for."
        )

    return f"[{task.id}] {task.title} now depends on [{dependency.id}] {dependency.title}"


@mcp.tool(
    name="dependency_remove",
    annotations=ToolAnnotations(
        title="Remove Dependency",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def dependency_remove(params: DependencyRemoveInput) -> str:
    """
    Remove a dependency edge between two tasks.

    Args:
        params: DependencyRemoveInput containing task_id and depends_on_id

    Returns:
        Confirmation message
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    if not store.remove_dependency(task.id, params.depends_on_id):
        return (
            f"Error: [{task.id}] does not depend on '{params.depends_on_id}'.\n"
            f"Tip: Use dependency_list to see its dependencies."
        )
    return f"Removed dependency of [{task.id}] on '{params.depends_on_id}'"


@mcp.tool(
    name="dependency_list",
    annotations=ToolAnnotations(
        title="List Dependencies",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def dependency_list(params: DependencyListInput) -> str:
    """
    Show what a task depends on and which tasks depend on it.

    Args:
        params: DependencyListInput containing task_id and response_format

    Returns:
        Dependencies and dependents (markdown, concise or JSON)
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    dependencies = store.get_dependencies(task.id)
    dependents = store.get_dependents(task.id)
    blocking = store.get_blocking_dependencies(task.id)

    if params.response_format == ResponseFormat.JSON:
        return json.dumps(
            {
                "taskId": task.id,
                "dependsOn": [_task_ref(t).model_dump(mode="json") for t in dependencies],
                "dependents": [_task_ref(t).model_dump(mode="json") for t in dependents],
                "blockingDependencyIds": blocking,
            },
            indent=2,
        )

    if params.response_format == ResponseFormat.CONCISE:
        return (
            f"[{task.id}] depends on: {', '.join(t.id for t in dependencies) or 'none'}"
            f" | required by: {', '.join(t.id for t in dependents) or 'none'}"
        )

    return _format_dependencies_markdown(task, dependencies, dependents, blocking)


@mcp.tool(
    name="dependency_check",
    annotations=ToolAnnotations(
        title="Check Dependencies",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def dependency_check(params: DependencyCheckInput) -> str:
    """
    Check whether a task can be started or completed.

    A task is ready when none of its dependencies is still open (every
    dependency is Done or Cancelled).

    Args:
        params: DependencyCheckInput containing task_id

    Returns:
        Ready/blocked verdict, listing any blocking tasks
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    blocking = store.get_blocking_dependencies(task.id)
    if not blocking:
        return f"[{task.id}] {task.title} is ready: it can be started and completed."

    lines = [f"[{task.id}] {task.title} is blocked by {len(blocking)} task(s):"]
    for dep_id in blocking:
        dep = store.get_task(dep_id)
        lines.append(f"- [{dep_id}] {dep.title} ({dep.status.value})" if dep else f"- [{dep_id}]")
    return "\n".join(lines)
