"""MCP tools for creating, viewing and changing tasks."""

import json
from typing import Any

from mcp.types import ToolAnnotations

from tsk_mcp.enums import ResponseFormat, TaskStatus
from tsk_mcp.exceptions import TaskValidationError
from tsk_mcp.models.inputs import (
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
from tsk_mcp.models.task import TaskNode
from tsk_mcp.server import get_store, mcp
from tsk_mcp.utils.formatters import (
    _format_not_found,
    _format_stats,
    _format_task_concise,
    _format_task_markdown,
    _format_tasks_concise,
    _format_tasks_markdown,
    _format_tree,
    _format_tree_markdown,
    _group_by_project,
)

_TASK_TIP = "Use task_list or task_tree to find valid task IDs."


def _node_record(node: TaskNode) -> dict[str, Any]:
    return {
        **node.task.to_record(),
        "depth": node.depth,
        "blockingDependencyIds": node.blocking_dependency_ids,
        "children": [_node_record(child) for child in node.children],
    }


@mcp.tool(
    name="task_add",
    annotations=ToolAnnotations(
        title="Add Task",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    ),
)
async def task_add(params: TaskAddInput) -> str:
    """
    Create a new task, optionally inside a project or under a parent task.

    USE THIS WHEN:
    - Adding a single task to track
    - Adding a subtask under an existing task (set parent_id)

    DO NOT USE WHEN:
    - Creating several tasks or a whole breakdown → use task_add_many instead
    - Changing an existing task → use task_update instead

    A subtask joins its parent's project unless project_id says otherwise.

    Args:
        params: TaskAddInput containing title and optional description,
            priority, tags, due_date, parent_id and project_id

    Returns:
        Confirmation with the new task's ID

    Examples:
        - Simple task: params with title="Write release notes"
        - Subtask: params with title="Draft", parent_id="a1b2c3d4"
        - In a project: params with title="Fix login", project_id="Website", priority="High"
    """
    try:
        task = get_store().add_task(
            params.title,
            description=params.description,
            priority=params.priority,
            tags=params.tags,
            due_date=params.due_date,
            parent_id=params.parent_id,
            project_id=params.project_id,
        )
    except TaskValidationError as e:
        return f"Error: {e}\nTip: {_TASK_TIP}"

    return f"Created task [{task.id}] {task.title}"


@mcp.tool(
    name="task_add_many",
    annotations=ToolAnnotations(
        title="Add Many Tasks",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    ),
)
async def task_add_many(params: TaskAddManyInput) -> str:
    """
    Create several tasks at once, including nested subtasks.

    USE THIS WHEN:
    - Breaking a piece of work down into a task hierarchy
    - Importing a list of tasks in one call

    Each entry takes title, description, priority, tags, due_date,
    parent_id, project_id and subtasks (a list of entries of the same shape).

    Args:
        params: TaskAddManyInput containing tasks, project_id and parent_id

    Returns:
        The created tasks, one per line

    Examples:
        - params with tasks=[{"title": "Launch", "subtasks": [{"title": "Docs"}, {"title": "Deploy"}]}]
    """
    try:
        created = get_store().add_many(params.tasks, project_id=params.project_id, parent_id=params.parent_id)
    except TaskValidationError as e:
        return f"Error: {e}\nTip: {_TASK_TIP}"

    return f"Created {len(created)} task(s):\n" + "\n".join(_format_task_concise(t) for t in created)


@mcp.tool(
    name="task_list",
    annotations=ToolAnnotations(
        title="List Tasks",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_list(params: TaskListInput) -> str:
    """
    List tasks as a flat list, highest priority first.

    USE THIS WHEN:
    - Searching for tasks by status, priority, tag or project
    - Finding task IDs for other calls

    DO NOT USE WHEN:
    - You want to see the parent/child structure → use task_tree instead
    - You have a specific task ID → use task_get instead

    Done and Cancelled tasks are hidden unless include_completed is set or
    status asks for them.

    Args:
        params: TaskListInput containing filters, limit and response_format

    Returns:
        Formatted list of tasks (concise, markdown or JSON)

    Examples:
        - Open tasks: params with no filters
        - Urgent work: params with priority="Critical"
        - In progress in a project: params with status="InProgress", project_id="Website"
    """
    store = get_store()
    tasks = store.list_tasks(
        status=params.status,
        priority=params.priority,
        tag=params.tag,
        project_id=params.project_id,
        include_completed=params.include_completed,
    )
    total_count = len(tasks)

    if params.limit and len(tasks) > params.limit:
        tasks = tasks[: params.limit]

    if params.response_format == ResponseFormat.JSON:
        return json.dumps(
            {"total": total_count, "count": len(tasks), "tasks": [t.to_record() for t in tasks]},
            indent=2,
        )

    label = None
    if params.project_id:
        project = store.resolve_project(params.project_id)
        label = f"project:{project.name if project else params.project_id}"

    if params.response_format == ResponseFormat.CONCISE:
        return _format_tasks_concise(tasks, label)

    title = "Tasks"
    if label:
        title += f" ({label})"
    if params.status:
        title += f" [{params.status.value}]"
    return _format_tasks_markdown(tasks, title)


@mcp.tool(
    name="task_tree",
    annotations=ToolAnnotations(
        title="Task Tree",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_tree(params: TaskTreeInput) -> str:
    """
    Show tasks as a parent/child hierarchy.

    USE THIS WHEN:
    - Reviewing a plan or breakdown
    - Checking overall progress of a project

    Formats:
    - concise: box-drawing tree with status and priority icons
    - markdown: checklist with a progress line, grouped by project
    - json: nested nodes with depth and blocking dependency IDs

    Args:
        params: TaskTreeInput containing project_id, include_completed and response_format

    Returns:
        The task hierarchy
    """
    store = get_store()

    project = None
    if params.project_id:
        project = store.resolve_project(params.project_id)
        if project is None:
            return _format_not_found("Project", params.project_id, "Use project_list to find valid projects.")

    project_key = project.id if project else None
    tree = store.get_tree(project_key, include_completed=params.include_completed)

    if params.response_format == ResponseFormat.JSON:
        return json.dumps({"tree": [_node_record(n) for n in tree]}, indent=2)

    if not tree:
        return "No tasks found."

    if params.response_format == ResponseFormat.CONCISE:
        return _format_tree(tree)

    stats = store.compute_stats(node.task for node in store.flatten(tree))
    if project is not None:
        return _format_tree_markdown(tree, project.name, stats)

    return _format_tree_markdown(tree, "Tasks", stats, _group_by_project(tree, store.list_projects()))


@mcp.tool(
    name="task_get",
    annotations=ToolAnnotations(
        title="Get Task Details",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_get(params: TaskGetInput) -> str:
    """
    Retrieve full details for a single task.

    USE THIS WHEN:
    - You have a task ID (or the first few characters of one)
    - You want to see its subtasks and what is blocking it

    ACCEPTS: Full 8-character ID or any unique prefix (e.g., "a1b2")

    Args:
        params: TaskGetInput containing task_id and response_format

    Returns:
        Detailed task information (markdown, concise or JSON)
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    blocking = store.get_blocking_dependencies(task.id)

    if params.response_format == ResponseFormat.JSON:
        return json.dumps({**task.to_record(), "blockingDependencyIds": blocking}, indent=2)

    if params.response_format == ResponseFormat.CONCISE:
        return _format_task_concise(task)

    return _format_task_markdown(task, store.get_subtasks(task.id), blocking)


@mcp.tool(
    name="task_subtasks",
    annotations=ToolAnnotations(
        title="List Subtasks",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_subtasks(params: TaskSubtasksInput) -> str:
    """
    List the children of a task, or all its descendants with recursive=true.

    Args:
        params: TaskSubtasksInput containing task_id, recursive and response_format

    Returns:
        Subtasks in order (concise, markdown or JSON)
    """
    store = get_store()
    parent = store.get_task(params.task_id)
    if parent is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    subtasks = store.get_subtasks(parent.id, recursive=params.recursive)

    if params.response_format == ResponseFormat.JSON:
        return json.dumps(
            {"parentId": parent.id, "count": len(subtasks), "tasks": [t.to_record() for t in subtasks]},
            indent=2,
        )

    if params.response_format == ResponseFormat.CONCISE:
        return _format_tasks_concise(subtasks, f"parent:{parent.id}")

    return _format_tasks_markdown(subtasks, f"Subtasks of {parent.title}")


@mcp.tool(
    name="task_update",
    annotations=ToolAnnotations(
        title="Update Task",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_update(params: TaskUpdateInput) -> str:
    """
    Change one or more fields of a task. Fields not sent are left alone.

    USE THIS WHEN:
    - Renaming, re-prioritizing or re-tagging a task
    - Moving a task under a different parent (parent_id) or to the top level (parent_id="none")

    DO NOT USE WHEN:
    - Moving a task to another project → use task_move instead
    - Just marking it done/started/blocked → use task_complete, task_start or task_block

    A parent that does not exist, or that is one of the task's own
    subtasks, is ignored; the other changes still apply.

    Args:
        params: TaskUpdateInput containing task_id and the fields to change

    Returns:
        The updated task in concise form

    Examples:
        - Raise priority: params with task_id="a1b2", priority="High"
        - Clear due date: params with task_id="a1b2", due_date=""
    """
    try:
        task = get_store().update_task(params.task_id, **params.changes())
    except TaskValidationError as e:
        return f"Error: {e}"

    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)
    return f"Updated {_format_task_concise(task)}"


@mcp.tool(
    name="task_delete",
    annotations=ToolAnnotations(
        title="Delete Task",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_delete(params: TaskDeleteInput) -> str:
    """
    Delete a task permanently.

    Without cascade its subtasks move up to the deleted task's parent. With
    cascade=true every subtask is deleted too.

    Args:
        params: TaskDeleteInput containing task_id and cascade

    Returns:
        Confirmation message
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None or not store.delete_task(task.id, cascade=params.cascade):
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    suffix = " and its subtasks" if params.cascade else ""
    return f"Deleted task [{task.id}] {task.title}{suffix}."


@mcp.tool(
    name="task_complete",
    annotations=ToolAnnotations(
        title="Complete Task",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_complete(params: TaskCompleteInput) -> str:
    """
    Mark a task as Done, optionally with all its subtasks.

    Open dependencies do not prevent completion, but they are reported.

    Args:
        params: TaskCompleteInput containing task_id and recursive

    Returns:
        Confirmation message
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    blocking = store.get_blocking_dependencies(task.id)
    store.complete_task(task.id, recursive=params.recursive)

    message = f"Completed [{task.id}] {task.title}"
    if params.recursive:
        message += " and its subtasks"
    if blocking:
        message += f"\nNote: still has open dependencies: {', '.join(blocking)}"
    return message


@mcp.tool(
    name="task_start",
    annotations=ToolAnnotations(
        title="Start Task",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_start(params: TaskStartInput) -> str:
    """
    Mark a task as InProgress.

    Args:
        params: TaskStartInput containing task_id

    Returns:
        Confirmation message, with a warning if dependencies are still open
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    blocking = store.get_blocking_dependencies(task.id)
    store.start_task(task.id)

    message = f"Started [{task.id}] {task.title}"
    if blocking:
        message += f"\nWarning: blocked by open dependencies: {', '.join(blocking)}"
    return message


@mcp.tool(
    name="task_block",
    annotations=ToolAnnotations(
        title="Block Task",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_block(params: TaskBlockInput) -> str:
    """
    Mark a task as Blocked.

    Args:
        params: TaskBlockInput containing task_id

    Returns:
        Confirmation message
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None or not store.block_task(task.id):
        return _format_not_found("Task", params.task_id, _TASK_TIP)
    return f"Blocked [{task.id}] {task.title}"


@mcp.tool(
    name="task_move",
    annotations=ToolAnnotations(
        title="Move Task To Project",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_move(params: TaskMoveInput) -> str:
    """
    Move a task and all its subtasks to another project (or to unassigned).

    The moved task becomes a top-level task in the target project.

    Args:
        params: TaskMoveInput containing task_id and project_id

    Returns:
        Confirmation message
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None:
        return _format_not_found("Task", params.task_id, _TASK_TIP)

    try:
        store.move_to_project(task.id, params.project_id)
    except TaskValidationError as e:
        return f"Error: {e}\nTip: Use project_list to find valid projects."

    moved = store.get_task(task.id)
    target = store.get_project(moved.project_id) if moved and moved.project_id else None
    return f"Moved [{task.id}] {task.title} to {target.name if target else 'unassigned'}"


@mcp.tool(
    name="task_reorder",
    annotations=ToolAnnotations(
        title="Reorder Task",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_reorder(params: TaskReorderInput) -> str:
    """
    Move a task to a new position among its siblings.

    Args:
        params: TaskReorderInput containing task_id and the zero-based order

    Returns:
        Confirmation message
    """
    store = get_store()
    task = store.get_task(params.task_id)
    if task is None or not store.reorder_task(task.id, params.order):
        return _format_not_found("Task", params.task_id, _TASK_TIP)
    return f"Moved [{task.id}] {task.title} to position {params.order}"


@mcp.tool(
    name="task_stats",
    annotations=ToolAnnotations(
        title="Task Statistics",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def task_stats(params: TaskStatsInput) -> str:
    """
    Count tasks by status and by priority, for one project or everything.

    Args:
        params: TaskStatsInput containing project_id and response_format

    Returns:
        Statistics report (text or JSON)
    """
    store = get_store()

    label = None
    if params.project_id:
        project = store.resolve_project(params.project_id)
        if project is None:
            return _format_not_found("Project", params.project_id, "Use project_list to find valid projects.")
        label = project.name

    stats = store.get_stats(params.project_id)

    if params.response_format == ResponseFormat.JSON:
        return json.dumps(
            {
                "total": stats.total,
                "byStatus": {
                    TaskStatus.TODO.value: stats.todo,
                    TaskStatus.IN_PROGRESS.value: stats.in_progress,
                    TaskStatus.DONE.value: stats.done,
                    TaskStatus.BLOCKED.value: stats.blocked,
                    TaskStatus.CANCELLED.value: stats.cancelled,
                },
                "byPriority": {p.value: n for p, n in stats.by_priority.items()},
                "percentDone": stats.percent_done,
            },
            indent=2,
        )

    return _format_stats(stats, label)
