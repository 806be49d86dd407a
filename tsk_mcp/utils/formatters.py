"""Formatting utilities for task output."""

from tsk_mcp.enums import TaskPriority, TaskStatus
from tsk_mcp.models.task import Project, Task, TaskNode, TaskStats

STATUS_ICONS = {
    TaskStatus.TODO: "○",
    TaskStatus.IN_PROGRESS: "◐",
    TaskStatus.DONE: "●",
    TaskStatus.BLOCKED: "⊘",
    TaskStatus.CANCELLED: "✕",
}

PRIORITY_ICONS = {
    TaskPriority.LOW: "↓",
    TaskPriority.MEDIUM: "→",
    TaskPriority.HIGH: "↑",
    TaskPriority.CRITICAL: "⚠",
}


def _task_line(task: Task) -> str:
    return f"[{task.id}] {STATUS_ICONS[task.status]} {PRIORITY_ICONS[task.priority]} {task.title}"


def _format_task_concise(task: Task) -> str:
    """
    Format a single task in concise format for token efficiency.

    Output: "[a1b2c3d4] ○ ↑ Title (High, due:2024-12-31, parent:9f8e7d6c)"
    """
    meta = []
    if task.priority != TaskPriority.MEDIUM:
        meta.append(task.priority.value)
    if task.due_date:
        meta.append(f"due:{task.due_date.date().isoformat()}")
    if task.parent_id:
        meta.append(f"parent:{task.parent_id}")
    if task.depends_on:
        meta.append(f"deps:{len(task.depends_on)}")

    line = _task_line(task)
    if meta:
        return f"{line} ({', '.join(meta)})"
    return line


def _format_tasks_concise(tasks: list[Task], title: str | None = None) -> str:
    """
    Format a list of tasks one per line.

    Output:
    2 task(s) | project:Website
    [a1b2c3d4] ○ ↑ Task one (High)
    [9f8e7d6c] ◐ → Task two
    """
    if not tasks:
        return "0 tasks"

    header = f"{len(tasks)} task(s)"
    if title:
        header = f"{header} | {title}"

    return "\n".join([header] + [_format_task_concise(t) for t in tasks])


def _format_task_markdown(
    task: Task,
    subtasks: list[Task] | None = None,
    blocking_ids: list[str] | None = None,
) -> str:
    """Format a single task as markdown."""
    lines = [f"### {STATUS_ICONS[task.status]} [{task.id}] {task.title}"]

    details = [f"**Status**: {task.status.value}", f"**Priority**: {task.priority.value}"]
    if task.project_id:
        details.append(f"**Project**: {task.project_id}")
    if task.parent_id:
        details.append(f"**Parent**: {task.parent_id}")
    if task.due_date:
        details.append(f"**Due**: {task.due_date.date().isoformat()}")
    if task.tags:
        details.append(f"**Tags**: {', '.join(task.tags)}")
    lines.append(" | ".join(details))

    if task.description:
        lines.append(f"> {task.description}")

    if task.depends_on:
        lines.append(f"**Depends on**: {', '.join(task.depends_on)}")
    if blocking_ids:
        lines.append(f"**Blocked by**: {', '.join(blocking_ids)}")

    if subtasks:
        lines.append(f"**Subtasks ({len(subtasks)}):**")
        for sub in subtasks:
            lines.append(f"  - [{sub.id}] {STATUS_ICONS[sub.status]} {sub.title}")

    return "\n".join(lines)


def _format_tasks_markdown(tasks: list[Task], title: str = "Tasks") -> str:
    """Format a list of tasks as markdown."""
    if not tasks:
        return f"# {title}\n\nNo tasks found."

    lines = [f"# {title}", f"*{len(tasks)} task(s)*", ""]

    for task in tasks:
        lines.append(_format_task_markdown(task))
        lines.append("")

    return "\n".join(lines)


def _format_tree(tree: list[TaskNode]) -> str:
    """Render a forest with box-drawing connectors."""
    lines: list[str] = []
    stack = [(node, "", i == len(tree) - 1) for i, node in reversed(list(enumerate(tree)))]
    seen: set[str] = set()

    while stack:
        node, prefix, is_last = stack.pop()
        if node.task.id in seen:
            continue
        seen.add(node.task.id)

        line = f"{prefix}{'└── ' if is_last else '├── '}{_task_line(node.task)}"
        if node.blocking_dependency_ids:
            line += f" (blocked by {len(node.blocking_dependency_ids)})"
        lines.append(line)

        child_prefix = prefix + ("    " if is_last else "│   ")
        children = node.children
        stack.extend(
            (child, child_prefix, i == len(children) - 1) for i, child in reversed(list(enumerate(children)))
        )

    return "\n".join(lines)


def _checklist_lines(tree: list[TaskNode]) -> list[str]:
    lines: list[str] = []
    stack = list(reversed(tree))
    while stack:
        node = stack.pop()
        task = node.task
        indent = "  " * node.depth
        checkbox = "[x]" if task.status == TaskStatus.DONE else "[ ]"
        priority = f" **[{task.priority.value}]**" if task.priority.rank >= TaskPriority.HIGH.rank else ""
        marker = {
            TaskStatus.IN_PROGRESS: " 🔄",
            TaskStatus.BLOCKED: " ⚠️ BLOCKED",
            TaskStatus.CANCELLED: " ~~cancelled~~",
        }.get(task.status, "")

        lines.append(f"{indent}- {checkbox} {task.title}{priority}{marker}")
        if task.description:
            lines.append(f"{indent}  > {task.description}")
        stack.extend(reversed(node.children))
    return lines


def _format_tree_markdown(
    tree: list[TaskNode],
    title: str,
    stats: TaskStats,
    groups: list[tuple[str, list[TaskNode]]] | None = None,
) -> str:
    """
    Format a task tree as a markdown checklist.

    Args:
        tree: Root nodes, used when ``groups`` is not given
        title: Document heading
        stats: Counts for the progress line
        groups: Optional (section heading, roots) pairs, one per project

    Returns:
        Markdown document
    """
    lines = [f"# {title}", "", f"**Progress:** {stats.done}/{stats.total} tasks ({stats.percent_done}%)", ""]

    if groups is None:
        lines.extend(_checklist_lines(tree))
    else:
        for heading, roots in groups:
            lines.append(f"## {heading}")
            lines.append("")
            lines.extend(_checklist_lines(roots))
            lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def _format_stats(stats: TaskStats, label: str | None = None) -> str:
    """Format task statistics as an aligned text block."""
    header = "Task Statistics"
    if label:
        header += f" (Project: {label})"

    lines = [
        header,
        "═" * 35,
        f"Total:       {stats.total}",
        f"Todo:        {stats.todo}",
        f"In Progress: {stats.in_progress}",
        f"Done:        {stats.done}",
        f"Blocked:     {stats.blocked}",
        f"Cancelled:   {stats.cancelled}",
        "",
        "By Priority:",
    ]
    for priority in sorted(TaskPriority, key=lambda p: p.rank, reverse=True):
        name = f"{priority.value}:"
        lines.append(f"  {name:<10} {stats.by_priority.get(priority, 0)}")

    return "\n".join(lines)


def _format_not_found(kind: str, ref: str, tip: str) -> str:
    return f"Error: {kind} '{ref}' not found.\nTip: {tip}"


def _format_projects_markdown(projects: list[Project], stats: dict[str, TaskStats]) -> str:
    """Format projects with per-project progress."""
    if not projects:
        return "# Projects\n\nNo projects found."

    lines = ["# Projects", f"*{len(projects)} project(s)*", ""]
    for project in projects:
        counts = stats.get(project.id, TaskStats())
        lines.append(f"- **{project.name}** [{project.id}]: {counts.done}/{counts.total} done")
        if project.description:
            lines.append(f"  > {project.description}")
    return "\n".join(lines)


def _format_dependencies_markdown(
    task: Task,
    dependencies: list[Task],
    dependents: list[Task],
    blocking_ids: list[str],
) -> str:
    """Format what a task waits for and what waits for it."""
    lines = [f"# Dependencies of [{task.id}] {task.title}", ""]

    lines.append(f"## Depends on ({len(dependencies)})")
    if dependencies:
        for dep in dependencies:
            flag = " **(blocking)**" if dep.id in blocking_ids else ""
            lines.append(f"- [{dep.id}] {STATUS_ICONS[dep.status]} {dep.title}{flag}")
    else:
        lines.append("None")
    lines.append("")

    lines.append(f"## Required by ({len(dependents)})")
    if dependents:
        for dep in dependents:
            lines.append(f"- [{dep.id}] {STATUS_ICONS[dep.status]} {dep.title}")
    else:
        lines.append("None")

    return "\n".join(lines)


def _group_by_project(tree: list[TaskNode], projects: list[Project]) -> list[tuple[str, list[TaskNode]]]:
    """Split root nodes into (project name, roots) sections, unassigned last."""
    groups = []
    for project in projects:
        roots = [n for n in tree if n.task.project_id == project.id]
        if roots:
            groups.append((project.name, roots))
    unassigned = [n for n in tree if n.task.project_id is None]
    if unassigned:
        groups.append(("Unassigned", unassigned))
    return groups
