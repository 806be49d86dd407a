"""tsk CLI: hierarchical tasks with projects and dependencies.

Commands:
    tsk                          run the MCP server on stdio (same as --mcp)
    tsk project add|list|update|delete
    tsk add TITLE                create a task
    tsk list                     flat list, highest priority first
    tsk tree [PROJECT]           hierarchy view
    tsk get ID                   task details
    tsk done|start|block ID      change status
    tsk update ID                change fields
    tsk delete ID                delete (subtasks move up unless --cascade)
    tsk move ID [PROJECT]        move a task and its subtasks to a project
    tsk reorder ID ORDER         change position among siblings
    tsk stats [PROJECT]          counts by status and priority
    tsk dep list|add|rm|check|blocking
    tsk config show|get|set|path
    tsk serve                    run the MCP server on stdio
"""

from __future__ import annotations

import json
import logging
import sys

import click

from tsk_mcp import server
from tsk_mcp.config import all_values, config_path, data_directory, get_value, load_options, save_options, set_value
from tsk_mcp.exceptions import TskError
from tsk_mcp.store.task_store import TaskStore, is_clear_value
from tsk_mcp.utils.formatters import (
    _format_dependencies_markdown,
    _format_stats,
    _format_task_concise,
    _format_task_markdown,
    _format_tasks_concise,
    _format_tasks_markdown,
    _format_tree,
    _format_tree_markdown,
    _group_by_project,
)
from tsk_mcp.utils.parsers import _parse_due_date, _parse_priority, _parse_status, _parse_tags

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _store(ctx: click.Context) -> TaskStore:
    """The store for this invocation, opened from config unless one was passed in as ``obj``."""
    root = ctx.find_root()
    if root.obj is None:
        try:
            root.obj = TaskStore.from_options(load_options())
        except TskError as exc:
            raise click.ClickException(str(exc)) from exc
    return root.obj


def _setup_logging(verbose: bool) -> None:
    # stdout is reserved for command output (and JSON-RPC when serving)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


def _priority_option(ctx: click.Context, param: click.Parameter, value: str | None):
    if value is None:
        return None
    parsed = _parse_priority(value)
    if parsed is None:
        raise click.BadParameter(f"'{value}' is not one of Low, Medium, High, Critical")
    return parsed


def _status_option(ctx: click.Context, param: click.Parameter, value: str | None):
    if value is None:
        return None
    parsed = _parse_status(value)
    if parsed is None:
        raise click.BadParameter(f"'{value}' is not one of Todo, InProgress, Done, Blocked, Cancelled")
    return parsed


def _due_option(ctx: click.Context, param: click.Parameter, value: str | None):
    if value is None:
        return None
    try:
        return _parse_due_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc


def _require_task(store: TaskStore, ref: str):
    task = store.get_task(ref)
    if task is None:
        raise click.ClickException(f"Task not found: {ref}")
    return task


def _serve(ctx: click.Context) -> None:
    if ctx.find_root().obj is not None:
        server.set_store(ctx.find_root().obj)
    server.run()


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group(invoke_without_command=True)
@click.option("--mcp", "run_mcp", is_flag=True, help="Run the MCP server on stdio")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr")
@click.pass_context
def cli(ctx: click.Context, run_mcp: bool, verbose: bool) -> None:
    """tsk: hierarchical task tracker with projects and dependencies."""
    _setup_logging(verbose)
    if run_mcp or ctx.invoked_subcommand is None:
        _serve(ctx)


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the MCP server on stdio."""
    _serve(ctx)


# ---------------------------------------------------------------------------
# tsk project
# ---------------------------------------------------------------------------


@cli.group()
def project() -> None:
    """Manage projects."""


@project.command("add")
@click.argument("name")
@click.option("--description", "-d", default=None, help="Project description")
@click.pass_context
def project_add(ctx: click.Context, name: str, description: str | None) -> None:
    """Create a project."""
    try:
        created = _store(ctx).add_project(name, description)
    except TskError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created project '{created.name}' [{created.id}]")


@project.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def project_list(ctx: click.Context, as_json: bool) -> None:
    """List projects."""
    store = _store(ctx)
    projects = store.list_projects()

    if as_json:
        click.echo(json.dumps([p.to_record() for p in projects], indent=2))
        return
    if not projects:
        click.echo("No projects.")
        return
    for p in projects:
        stats = store.get_stats(p.id)
        click.echo(f"[{p.id}] {p.name} ({stats.done}/{stats.total} done)")


@project.command("update")
@click.argument("ref")
@click.option("--name", "-n", default=None, help="New name")
@click.option("--description", "-d", default=None, help="New description ('' to remove)")
@click.pass_context
def project_update(ctx: click.Context, ref: str, name: str | None, description: str | None) -> None:
    """Rename a project or change its description."""
    changes = {}
    if name is not None:
        changes["name"] = name
    if description is not None:
        changes["description"] = description or None
    if not changes:
        raise click.UsageError("Nothing to update: give --name and/or --description")

    try:
        updated = _store(ctx).update_project(ref, **changes)
    except TskError as exc:
        raise click.ClickException(str(exc)) from exc
    if updated is None:
        raise click.ClickException(f"Project not found: {ref}")
    click.echo(f"Updated project '{updated.name}' [{updated.id}]")


@project.command("delete")
@click.argument("ref")
@click.option("--cascade", is_flag=True, help="Delete the project's tasks too")
@click.pass_context
def project_delete(ctx: click.Context, ref: str, cascade: bool) -> None:
    """Delete a project; its tasks become unassigned unless --cascade."""
    store = _store(ctx)
    target = store.resolve_project(ref)
    if target is None or not store.delete_project(target.id, cascade=cascade):
        raise click.ClickException(f"Project not found: {ref}")
    click.echo(f"Deleted project '{target.name}'")


# ---------------------------------------------------------------------------
# Task commands
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("title")
@click.option("--description", "-d", default=None, help="Longer description")
@click.option("--priority", "-p", default=None, callback=_priority_option, help="Low, Medium, High or Critical")
@click.option("--tags", "-t", default=None, help="Comma-separated tags")
@click.option("--due", default=None, callback=_due_option, help="Due date: YYYY-MM-DD, today, tomorrow")
@click.option("--parent", default=None, help="Parent task ID")
@click.option("--project", "project_ref", default=None, help="Project ID or name")
@click.pass_context
def add(ctx, title, description, priority, tags, due, parent, project_ref) -> None:
    """Create a task."""
    try:
        task = _store(ctx).add_task(
            title,
            description=description,
            priority=priority,
            tags=_parse_tags(tags),
            due_date=due,
            parent_id=parent,
            project_id=project_ref,
        )
    except TskError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Created task [{task.id}] {task.title}")


@cli.command("list")
@click.option("--status", "-s", default=None, callback=_status_option, help="Only this status")
@click.option("--priority", "-p", default=None, callback=_priority_option, help="Only this priority")
@click.option("--tag", default=None, help="Only tasks with this tag")
@click.option("--project", "project_ref", default=None, help="Only this project")
@click.option("--all", "-a", "include_completed", is_flag=True, help="Include Done and Cancelled tasks")
@click.option("--md", "as_markdown", is_flag=True, help="Output markdown")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def list_cmd(ctx, status, priority, tag, project_ref, include_completed, as_markdown, as_json) -> None:
    """List tasks, highest priority first."""
    tasks = _store(ctx).list_tasks(
        status=status,
        priority=priority,
        tag=tag,
        project_id=project_ref,
        include_completed=include_completed,
    )
    if as_json:
        click.echo(json.dumps([t.to_record() for t in tasks], indent=2))
    elif as_markdown:
        click.echo(_format_tasks_markdown(tasks))
    else:
        click.echo(_format_tasks_concise(tasks))


@cli.command()
@click.argument("project_ref", required=False)
@click.option("--all", "-a", "include_completed", is_flag=True, help="Include Done and Cancelled tasks")
@click.option("--md", "as_markdown", is_flag=True, help="Output a markdown checklist")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def tree(ctx, project_ref, include_completed, as_markdown, as_json) -> None:
    """Show the task hierarchy, optionally for one project."""
    store = _store(ctx)
    target = None
    if project_ref:
        target = store.resolve_project(project_ref)
        if target is None:
            raise click.ClickException(f"Project not found: {project_ref}")

    roots = store.get_tree(target.id if target else None, include_completed=include_completed)

    if as_json:
        records = [
            {**n.task.to_record(), "depth": n.depth, "blockingDependencyIds": n.blocking_dependency_ids}
            for n in store.flatten(roots)
        ]
        click.echo(json.dumps(records, indent=2))
        return
    if not roots:
        click.echo("No tasks.")
        return
    if as_markdown:
        stats = store.compute_stats(n.task for n in store.flatten(roots))
        if target is not None:
            click.echo(_format_tree_markdown(roots, target.name, stats), nl=False)
        else:
            groups = _group_by_project(roots, store.list_projects())
            click.echo(_format_tree_markdown(roots, "Tasks", stats, groups), nl=False)
        return
    click.echo(_format_tree(roots))


@cli.command()
@click.argument("ref")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
def get(ctx: click.Context, ref: str, as_json: bool) -> None:
    """Show a task's details."""
    store = _store(ctx)
    task = _require_task(store, ref)
    blocking = store.get_blocking_dependencies(task.id)
    if as_json:
        click.echo(json.dumps({**task.to_record(), "blockingDependencyIds": blocking}, indent=2))
        return
    click.echo(_format_task_markdown(task, store.get_subtasks(task.id), blocking))


@cli.command()
@click.argument("ref")
@click.option("--recursive", "-r", is_flag=True, help="Complete all subtasks too")
@click.pass_context
def done(ctx: click.Context, ref: str, recursive: bool) -> None:
    """Mark a task Done."""
    store = _store(ctx)
    task = _require_task(store, ref)
    store.complete_task(task.id, recursive=recursive)
    click.echo(f"Completed [{task.id}] {task.title}")


@cli.command()
@click.argument("ref")
@click.pass_context
def start(ctx: click.Context, ref: str) -> None:
    """Mark a task InProgress."""
    store = _store(ctx)
    task = _require_task(store, ref)
    blocking = store.get_blocking_dependencies(task.id)
    store.start_task(task.id)
    click.echo(f"Started [{task.id}] {task.title}")
    if blocking:
        click.echo(f"Warning: blocked by {', '.join(blocking)}", err=True)


@cli.command()
@click.argument("ref")
@click.pass_context
def block(ctx: click.Context, ref: str) -> None:
    """Mark a task Blocked."""
    store = _store(ctx)
    task = _require_task(store, ref)
    store.block_task(task.id)
    click.echo(f"Blocked [{task.id}] {task.title}")


@cli.command()
@click.argument("ref")
@click.option("--title", default=None, help="New title")
@click.option("--description", "-d", default=None, help="New description ('' to remove)")
@click.option("--status", "-s", default=None, callback=_status_option, help="New status")
@click.option("--priority", "-p", default=None, callback=_priority_option, help="New priority")
@click.option("--tags", "-t", default=None, help="Replacement comma-separated tags")
@click.option("--due", default=None, help="New due date ('none' to remove)")
@click.option("--parent", default=None, help="New parent ID ('none' for top level)")
@click.option("--order", type=int, default=None, help="New position among siblings")
@click.pass_context
def update(ctx, ref, title, description, status, priority, tags, due, parent, order) -> None:
    """Change a task's fields."""
    changes = {}
    if title is not None:
        changes["title"] = title
    if description is not None:
        changes["description"] = description or None
    if status is not None:
        changes["status"] = status
    if priority is not None:
        changes["priority"] = priority
    if tags is not None:
        changes["tags"] = _parse_tags(tags)
    if due is not None:
        try:
            changes["due_date"] = None if is_clear_value(due) else _parse_due_date(due)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--due") from exc
    if parent is not None:
        changes["parent_id"] = parent
    if order is not None:
        changes["order"] = order

    try:
        task = _store(ctx).update_task(ref, **changes)
    except TskError as exc:
        raise click.ClickException(str(exc)) from exc
    if task is None:
        raise click.ClickException(f"Task not found: {ref}")
    click.echo(f"Updated {_format_task_concise(task)}")


@cli.command()
@click.argument("ref")
@click.option("--cascade", is_flag=True, help="Delete all subtasks too")
@click.pass_context
def delete(ctx: click.Context, ref: str, cascade: bool) -> None:
    """Delete a task. Subtasks move up to its parent unless --cascade."""
    store = _store(ctx)
    task = _require_task(store, ref)
    store.delete_task(task.id, cascade=cascade)
    click.echo(f"Deleted [{task.id}] {task.title}")


@cli.command()
@click.argument("ref")
@click.argument("project_ref", required=False)
@click.pass_context
def move(ctx: click.Context, ref: str, project_ref: str | None) -> None:
    """Move a task and its subtasks to PROJECT (omit for unassigned)."""
    store = _store(ctx)
    task = _require_task(store, ref)
    try:
        store.move_to_project(task.id, project_ref)
    except TskError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Moved [{task.id}] {task.title} to {project_ref or 'unassigned'}")


@cli.command()
@click.argument("ref")
@click.argument("order", type=click.IntRange(min=0))
@click.pass_context
def reorder(ctx: click.Context, ref: str, order: int) -> None:
    """Move a task to position ORDER among its siblings."""
    store = _store(ctx)
    task = _require_task(store, ref)
    store.reorder_task(task.id, order)
    click.echo(f"Moved [{task.id}] {task.title} to position {order}")


@cli.command()
@click.argument("project_ref", required=False)
@click.pass_context
def stats(ctx: click.Context, project_ref: str | None) -> None:
    """Show task counts by status and priority."""
    store = _store(ctx)
    label = None
    if project_ref:
        target = store.resolve_project(project_ref)
        if target is None:
            raise click.ClickException(f"Project not found: {project_ref}")
        label = target.name
    click.echo(_format_stats(store.get_stats(project_ref), label))


# ---------------------------------------------------------------------------
# tsk dep
# ---------------------------------------------------------------------------


@cli.group()
def dep() -> None:
    """Manage task dependencies."""


@dep.command("list")
@click.argument("ref")
@click.pass_context
def dep_list(ctx: click.Context, ref: str) -> None:
    """Show what a task depends on and what depends on it."""
    store = _store(ctx)
    task = _require_task(store, ref)
    click.echo(
        _format_dependencies_markdown(
            task,
            store.get_dependencies(task.id),
            store.get_dependents(task.id),
            store.get_blocking_dependencies(task.id),
        )
    )


@dep.command("add")
@click.argument("ref")
@click.argument("depends_on")
@click.pass_context
def dep_add(ctx: click.Context, ref: str, depends_on: str) -> None:
    """Make REF wait for DEPENDS_ON."""
    store = _store(ctx)
    task = _require_task(store, ref)
    dependency = _require_task(store, depends_on)
    if task.id == dependency.id:
        raise click.ClickException("A task cannot depend on itself")
    if not store.add_dependency(task.id, dependency.id):
        raise click.ClickException("Dependency would create a cycle")
    click.echo(f"[{task.id}] now depends on [{dependency.id}]")


@dep.command("rm")
@click.argument("ref")
@click.argument("depends_on")
@click.pass_context
def dep_rm(ctx: click.Context, ref: str, depends_on: str) -> None:
    """Remove the dependency of REF on DEPENDS_ON."""
    store = _store(ctx)
    task = _require_task(store, ref)
    if not store.remove_dependency(task.id, depends_on):
        raise click.ClickException(f"[{task.id}] does not depend on {depends_on}")
    click.echo(f"Removed dependency of [{task.id}] on {depends_on}")


@dep.command("check")
@click.argument("ref")
@click.pass_context
def dep_check(ctx: click.Context, ref: str) -> None:
    """Report whether a task can start and complete."""
    store = _store(ctx)
    task = _require_task(store, ref)
    click.echo(f"Can start:    {'yes' if store.can_start(task.id) else 'no'}")
    click.echo(f"Can complete: {'yes' if store.can_complete(task.id) else 'no'}")


@dep.command("blocking")
@click.argument("ref")
@click.pass_context
def dep_blocking(ctx: click.Context, ref: str) -> None:
    """List open dependencies that block a task."""
    store = _store(ctx)
    task = _require_task(store, ref)
    blocking = [store.get_task(dep_id) for dep_id in store.get_blocking_dependencies(task.id)]
    if not blocking:
        click.echo("Not blocked.")
        return
    for t in blocking:
        if t is not None:
            click.echo(_format_task_concise(t))


# ---------------------------------------------------------------------------
# tsk config
# ---------------------------------------------------------------------------


def _load_options_or_fail():
    try:
        return load_options()
    except TskError as exc:
        raise click.ClickException(str(exc)) from exc


@cli.group()
def config() -> None:
    """Show or change settings."""


@config.command("show")
def config_show() -> None:
    """Print every setting."""
    options = _load_options_or_fail()
    click.echo(f"Config file: {config_path()}")
    for key, value in all_values(options).items():
        click.echo(f"{key} = {value if value is not None else ''}")


@config.command("get")
@click.argument("key")
def config_get(key: str) -> None:
    """Print one setting."""
    options = _load_options_or_fail()
    if key.lower() not in {k.lower() for k in all_values(options)}:
        raise click.ClickException(f"Unknown setting: {key}")
    value = get_value(options, key)
    click.echo(value if value is not None else "")


@config.command("set")
@click.argument("key")
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Change one setting and save it."""
    options = _load_options_or_fail()
    if not set_value(options, key, value):
        raise click.ClickException(f"Cannot set {key} to '{value}'")
    path = save_options(options)
    logger.debug("Saved settings to %s", path)
    click.echo(f"{key} = {value}")


@config.command("path")
def config_path_cmd() -> None:
    """Print the config file and data directory locations."""
    options = _load_options_or_fail()
    click.echo(f"Config file:    {config_path()}")
    click.echo(f"Data directory: {data_directory(options)}")


# ---------------------------------------------------------------------------
# Aliases
# ---------------------------------------------------------------------------

cli.add_command(list_cmd, name="ls")
cli.add_command(get, name="show")
cli.add_command(done, name="complete")
cli.add_command(delete, name="rm")
cli.add_command(move, name="mv")
cli.add_command(dep, name="deps")
project.add_command(project_add, name="new")
project.add_command(project_list, name="ls")
project.add_command(project_delete, name="rm")

# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    cli(standalone_mode=True)


if __name__ == "__main__":
    main()
