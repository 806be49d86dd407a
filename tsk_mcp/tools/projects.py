"""MCP tools for managing projects."""

import json

from mcp.types import ToolAnnotations

from tsk_mcp.enums import ResponseFormat
from tsk_mcp.exceptions import TaskValidationError
from tsk_mcp.models.inputs import ProjectCreateInput, ProjectDeleteInput, ProjectListInput, ProjectUpdateInput
from tsk_mcp.server import get_store, mcp
from tsk_mcp.utils.formatters import _format_not_found, _format_projects_markdown

_PROJECT_TIP = "Use project_list to find valid project IDs or names."


@mcp.tool(
    name="project_create",
    annotations=ToolAnnotations(
        title="Create Project",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=False,
        openWorldHint=False,
    ),
)
async def project_create(params: ProjectCreateInput) -> str:
    """
    Create a new project. Each project keeps its tasks in its own file.

    USE THIS WHEN:
    - Starting a new body of work that should be tracked separately
    - You want to group related tasks before adding them

    DO NOT USE WHEN:
    - The project already exists → check with project_list first

    Args:
        params: ProjectCreateInput containing name and optional description

    Returns:
        Confirmation with the new project's ID

    Examples:
        - Create a project: params with name="Website redesign"
    """
    try:
        project = get_store().add_project(params.name, params.description)
    except TaskValidationError as e:
        return f"Error: {e}"
    return f"Created project '{project.name}' [{project.id}]"


@mcp.tool(
    name="project_list",
    annotations=ToolAnnotations(
        title="List Projects",
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def project_list(params: ProjectListInput) -> str:
    """
    List all projects with task progress.

    USE THIS WHEN:
    - You need a project ID to add, list or move tasks
    - Getting an overview of all projects

    Args:
        params: ProjectListInput containing response_format

    Returns:
        Projects sorted by name (markdown, concise or JSON)
    """
    store = get_store()
    projects = store.list_projects()
    stats = {p.id: store.get_stats(p.id) for p in projects}

    if params.response_format == ResponseFormat.JSON:
        return json.dumps(
            {
                "count": len(projects),
                "projects": [
                    {**p.to_record(), "taskCount": stats[p.id].total, "doneCount": stats[p.id].done}
                    for p in projects
                ],
            },
            indent=2,
        )

    if params.response_format == ResponseFormat.CONCISE:
        if not projects:
            return "0 projects"
        return "\n".join(f"[{p.id}] {p.name} ({stats[p.id].done}/{stats[p.id].total})" for p in projects)

    return _format_projects_markdown(projects, stats)


@mcp.tool(
    name="project_update",
    annotations=ToolAnnotations(
        title="Update Project",
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def project_update(params: ProjectUpdateInput) -> str:
    """
    Rename a project or change its description.

    Args:
        params: ProjectUpdateInput containing project_id and the fields to change

    Returns:
        Confirmation message

    Examples:
        - Rename: params with project_id="a1b2", name="Website v2"
        - Remove description: params with project_id="a1b2", description=""
    """
    changes = {}
    if params.name is not None:
        changes["name"] = params.name
    if params.description is not None:
        changes["description"] = params.description or None

    if not changes:
        return "Error: Nothing to update.\nTip: Provide a name and/or a description."

    try:
        project = get_store().update_project(params.project_id, **changes)
    except TaskValidationError as e:
        return f"Error: {e}"

    if project is None:
        return _format_not_found("Project", params.project_id, _PROJECT_TIP)
    return f"Updated project '{project.name}' [{project.id}]"


@mcp.tool(
    name="project_delete",
    annotations=ToolAnnotations(
        title="Delete Project",
        readOnlyHint=False,
        destructiveHint=True,
        idempotentHint=True,
        openWorldHint=False,
    ),
)
async def project_delete(params: ProjectDeleteInput) -> str:
    """
    Delete a project.

    By default its tasks are kept and moved to the unassigned list. With
    cascade=true the tasks are deleted along with the project.

    Args:
        params: ProjectDeleteInput containing project_id and cascade

    Returns:
        Confirmation message
    """
    store = get_store()
    project = store.resolve_project(params.project_id)
    if project is None or not store.delete_project(project.id, cascade=params.cascade):
        return _format_not_found("Project", params.project_id, _PROJECT_TIP)

    if params.cascade:
        return f"Deleted project '{project.name}' and its tasks."
    return f"Deleted project '{project.name}'. Its tasks are now unassigned."
