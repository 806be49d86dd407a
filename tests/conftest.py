"""Pytest configuration and fixtures for tsk-mcp tests."""

import pytest

from tsk_mcp.config import TasksOptions
from tsk_mcp.server import set_store
from tsk_mcp.store import TaskStore


@pytest.fixture
def store():
    """An empty store backed by memory."""
    return TaskStore.in_memory()


@pytest.fixture
def data_dir(tmp_path):
    """Directory for JSON unit files."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def file_store(data_dir):
    """An empty store backed by JSON files in a temp directory."""
    return TaskStore.from_directory(data_dir)


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Point TSK_CONFIG at a temp file and clear TSK_DATA_PATH."""
    path = tmp_path / "config" / "config.json"
    monkeypatch.setenv("TSK_CONFIG", str(path))
    monkeypatch.delenv("TSK_DATA_PATH", raising=False)
    return path


@pytest.fixture
def server_store():
    """Install an in-memory store into the MCP server for tool tests."""
    s = TaskStore.in_memory(TasksOptions())
    set_store(s)
    yield s
    set_store(None)


@pytest.fixture
def sample_tree(store):
    """
    A small project with a hierarchy:

        Website (project)
        ├── Design
        │   ├── Wireframes
        │   └── Mockups
        └── Build
    plus one unassigned task "Groceries".
    """
    project = store.add_project("Website", "Company site")
    design = store.add_task("Design", project_id=project.id)
    wireframes = store.add_task("Wireframes", parent_id=design.id)
    mockups = store.add_task("Mockups", parent_id=design.id)
    build = store.add_task("Build", project_id=project.id)
    groceries = store.add_task("Groceries")
    return {
        "project": project,
        "design": design,
        "wireframes": wireframes,
        "mockups": mockups,
        "build": build,
        "groceries": groceries,
    }
