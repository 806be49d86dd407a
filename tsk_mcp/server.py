"""FastMCP server initialization for tsk."""

import logging

from mcp.server.fastmcp import FastMCP

from tsk_mcp.config import load_options
from tsk_mcp.store.task_store import TaskStore

logger = logging.getLogger(__name__)

# Initialize the MCP server
mcp = FastMCP("tsk_mcp")

_store: TaskStore | None = None


def get_store() -> TaskStore:
    """Return the store shared by all tools, opening it from config on first use."""
    global _store
    if _store is None:
        options = load_options()
        _store = TaskStore.from_options(options)
        logger.info("Using task data in %s", _store.repository.data_dir)
    return _store


def set_store(store: TaskStore | None) -> None:
    """Replace the shared store (``None`` reopens it from config on next use)."""
    global _store
    _store = store


def run() -> None:
    """Run the MCP server over stdio."""
    # Importing the tools registers them with ``mcp``
    import tsk_mcp.tools  # noqa: F401

    mcp.run()


if __name__ == "__main__":
    run()
