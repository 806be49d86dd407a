"""Exceptions raised by the task store."""


class TskError(Exception):
    """Base class for tsk errors."""


class TaskValidationError(TskError, ValueError):
    """A task or project reference did not resolve, or a required field is missing."""
