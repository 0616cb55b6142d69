"""Execution-related exceptions."""

from pumpflix.exceptions import ConflictError, NotFoundError


class ExecutionNotFoundError(NotFoundError):
    """Raised when an execution is not found."""
    error = "Execution not found"


class ExecutionStateError(ConflictError):
    """Raised when an execution is not in a state that allows the operation."""
    error = "Invalid execution state"
