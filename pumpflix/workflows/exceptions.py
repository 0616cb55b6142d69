"""Workflow-related exceptions."""

from pumpflix.exceptions import NotFoundError, ValidationError


class WorkflowNotFoundError(NotFoundError):
    """Raised when workflow is not found."""
    error = "Workflow not found"


class WorkflowArchivedError(ValidationError):
    """Raised when an archived workflow is executed or modified."""
    error = "Workflow archived"
