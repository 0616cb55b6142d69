"""Export template exceptions."""

from pumpflix.exceptions import ConflictError, NotFoundError, ValidationError


class ExportTemplateNotFoundError(NotFoundError):
    """Raised when an export template is missing or not visible."""
    error = "Template not found"


class TemplateVersionNotFoundError(NotFoundError):
    """Raised when a template version is missing."""
    error = "Version not found"


class ExportJobNotFoundError(NotFoundError):
    """Raised when an export job is missing."""
    error = "Export job not found"


class DuplicateVersionError(ConflictError):
    """Raised when a template already has the version."""
    error = "Version already exists"


class VersionMismatchError(ValidationError):
    """Raised when compared versions belong to different templates."""
    error = "Versions must belong to the same template"
