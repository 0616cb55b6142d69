"""Base exceptions for PumpFlix.

Every exception carries the HTTP status and short error title used when it
reaches the API boundary, so services can raise them without knowing about
FastAPI.
"""

from typing import Any, Dict, Optional


class PumpFlixException(Exception):
    """Base exception for all PumpFlix errors."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.error
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON error body."""
        return {"error": self.error, "message": self.message, **self.extra}


class ConfigurationError(PumpFlixException):
    """Raised when there's a configuration error."""
    status_code = 500
    error = "Configuration Error"


class ValidationError(PumpFlixException):
    """Raised when validation fails."""
    status_code = 400
    error = "Validation Error"


class AuthenticationError(PumpFlixException):
    """Raised when credentials are missing or invalid."""
    status_code = 401
    error = "Authentication Failed"


class NotFoundError(PumpFlixException):
    """Raised when a resource is not found."""
    status_code = 404
    error = "Not Found"


class PermissionError(PumpFlixException):
    """Raised when permission is denied."""
    status_code = 403
    error = "Forbidden"


class ConflictError(PumpFlixException):
    """Raised when there's a conflict."""
    status_code = 409
    error = "Conflict"


class ServiceUnavailableError(PumpFlixException):
    """Raised when a service is unavailable."""
    status_code = 503
    error = "Service Unavailable"


class PaymentProviderError(PumpFlixException):
    """Raised when the payment provider rejects a call."""
    status_code = 502
    error = "Payment Provider Error"


class SubscriptionRequiredError(PermissionError):
    """Raised when an organization has no usable subscription."""
    error = "No active subscription"

    def __init__(self, message: str = "Please subscribe to execute workflows"):
        super().__init__(message, action="upgrade")


class ExecutionLimitError(PermissionError):
    """Raised when the plan's execution limit has been reached."""
    error = "Execution limit reached"

    def __init__(self, limit: int, current: int):
        super().__init__(
            "You have reached your execution limit for this billing period",
            action="upgrade",
            limit=limit,
            current=current,
        )
