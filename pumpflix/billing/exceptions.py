"""Billing-related exceptions."""

from pumpflix.exceptions import NotFoundError, ValidationError


class PlanNotFoundError(NotFoundError):
    """Raised when a subscription plan does not exist."""
    error = "Plan not found"


class SubscriptionNotFoundError(NotFoundError):
    """Raised when a subscription does not exist in the caller's organization."""
    error = "Subscription not found"


class WebhookSignatureError(ValidationError):
    """Raised when a webhook payload fails signature verification."""
    error = "Invalid webhook"
