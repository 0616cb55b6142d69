"""Thin wrapper around the Stripe SDK.

The SDK is blocking, so every call runs in a worker thread. SDK errors are
translated into ``PaymentProviderError`` so routes never see Stripe types.
"""

import asyncio
from typing import Any, Dict, Optional

import stripe
import structlog

from pumpflix.billing.exceptions import WebhookSignatureError
from pumpflix.config import settings
from pumpflix.exceptions import ConfigurationError, PaymentProviderError

logger = structlog.get_logger()


class StripeClient:
    """Payment provider operations used by billing."""

    def __init__(self, api_key: Optional[str] = None, webhook_secret: Optional[str] = None):
        self.api_key = api_key or settings.stripe_secret_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret

    async def _call(self, operation: str, func, **kwargs) -> Any:
        if not self.api_key:
            raise ConfigurationError("Stripe is not configured")
        try:
            return await asyncio.to_thread(func, api_key=self.api_key, **kwargs)
        except stripe.StripeError as e:
            logger.error("Stripe request failed", operation=operation, error=str(e))
            raise PaymentProviderError(f"Failed to {operation}")

    async def create_customer(self, email: str, name: str) -> Any:
        """Create a customer."""
        return await self._call("create customer", stripe.Customer.create, email=email, name=name)

    async def create_subscription(
        self, customer_id: str, price_id: str, trial_days: Optional[int] = None
    ) -> Any:
        """Create a subscription that waits for its first payment."""
        return await self._call(
            "create subscription",
            stripe.Subscription.create,
            customer=customer_id,
            items=[{"price": price_id}],
            trial_period_days=settings.trial_period_days if trial_days is None else trial_days,
            payment_behavior="default_incomplete",
            payment_settings={"save_default_payment_method": "on_subscription"},
            expand=["latest_invoice.payment_intent"],
        )

    async def cancel_subscription(self, subscription_id: str) -> Any:
        """Cancel a subscription immediately."""
        return await self._call(
            "cancel subscription", stripe.Subscription.cancel, subscription_exposed_id=subscription_id
        )

    async def create_portal_session(self, customer_id: str, return_url: str) -> str:
        """Create a billing portal session and return its URL."""
        session = await self._call(
            "create portal session",
            stripe.billing_portal.Session.create,
            customer=customer_id,
            return_url=return_url,
        )
        return session["url"]

    def construct_event(self, payload: bytes, signature: str) -> Dict[str, Any]:
        """Verify a webhook signature and parse the event."""
        if not self.webhook_secret:
            raise ConfigurationError("Stripe webhook secret is not configured")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning("Invalid Stripe webhook", error=str(e))
            raise WebhookSignatureError("Invalid webhook signature")


def get_stripe_client() -> StripeClient:
    """FastAPI dependency for the Stripe client."""
    return StripeClient()
