"""Billing service: subscriptions, execution quota, webhooks and invoices."""

import math
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.audit.service import AuditService
from pumpflix.auth.models import User
from pumpflix.billing.exceptions import PlanNotFoundError, SubscriptionNotFoundError
from pumpflix.billing.models import (
    ENTITLED_STATUSES,
    Invoice,
    InvoiceItem,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from pumpflix.billing.schemas import InvoiceCreate, PlanCreate
from pumpflix.billing.stripe_client import StripeClient
from pumpflix.config import settings
from pumpflix.db_types import as_utc, utcnow
from pumpflix.exceptions import (
    ConfigurationError,
    ExecutionLimitError,
    PermissionError,
    SubscriptionRequiredError,
)
from pumpflix.notifications.models import Notification, NotificationType
from pumpflix.notifications.service import NotificationService

logger = structlog.get_logger()

# Provider subscription states that have no direct counterpart
STRIPE_STATUS_MAP = {
    "canceled": SubscriptionStatus.CANCELLED,
    "unpaid": SubscriptionStatus.PAST_DUE,
    "incomplete": SubscriptionStatus.PAST_DUE,
    "incomplete_expired": SubscriptionStatus.ENDED,
    "paused": SubscriptionStatus.PAST_DUE,
}


def map_stripe_status(value: str) -> SubscriptionStatus:
    """Translate a provider subscription status."""
    if value in STRIPE_STATUS_MAP:
        return STRIPE_STATUS_MAP[value]
    try:
        return SubscriptionStatus(value)
    except ValueError:
        logger.warning("Unknown subscription status", status=value)
        return SubscriptionStatus.PAST_DUE


def _from_timestamp(value: Optional[int]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


class BillingService:
    """Subscription lifecycle and usage accounting."""

    def __init__(self, db: AsyncSession, stripe_client: Optional[StripeClient] = None):
        self.db = db
        self.stripe = stripe_client or StripeClient()
        self.notifications = NotificationService(db)
        self.audit = AuditService(db)

    # Plans

    async def list_plans(self, include_inactive: bool = False) -> List[SubscriptionPlan]:
        """List plans ordered by price."""
        query = select(SubscriptionPlan)
        if not include_inactive:
            query = query.where(SubscriptionPlan.is_active.is_(True))
        result = await self.db.execute(query.order_by(SubscriptionPlan.price, SubscriptionPlan.id))
        return list(result.scalars().all())

    async def create_plan(self, data: PlanCreate) -> SubscriptionPlan:
        """Create a subscription plan."""
        plan = SubscriptionPlan(**data.model_dump())
        self.db.add(plan)
        await self.db.commit()

        logger.info("Subscription plan created", plan_id=plan.id, name=plan.name)
        return plan

    async def get_plan(self, plan_id: int) -> SubscriptionPlan:
        """Get a plan or raise."""
        plan = await self.db.get(SubscriptionPlan, plan_id)
        if not plan:
            raise PlanNotFoundError()
        return plan

    # Subscriptions

    async def get_entitled_subscription(self, org_id: int) -> Optional[Subscription]:
        """Latest active or trialing subscription of an organization."""
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.org_id == org_id, Subscription.status.in_(ENTITLED_STATUSES))
            .order_by(Subscription.started_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    async def get_current_subscription(self, org_id: int) -> Subscription:
        """Entitled subscription, else the most recent one."""
        subscription = await self.get_entitled_subscription(org_id)
        if subscription:
            return subscription

        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.org_id == org_id)
            .order_by(Subscription.started_at.desc(), Subscription.id.desc())
            .limit(1)
        )
        subscription = result.scalars().first()
        if not subscription:
            raise SubscriptionNotFoundError("No subscription found")
        return subscription

    async def create_subscription(
        self,
        user: User,
        plan_id: int,
        ip_address: Optional[str] = None,
    ) -> Tuple[Subscription, Optional[str]]:
        """Subscribe the user's organization to a plan.

        Returns the subscription and the client secret of the first payment
        intent, when the provider issued one.
        """
        plan = await self.get_plan(plan_id)
        if not plan.stripe_price_id:
            raise ConfigurationError("Subscription plan is not configured with a Stripe price ID")

        customer = await self.stripe.create_customer(user.email, user.name)
        stripe_subscription = await self.stripe.create_subscription(
            customer["id"], plan.stripe_price_id, trial_days=settings.trial_period_days
        )

        now = utcnow()
        subscription = Subscription(
            org_id=user.org_id,
            user_id=user.id,
            plan_id=plan.id,
            stripe_customer_id=customer["id"],
            stripe_subscription_id=stripe_subscription["id"],
            status=map_stripe_status(stripe_subscription.get("status") or "trialing"),
            started_at=now,
            trial_ends_at=now + timedelta(days=settings.trial_period_days),
            current_period_end=_from_timestamp(stripe_subscription.get("current_period_end")),
            current_executions=0,
        )
        self.db.add(subscription)
        await self.db.flush()

        await self.audit.record(
            "subscription.created",
            "subscription",
            org_id=user.org_id,
            resource_id=subscription.id,
            user_id=user.id,
            metadata={"plan_id": plan.id},
            ip_address=ip_address,
        )
        await self.db.commit()

        client_secret = None
        latest_invoice = stripe_subscription.get("latest_invoice")
        if isinstance(latest_invoice, dict):
            payment_intent = latest_invoice.get("payment_intent")
            if isinstance(payment_intent, dict):
                client_secret = payment_intent.get("client_secret")

        logger.info(
            "Subscription created",
            subscription_id=subscription.id,
            org_id=user.org_id,
            plan_id=plan.id,
        )
        return subscription, client_secret

    async def cancel_subscription(
        self, user: User, subscription_id: int, ip_address: Optional[str] = None
    ) -> Subscription:
        """Cancel one of the organization's subscriptions."""
        subscription = await self.db.get(Subscription, subscription_id)
        if not subscription or subscription.org_id != user.org_id:
            raise SubscriptionNotFoundError()

        if subscription.stripe_subscription_id:
            await self.stripe.cancel_subscription(subscription.stripe_subscription_id)

        subscription.status = SubscriptionStatus.CANCELLED
        subscription.cancelled_at = utcnow()

        await self.audit.record(
            "subscription.cancelled",
            "subscription",
            org_id=user.org_id,
            resource_id=subscription.id,
            user_id=user.id,
            ip_address=ip_address,
        )
        await self.db.commit()

        logger.info("Subscription cancelled", subscription_id=subscription.id, org_id=user.org_id)
        return subscription

    async def create_portal_session(self, user: User) -> str:
        """Billing portal URL for the organization's customer."""
        subscription = await self.get_current_subscription(user.org_id)
        if not subscription.stripe_customer_id:
            raise SubscriptionNotFoundError("No billing customer for this organization")
        return await self.stripe.create_portal_session(
            subscription.stripe_customer_id, settings.stripe_portal_return_url
        )

    # Usage

    async def check_execution_quota(self, org_id: int, user_id: int) -> Subscription:
        """Ensure the organization may start another execution.

        At the limit a ``usage_warning`` notification is committed before the
        error is raised, so it survives the failed request.
        """
        subscription = await self.get_entitled_subscription(org_id)
        if not subscription:
            raise SubscriptionRequiredError()

        limit = subscription.plan.execution_limit
        current = subscription.current_executions
        if current >= limit:
            await self.notifications.notify(
                user_id,
                org_id,
                NotificationType.USAGE_WARNING,
                "You have reached your execution limit",
                {"limit": limit, "current": current},
            )
            await self.db.commit()

            logger.warning("Execution limit reached", org_id=org_id, limit=limit, current=current)
            raise ExecutionLimitError(limit=limit, current=current)

        return subscription

    async def record_execution(self, subscription: Subscription) -> None:
        """Count one execution against the subscription (caller commits)."""
        await self.db.execute(
            update(Subscription)
            .where(Subscription.id == subscription.id)
            .values(current_executions=Subscription.current_executions + 1)
        )

    async def check_trial_status(self, org_id: int) -> Optional[int]:
        """Warn when a trial is about to end.

        Returns the days left in the trial, or None without a running trial.
        """
        result = await self.db.execute(
            select(Subscription)
            .where(
                Subscription.org_id == org_id,
                Subscription.status == SubscriptionStatus.TRIALING,
            )
            .order_by(Subscription.started_at.desc())
            .limit(1)
        )
        subscription = result.scalars().first()
        if not subscription or not subscription.trial_ends_at:
            return None

        remaining = as_utc(subscription.trial_ends_at) - utcnow()
        days_left = max(0, math.ceil(remaining.total_seconds() / 86400))

        # One unread warning per trial
        already_warned = await self.db.scalar(
            select(Notification.id).where(
                Notification.user_id == subscription.user_id,
                Notification.type == NotificationType.TRIAL_EXPIRY,
                Notification.read.is_(False),
            ).limit(1)
        )
        if days_left <= settings.trial_warning_days and not already_warned:
            await self.notifications.notify(
                subscription.user_id,
                org_id,
                NotificationType.TRIAL_EXPIRY,
                f"Your trial ends in {days_left} days",
                {"days_left": days_left},
            )
            await self.db.commit()

        return days_left

    # Webhooks

    async def handle_webhook(self, event: Dict[str, Any]) -> bool:
        """Apply a verified provider event. Returns False when ignored."""
        event_type = event["type"]
        data = event["data"]["object"]

        if event_type in ("customer.subscription.updated", "customer.subscription.deleted"):
            result = await self.db.execute(
                select(Subscription).where(Subscription.stripe_subscription_id == data["id"])
            )
            subscription = result.scalars().first()
            if not subscription:
                logger.warning("Webhook for unknown subscription", stripe_subscription_id=data["id"])
                return False

            status = data.get("status") or "canceled"
            subscription.status = map_stripe_status(status)
            if data.get("current_period_end"):
                subscription.current_period_end = _from_timestamp(data["current_period_end"])
            if subscription.status == SubscriptionStatus.CANCELLED and not subscription.cancelled_at:
                subscription.cancelled_at = utcnow()
            await self.db.commit()

            logger.info(
                "Subscription status synced",
                subscription_id=subscription.id,
                status=subscription.status.value,
            )
            return True

        if event_type == "invoice.payment_failed":
            result = await self.db.execute(
                select(Subscription)
                .where(Subscription.stripe_customer_id == data.get("customer"))
                .order_by(Subscription.started_at.desc())
                .limit(1)
            )
            subscription = result.scalars().first()
            if subscription:
                await self.notifications.notify(
                    subscription.user_id,
                    subscription.org_id,
                    NotificationType.PAYMENT_FAILED,
                    "Your payment failed. Please update your payment method.",
                    {"invoice_id": data.get("id")},
                )
                await self.db.commit()
            return True

        logger.debug("Ignoring webhook event", event_type=event_type)
        return False

    # Invoices

    async def create_invoice(self, user: User, data: InvoiceCreate) -> Invoice:
        """Issue an invoice to the caller's organization."""
        if data.org_id != user.org_id:
            raise PermissionError("Cannot create invoices for another organization")

        items = [
            InvoiceItem(
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=item.total,
            )
            for item in data.items
        ]
        invoice = Invoice(
            number=f"INV-{int(time.time() * 1000)}",
            org_id=data.org_id,
            amount=sum((item.total for item in data.items), Decimal("0")),
            currency=data.currency.lower(),
            status=data.status,
            description=data.description,
            due_date=data.due_date,
            items=items,
        )
        self.db.add(invoice)
        await self.db.commit()

        logger.info("Invoice created", invoice_id=invoice.id, number=invoice.number)
        return invoice

    async def list_invoices(self, org_id: int) -> List[Invoice]:
        """List invoices of an organization, newest first."""
        result = await self.db.execute(
            select(Invoice)
            .where(Invoice.org_id == org_id)
            .order_by(Invoice.created_at.desc(), Invoice.id.desc())
        )
        return list(result.scalars().all())
