"""Billing dependencies."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_user
from pumpflix.auth.models import User
from pumpflix.billing.models import Subscription
from pumpflix.billing.service import BillingService
from pumpflix.billing.stripe_client import StripeClient, get_stripe_client
from pumpflix.database import get_postgres_session


def get_billing_service(
    db: AsyncSession = Depends(get_postgres_session),
    stripe_client: StripeClient = Depends(get_stripe_client),
) -> BillingService:
    """Billing service bound to the request session."""
    return BillingService(db, stripe_client)


async def require_execution_quota(
    current_user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
) -> Subscription:
    """Reject the request unless the organization can run another execution."""
    return await billing.check_execution_quota(current_user.org_id, current_user.id)
