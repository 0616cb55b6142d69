"""Billing API routes."""

from typing import List

import structlog
from fastapi import APIRouter, Depends, Header, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_admin_user, get_current_user
from pumpflix.auth.models import User
from pumpflix.billing.dependencies import get_billing_service
from pumpflix.billing.schemas import (
    InvoiceCreate,
    InvoiceResponse,
    PlanCreate,
    PlanResponse,
    PortalResponse,
    SubscriptionCreate,
    SubscriptionCreatedResponse,
    SubscriptionDetailResponse,
    SubscriptionResponse,
    WebhookResponse,
)
from pumpflix.billing.service import BillingService
from pumpflix.billing.stripe_client import StripeClient, get_stripe_client
from pumpflix.database import get_postgres_session

logger = structlog.get_logger()

router = APIRouter(prefix="/billing", tags=["Billing"])


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.get("/plans", response_model=List[PlanResponse])
async def list_plans(billing: BillingService = Depends(get_billing_service)):
    """List available subscription plans."""
    return await billing.list_plans()


@router.post("/plans", response_model=PlanResponse, status_code=status.HTTP_201_CREATED)
async def create_plan(
    data: PlanCreate,
    current_user: User = Depends(get_admin_user),
    billing: BillingService = Depends(get_billing_service),
):
    """Create a subscription plan."""
    return await billing.create_plan(data)


@router.get("/subscription", response_model=SubscriptionDetailResponse)
async def get_subscription(
    current_user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """Current subscription of the caller's organization."""
    subscription = await billing.get_current_subscription(current_user.org_id)
    plan = await billing.get_plan(subscription.plan_id)
    trial_days_left = await billing.check_trial_status(current_user.org_id)
    return SubscriptionDetailResponse(
        subscription=SubscriptionResponse.model_validate(subscription),
        plan=PlanResponse.model_validate(plan),
        remaining_executions=max(0, plan.execution_limit - subscription.current_executions),
        trial_days_left=trial_days_left,
    )


@router.post(
    "/subscription",
    response_model=SubscriptionCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    data: SubscriptionCreate,
    request: Request,
    current_user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """Subscribe the caller's organization to a plan."""
    subscription, client_secret = await billing.create_subscription(
        current_user, data.plan_id, ip_address=_client_ip(request)
    )
    return SubscriptionCreatedResponse(
        subscription=SubscriptionResponse.model_validate(subscription),
        client_secret=client_secret,
    )


@router.delete("/subscription/{subscription_id}", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: int,
    request: Request,
    current_user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """Cancel a subscription."""
    return await billing.cancel_subscription(
        current_user, subscription_id, ip_address=_client_ip(request)
    )


@router.post("/webhook", response_model=WebhookResponse)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(..., alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_postgres_session),
    stripe_client: StripeClient = Depends(get_stripe_client),
):
    """Receive payment provider events."""
    payload = await request.body()
    event = stripe_client.construct_event(payload, stripe_signature)

    handled = await BillingService(db, stripe_client).handle_webhook(event)
    logger.info("Webhook processed", event_type=event["type"], handled=handled)
    return WebhookResponse(received=True)


@router.post("/portal", response_model=PortalResponse)
async def create_portal_session(
    current_user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """Open the payment provider's billing portal."""
    return PortalResponse(url=await billing.create_portal_session(current_user))


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    data: InvoiceCreate,
    current_user: User = Depends(get_admin_user),
    billing: BillingService = Depends(get_billing_service),
):
    """Issue an invoice."""
    return await billing.create_invoice(current_user, data)


@router.get("/invoices", response_model=List[InvoiceResponse])
async def list_invoices(
    current_user: User = Depends(get_current_user),
    billing: BillingService = Depends(get_billing_service),
):
    """List invoices of the caller's organization."""
    return await billing.list_invoices(current_user.org_id)
