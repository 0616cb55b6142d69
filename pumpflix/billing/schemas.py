"""Billing Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pumpflix.billing.models import InvoiceStatus, PlanInterval, SubscriptionStatus


class PlanCreate(BaseModel):
    """Schema for creating a subscription plan."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    currency: str = Field(default="usd", min_length=3, max_length=3)
    interval: PlanInterval = PlanInterval.MONTH
    features: List[str] = Field(default_factory=list)
    execution_limit: int = Field(..., gt=0, description="Executions per billing period")
    stripe_product_id: Optional[str] = None
    stripe_price_id: Optional[str] = None


class PlanResponse(BaseModel):
    """Subscription plan response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    price: float
    currency: str
    interval: PlanInterval
    features: List[str]
    execution_limit: int
    stripe_price_id: Optional[str] = None
    is_active: bool


class SubscriptionCreate(BaseModel):
    """Schema for subscribing to a plan."""
    plan_id: int


class SubscriptionResponse(BaseModel):
    """Subscription response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    user_id: int
    plan_id: int
    status: SubscriptionStatus
    stripe_subscription_id: Optional[str] = None
    started_at: datetime
    trial_ends_at: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    current_executions: int


class SubscriptionCreatedResponse(BaseModel):
    """Created subscription plus the payment intent secret."""
    subscription: SubscriptionResponse
    client_secret: Optional[str] = None


class SubscriptionDetailResponse(BaseModel):
    """Current subscription with its plan and usage."""
    subscription: SubscriptionResponse
    plan: PlanResponse
    remaining_executions: int
    trial_days_left: Optional[int] = None


class PortalResponse(BaseModel):
    """Billing portal link."""
    url: str


class WebhookResponse(BaseModel):
    """Webhook acknowledgement."""
    received: bool = True


class InvoiceItemCreate(BaseModel):
    """Invoice line item input."""
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., gt=0)
    total: Decimal = Field(..., gt=0)


class InvoiceCreate(BaseModel):
    """Schema for issuing an invoice."""
    org_id: int
    currency: str = Field(..., min_length=3, max_length=3)
    status: InvoiceStatus = InvoiceStatus.DRAFT
    description: Optional[str] = None
    due_date: datetime
    items: List[InvoiceItemCreate] = Field(..., min_length=1)


class InvoiceItemResponse(BaseModel):
    """Invoice line item."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    description: str
    quantity: int
    unit_price: float
    total: float


class InvoiceResponse(BaseModel):
    """Invoice response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    number: str
    org_id: int
    amount: float
    currency: str
    status: InvoiceStatus
    description: Optional[str] = None
    due_date: datetime
    created_at: datetime
    items: List[InvoiceItemResponse]
