"""Usage metrics and analytics routes."""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.analytics.schemas import AdminAnalytics, TenantStats, TrendPoint, UsageMetrics
from pumpflix.analytics.service import AnalyticsService
from pumpflix.auth.dependencies import get_admin_user, get_current_tenant_id, get_current_user
from pumpflix.auth.models import User
from pumpflix.database import get_postgres_session
from pumpflix.exceptions import ValidationError

router = APIRouter(tags=["Analytics"])


def get_analytics_service(db: AsyncSession = Depends(get_postgres_session)) -> AnalyticsService:
    """Get analytics service instance."""
    return AnalyticsService(db)


def _check_range(start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date must be before end_date")


@router.get("/metrics/usage", response_model=UsageMetrics)
async def usage_metrics(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Execution usage of the organization."""
    _check_range(start_date, end_date)
    return await service.usage_metrics(current_user.org_id, start_date, end_date)


@router.get("/analytics/tenant/stats", response_model=TenantStats)
async def tenant_stats(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    current_user: User = Depends(get_current_user),
    tenant_id: int = Depends(get_current_tenant_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Workflow, user and execution counts of the current tenant."""
    _check_range(start_date, end_date)
    return await service.tenant_stats(current_user.org_id, tenant_id, start_date, end_date)


@router.get("/analytics/tenant/trends", response_model=List[TrendPoint])
async def tenant_trends(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    tenant_id: int = Depends(get_current_tenant_id),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Daily execution counts of the current tenant."""
    return await service.tenant_trends(current_user.org_id, tenant_id, days)


@router.get("/analytics/admin", response_model=AdminAnalytics)
async def admin_analytics(
    admin_user: User = Depends(get_admin_user),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Recurring revenue, subscriptions and churn."""
    return await service.admin_analytics(admin_user.org_id)
