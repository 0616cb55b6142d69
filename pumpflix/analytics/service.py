"""Usage and revenue analytics."""

from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.analytics.schemas import (
    AdminAnalytics,
    ExecutionCounts,
    PlanDistribution,
    TenantStats,
    TrendPoint,
    UsageMetrics,
    UserCounts,
    UserUsage,
    WorkflowCounts,
    WorkflowUsage,
)
from pumpflix.auth.models import User, UserRole
from pumpflix.billing.models import ENTITLED_STATUSES, Subscription, SubscriptionStatus
from pumpflix.db_types import as_utc, utcnow
from pumpflix.executions.models import ExecutionLog, ExecutionStatus
from pumpflix.workflows.models import Workflow

logger = structlog.get_logger()


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


class AnalyticsService:
    """Aggregate execution logs, users and subscriptions."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _status_counts(self, query) -> dict:
        counts = {status.value: 0 for status in ExecutionStatus}
        result = await self.db.execute(
            query.with_only_columns(ExecutionLog.status, func.count(ExecutionLog.id))
            .group_by(ExecutionLog.status)
        )
        for status, count in result.all():
            counts[status.value] = count
        return counts

    async def usage_metrics(
        self,
        org_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> UsageMetrics:
        """Execution usage of an organization."""
        base = select(ExecutionLog).where(ExecutionLog.org_id == org_id)
        if start_date:
            base = base.where(ExecutionLog.started_at >= start_date)
        if end_date:
            base = base.where(ExecutionLog.started_at <= end_date)

        by_status = await self._status_counts(base)
        total = sum(by_status.values())

        average = await self.db.scalar(base.with_only_columns(func.avg(ExecutionLog.duration_ms)))

        user_rows = await self.db.execute(
            base.with_only_columns(ExecutionLog.user_id, func.count(ExecutionLog.id))
            .group_by(ExecutionLog.user_id)
            .order_by(func.count(ExecutionLog.id).desc())
        )
        workflow_rows = await self.db.execute(
            base.join(Workflow, Workflow.id == ExecutionLog.workflow_id)
            .with_only_columns(ExecutionLog.workflow_id, Workflow.name, func.count(ExecutionLog.id))
            .group_by(ExecutionLog.workflow_id, Workflow.name)
            .order_by(func.count(ExecutionLog.id).desc())
        )

        return UsageMetrics(
            start_date=start_date,
            end_date=end_date,
            total_executions=total,
            success_rate=_rate(by_status[ExecutionStatus.SUCCESS.value], total),
            average_duration_ms=float(average or 0),
            by_status=by_status,
            by_user=[UserUsage(user_id=u, executions=c) for u, c in user_rows.all()],
            by_workflow=[
                WorkflowUsage(workflow_id=w, name=n, executions=c) for w, n, c in workflow_rows.all()
            ],
        )

    async def tenant_stats(
        self,
        org_id: int,
        tenant_id: int,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> TenantStats:
        """Counts for the current tenant."""
        workflow_filter = (Workflow.org_id == org_id, Workflow.tenant_id == tenant_id)
        total_workflows = await self.db.scalar(
            select(func.count(Workflow.id)).where(*workflow_filter)
        )
        active_workflows = await self.db.scalar(
            select(func.count(Workflow.id)).where(*workflow_filter, Workflow.is_active.is_(True))
        )

        role_rows = await self.db.execute(
            select(User.role, func.count(User.id)).where(User.org_id == org_id).group_by(User.role)
        )
        by_role = {role.value: 0 for role in UserRole}
        for role, count in role_rows.all():
            by_role[role.value] = count
        active_users = await self.db.scalar(
            select(func.count(User.id)).where(User.org_id == org_id, User.last_login_at.is_not(None))
        )

        executions = (
            select(ExecutionLog)
            .join(Workflow, Workflow.id == ExecutionLog.workflow_id)
            .where(ExecutionLog.org_id == org_id, Workflow.tenant_id == tenant_id)
        )
        if start_date:
            executions = executions.where(ExecutionLog.started_at >= start_date)
        if end_date:
            executions = executions.where(ExecutionLog.started_at <= end_date)

        by_status = await self._status_counts(executions)
        average = await self.db.scalar(
            executions.with_only_columns(func.avg(ExecutionLog.duration_ms))
        )

        now = utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        start_of_week = start_of_day - timedelta(days=start_of_day.weekday())
        start_of_month = start_of_day.replace(day=1)

        async def since(moment: datetime) -> int:
            return await self.db.scalar(
                executions.with_only_columns(func.count(ExecutionLog.id))
                .where(ExecutionLog.started_at >= moment)
            ) or 0

        return TenantStats(
            tenant_id=tenant_id,
            workflows=WorkflowCounts(total=total_workflows or 0, active=active_workflows or 0),
            users=UserCounts(total=sum(by_role.values()), active=active_users or 0, by_role=by_role),
            executions=ExecutionCounts(
                total=sum(by_status.values()),
                by_status=by_status,
                average_duration_ms=float(average or 0),
                today=await since(start_of_day),
                this_week=await since(start_of_week),
                this_month=await since(start_of_month),
            ),
        )

    async def tenant_trends(self, org_id: int, tenant_id: int, days: int = 30) -> List[TrendPoint]:
        """Daily execution counts of the tenant, oldest first."""
        since = utcnow() - timedelta(days=days)
        result = await self.db.execute(
            select(ExecutionLog.started_at, ExecutionLog.status, ExecutionLog.duration_ms)
            .join(Workflow, Workflow.id == ExecutionLog.workflow_id)
            .where(
                ExecutionLog.org_id == org_id,
                Workflow.tenant_id == tenant_id,
                ExecutionLog.started_at >= since,
            )
            .order_by(ExecutionLog.started_at)
        )

        days_seen: "OrderedDict" = OrderedDict()
        for started_at, status, duration_ms in result.all():
            day = as_utc(started_at).date()
            bucket = days_seen.setdefault(day, {"total": 0, "success": 0, "failed": 0, "durations": []})
            bucket["total"] += 1
            if status == ExecutionStatus.SUCCESS:
                bucket["success"] += 1
            elif status == ExecutionStatus.FAILED:
                bucket["failed"] += 1
            if duration_ms is not None:
                bucket["durations"].append(duration_ms)

        return [
            TrendPoint(
                date=day,
                total=bucket["total"],
                success=bucket["success"],
                failed=bucket["failed"],
                average_duration_ms=(
                    sum(bucket["durations"]) / len(bucket["durations"]) if bucket["durations"] else 0.0
                ),
            )
            for day, bucket in days_seen.items()
        ]

    async def admin_analytics(self, org_id: int) -> AdminAnalytics:
        """Recurring revenue and churn of the organization's subscriptions."""
        result = await self.db.execute(select(Subscription).where(Subscription.org_id == org_id))
        subscriptions = list(result.unique().scalars().all())

        entitled = [s for s in subscriptions if s.status in ENTITLED_STATUSES]
        mrr = sum((s.plan.monthly_price for s in entitled), Decimal("0"))

        window_start = utcnow() - timedelta(days=30)
        cancelled = [
            s for s in subscriptions
            if s.status == SubscriptionStatus.CANCELLED
            and s.cancelled_at is not None
            and as_utc(s.cancelled_at) >= window_start
        ]

        plans: "OrderedDict[int, PlanDistribution]" = OrderedDict()
        for subscription in entitled:
            entry = plans.setdefault(
                subscription.plan_id,
                PlanDistribution(plan_id=subscription.plan_id, name=subscription.plan.name, subscriptions=0),
            )
            entry.subscriptions += 1

        return AdminAnalytics(
            mrr=float(round(mrr, 2)),
            active_subscriptions=len(entitled),
            trialing_subscriptions=sum(1 for s in entitled if s.status == SubscriptionStatus.TRIALING),
            cancelled_last_30_days=len(cancelled),
            churn_rate=_rate(len(cancelled), len(entitled) + len(cancelled)),
            plans=list(plans.values()),
        )
