"""Analytics response schemas."""

from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class UserUsage(BaseModel):
    """Executions started by one user."""
    user_id: int
    executions: int


class WorkflowUsage(BaseModel):
    """Executions of one workflow."""
    workflow_id: int
    name: str
    executions: int


class UsageMetrics(BaseModel):
    """Execution usage of an organization over a time range."""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    total_executions: int
    success_rate: float
    average_duration_ms: float
    by_status: Dict[str, int]
    by_user: List[UserUsage]
    by_workflow: List[WorkflowUsage]


class WorkflowCounts(BaseModel):
    total: int
    active: int


class UserCounts(BaseModel):
    total: int
    active: int
    by_role: Dict[str, int]


class ExecutionCounts(BaseModel):
    total: int
    by_status: Dict[str, int]
    average_duration_ms: float
    today: int
    this_week: int
    this_month: int


class TenantStats(BaseModel):
    """Workflow, user and execution counts of the current tenant."""
    tenant_id: int
    workflows: WorkflowCounts
    users: UserCounts
    executions: ExecutionCounts


class TrendPoint(BaseModel):
    """Execution counts of one day."""
    date: date
    total: int
    success: int
    failed: int
    average_duration_ms: float


class PlanDistribution(BaseModel):
    plan_id: int
    name: str
    subscriptions: int


class AdminAnalytics(BaseModel):
    """Revenue and subscription health."""
    mrr: float
    active_subscriptions: int
    trialing_subscriptions: int
    cancelled_last_30_days: int
    churn_rate: float
    plans: List[PlanDistribution]
