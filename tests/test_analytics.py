"""Test usage metrics and analytics."""

from datetime import timedelta

import pytest

from pumpflix.billing.models import PlanInterval, SubscriptionStatus
from pumpflix.db_types import utcnow
from pumpflix.executions.models import ExecutionLog, ExecutionStatus

API = "/api/v1"


async def _add_executions(session, user, workflow_id, runs):
    now = utcnow()
    for status, duration, age in runs:
        started_at = now - age
        session.add(
            ExecutionLog(
                workflow_id=workflow_id,
                user_id=user["user"]["id"],
                org_id=user["user"]["org_id"],
                status=status,
                input={},
                meta={},
                started_at=started_at,
                finished_at=started_at + timedelta(milliseconds=duration),
                duration_ms=duration,
            )
        )
    await session.commit()


RUNS = [
    (ExecutionStatus.SUCCESS, 1000, timedelta(seconds=3)),
    (ExecutionStatus.SUCCESS, 2000, timedelta(seconds=2)),
    (ExecutionStatus.SUCCESS, 3000, timedelta(seconds=1)),
    (ExecutionStatus.FAILED, 2000, timedelta(seconds=1)),
]


@pytest.mark.integration
class TestUsageMetrics:
    """Organization usage metrics."""

    async def test_usage(self, async_client, test_session, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        other = await helpers.create_workflow(async_client, owner["headers"], name="Digest")
        await _add_executions(test_session, owner, workflow["id"], RUNS)
        await _add_executions(
            test_session, owner, other["id"], [(ExecutionStatus.CANCELLED, 0, timedelta(seconds=1))]
        )

        response = await async_client.get(f"{API}/metrics/usage", headers=owner["headers"])
        assert response.status_code == 200
        metrics = response.json()
        assert metrics["total_executions"] == 5
        assert metrics["success_rate"] == 60.0
        assert metrics["average_duration_ms"] == 1600.0
        assert metrics["by_status"] == {
            "pending": 0,
            "running": 0,
            "success": 3,
            "failed": 1,
            "cancelled": 1,
        }
        assert metrics["by_user"] == [{"user_id": owner["user"]["id"], "executions": 5}]
        assert metrics["by_workflow"][0] == {
            "workflow_id": workflow["id"],
            "name": "Lead sync",
            "executions": 4,
        }

    async def test_empty_usage(self, async_client, owner):
        response = await async_client.get(f"{API}/metrics/usage", headers=owner["headers"])

        metrics = response.json()
        assert metrics["total_executions"] == 0
        assert metrics["success_rate"] == 0.0
        assert set(metrics["by_status"].values()) == {0}

    async def test_date_range(self, async_client, test_session, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        await _add_executions(
            test_session,
            owner,
            workflow["id"],
            [
                (ExecutionStatus.SUCCESS, 100, timedelta(days=10)),
                (ExecutionStatus.SUCCESS, 100, timedelta(days=1)),
            ],
        )
        start = (utcnow() - timedelta(days=5)).isoformat()

        response = await async_client.get(
            f"{API}/metrics/usage", params={"start_date": start}, headers=owner["headers"]
        )
        assert response.json()["total_executions"] == 1

    async def test_start_after_end(self, async_client, owner):
        response = await async_client.get(
            f"{API}/metrics/usage",
            params={"start_date": "2024-03-10T00:00:00", "end_date": "2024-03-01T00:00:00"},
            headers=owner["headers"],
        )
        assert response.status_code == 400

    async def test_other_organizations_are_excluded(self, async_client, test_session, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        await _add_executions(test_session, owner, workflow["id"], RUNS)
        other = await helpers.register(
            async_client, email="other@example.com", organization_name="Other"
        )

        response = await async_client.get(f"{API}/metrics/usage", headers=other["headers"])
        assert response.json()["total_executions"] == 0


@pytest.mark.integration
class TestTenantAnalytics:
    """Per-tenant statistics and trends."""

    async def test_stats(self, async_client, test_session, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"], status="active")
        await helpers.create_workflow(async_client, owner["headers"], name="Draft")
        await _add_executions(test_session, owner, workflow["id"], RUNS)
        await helpers.add_member(async_client, test_session, owner)

        response = await async_client.get(f"{API}/analytics/tenant/stats", headers=owner["headers"])
        assert response.status_code == 200
        stats = response.json()
        assert stats["tenant_id"] == owner["user"]["tenant_id"]
        assert stats["workflows"] == {"total": 2, "active": 1}
        assert stats["users"]["total"] == 2
        assert stats["users"]["by_role"] == {"admin": 1, "user": 1}
        assert stats["executions"]["total"] == 4
        assert stats["executions"]["by_status"]["success"] == 3
        assert stats["executions"]["average_duration_ms"] == 2000.0
        assert stats["executions"]["this_month"] >= stats["executions"]["today"]

    async def test_stats_are_tenant_scoped(self, async_client, test_session, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        await _add_executions(test_session, owner, workflow["id"], RUNS)

        tenant = await async_client.post(
            f"{API}/tenants", json={"name": "Ops"}, headers=owner["headers"]
        )
        switched = await async_client.post(
            f"{API}/tenants/switch", json={"tenant_id": tenant.json()["id"]}, headers=owner["headers"]
        )
        assert switched.status_code == 200

        response = await async_client.get(f"{API}/analytics/tenant/stats", headers=owner["headers"])
        assert response.json()["workflows"]["total"] == 0
        assert response.json()["executions"]["total"] == 0

    async def test_trends(self, async_client, test_session, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        await _add_executions(
            test_session,
            owner,
            workflow["id"],
            [
                (ExecutionStatus.SUCCESS, 100, timedelta(days=2, hours=1)),
                (ExecutionStatus.FAILED, 300, timedelta(days=2, hours=1)),
                (ExecutionStatus.SUCCESS, 500, timedelta(days=40)),
            ],
        )

        response = await async_client.get(
            f"{API}/analytics/tenant/trends", params={"days": 7}, headers=owner["headers"]
        )
        assert response.status_code == 200
        points = response.json()
        assert len(points) == 1
        assert points[0]["total"] == 2
        assert points[0]["success"] == 1
        assert points[0]["failed"] == 1
        assert points[0]["average_duration_ms"] == 200.0

    async def test_trends_days_bounds(self, async_client, owner):
        response = await async_client.get(
            f"{API}/analytics/tenant/trends", params={"days": 0}, headers=owner["headers"]
        )
        assert response.status_code == 422


@pytest.mark.integration
class TestAdminAnalytics:
    """Revenue and churn for administrators."""

    async def test_mrr_and_churn(self, async_client, test_session, helpers, subscribed_owner):
        plan = subscribed_owner["plan"]
        cancelled = await helpers.subscribe(
            test_session, subscribed_owner, plan, status=SubscriptionStatus.CANCELLED
        )
        cancelled.cancelled_at = utcnow() - timedelta(days=3)
        await test_session.commit()

        response = await async_client.get(
            f"{API}/analytics/admin", headers=subscribed_owner["headers"]
        )
        assert response.status_code == 200
        body = response.json()
        assert body["mrr"] == 99.0
        assert body["active_subscriptions"] == 1
        assert body["trialing_subscriptions"] == 0
        assert body["cancelled_last_30_days"] == 1
        assert body["churn_rate"] == 50.0
        assert body["plans"] == [{"plan_id": plan.id, "name": "Pro", "subscriptions": 1}]

    async def test_yearly_plans_count_monthly(self, async_client, test_session, helpers, owner):
        plan = await helpers.create_plan(
            test_session,
            name="Annual",
            price=120,
            interval=PlanInterval.YEAR,
            stripe_price_id="price_year",
        )
        await helpers.subscribe(test_session, owner, plan, status=SubscriptionStatus.TRIALING)

        response = await async_client.get(f"{API}/analytics/admin", headers=owner["headers"])
        assert response.json()["mrr"] == 10.0
        assert response.json()["trialing_subscriptions"] == 1

    async def test_requires_admin(self, async_client, test_session, helpers, owner):
        member = await helpers.add_member(async_client, test_session, owner)

        response = await async_client.get(f"{API}/analytics/admin", headers=member["headers"])
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"
