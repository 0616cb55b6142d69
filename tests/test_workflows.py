"""Test workflow management and execution quota."""

import pytest
from sqlalchemy import func, select

from pumpflix.billing.models import SubscriptionStatus
from pumpflix.exceptions import ServiceUnavailableError
from pumpflix.executions.models import ExecutionLog
from pumpflix.jobs.queue import JobType
from pumpflix.notifications.models import Notification, NotificationType
from pumpflix.workflows.service import referenced_credential_ids

API = "/api/v1"


@pytest.mark.unit
def test_referenced_credential_ids():
    """Credential references are collected once, in node order."""
    config = {
        "nodes": [
            {"id": "1", "type": "trigger"},
            {"id": "2", "type": "sheets", "credential_id": 7},
            {"id": "3", "type": "slack", "credential_id": 3},
            {"id": "4", "type": "sheets", "credential_id": 7},
            {"id": "5", "credential_id": "not-an-id"},
            "garbage",
        ]
    }
    assert referenced_credential_ids(config) == [7, 3]
    assert referenced_credential_ids({}) == []
    assert referenced_credential_ids(None) == []


@pytest.mark.integration
class TestWorkflowCRUD:
    """Create, read, update and delete workflows."""

    async def test_create_workflow(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        assert workflow["name"] == "Lead sync"
        assert workflow["status"] == "draft"
        assert workflow["is_active"] is False
        assert workflow["tenant_id"] == owner["user"]["tenant_id"]
        assert workflow["org_id"] == owner["user"]["org_id"]
        assert workflow["tags"] == ["sales"]

    async def test_create_requires_name(self, async_client, owner):
        response = await async_client.post(
            f"{API}/workflows", json={"config": {}}, headers=owner["headers"]
        )
        assert response.status_code == 422

    async def test_invalid_config_shape(self, async_client, owner):
        response = await async_client.post(
            f"{API}/workflows",
            json={"name": "Bad", "config": {"nodes": "not-a-list"}},
            headers=owner["headers"],
        )
        assert response.status_code == 422

    async def test_list_and_filter(self, async_client, helpers, owner):
        await helpers.create_workflow(async_client, owner["headers"], name="Lead sync")
        await helpers.create_workflow(
            async_client,
            owner["headers"],
            name="Invoice reminder",
            description="Email overdue invoices",
            status="active",
        )

        response = await async_client.get(f"{API}/workflows", headers=owner["headers"])
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 2
        assert body["limit"] == 20
        assert body["offset"] == 0

        response = await async_client.get(
            f"{API}/workflows", params={"status": "active"}, headers=owner["headers"]
        )
        assert [w["name"] for w in response.json()["items"]] == ["Invoice reminder"]

        response = await async_client.get(
            f"{API}/workflows", params={"search": "lead"}, headers=owner["headers"]
        )
        assert [w["name"] for w in response.json()["items"]] == ["Lead sync"]

        response = await async_client.get(
            f"{API}/workflows", params={"search": "overdue"}, headers=owner["headers"]
        )
        assert [w["name"] for w in response.json()["items"]] == ["Invoice reminder"]

    async def test_update_workflow(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.patch(
            f"{API}/workflows/{workflow['id']}",
            json={"name": "Renamed", "status": "active"},
            headers=owner["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Renamed"
        assert data["status"] == "active"
        assert data["is_active"] is True
        assert data["tags"] == ["sales"]

    async def test_delete_workflow(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.delete(
            f"{API}/workflows/{workflow['id']}", headers=owner["headers"]
        )
        assert response.status_code == 204

        response = await async_client.get(
            f"{API}/workflows/{workflow['id']}", headers=owner["headers"]
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Workflow not found"

    async def test_workflows_are_isolated_between_organizations(
        self, async_client, helpers, owner
    ):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        other = await helpers.register(
            async_client, email="other@example.com", organization_name="Other"
        )

        response = await async_client.get(
            f"{API}/workflows/{workflow['id']}", headers=other["headers"]
        )
        assert response.status_code == 404

        response = await async_client.get(f"{API}/workflows", headers=other["headers"])
        assert response.json()["total"] == 0

    async def test_workflows_are_scoped_to_active_tenant(self, async_client, helpers, owner):
        await helpers.create_workflow(async_client, owner["headers"])

        tenant = await async_client.post(
            f"{API}/tenants", json={"name": "Ops"}, headers=owner["headers"]
        )
        await async_client.post(
            f"{API}/tenants/switch",
            json={"tenant_id": tenant.json()["id"]},
            headers=owner["headers"],
        )

        response = await async_client.get(f"{API}/workflows", headers=owner["headers"])
        assert response.json()["total"] == 0


@pytest.mark.integration
class TestWorkflowLifecycle:
    """Archive and clone."""

    async def test_archive_hides_and_freezes(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/archive", headers=owner["headers"]
        )
        assert response.status_code == 200
        assert response.json()["status"] == "archived"
        assert response.json()["archived_at"] is not None

        listed = await async_client.get(f"{API}/workflows", headers=owner["headers"])
        assert listed.json()["total"] == 0

        listed = await async_client.get(
            f"{API}/workflows", params={"include_archived": True}, headers=owner["headers"]
        )
        assert listed.json()["total"] == 1

        response = await async_client.patch(
            f"{API}/workflows/{workflow['id']}",
            json={"name": "Nope"},
            headers=owner["headers"],
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Workflow archived"

    async def test_clone(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"], status="active")

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/clone", headers=owner["headers"]
        )
        assert response.status_code == 201
        clone = response.json()
        assert clone["id"] != workflow["id"]
        assert clone["name"] == "Lead sync (Clone)"
        assert clone["status"] == "draft"
        assert clone["config"] == workflow["config"]


@pytest.mark.integration
class TestWorkflowExecution:
    """Executions go through the subscription quota."""

    async def test_execute_without_subscription(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/execute", json={}, headers=owner["headers"]
        )
        assert response.status_code == 403
        assert response.json() == {
            "error": "No active subscription",
            "message": "Please subscribe to execute workflows",
            "action": "upgrade",
        }

    async def test_cancelled_subscription_is_not_entitled(
        self, async_client, test_session, helpers, owner
    ):
        plan = await helpers.create_plan(test_session)
        await helpers.subscribe(test_session, owner, plan, status=SubscriptionStatus.CANCELLED)
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/execute", json={}, headers=owner["headers"]
        )
        assert response.status_code == 403
        assert response.json()["error"] == "No active subscription"

    async def test_execute_success(
        self, async_client, test_session, helpers, subscribed_owner, job_queue
    ):
        workflow = await helpers.create_workflow(async_client, subscribed_owner["headers"])

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/execute",
            json={"input": {"email": "lead@example.com"}},
            headers=subscribed_owner["headers"],
        )
        assert response.status_code == 201
        execution = response.json()
        assert execution["status"] == "running"
        assert execution["workflow_id"] == workflow["id"]
        assert execution["input"] == {"email": "lead@example.com"}
        assert execution["metadata"] == {"trigger": "manual"}

        job_queue.enqueue.assert_called_once_with(
            JobType.WORKFLOW_EXECUTION, {"execution_id": execution["id"]}
        )

        subscription = subscribed_owner["subscription"]
        await test_session.refresh(subscription)
        assert subscription.current_executions == 1

        detail = await async_client.get(
            f"{API}/workflows/{workflow['id']}", headers=subscribed_owner["headers"]
        )
        assert detail.json()["last_execution_at"] is not None

    async def test_execute_with_queue_down_records_nothing(
        self, async_client, test_session, helpers, subscribed_owner, job_queue
    ):
        workflow = await helpers.create_workflow(async_client, subscribed_owner["headers"])
        job_queue.enqueue.side_effect = ServiceUnavailableError("Job queue is unavailable")

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/execute",
            json={},
            headers=subscribed_owner["headers"],
        )
        assert response.status_code == 503
        assert response.json()["error"] == "Service Unavailable"

        executions = await test_session.scalar(select(func.count()).select_from(ExecutionLog))
        assert executions == 0
        subscription = subscribed_owner["subscription"]
        await test_session.refresh(subscription)
        assert subscription.current_executions == 0

        detail = await async_client.get(
            f"{API}/workflows/{workflow['id']}", headers=subscribed_owner["headers"]
        )
        assert detail.json()["last_execution_at"] is None

    async def test_execution_limit_reached(self, async_client, test_session, helpers, owner):
        plan = await helpers.create_plan(test_session, execution_limit=5)
        await helpers.subscribe(test_session, owner, plan, current_executions=5)
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/execute", json={}, headers=owner["headers"]
        )
        assert response.status_code == 403
        body = response.json()
        assert body["error"] == "Execution limit reached"
        assert body["action"] == "upgrade"
        assert body["limit"] == 5
        assert body["current"] == 5

        result = await test_session.execute(
            select(Notification).where(Notification.user_id == owner["user"]["id"])
        )
        notifications = result.scalars().all()
        assert [n.type for n in notifications] == [NotificationType.USAGE_WARNING]

    async def test_execute_archived_workflow(
        self, async_client, helpers, subscribed_owner, job_queue
    ):
        workflow = await helpers.create_workflow(async_client, subscribed_owner["headers"])
        await async_client.post(
            f"{API}/workflows/{workflow['id']}/archive", headers=subscribed_owner["headers"]
        )

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/execute",
            json={},
            headers=subscribed_owner["headers"],
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Workflow archived"
        job_queue.enqueue.assert_not_called()


@pytest.mark.integration
async def test_workflow_credentials(async_client, helpers, owner):
    """Only active credentials of the organization referenced by nodes are returned."""
    created = await async_client.post(
        f"{API}/credentials",
        json={"provider": "slack", "credentials": {"token": "xoxb-1"}, "label": "Team"},
        headers=owner["headers"],
    )
    credential_id = created.json()["id"]

    workflow = await helpers.create_workflow(
        async_client,
        owner["headers"],
        config={
            "nodes": [
                {"id": "1", "type": "trigger"},
                {"id": "2", "type": "slack", "credential_id": credential_id},
                {"id": "3", "type": "sheets", "credential_id": 9999},
            ],
            "edges": [],
        },
    )

    response = await async_client.get(
        f"{API}/workflows/{workflow['id']}/credentials", headers=owner["headers"]
    )
    assert response.status_code == 200
    credentials = response.json()
    assert [c["id"] for c in credentials] == [credential_id]
    assert "credentials" not in credentials[0]
