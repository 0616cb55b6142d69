"""Test execution lifecycle."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from pumpflix.jobs.queue import JobType

API = "/api/v1"


async def _start(client, helpers, owner, **input_data):
    workflow = await helpers.create_workflow(client, owner["headers"])
    response = await client.post(
        f"{API}/executions",
        json={"workflow_id": workflow["id"], "input": input_data},
        headers=owner["headers"],
    )
    assert response.status_code == 201, response.text
    return workflow, response.json()


@pytest.mark.integration
class TestExecutions:
    """Starting, completing and cancelling executions."""

    async def test_start_publishes_event(self, async_client, helpers, subscribed_owner, relay):
        websocket = MagicMock()
        websocket.send_text = AsyncMock()
        workflow = await helpers.create_workflow(async_client, subscribed_owner["headers"])
        relay.subscribe(websocket, workflow["id"], subscribed_owner["user"]["id"])

        response = await async_client.post(
            f"{API}/executions",
            json={"workflow_id": workflow["id"]},
            headers=subscribed_owner["headers"],
        )
        assert response.status_code == 201

        websocket.send_text.assert_awaited_once()
        event = json.loads(websocket.send_text.await_args.args[0])
        assert event["event_type"] == "execution_started"
        assert event["execution_id"] == response.json()["id"]
        assert event["data"]["status"] == "running"

    async def test_start_requires_subscription(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/executions", json={"workflow_id": workflow["id"]}, headers=owner["headers"]
        )
        assert response.status_code == 403
        assert response.json()["action"] == "upgrade"

    async def test_complete_success(self, async_client, helpers, subscribed_owner, job_queue):
        _, execution = await _start(async_client, helpers, subscribed_owner)

        response = await async_client.post(
            f"{API}/executions/{execution['id']}/complete",
            json={"status": "success"},
            headers=subscribed_owner["headers"],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "success"
        assert data["finished_at"] is not None
        assert data["duration_ms"] >= 0
        assert data["error"] is None

        job_queue.enqueue.assert_called_with(
            JobType.EXECUTION_AUDIT, {"execution_id": execution["id"]}
        )

    async def test_complete_failure_notifies(self, async_client, helpers, subscribed_owner):
        _, execution = await _start(async_client, helpers, subscribed_owner)

        response = await async_client.post(
            f"{API}/executions/{execution['id']}/complete",
            json={"status": "error", "error": "Sheet not found"},
            headers=subscribed_owner["headers"],
        )
        assert response.status_code == 200
        assert response.json()["status"] == "failed"
        assert response.json()["error"] == "Sheet not found"

        notifications = await async_client.get(
            f"{API}/notifications", headers=subscribed_owner["headers"]
        )
        assert [n["type"] for n in notifications.json()] == ["execution_failed"]
        assert notifications.json()[0]["metadata"]["execution_id"] == execution["id"]

    async def test_complete_twice_conflicts(self, async_client, helpers, subscribed_owner):
        _, execution = await _start(async_client, helpers, subscribed_owner)
        url = f"{API}/executions/{execution['id']}/complete"

        await async_client.post(url, json={"status": "success"}, headers=subscribed_owner["headers"])
        response = await async_client.post(
            url, json={"status": "success"}, headers=subscribed_owner["headers"]
        )
        assert response.status_code == 409
        assert response.json()["error"] == "Invalid execution state"

    async def test_cancel(self, async_client, helpers, subscribed_owner):
        _, execution = await _start(async_client, helpers, subscribed_owner)

        response = await async_client.post(
            f"{API}/executions/{execution['id']}/cancel", headers=subscribed_owner["headers"]
        )
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        response = await async_client.post(
            f"{API}/executions/{execution['id']}/cancel", headers=subscribed_owner["headers"]
        )
        assert response.status_code == 409

    async def test_list_and_get(self, async_client, helpers, subscribed_owner):
        workflow, execution = await _start(async_client, helpers, subscribed_owner, row=1)

        response = await async_client.get(
            f"{API}/executions",
            params={"workflow_id": workflow["id"]},
            headers=subscribed_owner["headers"],
        )
        assert response.status_code == 200
        assert response.json()["total"] == 1

        response = await async_client.get(
            f"{API}/executions", params={"status": "success"}, headers=subscribed_owner["headers"]
        )
        assert response.json()["total"] == 0

        response = await async_client.get(
            f"{API}/executions/{execution['id']}", headers=subscribed_owner["headers"]
        )
        assert response.status_code == 200
        assert response.json()["input"] == {"row": 1}

    async def test_unknown_execution(self, async_client, owner):
        response = await async_client.get(f"{API}/executions/999", headers=owner["headers"])
        assert response.status_code == 404
        assert response.json()["error"] == "Execution not found"
