"""Test the audit trail."""

import csv
import io

import pytest

from pumpflix.audit.service import CSV_COLUMNS, AuditFilter, AuditService

API = "/api/v1"


async def _record(session, user, action, resource="workflow", resource_id=1, **extra):
    entry = await AuditService(session).record(
        action,
        resource,
        user["user"]["org_id"],
        resource_id=resource_id,
        user_id=user["user"]["id"],
        **extra,
    )
    await session.commit()
    return entry


@pytest.mark.unit
class TestAuditService:
    """Recording and filtering audit entries."""

    async def test_record_stringifies_resource_id(self, test_session, owner):
        entry = await _record(test_session, owner, "workflow.execution", resource_id=42)

        assert entry.resource_id == "42"
        assert entry.meta == {}

    async def test_filter_by_action(self, test_session, owner):
        await _record(test_session, owner, "credential.created", resource="credential")
        await _record(test_session, owner, "subscription.created", resource="subscription")

        logs, total = await AuditService(test_session).list_logs(
            owner["user"]["org_id"], AuditFilter(action="credential.created")
        )

        assert total == 1
        assert logs[0].resource == "credential"


@pytest.mark.integration
class TestAuditAPI:
    """Audit log listing and export."""

    async def test_list_newest_first_with_paging(self, async_client, test_session, owner):
        for number in range(3):
            await _record(test_session, owner, "workflow.execution", resource_id=number)

        response = await async_client.get(
            f"{API}/audit/logs", params={"limit": 2}, headers=owner["headers"]
        )
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert body["limit"] == 2
        assert body["offset"] == 0
        assert [log["resource_id"] for log in body["logs"]] == ["2", "1"]

        response = await async_client.get(
            f"{API}/audit/logs", params={"limit": 2, "offset": 2}, headers=owner["headers"]
        )
        assert [log["resource_id"] for log in response.json()["logs"]] == ["0"]

    async def test_default_limit(self, async_client, test_session, owner):
        response = await async_client.get(f"{API}/audit/logs", headers=owner["headers"])

        assert response.json() == {"logs": [], "total": 0, "limit": 10, "offset": 0}

    async def test_filter_by_user(self, async_client, test_session, helpers, owner):
        member = await helpers.add_member(async_client, test_session, owner)
        await _record(test_session, owner, "workflow.execution")
        await _record(test_session, member, "workflow.execution")

        response = await async_client.get(
            f"{API}/audit/logs",
            params={"user_id": member["user"]["id"]},
            headers=owner["headers"],
        )
        logs = response.json()["logs"]
        assert len(logs) == 1
        assert logs[0]["user_id"] == member["user"]["id"]

    async def test_organizations_are_isolated(self, async_client, test_session, helpers, owner):
        await _record(test_session, owner, "workflow.execution")
        other = await helpers.register(
            async_client, email="other@example.com", organization_name="Other"
        )

        response = await async_client.get(f"{API}/audit/logs", headers=other["headers"])
        assert response.json()["total"] == 0

    async def test_export_csv(self, async_client, test_session, owner):
        await _record(
            test_session,
            owner,
            "credential.created",
            resource="credential",
            resource_id=7,
            metadata={"provider": "slack"},
            ip_address="10.0.0.1",
        )

        response = await async_client.get(f"{API}/audit/logs/export", headers=owner["headers"])
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "audit-logs.csv" in response.headers["content-disposition"]

        rows = list(csv.reader(io.StringIO(response.text)))
        assert rows[0] == CSV_COLUMNS
        assert rows[1][2:7] == ["credential.created", "credential", "7", str(owner["user"]["id"]), "10.0.0.1"]
        assert rows[1][8] == '{"provider": "slack"}'

    async def test_requires_admin(self, async_client, test_session, helpers, owner):
        member = await helpers.add_member(async_client, test_session, owner)

        for path in ("/audit/logs", "/audit/logs/export"):
            response = await async_client.get(f"{API}{path}", headers=member["headers"])
            assert response.status_code == 403
            assert response.json() == {"error": "Forbidden", "message": "Admin access required"}
