"""Test workflow templates."""

import pytest

from pumpflix.placeholders import find_placeholders_in, render_in
from pumpflix.templates.models import TemplateType
from pumpflix.templates.schemas import TemplateCreate
from pumpflix.templates.service import (
    TemplateService,
    extract_input_variables,
    extract_required_credentials,
)

API = "/api/v1"

SHEET_CONFIG = {
    "nodes": [
        {"id": "1", "type": "trigger", "params": {"schedule": "{{ cron }}"}},
        {
            "id": "2",
            "type": "sheets",
            "provider": "google_sheets",
            "params": {"sheet": "{{sheet_name}}", "range": "A1:{{last_column}}9"},
        },
        {"id": "3", "type": "notify", "provider": "slack", "params": {"channel": "#{{sheet_name}}"}},
        {"id": "4", "type": "http", "provider": "ftp"},
    ],
    "edges": [{"source": "1", "target": "2"}, {"source": "2", "target": "3"}],
}


@pytest.mark.unit
class TestTemplateExtraction:
    """Variables and credential requirements come from the config."""

    def test_input_variables(self):
        assert extract_input_variables(SHEET_CONFIG) == ["cron", "sheet_name", "last_column"]
        assert extract_input_variables({}) == []

    def test_required_credentials_ignore_unknown_providers(self):
        assert extract_required_credentials(SHEET_CONFIG) == ["google_sheets", "slack"]

    def test_render_in_keeps_unknown_placeholders(self):
        rendered = render_in(SHEET_CONFIG, {"sheet_name": "Leads"})

        assert rendered["nodes"][1]["params"]["sheet"] == "Leads"
        assert rendered["nodes"][2]["params"]["channel"] == "#Leads"
        assert rendered["nodes"][0]["params"]["schedule"] == "{{ cron }}"
        assert find_placeholders_in(rendered) == ["cron", "last_column"]


async def _prebuilt(session, **overrides):
    data = {
        "name": "Lead capture",
        "description": "Store leads in a sheet",
        "category": "sales",
        "type": TemplateType.PREBUILT,
        "config": SHEET_CONFIG,
        "is_public": True,
    }
    data.update(overrides)
    return await TemplateService(session).create_template(TemplateCreate(**data))


@pytest.mark.integration
class TestTemplateAPI:
    """Template catalogue, promotion and installation."""

    async def test_list_prebuilt(self, async_client, test_session, owner):
        template = await _prebuilt(test_session)
        await _prebuilt(test_session, name="Hidden", is_public=False)

        response = await async_client.get(f"{API}/templates", headers=owner["headers"])
        assert response.status_code == 200
        templates = response.json()
        assert [t["id"] for t in templates] == [template.id]
        assert templates[0]["required_credentials"] == ["google_sheets", "slack"]
        assert templates[0]["org_id"] is None

    async def test_promote_workflow(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"], config=SHEET_CONFIG)

        response = await async_client.post(
            f"{API}/templates/promote",
            json={"workflow_id": workflow["id"], "name": "Team lead sync"},
            headers=owner["headers"],
        )
        assert response.status_code == 201
        template = response.json()
        assert template["type"] == "user"
        assert template["org_id"] == owner["user"]["org_id"]
        assert template["input_variables"] == ["cron", "sheet_name", "last_column"]
        assert template["description"] == workflow["description"]

        listed = await async_client.get(
            f"{API}/templates", params={"type": "user"}, headers=owner["headers"]
        )
        assert [t["id"] for t in listed.json()] == [template["id"]]

    async def test_save_workflow_as_template(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/workflows/{workflow['id']}/template", json={}, headers=owner["headers"]
        )
        assert response.status_code == 201
        assert response.json()["name"] == "Lead sync"

    async def test_user_templates_are_private(self, async_client, helpers, owner):
        workflow = await helpers.create_workflow(async_client, owner["headers"])
        promoted = await async_client.post(
            f"{API}/templates/promote",
            json={"workflow_id": workflow["id"], "name": "Private"},
            headers=owner["headers"],
        )
        other = await helpers.register(
            async_client, email="other@example.com", organization_name="Other"
        )

        response = await async_client.get(
            f"{API}/templates/{promoted.json()['id']}", headers=other["headers"]
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Template not found"

    async def test_install_with_variables(self, async_client, test_session, owner):
        template = await _prebuilt(test_session)

        response = await async_client.post(
            f"{API}/templates/{template.id}/install",
            json={"variables": {"cron": "0 9 * * *", "sheet_name": "Leads", "last_column": "F"}},
            headers=owner["headers"],
        )
        assert response.status_code == 201
        workflow = response.json()
        assert workflow["name"] == "Lead capture (Copy)"
        assert workflow["status"] == "draft"
        assert workflow["template_id"] == template.id
        assert workflow["tenant_id"] == owner["user"]["tenant_id"]
        assert workflow["config"]["nodes"][1]["params"] == {"sheet": "Leads", "range": "A1:F9"}

        instances = await async_client.get(f"{API}/templates/instances", headers=owner["headers"])
        assert len(instances.json()) == 1
        assert instances.json()[0]["workflow_id"] == workflow["id"]
        assert instances.json()[0]["variables"]["sheet_name"] == "Leads"

        detail = await async_client.get(f"{API}/templates/{template.id}", headers=owner["headers"])
        assert detail.json()["install_count"] == 1

    async def test_install_with_missing_variables(self, async_client, test_session, owner):
        template = await _prebuilt(test_session)

        response = await async_client.post(
            f"{API}/templates/{template.id}/install",
            json={"variables": {"sheet_name": "Leads"}},
            headers=owner["headers"],
        )
        assert response.status_code == 400
        assert "cron" in response.json()["message"]

    async def test_install_without_variables_keeps_placeholders(
        self, async_client, test_session, owner
    ):
        template = await _prebuilt(test_session)

        response = await async_client.post(
            f"{API}/templates/{template.id}/install",
            json={"name": "My copy"},
            headers=owner["headers"],
        )
        assert response.status_code == 201
        assert response.json()["name"] == "My copy"
        assert response.json()["config"] == SHEET_CONFIG
