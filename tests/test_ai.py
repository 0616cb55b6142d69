"""Test prompt templates and workflow generation."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import openai
import pytest

from pumpflix.ai.generator import GenerationError, WorkflowGenerator, parse_workflow
from pumpflix.exceptions import ConfigurationError
from pumpflix.placeholders import find_placeholders, render

API = "/api/v1"


@pytest.mark.unit
class TestPlaceholders:
    """``{{name}}`` handling."""

    def test_find_in_order(self):
        assert find_placeholders("Hi {{name}}, {{ team }} says {{name}}") == ["name", "team"]

    def test_render_leaves_unknown(self):
        assert render("{{a}} and {{b}}", {"a": 1}) == "1 and {{b}}"


@pytest.mark.unit
class TestParseWorkflow:
    """Model replies are parsed into graphs."""

    def test_plain_json(self):
        workflow = parse_workflow('{"nodes": [{"id": "1"}], "edges": []}')
        assert workflow["nodes"] == [{"id": "1"}]

    def test_fenced_json(self):
        workflow = parse_workflow('```json\n{"nodes": [], "edges": []}\n```')
        assert workflow == {"nodes": [], "edges": []}

    @pytest.mark.parametrize(
        "content",
        [None, "", "not json", '["nodes"]', '{"nodes": []}', '{"nodes": {}, "edges": []}'],
    )
    def test_invalid(self, content):
        with pytest.raises(GenerationError):
            parse_workflow(content)


@pytest.mark.unit
class TestWorkflowGenerator:
    """OpenAI client wrapper."""

    def test_requires_api_key(self, monkeypatch):
        monkeypatch.setattr("pumpflix.ai.generator.settings.openai_api_key", None)

        with pytest.raises(ConfigurationError):
            WorkflowGenerator()

    async def test_generate(self):
        generator = WorkflowGenerator(api_key="sk-test", model="gpt-test")
        reply = SimpleNamespace(
            choices=[
                SimpleNamespace(
                    message=SimpleNamespace(content='{"nodes": [{"id": "1"}], "edges": []}')
                )
            ]
        )
        generator.client = SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(return_value=reply)))
        )

        workflow = await generator.generate("Send new leads to Slack")

        assert workflow["nodes"] == [{"id": "1"}]
        call = generator.client.chat.completions.create.await_args
        assert call.kwargs["model"] == "gpt-test"
        assert call.kwargs["messages"][1] == {"role": "user", "content": "Send new leads to Slack"}

    async def test_provider_error(self):
        generator = WorkflowGenerator(api_key="sk-test")
        generator.client = SimpleNamespace(
            chat=SimpleNamespace(
                completions=SimpleNamespace(
                    create=AsyncMock(side_effect=openai.OpenAIError("rate limited"))
                )
            )
        )

        with pytest.raises(GenerationError):
            await generator.generate("Send new leads to Slack")


async def _create_prompt(client, headers, **overrides):
    data = {
        "name": "Lead summary",
        "template": "Summarize {{lead_name}} from {{company}} for {{channel}}",
        "category": "sales",
        "metadata": {"model": "gpt-4"},
    }
    data.update(overrides)
    response = await client.post(f"{API}/ai/prompts", json=data, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.integration
class TestPromptAPI:
    """Prompt template endpoints."""

    async def test_create_detects_variables(self, async_client, owner):
        prompt = await _create_prompt(async_client, owner["headers"])

        assert prompt["variables"] == ["lead_name", "company", "channel"]
        assert prompt["metadata"] == {"model": "gpt-4"}
        assert prompt["created_by"] == owner["user"]["id"]

    async def test_list_with_paging(self, async_client, owner):
        await _create_prompt(async_client, owner["headers"], name="One")
        await _create_prompt(async_client, owner["headers"], name="Two", category="support")
        await _create_prompt(async_client, owner["headers"], name="Three")

        response = await async_client.get(
            f"{API}/ai/prompts", params={"page": 2, "limit": 2}, headers=owner["headers"]
        )
        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert body["page"] == 2
        assert len(body["items"]) == 1

        response = await async_client.get(
            f"{API}/ai/prompts", params={"category": "support"}, headers=owner["headers"]
        )
        assert [p["name"] for p in response.json()["items"]] == ["Two"]

    async def test_update_redetects_variables(self, async_client, owner):
        prompt = await _create_prompt(async_client, owner["headers"])

        response = await async_client.patch(
            f"{API}/ai/prompts/{prompt['id']}",
            json={"template": "Hello {{first_name}}"},
            headers=owner["headers"],
        )
        assert response.status_code == 200
        assert response.json()["variables"] == ["first_name"]
        assert response.json()["name"] == "Lead summary"

    async def test_delete(self, async_client, owner):
        prompt = await _create_prompt(async_client, owner["headers"])

        response = await async_client.delete(
            f"{API}/ai/prompts/{prompt['id']}", headers=owner["headers"]
        )
        assert response.status_code == 204

        response = await async_client.get(
            f"{API}/ai/prompts/{prompt['id']}", headers=owner["headers"]
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Prompt not found"

    async def test_render(self, async_client, owner):
        prompt = await _create_prompt(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/ai/prompts/{prompt['id']}/render",
            json={"variables": {"lead_name": "Ada", "company": "Acme", "channel": "#sales"}},
            headers=owner["headers"],
        )
        assert response.status_code == 200
        assert response.json()["prompt"] == "Summarize Ada from Acme for #sales"

    async def test_render_missing_variables(self, async_client, owner):
        prompt = await _create_prompt(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/ai/prompts/{prompt['id']}/render",
            json={"variables": {"lead_name": "Ada"}},
            headers=owner["headers"],
        )
        assert response.status_code == 400
        assert response.json()["missing"] == ["company", "channel"]


@pytest.mark.integration
class TestGenerateAPI:
    """Workflow generation endpoint."""

    async def test_generate_without_saving(self, async_client, owner, workflow_generator):
        response = await async_client.post(
            f"{API}/ai/generate",
            json={"prompt": "When a form is submitted, post to Slack"},
            headers=owner["headers"],
        )
        assert response.status_code == 200
        body = response.json()
        assert len(body["workflow"]["nodes"]) == 2
        assert body["saved"] is None
        workflow_generator.generate.assert_awaited_once_with(
            "When a form is submitted, post to Slack"
        )

    async def test_generate_and_save(self, async_client, owner):
        response = await async_client.post(
            f"{API}/ai/generate",
            json={
                "prompt": "When a form is submitted, post to Slack",
                "save": True,
                "name": "Form alerts",
            },
            headers=owner["headers"],
        )
        assert response.status_code == 200
        saved = response.json()["saved"]
        assert saved["name"] == "Form alerts"
        assert saved["tags"] == ["ai-generated"]
        assert saved["status"] == "draft"

        listed = await async_client.get(f"{API}/workflows", headers=owner["headers"])
        assert listed.json()["total"] == 1

    async def test_prompt_too_short(self, async_client, owner):
        response = await async_client.post(
            f"{API}/ai/generate", json={"prompt": "short"}, headers=owner["headers"]
        )
        assert response.status_code == 422

    async def test_generation_failure(self, async_client, owner, workflow_generator):
        workflow_generator.generate.side_effect = GenerationError("Invalid workflow structure generated")

        response = await async_client.post(
            f"{API}/ai/generate",
            json={"prompt": "When a form is submitted, post to Slack"},
            headers=owner["headers"],
        )
        assert response.status_code == 502
        assert response.json()["error"] == "Failed to generate workflow"
