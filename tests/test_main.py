"""Test application-level endpoints and error handling."""

from unittest.mock import AsyncMock

import pytest

from pumpflix.database import db_manager

API = "/api/v1"


@pytest.mark.integration
class TestHealth:
    """Health and metrics endpoints."""

    async def test_healthy(self, async_client, monkeypatch):
        monkeypatch.setattr(
            db_manager,
            "health_check",
            AsyncMock(return_value={
                "database": {"status": "healthy", "error": None},
                "redis": {"status": "disabled", "error": None},
            }),
        )

        response = await async_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "PumpFlix"
        assert body["environment"] == "testing"
        assert body["databases"]["redis"]["status"] == "disabled"

    async def test_degraded(self, async_client, monkeypatch):
        monkeypatch.setattr(
            db_manager,
            "health_check",
            AsyncMock(return_value={
                "database": {"status": "unhealthy", "error": "connection refused"},
                "redis": {"status": "healthy", "error": None},
            }),
        )

        response = await async_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    async def test_metrics(self, async_client):
        await async_client.get("/health")

        response = await async_client.get("/metrics")
        assert response.status_code == 200
        assert "http_requests_total" in response.text


@pytest.mark.integration
class TestErrorEnvelope:
    """Every error is a JSON ``{error, message}`` body."""

    async def test_unknown_route(self, async_client):
        response = await async_client.get(f"{API}/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found", "message": "Not Found"}

    async def test_invalid_token(self, async_client):
        response = await async_client.get(
            f"{API}/workflows", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    async def test_validation_error(self, async_client, owner):
        response = await async_client.post(
            f"{API}/workflows", json={"name": ""}, headers=owner["headers"]
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "Validation Error"
        assert body["message"].startswith("name")
        assert body["details"]
