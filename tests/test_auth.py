"""Test authentication, organizations and tenants."""

from uuid import UUID

import pytest

from pumpflix.auth.models import User
from pumpflix.auth.security import password_manager, token_manager

API = "/api/v1"


@pytest.mark.unit
def test_password_manager():
    """Test password hashing and verification."""
    password = "testpassword123"

    hash1 = password_manager.hash_password(password)
    hash2 = password_manager.hash_password(password)

    # Hashes should be different (due to salt)
    assert hash1 != hash2
    assert password_manager.verify_password(password, hash1)
    assert not password_manager.verify_password("wrongpassword", hash1)


@pytest.mark.unit
def test_password_strength_validation():
    """Test password strength validation."""
    for pwd in ["short1", "onlyletters", "12345678", "password1"]:
        is_strong, issues = password_manager.is_password_strong(pwd)
        assert not is_strong
        assert issues

    is_strong, issues = password_manager.is_password_strong("Automate2024")
    assert is_strong
    assert issues == []


@pytest.mark.unit
def test_token_types_are_not_interchangeable():
    """A refresh token is rejected where an access token is expected."""
    access = token_manager.create_access_token({"user_id": 1, "session_id": "abc"})
    refresh = token_manager.create_refresh_token({"user_id": 1, "session_id": "abc"})

    assert token_manager.verify_token(access, "access")["user_id"] == 1
    assert token_manager.verify_token(refresh, "access") is None
    assert token_manager.verify_token("not-a-token", "access") is None


@pytest.mark.integration
class TestRegistration:
    """Registration creates the user, its organization and a default tenant."""

    async def test_register_creates_admin_with_tenant(self, async_client, helpers):
        body = await helpers.register(async_client, email="Founder@Example.com")

        user = body["user"]
        assert user["email"] == "founder@example.com"
        assert user["role"] == "admin"
        assert user["tenant_id"] is not None
        assert body["token_type"] == "Bearer"
        assert body["refresh_token"]

        me = await async_client.get(f"{API}/auth/me", headers=body["headers"])
        assert me.status_code == 200
        data = me.json()
        assert data["organization"]["name"] == "Acme"
        assert data["tenant"]["slug"] == "default"

    async def test_users_get_distinct_uuids(self, async_client, test_session, helpers):
        first = await helpers.register(async_client)
        second = await helpers.register(
            async_client, email="second@example.com", organization_name="Second"
        )

        assert UUID(first["user"]["uuid"]) != UUID(second["user"]["uuid"])
        user = await test_session.get(User, first["user"]["id"])
        assert user.uuid == UUID(first["user"]["uuid"])

    async def test_duplicate_email_conflicts(self, async_client, helpers):
        await helpers.register(async_client)

        response = await async_client.post(
            f"{API}/auth/register",
            json={"email": "owner@example.com", "password": "Secret12345", "name": "Again"},
        )
        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

    async def test_weak_password_rejected(self, async_client):
        response = await async_client.post(
            f"{API}/auth/register",
            json={"email": "weak@example.com", "password": "onlyletters", "name": "Weak"},
        )
        assert response.status_code == 400
        assert "digit" in response.json()["message"]

    async def test_invalid_body_uses_error_envelope(self, async_client):
        response = await async_client.post(f"{API}/auth/register", json={"email": "nope"})
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "Validation Error"
        assert body["message"]


@pytest.mark.integration
class TestLogin:
    """Login, refresh and logout."""

    async def test_login_and_refresh(self, async_client, owner):
        response = await async_client.post(
            f"{API}/auth/login",
            json={"email": "owner@example.com", "password": "Secret12345"},
        )
        assert response.status_code == 200
        tokens = response.json()
        assert tokens["user"]["email"] == "owner@example.com"

        refreshed = await async_client.post(
            f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
        )
        assert refreshed.status_code == 200
        assert refreshed.json()["access_token"]

    async def test_wrong_password(self, async_client, owner):
        response = await async_client.post(
            f"{API}/auth/login",
            json={"email": "owner@example.com", "password": "Wrong12345"},
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    async def test_missing_token(self, async_client):
        response = await async_client.get(f"{API}/auth/me")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized", "message": "Authentication required"}

    async def test_logout_revokes_session(self, async_client, owner):
        response = await async_client.post(f"{API}/auth/logout", headers=owner["headers"])
        assert response.status_code == 200

        response = await async_client.get(f"{API}/auth/me", headers=owner["headers"])
        assert response.status_code == 401

        refreshed = await async_client.post(
            f"{API}/auth/refresh", json={"refresh_token": owner["refresh_token"]}
        )
        assert refreshed.status_code == 401


@pytest.mark.integration
class TestOrganizations:
    """Organization and tenant management."""

    async def test_current_organization(self, async_client, owner):
        response = await async_client.get(f"{API}/organizations/current", headers=owner["headers"])
        assert response.status_code == 200
        assert response.json()["id"] == owner["user"]["org_id"]

    async def test_other_organization_is_forbidden(self, async_client, helpers, owner):
        other = await helpers.register(async_client, email="other@example.com", organization_name="Other")

        response = await async_client.get(
            f"{API}/organizations/{other['user']['org_id']}", headers=owner["headers"]
        )
        assert response.status_code == 403

    async def test_create_and_switch_tenant(self, async_client, owner):
        created = await async_client.post(
            f"{API}/tenants", json={"name": "Marketing Team"}, headers=owner["headers"]
        )
        assert created.status_code == 201
        tenant = created.json()
        assert tenant["slug"] == "marketing-team"

        tenants = await async_client.get(f"{API}/tenants", headers=owner["headers"])
        assert {t["slug"] for t in tenants.json()} == {"default", "marketing-team"}

        switched = await async_client.post(
            f"{API}/tenants/switch", json={"tenant_id": tenant["id"]}, headers=owner["headers"]
        )
        assert switched.status_code == 200

        me = await async_client.get(f"{API}/auth/me", headers=owner["headers"])
        assert me.json()["user"]["tenant_id"] == tenant["id"]

    async def test_switch_to_foreign_tenant_fails(self, async_client, helpers, owner):
        other = await helpers.register(async_client, email="other@example.com", organization_name="Other")

        response = await async_client.post(
            f"{API}/tenants/switch",
            json={"tenant_id": other["user"]["tenant_id"]},
            headers=owner["headers"],
        )
        assert response.status_code == 403
