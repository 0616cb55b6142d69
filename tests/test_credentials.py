"""Test credential encryption and the credential vault API."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select

from pumpflix.audit.models import AuditLog
from pumpflix.credentials.encryption import CredentialEncryption, generate_encryption_key
from pumpflix.credentials.exceptions import CredentialEncryptionError
from pumpflix.credentials.models import Credential, CredentialUsageLog

API = "/api/v1"


@pytest.mark.unit
class TestCredentialEncryption:
    """AES-GCM credential encryption."""

    def test_encrypt_decrypt(self):
        encryption = CredentialEncryption(generate_encryption_key())
        data = {"api_key": "sk-123", "nested": {"scopes": ["read", "write"]}}

        encrypted = encryption.encrypt_dict(data)

        assert "sk-123" not in encrypted
        assert encryption.decrypt_dict(encrypted) == data

    def test_nonce_makes_ciphertexts_differ(self):
        encryption = CredentialEncryption(generate_encryption_key())

        assert encryption.encrypt("secret") != encryption.encrypt("secret")

    def test_wrong_key_fails(self):
        encrypted = CredentialEncryption(generate_encryption_key()).encrypt("secret")

        with pytest.raises(CredentialEncryptionError):
            CredentialEncryption(generate_encryption_key()).decrypt(encrypted)

    def test_tampered_payload_fails(self):
        encryption = CredentialEncryption(generate_encryption_key())

        with pytest.raises(CredentialEncryptionError):
            encryption.decrypt("dG9vIHNob3J0")

    def test_key_must_be_256_bits(self):
        with pytest.raises(CredentialEncryptionError):
            CredentialEncryption("c2hvcnQ=")


async def _create(client, headers, **overrides):
    data = {
        "provider": "google_sheets",
        "credentials": {"client_id": "abc", "client_secret": "shh"},
        "label": "Marketing sheet",
        "metadata": {"sheet": "Leads"},
    }
    data.update(overrides)
    response = await client.post(f"{API}/credentials", json=data, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.integration
class TestCredentialAPI:
    """Credential vault endpoints."""

    async def test_create_hides_secrets(self, async_client, test_session, owner):
        credential = await _create(async_client, owner["headers"])

        assert credential["provider"] == "google_sheets"
        assert credential["metadata"] == {"sheet": "Leads"}
        assert "credentials" not in credential

        stored = await test_session.get(Credential, credential["id"])
        assert "shh" not in stored.encrypted_data

        result = await test_session.execute(
            select(AuditLog).where(AuditLog.action == "credential.created")
        )
        entry = result.scalar_one()
        assert entry.resource == "credential"
        assert entry.resource_id == str(credential["id"])
        assert entry.meta == {"provider": "google_sheets"}

    async def test_get_decrypts(self, async_client, owner):
        credential = await _create(async_client, owner["headers"])

        response = await async_client.get(
            f"{API}/credentials/{credential['id']}", headers=owner["headers"]
        )
        assert response.status_code == 200
        data = response.json()
        assert data["credentials"] == {"client_id": "abc", "client_secret": "shh"}
        assert data["last_used_at"] is not None

    async def test_unknown_provider_rejected(self, async_client, owner):
        response = await async_client.post(
            f"{API}/credentials",
            json={"provider": "dropbox", "credentials": {"token": "x"}, "label": "Files"},
            headers=owner["headers"],
        )
        assert response.status_code == 422

    async def test_list_filters_by_provider(self, async_client, owner):
        await _create(async_client, owner["headers"])
        await _create(
            async_client, owner["headers"], provider="slack", credentials={"token": "xoxb"}
        )

        response = await async_client.get(
            f"{API}/credentials", params={"provider": "slack"}, headers=owner["headers"]
        )
        assert response.status_code == 200
        assert [c["provider"] for c in response.json()] == ["slack"]

    async def test_update_rotates_secrets(self, async_client, owner):
        credential = await _create(async_client, owner["headers"])

        response = await async_client.patch(
            f"{API}/credentials/{credential['id']}",
            json={"label": "Renamed", "credentials": {"client_id": "new"}},
            headers=owner["headers"],
        )
        assert response.status_code == 200
        assert response.json()["label"] == "Renamed"

        detail = await async_client.get(
            f"{API}/credentials/{credential['id']}", headers=owner["headers"]
        )
        assert detail.json()["credentials"] == {"client_id": "new"}

    async def test_delete_deactivates(self, async_client, test_session, owner):
        credential = await _create(async_client, owner["headers"])

        response = await async_client.delete(
            f"{API}/credentials/{credential['id']}", headers=owner["headers"]
        )
        assert response.status_code == 204

        response = await async_client.get(
            f"{API}/credentials/{credential['id']}", headers=owner["headers"]
        )
        assert response.status_code == 404

        stored = await test_session.get(Credential, credential["id"])
        assert stored.is_active is False

    async def test_validate(self, async_client, owner):
        expires_at = (datetime.now(timezone.utc) + timedelta(days=30)).isoformat()
        credential = await _create(async_client, owner["headers"], expires_at=expires_at)

        response = await async_client.post(
            f"{API}/credentials/{credential['id']}/validate", headers=owner["headers"]
        )
        assert response.status_code == 200
        assert response.json()["valid"] is True
        assert response.json()["expires_at"] is not None

    async def test_validate_expired(self, async_client, owner):
        expires_at = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
        credential = await _create(async_client, owner["headers"], expires_at=expires_at)

        response = await async_client.post(
            f"{API}/credentials/{credential['id']}/validate", headers=owner["headers"]
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Credential has expired"

    async def test_record_usage(self, async_client, helpers, owner):
        credential = await _create(async_client, owner["headers"])
        workflow = await helpers.create_workflow(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/credentials/{credential['id']}/usage",
            json={"workflow_id": workflow["id"]},
            headers=owner["headers"],
        )
        assert response.status_code == 201
        usage = response.json()
        assert usage["credential_id"] == credential["id"]
        assert usage["workflow_id"] == workflow["id"]
        assert usage["user_id"] == owner["user"]["id"]

    async def test_usage_rejects_foreign_workflow(self, async_client, helpers, owner):
        credential = await _create(async_client, owner["headers"])
        other = await helpers.register(
            async_client, email="other@example.com", organization_name="Other"
        )
        foreign = await helpers.create_workflow(async_client, other["headers"])

        response = await async_client.post(
            f"{API}/credentials/{credential['id']}/usage",
            json={"workflow_id": foreign["id"]},
            headers=owner["headers"],
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Workflow not found"

    async def test_usage_rejects_unknown_execution(self, async_client, test_session, owner):
        credential = await _create(async_client, owner["headers"])

        response = await async_client.post(
            f"{API}/credentials/{credential['id']}/usage",
            json={"execution_id": 999},
            headers=owner["headers"],
        )
        assert response.status_code == 404
        assert response.json()["error"] == "Execution not found"

        logs = await test_session.scalar(select(func.count()).select_from(CredentialUsageLog))
        assert logs == 0

    async def test_other_organization_cannot_read(self, async_client, helpers, owner):
        credential = await _create(async_client, owner["headers"])
        other = await helpers.register(
            async_client, email="other@example.com", organization_name="Other"
        )

        response = await async_client.get(
            f"{API}/credentials/{credential['id']}", headers=other["headers"]
        )
        assert response.status_code == 404
