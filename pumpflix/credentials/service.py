"""Credential service."""

from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.audit.service import AuditService
from pumpflix.auth.models import User
from pumpflix.credentials.encryption import CredentialEncryption, get_credential_encryption
from pumpflix.credentials.exceptions import CredentialExpiredError, CredentialNotFoundError
from pumpflix.credentials.models import Credential, CredentialProvider, CredentialUsageLog
from pumpflix.credentials.schemas import (
    CredentialCreate,
    CredentialDetail,
    CredentialSummary,
    CredentialUpdate,
    CredentialUsageCreate,
)
from pumpflix.db_types import utcnow
from pumpflix.executions.exceptions import ExecutionNotFoundError
from pumpflix.executions.models import ExecutionLog
from pumpflix.workflows.exceptions import WorkflowNotFoundError
from pumpflix.workflows.models import Workflow

logger = structlog.get_logger()


class CredentialService:
    """Store, read and track encrypted credentials of an organization."""

    def __init__(self, db: AsyncSession, encryption: Optional[CredentialEncryption] = None):
        self.db = db
        self.encryption = encryption or get_credential_encryption()
        self.audit = AuditService(db)

    async def create_credential(
        self, user: User, data: CredentialCreate, ip_address: Optional[str] = None
    ) -> Credential:
        """Encrypt and store a credential."""
        credential = Credential(
            provider=data.provider,
            label=data.label,
            encrypted_data=self.encryption.encrypt_dict(data.credentials),
            meta=data.metadata,
            expires_at=data.expires_at,
            user_id=user.id,
            org_id=user.org_id,
        )
        self.db.add(credential)
        await self.db.flush()

        await self.audit.record(
            "credential.created",
            "credential",
            org_id=user.org_id,
            resource_id=credential.id,
            user_id=user.id,
            metadata={"provider": data.provider.value},
            ip_address=ip_address,
        )
        await self.db.commit()

        logger.info(
            "Credential created",
            credential_id=credential.id,
            provider=data.provider.value,
            org_id=user.org_id,
        )
        return credential

    async def _get_active(self, credential_id: int, user: User) -> Credential:
        credential = await self.db.get(Credential, credential_id)
        if not credential or credential.org_id != user.org_id or not credential.is_active:
            raise CredentialNotFoundError()
        return credential

    async def list_credentials(
        self, user: User, provider: Optional[CredentialProvider] = None
    ) -> List[Credential]:
        """Active credentials of the organization."""
        query = select(Credential).where(
            Credential.org_id == user.org_id,
            Credential.is_active.is_(True),
        )
        if provider:
            query = query.where(Credential.provider == provider)

        result = await self.db.execute(query.order_by(Credential.created_at.desc(), Credential.id.desc()))
        return list(result.scalars().all())

    async def get_credential(self, credential_id: int, user: User) -> CredentialDetail:
        """Decrypted credential. Reading it counts as a use."""
        credential = await self._get_active(credential_id, user)
        secrets = self.encryption.decrypt_dict(credential.encrypted_data)

        credential.last_used_at = utcnow()
        await self.db.commit()

        summary = CredentialSummary.model_validate(credential)
        return CredentialDetail(**summary.model_dump(), credentials=secrets)

    async def update_credential(
        self, credential_id: int, user: User, data: CredentialUpdate
    ) -> Credential:
        """Update label, metadata, expiry or secrets."""
        credential = await self._get_active(credential_id, user)

        if data.label is not None:
            credential.label = data.label
        if data.metadata is not None:
            credential.meta = data.metadata
        if "expires_at" in data.model_fields_set:
            credential.expires_at = data.expires_at
        if data.credentials is not None:
            credential.encrypted_data = self.encryption.encrypt_dict(data.credentials)

        await self.db.commit()

        logger.info(
            "Credential updated",
            credential_id=credential.id,
            secrets_rotated=data.credentials is not None,
        )
        return credential

    async def delete_credential(
        self, credential_id: int, user: User, ip_address: Optional[str] = None
    ) -> None:
        """Soft-delete a credential."""
        credential = await self._get_active(credential_id, user)
        credential.is_active = False

        await self.audit.record(
            "credential.deleted",
            "credential",
            org_id=user.org_id,
            resource_id=credential.id,
            user_id=user.id,
            ip_address=ip_address,
        )
        await self.db.commit()

        logger.info("Credential deleted", credential_id=credential.id, org_id=user.org_id)

    async def validate_credential(self, credential_id: int, user: User) -> Credential:
        """Check that a credential is usable."""
        credential = await self._get_active(credential_id, user)
        if credential.is_expired:
            raise CredentialExpiredError()

        # Raises when the stored secret cannot be decrypted
        self.encryption.decrypt_dict(credential.encrypted_data)
        return credential

    async def record_usage(
        self, credential_id: int, user: User, data: CredentialUsageCreate
    ) -> CredentialUsageLog:
        """Log a use of a credential and refresh its last-used time."""
        credential = await self._get_active(credential_id, user)
        if credential.is_expired:
            raise CredentialExpiredError()

        if data.workflow_id is not None:
            workflow = await self.db.get(Workflow, data.workflow_id)
            if not workflow or workflow.org_id != user.org_id:
                raise WorkflowNotFoundError(f"Workflow {data.workflow_id} not found")
        if data.execution_id is not None:
            execution = await self.db.get(ExecutionLog, data.execution_id)
            if not execution or execution.org_id != user.org_id:
                raise ExecutionNotFoundError()

        usage = CredentialUsageLog(
            credential_id=credential.id,
            workflow_id=data.workflow_id,
            execution_id=data.execution_id,
            user_id=user.id,
        )
        self.db.add(usage)
        credential.last_used_at = utcnow()
        await self.db.commit()

        logger.info(
            "Credential used",
            credential_id=credential.id,
            workflow_id=data.workflow_id,
            execution_id=data.execution_id,
        )
        return usage
