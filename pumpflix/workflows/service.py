"""Workflow service for business logic."""

import copy
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.models import User
from pumpflix.credentials.models import Credential
from pumpflix.db_types import utcnow
from pumpflix.workflows.exceptions import WorkflowArchivedError, WorkflowNotFoundError
from pumpflix.workflows.models import Workflow, WorkflowStatus
from pumpflix.workflows.schemas import WorkflowCreate, WorkflowUpdate

logger = structlog.get_logger()


def referenced_credential_ids(config: Dict[str, Any]) -> List[int]:
    """Credential IDs referenced by the nodes of a workflow config."""
    ids = []
    for node in (config or {}).get("nodes", []):
        if not isinstance(node, dict):
            continue
        credential_id = node.get("credential_id")
        if isinstance(credential_id, int) and credential_id not in ids:
            ids.append(credential_id)
    return ids


class WorkflowService:
    """Service for managing workflows."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_workflow(
        self,
        user: User,
        workflow_data: WorkflowCreate,
        tenant_id: int,
        template_id: Optional[int] = None,
    ) -> Workflow:
        """Create a new workflow in a tenant."""
        workflow = Workflow(
            name=workflow_data.name,
            description=workflow_data.description,
            config=workflow_data.config,
            tags=workflow_data.tags,
            status=workflow_data.status,
            is_active=workflow_data.status == WorkflowStatus.ACTIVE,
            user_id=user.id,
            org_id=user.org_id,
            tenant_id=tenant_id,
            template_id=template_id,
        )
        self.db.add(workflow)
        await self.db.commit()

        logger.info(
            "Workflow created",
            workflow_id=workflow.id,
            user_id=user.id,
            tenant_id=tenant_id,
            name=workflow.name,
        )
        return workflow

    async def get_workflow(self, workflow_id: int, user: User) -> Workflow:
        """Get a workflow of the user's organization."""
        workflow = await self.db.get(Workflow, workflow_id)
        if not workflow or workflow.org_id != user.org_id:
            raise WorkflowNotFoundError(f"Workflow {workflow_id} not found")
        return workflow

    async def list_workflows(
        self,
        user: User,
        tenant_id: int,
        status: Optional[WorkflowStatus] = None,
        search: Optional[str] = None,
        include_archived: bool = False,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Workflow], int]:
        """List workflows of the current tenant."""
        query = select(Workflow).where(
            Workflow.org_id == user.org_id,
            Workflow.tenant_id == tenant_id,
        )

        if status:
            query = query.where(Workflow.status == status)
        elif not include_archived:
            query = query.where(Workflow.status != WorkflowStatus.ARCHIVED)

        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Workflow.name.ilike(pattern), Workflow.description.ilike(pattern))
            )

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(Workflow.updated_at.desc(), Workflow.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def update_workflow(
        self, workflow_id: int, user: User, workflow_data: WorkflowUpdate
    ) -> Workflow:
        """Update a workflow."""
        workflow = await self.get_workflow(workflow_id, user)
        if workflow.is_archived and workflow_data.status in (None, WorkflowStatus.ARCHIVED):
            raise WorkflowArchivedError("Archived workflows cannot be modified")

        update_data = workflow_data.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if value is not None:
                setattr(workflow, field, value)

        if "status" in update_data and workflow_data.status:
            workflow.is_active = workflow_data.status == WorkflowStatus.ACTIVE
            if workflow_data.status != WorkflowStatus.ARCHIVED:
                workflow.archived_at = None

        await self.db.commit()

        logger.info(
            "Workflow updated",
            workflow_id=workflow.id,
            user_id=user.id,
            fields=sorted(update_data),
        )
        return workflow

    async def delete_workflow(self, workflow_id: int, user: User) -> None:
        """Delete a workflow and its executions."""
        workflow = await self.get_workflow(workflow_id, user)
        await self.db.delete(workflow)
        await self.db.commit()

        logger.info("Workflow deleted", workflow_id=workflow_id, user_id=user.id)

    async def clone_workflow(self, workflow_id: int, user: User) -> Workflow:
        """Copy a workflow into a new draft."""
        source = await self.get_workflow(workflow_id, user)

        clone = Workflow(
            name=f"{source.name} (Clone)",
            description=source.description,
            config=copy.deepcopy(source.config),
            tags=list(source.tags or []),
            status=WorkflowStatus.DRAFT,
            is_active=False,
            user_id=user.id,
            org_id=source.org_id,
            tenant_id=source.tenant_id,
            template_id=source.template_id,
        )
        self.db.add(clone)
        await self.db.commit()

        logger.info("Workflow cloned", source_id=source.id, workflow_id=clone.id)
        return clone

    async def archive_workflow(self, workflow_id: int, user: User) -> Workflow:
        """Soft-archive a workflow."""
        workflow = await self.get_workflow(workflow_id, user)
        if workflow.is_archived:
            return workflow

        workflow.status = WorkflowStatus.ARCHIVED
        workflow.is_active = False
        workflow.archived_at = utcnow()
        await self.db.commit()

        logger.info("Workflow archived", workflow_id=workflow.id, user_id=user.id)
        return workflow

    async def get_workflow_credentials(self, workflow_id: int, user: User) -> List[Credential]:
        """Active credentials of the organization referenced by a workflow."""
        workflow = await self.get_workflow(workflow_id, user)
        credential_ids = referenced_credential_ids(workflow.config)
        if not credential_ids:
            return []

        result = await self.db.execute(
            select(Credential)
            .where(
                Credential.id.in_(credential_ids),
                Credential.org_id == user.org_id,
                Credential.is_active.is_(True),
            )
            .order_by(Credential.id)
        )
        return list(result.scalars().all())
