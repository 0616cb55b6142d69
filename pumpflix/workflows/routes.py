"""Workflow API routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_tenant_id, get_current_user
from pumpflix.auth.models import User
from pumpflix.billing.dependencies import require_execution_quota
from pumpflix.billing.models import Subscription
from pumpflix.credentials.schemas import CredentialSummary
from pumpflix.database import get_postgres_session
from pumpflix.executions.dependencies import get_execution_service
from pumpflix.executions.schemas import ExecutionResponse
from pumpflix.executions.service import ExecutionService
from pumpflix.templates.routes import get_template_service
from pumpflix.templates.schemas import TemplatePromote, TemplateResponse, WorkflowToTemplate
from pumpflix.templates.service import TemplateService
from pumpflix.workflows.models import WorkflowStatus
from pumpflix.workflows.schemas import (
    WorkflowCreate,
    WorkflowExecuteRequest,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowUpdate,
)
from pumpflix.workflows.service import WorkflowService

router = APIRouter(prefix="/workflows", tags=["Workflows"])


def get_workflow_service(db: AsyncSession = Depends(get_postgres_session)) -> WorkflowService:
    """Get workflow service instance."""
    return WorkflowService(db)


@router.post("", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    workflow_data: WorkflowCreate,
    current_user: User = Depends(get_current_user),
    tenant_id: int = Depends(get_current_tenant_id),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Create a workflow in the current tenant."""
    return await service.create_workflow(current_user, workflow_data, tenant_id)


@router.get("", response_model=WorkflowListResponse)
async def list_workflows(
    status: Optional[WorkflowStatus] = Query(None, description="Filter by status"),
    search: Optional[str] = Query(None, description="Search in name and description"),
    include_archived: bool = Query(False, description="Include archived workflows"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    tenant_id: int = Depends(get_current_tenant_id),
    service: WorkflowService = Depends(get_workflow_service),
):
    """List workflows of the current tenant."""
    items, total = await service.list_workflows(
        current_user,
        tenant_id,
        status=status,
        search=search,
        include_archived=include_archived,
        limit=limit,
        offset=offset,
    )
    return WorkflowListResponse(items=items, total=total, limit=limit, offset=offset)


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: int,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Get a workflow."""
    return await service.get_workflow(workflow_id, current_user)


@router.patch("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: int,
    workflow_data: WorkflowUpdate,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Update a workflow."""
    return await service.update_workflow(workflow_id, current_user, workflow_data)


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workflow(
    workflow_id: int,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Delete a workflow."""
    await service.delete_workflow(workflow_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{workflow_id}/execute",
    response_model=ExecutionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def execute_workflow(
    workflow_id: int,
    execute_data: WorkflowExecuteRequest,
    current_user: User = Depends(get_current_user),
    quota: Subscription = Depends(require_execution_quota),
    service: WorkflowService = Depends(get_workflow_service),
    executions: ExecutionService = Depends(get_execution_service),
):
    """Start an execution of a workflow."""
    workflow = await service.get_workflow(workflow_id, current_user)
    return await executions.start_execution(current_user, workflow, execute_data.input)


@router.post(
    "/{workflow_id}/clone",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
)
async def clone_workflow(
    workflow_id: int,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Clone a workflow into a new draft."""
    return await service.clone_workflow(workflow_id, current_user)


@router.post("/{workflow_id}/archive", response_model=WorkflowResponse)
async def archive_workflow(
    workflow_id: int,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Archive a workflow."""
    return await service.archive_workflow(workflow_id, current_user)


@router.post(
    "/{workflow_id}/template",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_template_from_workflow(
    workflow_id: int,
    data: WorkflowToTemplate,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
    templates: TemplateService = Depends(get_template_service),
):
    """Save a workflow as a user template."""
    workflow = await service.get_workflow(workflow_id, current_user)
    return await templates.promote_workflow(
        current_user,
        TemplatePromote(
            workflow_id=workflow.id,
            name=data.name or workflow.name,
            description=data.description,
            category=data.category,
            thumbnail_url=data.thumbnail_url,
        ),
    )


@router.get("/{workflow_id}/credentials", response_model=List[CredentialSummary])
async def get_workflow_credentials(
    workflow_id: int,
    current_user: User = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
):
    """Credentials referenced by a workflow."""
    return await service.get_workflow_credentials(workflow_id, current_user)
