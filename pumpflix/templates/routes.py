"""Workflow template API routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_tenant_id, get_current_user
from pumpflix.auth.models import User
from pumpflix.database import get_postgres_session, get_redis
from pumpflix.templates.models import TemplateType
from pumpflix.templates.schemas import (
    InstanceResponse,
    TemplateInstall,
    TemplatePromote,
    TemplateResponse,
)
from pumpflix.templates.service import TemplateService
from pumpflix.workflows.schemas import WorkflowResponse

router = APIRouter(prefix="/templates", tags=["Templates"])


def get_template_service(
    db: AsyncSession = Depends(get_postgres_session),
    redis: Optional[Redis] = Depends(get_redis),
) -> TemplateService:
    """Template service with the shared cache."""
    return TemplateService(db, redis)


@router.get("", response_model=List[TemplateResponse])
async def list_templates(
    type: TemplateType = Query(TemplateType.PREBUILT, description="prebuilt or user"),
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """List prebuilt templates or the organization's own templates."""
    return await service.list_templates(current_user, type)


@router.get("/instances", response_model=List[InstanceResponse])
async def list_instances(
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """List template installations of the organization."""
    return await service.list_instances(current_user)


@router.post("/promote", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def promote_workflow(
    data: TemplatePromote,
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Promote a workflow to a user template."""
    return await service.promote_workflow(current_user, data)


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: int,
    current_user: User = Depends(get_current_user),
    service: TemplateService = Depends(get_template_service),
):
    """Get a template."""
    return await service.get_template(template_id, current_user)


@router.post(
    "/{template_id}/install",
    response_model=WorkflowResponse,
    status_code=status.HTTP_201_CREATED,
)
async def install_template(
    template_id: int,
    data: TemplateInstall,
    current_user: User = Depends(get_current_user),
    tenant_id: int = Depends(get_current_tenant_id),
    service: TemplateService = Depends(get_template_service),
):
    """Create a workflow from a template in the current tenant."""
    return await service.install_template(template_id, current_user, tenant_id, data)
