"""Organization and tenant API routes."""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_admin_user, get_current_user
from pumpflix.auth.models import User
from pumpflix.database import get_postgres_session
from pumpflix.organizations.schemas import (
    OrganizationResponse,
    OrganizationUpdate,
    TenantCreate,
    TenantResponse,
    TenantSwitchRequest,
)
from pumpflix.organizations.service import OrganizationService

router = APIRouter(tags=["Organizations"])


@router.get("/organizations/current", response_model=OrganizationResponse)
async def get_current_organization(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Get the caller's organization."""
    service = OrganizationService(db)
    return await service.get_organization_for_user(current_user.org_id, current_user)


@router.put("/organizations/current", response_model=OrganizationResponse)
async def update_current_organization(
    data: OrganizationUpdate,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Rename the caller's organization."""
    return await OrganizationService(db).update_organization(current_user, data)


@router.get("/organizations/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Get an organization (only the caller's own)."""
    return await OrganizationService(db).get_organization_for_user(org_id, current_user)


@router.get("/tenants", response_model=List[TenantResponse])
async def list_tenants(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """List tenants of the caller's organization."""
    return await OrganizationService(db).list_tenants(current_user.org_id)


@router.post("/tenants", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate,
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Create a tenant in the caller's organization."""
    service = OrganizationService(db)
    tenant = await service.create_tenant(current_user.org_id, data)
    await db.commit()
    await db.refresh(tenant)
    return tenant


@router.post("/tenants/switch", response_model=TenantResponse)
async def switch_tenant(
    data: TenantSwitchRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Switch the caller's active tenant."""
    return await OrganizationService(db).switch_tenant(current_user, data.tenant_id)
