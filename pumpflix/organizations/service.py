"""Organization and tenant service layer."""

import re
import secrets
from typing import List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.models import User
from pumpflix.exceptions import ConflictError, NotFoundError, PermissionError
from pumpflix.organizations.models import Organization, Tenant
from pumpflix.organizations.schemas import OrganizationUpdate, TenantCreate

logger = structlog.get_logger()


def slugify(value: str) -> str:
    """Lowercase, dash separated slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug or "org"


class OrganizationService:
    """Organization and tenant management."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _unique_org_slug(self, name: str) -> str:
        base = slugify(name)
        slug = base
        while await self.db.scalar(select(Organization.id).where(Organization.slug == slug)):
            slug = f"{base}-{secrets.token_hex(3)}"
        return slug

    async def create_organization(self, name: str) -> Organization:
        """Create an organization with a globally unique slug."""
        organization = Organization(name=name, slug=await self._unique_org_slug(name))
        self.db.add(organization)
        await self.db.flush()

        logger.info("Organization created", org_id=organization.id, slug=organization.slug)
        return organization

    async def get_organization(self, org_id: int) -> Optional[Organization]:
        """Get organization by ID."""
        return await self.db.get(Organization, org_id)

    async def get_organization_for_user(self, org_id: int, user: User) -> Organization:
        """Get an organization the user belongs to."""
        if org_id != user.org_id:
            raise PermissionError("Access denied to organization")
        organization = await self.get_organization(org_id)
        if not organization:
            raise NotFoundError("Organization not found")
        return organization

    async def update_organization(self, user: User, data: OrganizationUpdate) -> Organization:
        """Rename the user's organization."""
        organization = await self.get_organization_for_user(user.org_id, user)
        organization.name = data.name
        await self.db.commit()
        await self.db.refresh(organization)

        logger.info("Organization updated", org_id=organization.id)
        return organization

    async def create_tenant(self, org_id: int, data: TenantCreate) -> Tenant:
        """Create a tenant inside an organization."""
        slug = data.slug or slugify(data.name)
        existing = await self.db.scalar(
            select(Tenant.id).where(Tenant.org_id == org_id, Tenant.slug == slug)
        )
        if existing:
            raise ConflictError(f"Tenant '{slug}' already exists")

        tenant = Tenant(name=data.name, slug=slug, org_id=org_id)
        self.db.add(tenant)
        await self.db.flush()

        logger.info("Tenant created", org_id=org_id, tenant_id=tenant.id, slug=slug)
        return tenant

    async def list_tenants(self, org_id: int) -> List[Tenant]:
        """List tenants of an organization."""
        result = await self.db.execute(
            select(Tenant).where(Tenant.org_id == org_id).order_by(Tenant.created_at, Tenant.id)
        )
        return list(result.scalars().all())

    async def get_tenant(self, tenant_id: Optional[int]) -> Optional[Tenant]:
        """Get tenant by ID."""
        if tenant_id is None:
            return None
        return await self.db.get(Tenant, tenant_id)

    async def switch_tenant(self, user: User, tenant_id: int) -> Tenant:
        """Make a tenant of the user's organization the active one."""
        tenant = await self.get_tenant(tenant_id)
        if not tenant:
            raise NotFoundError("Tenant not found")
        if tenant.org_id != user.org_id:
            raise PermissionError("Tenant does not belong to your organization")

        user.tenant_id = tenant.id
        await self.db.commit()

        logger.info("Tenant switched", user_id=user.id, tenant_id=tenant.id)
        return tenant
