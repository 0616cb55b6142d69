"""Organization and tenant schemas."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class OrganizationUpdate(BaseModel):
    """Schema for renaming an organization."""
    name: str = Field(..., min_length=1, max_length=255)


class OrganizationResponse(BaseModel):
    """Organization response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    created_at: datetime


class TenantCreate(BaseModel):
    """Schema for creating a tenant."""
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class TenantResponse(BaseModel):
    """Tenant response schema."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    org_id: int
    created_at: datetime


class TenantSwitchRequest(BaseModel):
    """Schema for switching the active tenant."""
    tenant_id: int
