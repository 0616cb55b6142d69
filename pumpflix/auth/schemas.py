"""Authentication Pydantic schemas for API validation."""

from uuid import UUID
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from pumpflix.auth.models import UserRole


class UserCreate(BaseModel):
    """Schema for user registration."""

    email: EmailStr
    name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8, max_length=72)
    organization_name: Optional[str] = Field(
        None, min_length=1, max_length=255, description="Name for the new organization"
    )


class UserPublic(BaseModel):
    """Public user schema (safe for API responses)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    uuid: UUID
    email: EmailStr
    name: str
    role: UserRole
    org_id: int
    tenant_id: Optional[int] = None
    is_active: bool
    created_at: datetime
    last_login_at: Optional[datetime] = None


class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str


class TokenResponse(BaseModel):
    """Token pair returned on login and refresh."""

    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int


class LoginResponse(TokenResponse):
    """Login response schema."""

    user: UserPublic


class OrganizationSummary(BaseModel):
    """Organization block of the /me response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class TenantSummary(BaseModel):
    """Tenant block of the /me response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class MeResponse(BaseModel):
    """Current user with its organization and active tenant."""

    user: UserPublic
    organization: OrganizationSummary
    tenant: Optional[TenantSummary] = None


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
