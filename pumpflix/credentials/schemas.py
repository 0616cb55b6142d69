"""Credential Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pumpflix.credentials.models import CredentialProvider


class CredentialCreate(BaseModel):
    """Schema for storing a credential."""
    provider: CredentialProvider
    credentials: Dict[str, Any] = Field(..., description="Secret values, stored encrypted")
    label: str = Field(..., min_length=1, max_length=255)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    expires_at: Optional[datetime] = None

    @field_validator("credentials")
    @classmethod
    def validate_credentials(cls, v):
        if not v:
            raise ValueError("credentials must not be empty")
        return v


class CredentialUpdate(BaseModel):
    """Schema for updating a credential."""
    label: Optional[str] = Field(None, min_length=1, max_length=255)
    credentials: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    expires_at: Optional[datetime] = None


class CredentialSummary(BaseModel):
    """Credential without its secrets."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    provider: CredentialProvider
    label: str
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    expires_at: Optional[datetime] = None
    last_used_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class CredentialDetail(CredentialSummary):
    """Credential including decrypted secrets."""
    credentials: Dict[str, Any]


class CredentialValidation(BaseModel):
    """Validation result."""
    valid: bool
    expires_at: Optional[datetime] = None


class CredentialUsageCreate(BaseModel):
    """Schema for recording a credential use."""
    workflow_id: Optional[int] = None
    execution_id: Optional[int] = None


class CredentialUsageResponse(BaseModel):
    """Recorded credential use."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    credential_id: int
    workflow_id: Optional[int] = None
    execution_id: Optional[int] = None
    user_id: int
    used_at: datetime
