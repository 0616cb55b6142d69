"""Workflow template schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pumpflix.templates.models import TemplateType


class TemplateCreate(BaseModel):
    """Schema for creating a template from scratch (seeding and imports)."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    type: TemplateType = TemplateType.USER
    config: Dict[str, Any] = Field(default_factory=lambda: {"nodes": [], "edges": []})
    thumbnail_url: Optional[str] = None
    is_public: bool = False


class TemplatePromote(BaseModel):
    """Schema for promoting a workflow to a user template."""
    workflow_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    thumbnail_url: Optional[str] = None


class WorkflowToTemplate(BaseModel):
    """Template details when saving a workflow as a template."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    thumbnail_url: Optional[str] = None


class TemplateInstall(BaseModel):
    """Schema for installing a template."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    variables: Dict[str, Any] = Field(default_factory=dict)


class TemplateResponse(BaseModel):
    """Workflow template response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    type: TemplateType
    config: Dict[str, Any]
    thumbnail_url: Optional[str] = None
    required_credentials: List[str]
    input_variables: List[str]
    is_public: bool
    install_count: int
    org_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class InstanceResponse(BaseModel):
    """Workflow instance response."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    template_id: int
    workflow_id: int
    user_id: int
    org_id: int
    tenant_id: int
    variables: Dict[str, Any]
    installed_at: datetime
