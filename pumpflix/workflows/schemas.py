"""Workflow Pydantic schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pumpflix.workflows.models import WorkflowStatus


def _validate_config(value: Dict[str, Any]) -> Dict[str, Any]:
    for key in ("nodes", "edges"):
        if key in value and not isinstance(value[key], list):
            raise ValueError(f"config.{key} must be a list")
    return value


class WorkflowBase(BaseModel):
    """Base workflow schema."""
    name: str = Field(..., min_length=1, max_length=255, description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")
    config: Dict[str, Any] = Field(
        default_factory=lambda: {"nodes": [], "edges": []},
        description="Workflow graph (nodes and edges)",
    )
    tags: List[str] = Field(default_factory=list, description="Workflow tags")

    @field_validator("config")
    @classmethod
    def validate_config(cls, v):
        return _validate_config(v)


class WorkflowCreate(WorkflowBase):
    """Schema for creating a workflow."""
    status: WorkflowStatus = Field(default=WorkflowStatus.DRAFT, description="Workflow status")


class WorkflowUpdate(BaseModel):
    """Schema for updating a workflow."""
    name: Optional[str] = Field(None, min_length=1, max_length=255, description="Workflow name")
    description: Optional[str] = Field(None, description="Workflow description")
    status: Optional[WorkflowStatus] = Field(None, description="Workflow status")
    config: Optional[Dict[str, Any]] = Field(None, description="Workflow graph")
    tags: Optional[List[str]] = Field(None, description="Workflow tags")

    @field_validator("config")
    @classmethod
    def validate_config(cls, v):
        return _validate_config(v) if v is not None else v


class WorkflowExecuteRequest(BaseModel):
    """Schema for starting a workflow execution."""
    input: Dict[str, Any] = Field(default_factory=dict, description="Input data")


class WorkflowResponse(WorkflowBase):
    """Response schema for workflows."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: WorkflowStatus
    is_active: bool
    user_id: int
    org_id: int
    tenant_id: int
    template_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None
    last_execution_at: Optional[datetime] = None


class WorkflowListResponse(BaseModel):
    """Paginated workflow list."""
    items: List[WorkflowResponse]
    total: int
    limit: int
    offset: int
