"""Execution Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pumpflix.executions.models import ExecutionStatus


class CompletionStatus(str, Enum):
    """Outcome reported when completing an execution."""
    SUCCESS = "success"
    ERROR = "error"


class ExecutionCreate(BaseModel):
    """Schema for starting an execution."""
    workflow_id: int
    input: Dict[str, Any] = Field(default_factory=dict)


class ExecutionComplete(BaseModel):
    """Schema for completing an execution."""
    status: CompletionStatus
    error: Optional[str] = None


class ExecutionResponse(BaseModel):
    """Execution log response schema."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    workflow_id: int
    user_id: int
    org_id: int
    status: ExecutionStatus
    input: Dict[str, Any]
    error: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    started_at: datetime
    finished_at: Optional[datetime] = None
    duration_ms: Optional[int] = None


class ExecutionListResponse(BaseModel):
    """Paginated execution list."""
    items: List[ExecutionResponse]
    total: int
    limit: int
    offset: int
