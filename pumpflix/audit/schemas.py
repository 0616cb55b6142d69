"""Audit log schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuditLogResponse(BaseModel):
    """Audit log entry."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    action: str
    resource: str
    resource_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    user_id: Optional[int] = None
    org_id: int
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated audit log list."""
    logs: List[AuditLogResponse]
    total: int
    limit: int
    offset: int
