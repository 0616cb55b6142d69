"""WebSocket session schemas."""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from pumpflix.realtime.models import SessionStatus


class SessionStart(BaseModel):
    """Schema for registering a WebSocket session."""
    workflow_id: int
    client_id: str = Field(..., min_length=1, max_length=255)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SessionEnd(BaseModel):
    """Schema for closing a WebSocket session."""
    session_id: uuid.UUID


class SessionResponse(BaseModel):
    """WebSocket session response."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    session_id: uuid.UUID
    workflow_id: int
    client_id: str
    status: SessionStatus
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    user_id: int
    connected_at: datetime
    disconnected_at: Optional[datetime] = None
