"""Notification schemas."""

from datetime import datetime
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field

from pumpflix.notifications.models import NotificationType


class NotificationResponse(BaseModel):
    """Notification response schema."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    type: NotificationType
    message: str
    read: bool
    metadata: Dict[str, Any] = Field(default_factory=dict, validation_alias="meta")
    created_at: datetime


class ReadAllResponse(BaseModel):
    """Result of marking all notifications read."""
    updated: int
