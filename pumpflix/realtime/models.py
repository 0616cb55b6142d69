"""WebSocket session models."""

from uuid import UUID, uuid4
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Index, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from pumpflix.database import Base
from pumpflix.db_types import GUID, UTCDateTime, utcnow


class SessionStatus(str, Enum):
    """WebSocket session status."""
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class WebSocketSession(Base):
    """A client's live connection to a workflow's status channel."""

    __tablename__ = "websocket_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[UUID] = mapped_column(
        GUID(), default=uuid4, unique=True, nullable=False
    )
    workflow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    client_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[SessionStatus] = mapped_column(
        SQLEnum(SessionStatus), default=SessionStatus.CONNECTED, nullable=False
    )
    meta: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)

    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )

    connected_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    disconnected_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())

    __table_args__ = (
        Index("ix_websocket_sessions_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<WebSocketSession(session_id={self.session_id}, status={self.status})>"
