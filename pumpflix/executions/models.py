"""Execution log models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import Enum as SQLEnum, ForeignKey, Index, Integer, JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from pumpflix.database import Base
from pumpflix.db_types import UTCDateTime, utcnow


class ExecutionStatus(str, Enum):
    """Execution status enumeration."""
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELLED = "cancelled"


FINISHED_STATUSES = (ExecutionStatus.SUCCESS, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED)


class ExecutionLog(Base):
    """Record of a single workflow run."""

    __tablename__ = "execution_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    workflow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[ExecutionStatus] = mapped_column(
        SQLEnum(ExecutionStatus), default=ExecutionStatus.PENDING, nullable=False
    )

    input: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    error: Mapped[Optional[str]] = mapped_column(Text)
    # "metadata" is reserved on declarative classes
    meta: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)

    started_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    finished_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer)

    __table_args__ = (
        Index("ix_execution_logs_workflow_id", "workflow_id"),
        Index("ix_execution_logs_org_started", "org_id", "started_at"),
    )

    @property
    def is_finished(self) -> bool:
        """Check if execution reached a terminal status."""
        return self.status in FINISHED_STATUSES

    def __repr__(self) -> str:
        return f"<ExecutionLog(id={self.id}, workflow_id={self.workflow_id}, status={self.status})>"
