"""Workflow data models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean, Enum as SQLEnum, ForeignKey, Index, Integer, JSON, String, Text
)
from sqlalchemy.orm import Mapped, mapped_column

from pumpflix.database import Base
from pumpflix.db_types import UTCDateTime, utcnow


class WorkflowStatus(str, Enum):
    """Workflow status enumeration."""
    DRAFT = "draft"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class Workflow(Base):
    """Automation workflow owned by a tenant."""

    __tablename__ = "workflows"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    status: Mapped[WorkflowStatus] = mapped_column(
        SQLEnum(WorkflowStatus),
        default=WorkflowStatus.DRAFT,
        nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Nodes and edges as drawn in the editor
    config: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    # Ownership
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    template_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("workflow_templates.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )
    archived_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    last_execution_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())

    __table_args__ = (
        Index("ix_workflows_tenant_id", "tenant_id"),
        Index("ix_workflows_org_id", "org_id"),
        Index("ix_workflows_status", "status"),
    )

    @property
    def nodes(self) -> List[Dict[str, Any]]:
        """Nodes of the workflow graph."""
        return list((self.config or {}).get("nodes", []))

    @property
    def is_archived(self) -> bool:
        """Check if workflow has been archived."""
        return self.status == WorkflowStatus.ARCHIVED

    def __repr__(self) -> str:
        return f"<Workflow(id={self.id}, name='{self.name}', status={self.status})>"
