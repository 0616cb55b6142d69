"""Workflow template and instance models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean, Enum as SQLEnum, ForeignKey, Index, Integer, JSON, String, Text
)
from sqlalchemy.orm import Mapped, mapped_column

from pumpflix.database import Base
from pumpflix.db_types import UTCDateTime, utcnow


class TemplateType(str, Enum):
    """Where a template comes from."""
    PREBUILT = "prebuilt"
    USER = "user"


class WorkflowTemplate(Base):
    """Reusable workflow definition."""

    __tablename__ = "workflow_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    type: Mapped[TemplateType] = mapped_column(
        SQLEnum(TemplateType), default=TemplateType.USER, nullable=False
    )
    config: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1024))
    required_credentials: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    input_variables: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    install_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Prebuilt templates belong to no organization
    org_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True
    )
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_workflow_templates_type", "type"),
        Index("ix_workflow_templates_org_id", "org_id"),
    )

    def is_visible_to(self, org_id: int) -> bool:
        """Check if an organization may see the template."""
        return self.org_id == org_id or (self.type == TemplateType.PREBUILT and self.is_public)

    def __repr__(self) -> str:
        return f"<WorkflowTemplate(id={self.id}, name='{self.name}', type={self.type})>"


class WorkflowInstance(Base):
    """Link between a template and the workflow installed from it."""

    __tablename__ = "workflow_instances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    template_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workflow_templates.id", ondelete="CASCADE"), nullable=False
    )
    workflow_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    tenant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False
    )
    variables: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    installed_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_workflow_instances_org_id", "org_id"),
    )

    def __repr__(self) -> str:
        return f"<WorkflowInstance(id={self.id}, template_id={self.template_id})>"
