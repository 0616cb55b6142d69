"""Export template models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    Boolean, Enum as SQLEnum, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column

from pumpflix.database import Base
from pumpflix.db_types import UTCDateTime, utcnow


class ExportCategory(str, Enum):
    """Business area an export serves."""
    OPERATIONS = "operations"
    PRODUCT = "product"
    FINANCE = "finance"
    SUPPORT = "support"
    ANALYTICS = "analytics"
    BILLING = "billing"


class ExportType(str, Enum):
    """Kind of rows an export produces."""
    USAGE = "usage"
    BILLING = "billing"
    AUDIT = "audit"
    ANALYTICS = "analytics"


class ExportFormat(str, Enum):
    """Output format."""
    CSV = "csv"
    JSON = "json"
    XLSX = "xlsx"
    PDF = "pdf"


class ExportTemplateStatus(str, Enum):
    """Template lifecycle."""
    ACTIVE = "active"
    ARCHIVED = "archived"


class TemplateVersionStatus(str, Enum):
    """Version lifecycle."""
    DRAFT = "draft"
    RELEASED = "released"
    DEPRECATED = "deprecated"


class ExportJobStatus(str, Enum):
    """Export job lifecycle."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ExportTemplate(Base):
    """Named, versioned definition of a data export."""

    __tablename__ = "export_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    key: Mapped[Optional[str]] = mapped_column(String(100), unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    category: Mapped[ExportCategory] = mapped_column(SQLEnum(ExportCategory), nullable=False)
    type: Mapped[ExportType] = mapped_column(SQLEnum(ExportType), nullable=False)
    format: Mapped[ExportFormat] = mapped_column(
        SQLEnum(ExportFormat), default=ExportFormat.CSV, nullable=False
    )
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[ExportTemplateStatus] = mapped_column(
        SQLEnum(ExportTemplateStatus), default=ExportTemplateStatus.ACTIVE, nullable=False
    )
    current_version: Mapped[Optional[str]] = mapped_column(String(50))

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
        Index("ix_export_templates_org_id", "org_id"),
    )

    def is_visible_to(self, user_id: int, org_id: int) -> bool:
        """Public, created by the user, or owned by the user's organization."""
        return self.is_public or self.created_by == user_id or self.org_id == org_id

    def __repr__(self) -> str:
        return f"<ExportTemplate(id={self.id}, name='{self.name}')>"


class ExportTemplateVersion(Base):
    """Immutable schema snapshot of an export template."""

    __tablename__ = "export_template_versions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    template_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("export_templates.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[str] = mapped_column(String(50), nullable=False)
    definition: Mapped[Dict[str, Any]] = mapped_column("schema", JSON, nullable=False)
    change_notes: Mapped[str] = mapped_column(Text, nullable=False)
    performance_notes: Mapped[Optional[str]] = mapped_column(Text)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[TemplateVersionStatus] = mapped_column(
        SQLEnum(TemplateVersionStatus), default=TemplateVersionStatus.DRAFT, nullable=False
    )
    created_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("template_id", "version", name="uq_export_template_versions_version"),
    )

    def __repr__(self) -> str:
        return f"<ExportTemplateVersion(template_id={self.template_id}, version='{self.version}')>"


class ExportJob(Base):
    """A requested run of an export template."""

    __tablename__ = "export_jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    template_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("export_templates.id", ondelete="CASCADE"), nullable=False
    )
    version: Mapped[Optional[str]] = mapped_column(String(50))
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[ExportJobStatus] = mapped_column(
        SQLEnum(ExportJobStatus), default=ExportJobStatus.PENDING, nullable=False
    )
    format: Mapped[ExportFormat] = mapped_column(SQLEnum(ExportFormat), nullable=False)
    params: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    row_count: Mapped[Optional[int]] = mapped_column(Integer)
    output: Mapped[Optional[str]] = mapped_column(Text)
    error: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    started_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    completed_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())

    __table_args__ = (
        Index("ix_export_jobs_org_id", "org_id"),
    )
