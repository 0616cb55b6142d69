"""AI prompt template models."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pumpflix.database import Base
from pumpflix.db_types import UTCDateTime, utcnow


class PromptTemplate(Base):
    """Reusable prompt with ``{{name}}`` placeholders."""

    __tablename__ = "prompt_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    template: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100))
    meta: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)

    created_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_prompt_templates_org_category", "org_id", "category"),
    )

    def __repr__(self) -> str:
        return f"<PromptTemplate(id={self.id}, name='{self.name}')>"
