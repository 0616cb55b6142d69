"""Credential models."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import Boolean, Enum as SQLEnum, ForeignKey, Index, Integer, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pumpflix.database import Base
from pumpflix.db_types import UTCDateTime, as_utc, utcnow


class CredentialProvider(str, Enum):
    """Third-party services credentials can be stored for."""
    GOOGLE_SHEETS = "google_sheets"
    SLACK = "slack"
    AIRTABLE = "airtable"
    ZAPIER = "zapier"
    MAKERSUITE = "makersuite"
    CUSTOM = "custom"


class Credential(Base):
    """Encrypted secret for a third-party integration."""

    __tablename__ = "credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    provider: Mapped[CredentialProvider] = mapped_column(SQLEnum(CredentialProvider), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)

    # base64(nonce + ciphertext + tag)
    encrypted_data: Mapped[str] = mapped_column(Text, nullable=False)
    meta: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict, nullable=False)

    expires_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(UTCDateTime())

    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    org_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_credentials_org_provider", "org_id", "provider"),
    )

    @property
    def is_expired(self) -> bool:
        """Check if the credential is past its expiry."""
        return self.expires_at is not None and as_utc(self.expires_at) <= utcnow()

    def __repr__(self) -> str:
        return f"<Credential(id={self.id}, provider={self.provider}, label='{self.label}')>"


class CredentialUsageLog(Base):
    """A use of a credential by a workflow or execution."""

    __tablename__ = "credential_usage_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    credential_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("credentials.id", ondelete="CASCADE"), nullable=False
    )
    workflow_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("workflows.id", ondelete="SET NULL"), nullable=True
    )
    execution_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("execution_logs.id", ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    used_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_credential_usage_logs_credential_id", "credential_id"),
    )
