"""Audit trail service."""

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.audit.models import AuditLog

logger = structlog.get_logger()

CSV_COLUMNS = [
    "id", "created_at", "action", "resource", "resource_id",
    "user_id", "ip_address", "user_agent", "metadata",
]


@dataclass
class AuditFilter:
    """Filters for audit log queries."""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    action: Optional[str] = None
    user_id: Optional[int] = None


class AuditService:
    """Write and query the audit trail.

    ``record`` only adds to the session; the caller commits together with the
    change being audited.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        action: str,
        resource: str,
        org_id: int,
        resource_id: Optional[Any] = None,
        user_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLog:
        """Add an audit entry to the current transaction."""
        entry = AuditLog(
            action=action,
            resource=resource,
            resource_id=str(resource_id) if resource_id is not None else None,
            org_id=org_id,
            user_id=user_id,
            meta=metadata or {},
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.db.add(entry)
        await self.db.flush()

        logger.info("Audit entry recorded", action=action, resource=resource, org_id=org_id)
        return entry

    def _filtered(self, org_id: int, filters: AuditFilter):
        query = select(AuditLog).where(AuditLog.org_id == org_id)
        if filters.start_date:
            query = query.where(AuditLog.created_at >= filters.start_date)
        if filters.end_date:
            query = query.where(AuditLog.created_at <= filters.end_date)
        if filters.action:
            query = query.where(AuditLog.action == filters.action)
        if filters.user_id:
            query = query.where(AuditLog.user_id == filters.user_id)
        return query

    async def list_logs(
        self, org_id: int, filters: AuditFilter, limit: int = 10, offset: int = 0
    ) -> Tuple[List[AuditLog], int]:
        """List audit entries of an organization, newest first."""
        query = self._filtered(org_id, filters)
        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))

        result = await self.db.execute(
            query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all()), total or 0

    async def export_csv(self, org_id: int, filters: AuditFilter) -> str:
        """Render every matching audit entry as CSV."""
        result = await self.db.execute(
            self._filtered(org_id, filters).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        )

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(CSV_COLUMNS)
        for entry in result.scalars():
            writer.writerow([
                entry.id,
                entry.created_at.isoformat(),
                entry.action,
                entry.resource,
                entry.resource_id or "",
                entry.user_id or "",
                entry.ip_address or "",
                entry.user_agent or "",
                json.dumps(entry.meta, default=str),
            ])
        return buffer.getvalue()
