"""Audit log API routes."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.audit.schemas import AuditLogListResponse
from pumpflix.audit.service import AuditFilter, AuditService
from pumpflix.auth.dependencies import get_admin_user
from pumpflix.auth.models import User
from pumpflix.database import get_postgres_session

router = APIRouter(prefix="/audit", tags=["Audit"])


def audit_filter(
    start_date: Optional[datetime] = Query(None, description="Entries at or after"),
    end_date: Optional[datetime] = Query(None, description="Entries at or before"),
    action: Optional[str] = Query(None, description="Action type"),
    user_id: Optional[int] = Query(None, description="Acting user"),
) -> AuditFilter:
    return AuditFilter(start_date=start_date, end_date=end_date, action=action, user_id=user_id)


@router.get("/logs", response_model=AuditLogListResponse)
async def list_audit_logs(
    filters: AuditFilter = Depends(audit_filter),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """List the organization's audit trail."""
    logs, total = await AuditService(db).list_logs(current_user.org_id, filters, limit, offset)
    return AuditLogListResponse(logs=logs, total=total, limit=limit, offset=offset)


@router.get("/logs/export")
async def export_audit_logs(
    filters: AuditFilter = Depends(audit_filter),
    current_user: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Download the organization's audit trail as CSV."""
    content = await AuditService(db).export_csv(current_user.org_id, filters)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=audit-logs.csv"},
    )
