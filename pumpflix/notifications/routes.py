"""Notification API routes."""

from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.auth.dependencies import get_current_user
from pumpflix.auth.models import User
from pumpflix.database import get_postgres_session
from pumpflix.notifications.schemas import NotificationResponse, ReadAllResponse
from pumpflix.notifications.service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread: bool = Query(False, description="Only unread notifications"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """List the caller's notifications."""
    return await NotificationService(db).list_notifications(current_user.id, unread_only=unread)


@router.post("/read-all", response_model=ReadAllResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Mark all notifications as read."""
    updated = await NotificationService(db).mark_all_read(current_user.id)
    return ReadAllResponse(updated=updated)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_postgres_session),
):
    """Mark a notification as read."""
    return await NotificationService(db).mark_read(notification_id, current_user.id)
