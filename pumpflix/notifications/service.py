"""Notification service."""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from pumpflix.exceptions import NotFoundError
from pumpflix.notifications.models import Notification, NotificationType

logger = structlog.get_logger()


class NotificationService:
    """Create and read in-app notifications.

    ``notify`` only adds to the session; the caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: int,
        org_id: int,
        type: NotificationType,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        """Queue a notification for a user."""
        notification = Notification(
            user_id=user_id,
            org_id=org_id,
            type=type,
            message=message,
            meta=metadata or {},
        )
        self.db.add(notification)
        await self.db.flush()

        logger.info(
            "Notification created",
            notification_id=notification.id,
            user_id=user_id,
            type=type.value,
        )
        return notification

    async def list_notifications(self, user_id: int, unread_only: bool = False) -> List[Notification]:
        """List notifications of a user, newest first."""
        query = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            query = query.where(Notification.read.is_(False))
        query = query.order_by(Notification.created_at.desc(), Notification.id.desc())

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def mark_read(self, notification_id: int, user_id: int) -> Notification:
        """Mark one notification as read."""
        notification = await self.db.get(Notification, notification_id)
        if not notification or notification.user_id != user_id:
            raise NotFoundError("Notification not found")

        notification.read = True
        await self.db.commit()
        return notification

    async def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification of a user as read."""
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
        )
        await self.db.commit()
        return result.rowcount or 0
