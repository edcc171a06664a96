"""
NotificationRepository for database operations on Notification model
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func
from database_models import Notification


class NotificationRepository:
    """
    Repository class for Notification database operations.
    Notifications are created by the system and read or deleted by their owner.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_notifications(self, user_id: int, limit: int = 100) -> List[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_unread(self, user_id: int) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id)).where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
        )
        return int(result.scalar_one())

    async def get_notification(self, notification_id: int, user_id: int) -> Optional[Notification]:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def create_notification(self, user_id: int, notification_data: dict) -> Notification:
        """
        Insert a notification.

        Args:
            user_id: Recipient
            notification_data: title, message, type and optional
                related_entity_type / related_entity_id
        """
        notification = Notification(
            user_id=user_id,
            title=notification_data["title"],
            message=notification_data["message"],
            type=notification_data.get("type", "info"),
            related_entity_type=notification_data.get("related_entity_type"),
            related_entity_id=notification_data.get("related_entity_id"),
        )
        self.db.add(notification)
        await self.db.flush()
        await self.db.refresh(notification)
        return notification

    async def mark_read(self, notification: Notification) -> Notification:
        notification.is_read = True
        await self.db.flush()
        await self.db.refresh(notification)
        return notification

    async def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification as read. Returns the number of rows changed."""
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True)
        )
        await self.db.flush()
        return result.rowcount or 0

    async def delete_notification(self, notification: Notification) -> None:
        await self.db.delete(notification)
        await self.db.flush()
