"""
ReminderRepository for database operations on Reminder model
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from database_models import Reminder

REMINDER_FIELDS = ("title", "description", "date", "time", "repeat", "completed")


class ReminderRepository:
    """Reminder CRUD, scoped to the owning user. `repeat` is stored as a label only."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_reminders(self, user_id: int) -> List[Reminder]:
        result = await self.db.execute(
            select(Reminder)
            .where(Reminder.user_id == user_id)
            .order_by(Reminder.date, Reminder.time, Reminder.id)
        )
        return list(result.scalars().all())

    async def get_reminder(self, reminder_id: int, user_id: int) -> Optional[Reminder]:
        result = await self.db.execute(
            select(Reminder).where(Reminder.id == reminder_id, Reminder.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create_reminder(self, user_id: int, reminder_data: dict) -> Reminder:
        reminder = Reminder(user_id=user_id)
        for key in REMINDER_FIELDS:
            if reminder_data.get(key) is not None:
                setattr(reminder, key, reminder_data[key])
        self.db.add(reminder)
        await self.db.flush()
        await self.db.refresh(reminder)
        return reminder

    async def update_reminder(self, reminder: Reminder, updates: dict) -> Reminder:
        for key, value in updates.items():
            if key in REMINDER_FIELDS:
                setattr(reminder, key, value)
        await self.db.flush()
        await self.db.refresh(reminder)
        return reminder

    async def delete_reminder(self, reminder: Reminder) -> None:
        await self.db.delete(reminder)
        await self.db.flush()
