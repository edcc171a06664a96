"""
Reminders and notifications routers
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from crud.notification import NotificationRepository
from crud.reminder import ReminderRepository
from database import get_db
from models.reminder import ReminderRequest, ReminderUpdateRequest, ReminderOut, NotificationOut

reminders_router = APIRouter(prefix="/api/reminders", tags=["reminders"])
notifications_router = APIRouter(prefix="/api/notifications", tags=["notifications"])


async def _get_reminder(reminder_id: int, current_user: dict, db: AsyncSession):
    reminder = await ReminderRepository(db).get_reminder(reminder_id, current_user["user_id"])
    if not reminder:
        raise HTTPException(status_code=404, detail="Reminder not found")
    return reminder


@reminders_router.get("", response_model=List[ReminderOut])
async def list_reminders(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await ReminderRepository(db).list_reminders(current_user["user_id"])


@reminders_router.post("", response_model=ReminderOut, status_code=201)
async def create_reminder(
    request: ReminderRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await ReminderRepository(db).create_reminder(current_user["user_id"], request.model_dump())


@reminders_router.put("/{reminder_id}", response_model=ReminderOut)
async def update_reminder(
    reminder_id: int,
    request: ReminderUpdateRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    reminder = await _get_reminder(reminder_id, current_user, db)
    updates = {k: v for k, v in request.model_dump(exclude_unset=True).items() if v is not None or k in ("description", "time")}
    return await ReminderRepository(db).update_reminder(reminder, updates)


@reminders_router.post("/{reminder_id}/toggle", response_model=ReminderOut)
async def toggle_reminder(reminder_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    """Flip the completed flag."""
    reminder = await _get_reminder(reminder_id, current_user, db)
    return await ReminderRepository(db).update_reminder(reminder, {"completed": not reminder.completed})


@reminders_router.delete("/{reminder_id}")
async def delete_reminder(reminder_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    reminder = await _get_reminder(reminder_id, current_user, db)
    await ReminderRepository(db).delete_reminder(reminder)
    return {"message": "Reminder deleted"}


@notifications_router.get("", response_model=List[NotificationOut])
async def list_notifications(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return await NotificationRepository(db).list_notifications(current_user["user_id"])


@notifications_router.get("/unread-count")
async def unread_count(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    return {"count": await NotificationRepository(db).count_unread(current_user["user_id"])}


@notifications_router.post("/mark-all-read")
async def mark_all_read(current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    updated = await NotificationRepository(db).mark_all_read(current_user["user_id"])
    return {"updated": updated}


@notifications_router.post("/mark-read/{notification_id}", response_model=NotificationOut)
async def mark_read(notification_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    repo = NotificationRepository(db)
    notification = await repo.get_notification(notification_id, current_user["user_id"])
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return await repo.mark_read(notification)


@notifications_router.delete("/{notification_id}")
async def delete_notification(notification_id: int, current_user: dict = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    repo = NotificationRepository(db)
    notification = await repo.get_notification(notification_id, current_user["user_id"])
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    await repo.delete_notification(notification)
    return {"message": "Notification deleted"}
