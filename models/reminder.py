"""
Reminder and notification models
"""
from datetime import datetime
from typing import Optional, Literal
from pydantic import Field

from models.common import CamelModel

Repeat = Literal["never", "daily", "weekly", "monthly", "yearly"]


class ReminderRequest(CamelModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    date: str = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    repeat: Repeat = "never"
    completed: bool = False


class ReminderUpdateRequest(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    date: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: Optional[str] = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    repeat: Optional[Repeat] = None
    completed: Optional[bool] = None


class ReminderOut(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    date: str
    time: Optional[str] = None
    repeat: str
    completed: bool
    created_at: datetime


class NotificationOut(CamelModel):
    id: int
    title: str
    message: str
    type: str
    is_read: bool
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[int] = None
    created_at: datetime
