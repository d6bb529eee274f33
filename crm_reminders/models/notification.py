"""Notification center model for SQLModel."""
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from crm_reminders.utils.israel_time import utc_now


class NotificationRecord(SQLModel, table=True):
    """Entry shown in a user's in-app notification center."""

    __tablename__ = "notifications"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True, max_length=36)
    user_id: str = Field(max_length=100, index=True)
    type: str = Field(default="reminder", max_length=20)  # lead, task, callback, system, reminder
    title: str = Field(max_length=300)
    message: str
    priority: str = Field(default="medium", max_length=10)  # low, medium, high
    read: bool = Field(default=False)
    event_id: Optional[str] = Field(default=None, max_length=36, index=True)
    details: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column("metadata", JSON))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime, nullable=False))
