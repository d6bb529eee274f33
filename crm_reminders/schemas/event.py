"""Unified event schemas."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from crm_reminders.engine.types import EventStatus
from crm_reminders.utils.israel_time import to_stored_instant

EVENT_TYPE_PATTERN = r"^(reminder|meeting|task|no-reminder)$"


class EventCreate(BaseModel):
    """Schema for creating an event.

    Either ``start_time`` or the reminder form pair ``reminder_date`` +
    ``reminder_time`` must be given.
    """
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    event_type: str = Field(default="reminder", pattern=EVENT_TYPE_PATTERN)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    reminder_date: Optional[str] = None  # YYYY-MM-DD
    reminder_time: Optional[str] = None  # HH:MM
    advance_notice: Optional[int] = Field(None, ge=0)  # minutes; reminders default to 1440
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=200)
    lead_id: Optional[int] = None

    @model_validator(mode="after")
    def _resolve_start_time(self):
        if self.start_time is None:
            if not self.reminder_date or not self.reminder_time:
                raise ValueError("start_time or reminder_date and reminder_time are required")
            self.start_time = to_stored_instant(self.reminder_date, self.reminder_time)
        if self.advance_notice is None:
            self.advance_notice = 1440 if self.event_type == "reminder" else 0
        return self


class EventUpdate(BaseModel):
    """Schema for updating an event; only the given fields change."""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    event_type: Optional[str] = Field(None, pattern=EVENT_TYPE_PATTERN)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    advance_notice: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    notified: Optional[bool] = None
    customer_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=200)
    lead_id: Optional[int] = None

    @field_validator("title", "event_type", "start_time", "advance_notice", "is_active", "notified")
    @classmethod
    def _reject_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared.
        if value is None:
            raise ValueError("Field cannot be null")
        return value


class EventResponse(BaseModel):
    """Schema for event API responses.

    ``status`` and the display fields are filled in by the list endpoints.
    """
    id: int
    title: str
    description: Optional[str] = None
    event_type: str
    start_time: datetime
    end_time: Optional[datetime] = None
    advance_notice: int
    is_active: bool
    notified: bool
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    lead_id: Optional[int] = None
    created_by: str
    created_at: datetime
    updated_at: datetime
    status: Optional[EventStatus] = None
    display_date: Optional[str] = None  # YYYY-MM-DD, Israel time
    display_time: Optional[str] = None  # HH:MM, Israel time

    class Config:
        from_attributes = True
