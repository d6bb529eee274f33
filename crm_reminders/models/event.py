"""Unified event model for SQLModel."""
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from crm_reminders.utils.israel_time import utc_now


class UnifiedEvent(SQLModel, table=True):
    """Calendar event: reminder, meeting, task or plain entry."""

    __tablename__ = "unified_events"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str = Field(max_length=200, min_length=1)
    description: Optional[str] = Field(default=None, max_length=2000)
    event_type: str = Field(default="reminder", max_length=20, index=True)  # reminder, meeting, task, no-reminder
    # Plain DateTime columns: values are naive (UTC or stored wall-clock).
    start_time: datetime = Field(sa_column=Column(DateTime, nullable=False, index=True))
    end_time: Optional[datetime] = Field(default=None, sa_column=Column(DateTime, nullable=True))
    advance_notice: int = Field(default=0, ge=0)  # minutes before start_time
    is_active: bool = Field(default=True)
    notified: bool = Field(default=False)
    customer_id: Optional[int] = Field(default=None)
    customer_name: Optional[str] = Field(default=None, max_length=200)
    lead_id: Optional[int] = Field(default=None)
    created_by: str = Field(max_length=100, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime, nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime, nullable=False))
