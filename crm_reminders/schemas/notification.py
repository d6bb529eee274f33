"""Notification center schemas."""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, Field


class NotificationCreate(BaseModel):
    """Schema for adding an entry to the caller's notification center."""
    type: str = Field(default="reminder", pattern=r"^(lead|task|callback|system|reminder)$")
    title: str = Field(..., min_length=1, max_length=300)
    message: str
    priority: str = Field(default="medium", pattern=r"^(low|medium|high)$")
    event_id: Optional[str] = Field(None, max_length=36)
    metadata: Optional[Dict[str, Any]] = None


class NotificationResponse(BaseModel):
    """Schema for notification center API responses."""
    id: str
    user_id: str
    type: str
    title: str
    message: str
    priority: str
    read: bool
    event_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("details", "metadata"))
    created_at: datetime

    class Config:
        from_attributes = True
