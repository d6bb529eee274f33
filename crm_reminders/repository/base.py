"""
Base Event Repository.

Abstract contract for the persisted collection of calendar events the reminder
engine polls. Implementations return validated ScheduledEvent values.
"""

import abc
from enum import Enum
from typing import Any, Dict, List, Optional

from crm_reminders.engine.types import ScheduledEvent, canonical_fields

# Changing either of these on edit re-arms the reminder.
REARM_FIELDS = ("start_time", "advance_notice_minutes")

# Engine field name -> unified_events column
_COLUMN_NAMES = {
    "kind": "event_type",
    "advance_notice_minutes": "advance_notice",
    "subject_label": "customer_name",
    "owner_id": "created_by",
}


def to_store_columns(data: Dict[str, Any]) -> Dict[str, Any]:
    """Translate engine or camelCase field names to the event store's column names."""
    columns = {}
    for key, value in canonical_fields(data).items():
        columns[_COLUMN_NAMES.get(key, key)] = value.value if isinstance(value, Enum) else value
    return columns


class EventRepository(abc.ABC):
    """Abstract base class for event stores."""

    @abc.abstractmethod
    async def list_events(self, owner_id: Optional[str]) -> List[ScheduledEvent]:
        """
        List the events belonging to a user.

        Args:
            owner_id: User whose events to return

        Returns:
            Validated events; malformed rows are skipped

        Raises:
            RepositoryError: if the store cannot be reached
        """

    @abc.abstractmethod
    async def create_event(self, data: Dict[str, Any]) -> ScheduledEvent:
        """Create an event (used by CRUD flows, not by the engine)."""

    @abc.abstractmethod
    async def update_event(self, event_id: str, patch: Dict[str, Any]) -> Optional[ScheduledEvent]:
        """Apply a partial update; returns None when the event does not exist."""

    @abc.abstractmethod
    async def delete_event(self, event_id: str) -> None:
        """Delete an event; deleting an unknown id is not an error."""

    @abc.abstractmethod
    async def mark_notified(self, event_id: str) -> bool:
        """
        Persist notified=True for an event.

        Returns:
            True if the store acknowledged the update, False otherwise
        """
