"""In-memory event repository, used as the locally cached event store."""
import itertools
import logging
from typing import Any, Dict, List, Optional

from crm_reminders.engine.types import ScheduledEvent, canonical_fields, coerce_event
from crm_reminders.repository.base import REARM_FIELDS, EventRepository

logger = logging.getLogger(__name__)


class InMemoryEventRepository(EventRepository):
    """Keeps events in a dict keyed by id."""

    def __init__(self, events: Optional[List[ScheduledEvent]] = None):
        self._events: Dict[str, ScheduledEvent] = {}
        self._ids = itertools.count(1)
        for event in events or []:
            self._events[event.id] = event

    def snapshot(self) -> List[ScheduledEvent]:
        return list(self._events.values())

    def get(self, event_id: str) -> Optional[ScheduledEvent]:
        return self._events.get(str(event_id))

    def replace_all(self, events: List[ScheduledEvent]):
        """Swap the cached set for a freshly fetched one."""
        self._events = {event.id: event for event in events}

    async def list_events(self, owner_id: Optional[str]) -> List[ScheduledEvent]:
        return [
            event for event in self._events.values()
            if owner_id is None or event.owner_id == owner_id
        ]

    async def create_event(self, data: Dict[str, Any]) -> ScheduledEvent:
        payload = dict(data)
        if payload.get("id") is None:
            event_id = str(next(self._ids))
            while event_id in self._events:
                event_id = str(next(self._ids))
            payload["id"] = event_id
        payload.setdefault("is_active", True)
        payload.setdefault("notified", False)

        event = coerce_event(payload)
        self._events[event.id] = event
        return event

    async def update_event(self, event_id: str, patch: Dict[str, Any]) -> Optional[ScheduledEvent]:
        current = self._events.get(str(event_id))
        if current is None:
            return None

        merged = current.model_dump()
        merged.update(canonical_fields(patch))
        merged["id"] = current.id
        updated = coerce_event(merged)

        rearmed = any(
            getattr(updated, name) != getattr(current, name) for name in REARM_FIELDS
        )
        if rearmed and "notified" not in patch:
            updated = updated.with_notified(False)

        self._events[updated.id] = updated
        return updated

    async def delete_event(self, event_id: str) -> None:
        self._events.pop(str(event_id), None)

    async def mark_notified(self, event_id: str) -> bool:
        current = self._events.get(str(event_id))
        if current is None:
            logger.warning(f"Cannot mark unknown event {event_id} as notified")
            return False
        self._events[current.id] = current.with_notified(True)
        return True
