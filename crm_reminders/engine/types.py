"""Value types the reminder engine reasons about."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from crm_reminders.engine.errors import MalformedEventError
from crm_reminders.utils.israel_time import parse_instant

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    REMINDER = "reminder"
    MEETING = "meeting"
    TASK = "task"
    NO_REMINDER = "no-reminder"


class EventStatus(str, Enum):
    """Calendar classification shown next to an event."""
    COMPLETED = "completed"
    OVERDUE = "overdue"
    TODAY = "today"
    TOMORROW = "tomorrow"
    UPCOMING = "upcoming"


class ScheduledEvent(BaseModel):
    """An event as seen by the evaluator, validated once at the repository boundary."""

    id: str = Field(..., min_length=1)
    kind: EventKind = EventKind.REMINDER
    start_time: datetime  # naive UTC
    advance_notice_minutes: int = Field(default=0, ge=0)
    is_active: bool = True
    notified: bool = False
    title: str = ""
    subject_label: Optional[str] = None  # customer name
    description: Optional[str] = None
    owner_id: Optional[str] = None

    class Config:
        frozen = True

    @field_validator("start_time", mode="before")
    @classmethod
    def _parse_start_time(cls, value):
        return parse_instant(value)

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return None if value is None else str(value)

    def with_notified(self, notified: bool = True) -> "ScheduledEvent":
        return self.model_copy(update={"notified": notified})


# Accepted spellings per field: engine name, database column, JSON (camelCase) key.
_FIELD_ALIASES = {
    "id": ("id",),
    "kind": ("kind", "event_type", "eventType"),
    "start_time": ("start_time", "startTime"),
    "advance_notice_minutes": ("advance_notice_minutes", "advance_notice", "advanceNotice"),
    "is_active": ("is_active", "isActive"),
    "notified": ("notified",),
    "title": ("title",),
    "subject_label": ("subject_label", "customer_name", "customerName"),
    "description": ("description",),
    "owner_id": ("owner_id", "created_by", "createdBy"),
}


def _lookup(payload: Any, keys: Iterable[str]) -> Any:
    for key in keys:
        if isinstance(payload, dict):
            value = payload.get(key)
        else:
            value = getattr(payload, key, None)
        if value is not None:
            return value
    return None


def canonical_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Rename aliased keys (advance_notice, startTime, ...) to engine field names."""
    renamed = {}
    for key, value in data.items():
        for name, keys in _FIELD_ALIASES.items():
            if key in keys:
                key = name
                break
        renamed[key] = value
    return renamed


def coerce_event(payload: Any) -> ScheduledEvent:
    """
    Build a ScheduledEvent from a dict (snake_case or camelCase) or an ORM row.

    Missing flags take the lenient defaults the CRM always used: active,
    not notified, kind "reminder" for legacy reminder rows without a type.

    Raises:
        MalformedEventError: if the payload cannot be validated
    """
    values: Dict[str, Any] = {}
    for name, keys in _FIELD_ALIASES.items():
        value = _lookup(payload, keys)
        if value is not None:
            values[name] = value

    if "title" in values:
        values["title"] = str(values["title"])

    try:
        return ScheduledEvent(**values)
    except (ValidationError, ValueError, TypeError) as e:
        raise MalformedEventError(f"Invalid event payload: {e}", payload=payload) from e


def ingest_events(payloads: Iterable[Any], metrics=None) -> List[ScheduledEvent]:
    """Coerce a batch of payloads, skipping (and logging) malformed ones."""
    events: List[ScheduledEvent] = []
    for payload in payloads:
        try:
            events.append(coerce_event(payload))
        except MalformedEventError as e:
            logger.warning(f"Skipping malformed event: {e}")
            if metrics is not None:
                metrics.malformed_event()
    return events


@dataclass(frozen=True)
class DispatchedNotification:
    """Record of one notification fired for an event."""
    event_id: str
    fired_at: datetime
    channels: FrozenSet[str] = field(default_factory=frozenset)
    persisted: bool = False


@dataclass(frozen=True)
class ReminderMessage:
    """Rendered text handed to every channel."""
    event_id: str
    title: str
    body: str
    toast_text: str
    priority: str = "high"
    notification_type: str = "reminder"
    owner_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
