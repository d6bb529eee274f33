"""Event service for the unified events table."""
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from crm_reminders.models.event import UnifiedEvent
from crm_reminders.utils.israel_time import parse_instant, utc_now

# Editing these fields re-arms the reminder (notified goes back to False).
REARM_COLUMNS = ("start_time", "advance_notice")

UPDATABLE_COLUMNS = (
    "title", "description", "event_type", "start_time", "end_time", "advance_notice",
    "is_active", "notified", "customer_id", "customer_name", "lead_id",
)

# Columns an update may change but never clear.
NOT_NULL_COLUMNS = ("title", "event_type", "start_time", "advance_notice", "is_active", "notified")


class EventService:
    """Service class for unified event CRUD operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, user_id: str, data: Dict[str, Any]) -> UnifiedEvent:
        """Create a new event owned by ``user_id``, active and not yet notified."""
        start_time = parse_instant(data["start_time"])
        end_time = data.get("end_time")
        now = utc_now()

        event = UnifiedEvent(
            title=data["title"],
            description=data.get("description"),
            event_type=data.get("event_type") or "reminder",
            start_time=start_time,
            end_time=parse_instant(end_time) if end_time else start_time,
            advance_notice=data.get("advance_notice") or 0,
            is_active=True,
            notified=False,
            customer_id=data.get("customer_id"),
            customer_name=data.get("customer_name"),
            lead_id=data.get("lead_id"),
            created_by=user_id,
            created_at=now,
            updated_at=now,
        )

        self.session.add(event)
        self.session.commit()
        self.session.refresh(event)
        return event

    def list_for_user(
        self,
        user_id: Optional[str],
        event_type: Optional[str] = None,
        active_only: bool = False,
    ) -> List[UnifiedEvent]:
        """Events created by a user (all users when ``user_id`` is None), by start time."""
        statement = select(UnifiedEvent)
        if user_id is not None:
            statement = statement.where(UnifiedEvent.created_by == user_id)
        if event_type:
            statement = statement.where(UnifiedEvent.event_type == event_type)
        if active_only:
            statement = statement.where(UnifiedEvent.is_active == True)  # noqa: E712
        statement = statement.order_by(UnifiedEvent.start_time)
        return list(self.session.exec(statement).all())

    def get_by_id(self, event_id: int, user_id: Optional[str] = None) -> Optional[UnifiedEvent]:
        event = self.session.get(UnifiedEvent, event_id)
        if event is None or (user_id is not None and event.created_by != user_id):
            return None
        return event

    def update(self, event_id: int, updates: Dict[str, Any],
               user_id: Optional[str] = None) -> Optional[UnifiedEvent]:
        """Apply a partial update. Changing the start time or notice re-arms the reminder."""
        event = self.get_by_id(event_id, user_id)
        if event is None:
            return None

        rearm = False
        for column in UPDATABLE_COLUMNS:
            if column not in updates:
                continue
            value = updates[column]
            if value is None and column in NOT_NULL_COLUMNS:
                continue
            if column in ("start_time", "end_time") and value is not None:
                value = parse_instant(value)
            if column in REARM_COLUMNS and getattr(event, column) != value:
                rearm = True
            setattr(event, column, value)

        if rearm and "notified" not in updates:
            event.notified = False
        event.updated_at = utc_now()

        self.session.add(event)
        self.session.commit()
        self.session.refresh(event)
        return event

    def delete(self, event_id: int, user_id: Optional[str] = None) -> bool:
        event = self.get_by_id(event_id, user_id)
        if event is None:
            return False
        self.session.delete(event)
        self.session.commit()
        return True

    def mark_notified(self, event_id: int, user_id: Optional[str] = None) -> bool:
        """Set notified=True; False when the event does not exist."""
        event = self.get_by_id(event_id, user_id)
        if event is None:
            return False
        event.notified = True
        event.updated_at = utc_now()
        self.session.add(event)
        self.session.commit()
        return True
