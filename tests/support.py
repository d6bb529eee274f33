"""Test doubles shared by the engine tests."""
from datetime import datetime, timedelta
from typing import List, Optional

from crm_reminders.channels.base import NotificationChannel
from crm_reminders.engine.errors import ChannelError, RepositoryError
from crm_reminders.engine.types import ReminderMessage, ScheduledEvent
from crm_reminders.models.notification import NotificationRecord
from crm_reminders.repository.memory import InMemoryEventRepository
from crm_reminders.services.notification_center import NotificationCenter, is_duplicate

START = datetime(2024, 3, 10, 14, 0)


class FakeClock:
    """Settable clock; call it to read the current instant."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingChannel(NotificationChannel):
    """Channel that remembers what it was asked to send."""

    def __init__(self, name: str = "recording", fail: bool = False):
        super().__init__()
        self.name = name
        self.fail = fail
        self.sent: List[ReminderMessage] = []

    async def send(self, message: ReminderMessage) -> bool:
        if self.fail:
            raise ChannelError(f"{self.name} is down")
        self.sent.append(message)
        return True


class FlakyRepository(InMemoryEventRepository):
    """In-memory repository whose calls can be made to fail on demand."""

    def __init__(self, events: Optional[List[ScheduledEvent]] = None):
        super().__init__(events)
        self.fail_fetches = 0
        self.fail_mark_notified = False
        self.fetch_calls = 0
        self.mark_calls: List[str] = []

    async def list_events(self, owner_id):
        self.fetch_calls += 1
        if self.fail_fetches > 0:
            self.fail_fetches -= 1
            raise RepositoryError("event store unreachable")
        return await super().list_events(owner_id)

    async def mark_notified(self, event_id: str) -> bool:
        self.mark_calls.append(event_id)
        if self.fail_mark_notified:
            raise RepositoryError("event store unreachable")
        return await super().mark_notified(event_id)


def make_event(event_id: str = "1", start_time: datetime = START, advance_notice_minutes: int = 60,
               owner_id: Optional[str] = "user-1", **overrides) -> ScheduledEvent:
    overrides.setdefault("title", f"Call #{event_id}")
    overrides.setdefault("subject_label", "Dana Levi")
    return ScheduledEvent(
        id=event_id,
        start_time=start_time,
        advance_notice_minutes=advance_notice_minutes,
        owner_id=owner_id,
        **overrides,
    )


class InMemoryNotificationCenter(NotificationCenter):
    """Process-local notification center with the same duplicate rule as the real stores."""

    def __init__(self):
        self.entries: List[NotificationRecord] = []

    def record(self, entry: NotificationRecord) -> Optional[NotificationRecord]:
        if any(is_duplicate(existing, entry) for existing in self.entries):
            return None
        self.entries.insert(0, entry)
        return entry

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[NotificationRecord]:
        return [entry for entry in self.entries if entry.user_id == user_id and not (unread_only and entry.read)]

    def _find(self, notification_id: str, user_id: str) -> Optional[NotificationRecord]:
        for entry in self.entries:
            if entry.id == notification_id and entry.user_id == user_id:
                return entry
        return None

    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        entry = self._find(notification_id, user_id)
        if entry is None:
            return False
        entry.read = True
        return True

    def mark_all_as_read(self, user_id: str) -> int:
        unread = self.list_for_user(user_id, unread_only=True)
        for entry in unread:
            entry.read = True
        return len(unread)

    def remove(self, notification_id: str, user_id: str) -> bool:
        entry = self._find(notification_id, user_id)
        if entry is None:
            return False
        self.entries.remove(entry)
        return True

    def clear_all(self, user_id: str) -> int:
        before = len(self.entries)
        self.entries = [entry for entry in self.entries if entry.user_id != user_id]
        return before - len(self.entries)
