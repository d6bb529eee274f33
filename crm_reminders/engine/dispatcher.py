"""
Notification Dispatcher.

Fans a due reminder out to every channel once per session, then asks the
repository to persist notified=True.
"""

import logging
from typing import Callable, FrozenSet, Iterable, List, Optional, Set, Tuple

from crm_reminders.channels.base import NotificationChannel
from crm_reminders.engine.types import DispatchedNotification, ReminderMessage, ScheduledEvent
from crm_reminders.repository.base import EventRepository
from crm_reminders.utils.israel_time import format_display_date, format_display_time, utc_now
from crm_reminders.utils.logger import dispatcher_logger
from crm_reminders.utils.metrics import MetricsCollector, metrics_collector

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "תזכורת"
UNKNOWN_CUSTOMER = "לא צוין"


def build_reminder_message(event: ScheduledEvent) -> ReminderMessage:
    """Render the Hebrew reminder text, with times shown in Israel time."""
    title = event.title or DEFAULT_TITLE
    customer = event.subject_label or UNKNOWN_CUSTOMER
    event_time = format_display_time(event.start_time)
    event_date = format_display_date(event.start_time)
    details = f"לקוח: {customer}\nזמן: {event_time}\nתאריך: {event_date}"

    return ReminderMessage(
        event_id=event.id,
        title=f"{DEFAULT_TITLE}: {title}",
        body=details,
        toast_text=f"🔔 {title}\n{details}",
        owner_id=event.owner_id,
        metadata={
            "eventId": event.id,
            "customerName": customer,
            "reminderTime": event_time,
            "reminderDate": event_date,
            "title": title,
            "description": event.description,
        },
    )


class NotificationDispatcher:
    """
    Session-scoped dispatcher.

    The dedup set lives as long as the dispatcher; the scheduler creates a new
    dispatcher per session and closes it on stop. A closed dispatcher neither
    emits nor records anything.
    """

    def __init__(self, channels: Iterable[NotificationChannel], repository: EventRepository,
                 metrics: Optional[MetricsCollector] = None,
                 clock: Callable[[], object] = utc_now):
        self.channels: List[NotificationChannel] = list(channels)
        self.repository = repository
        self.metrics = metrics or metrics_collector
        self.clock = clock
        self.closed = False
        self._dispatched: Set[str] = set()
        self._in_flight: Set[str] = set()

    @property
    def dispatched_ids(self) -> FrozenSet[str]:
        return frozenset(self._dispatched)

    def has_dispatched(self, event_id: str) -> bool:
        return event_id in self._dispatched

    def close(self):
        self.closed = True

    async def _emit(self, message: ReminderMessage) -> Tuple[Set[str], int]:
        """Send to every channel; returns the channels that delivered and the failure count."""
        delivered: Set[str] = set()
        failures = 0
        for channel in self.channels:
            try:
                if await channel.send(message):
                    delivered.add(channel.name)
            except Exception as e:
                failures += 1
                self.metrics.channel_failed()
                logger.error(f"Channel '{channel.name}' failed for event {message.event_id}: {str(e)}")
        return delivered, failures

    async def dispatch(self, event: ScheduledEvent) -> Optional[DispatchedNotification]:
        """
        Fire a due reminder unless it was already dispatched this session.

        Args:
            event: Reminder the evaluator returned as due

        Returns:
            What was fired, or None when the event was skipped
        """
        if self.closed:
            return None
        if event.id in self._dispatched or event.id in self._in_flight:
            logger.debug(f"Event {event.id} already dispatched this session, skipping")
            return None

        self._in_flight.add(event.id)
        try:
            message = build_reminder_message(event)
            delivered, failures = await self._emit(message)

            if self.closed:
                dispatcher_logger.info("Session ended during dispatch", event_id=event.id)
                return None

            # Persistence failure below must not re-show the toast, so record first
            if not self.channels or failures < len(self.channels):
                self._dispatched.add(event.id)

            persisted = await self._persist(event.id)

            self.metrics.reminder_dispatched()
            dispatcher_logger.info(
                "Event notification sent",
                event_id=event.id,
                title=event.title,
                channels=sorted(delivered),
                persisted=persisted,
            )
            return DispatchedNotification(
                event_id=event.id,
                fired_at=self.clock(),
                channels=frozenset(delivered),
                persisted=persisted,
            )
        finally:
            self._in_flight.discard(event.id)

    async def _persist(self, event_id: str) -> bool:
        try:
            persisted = await self.repository.mark_notified(event_id)
        except Exception as e:
            logger.error(f"Error marking event {event_id} as notified: {str(e)}")
            persisted = False
        if not persisted:
            self.metrics.mark_notified_failed()
        return persisted
