"""
Due-Event Evaluator.

Pure functions deciding which reminders should fire at a given instant.
"""
from datetime import datetime, timedelta
from typing import Iterable, List

from crm_reminders.engine.types import EventKind, EventStatus, ScheduledEvent
from crm_reminders.utils.israel_time import utc_to_israel

DEFAULT_LATE_TOLERANCE = timedelta(minutes=10)


def notice_start(event: ScheduledEvent) -> datetime:
    """Instant the advance-notice window opens."""
    return event.start_time - timedelta(minutes=event.advance_notice_minutes)


def _is_candidate(event: ScheduledEvent) -> bool:
    return event.is_active and not event.notified and event.kind == EventKind.REMINDER


def is_due(now: datetime, event: ScheduledEvent,
           late_tolerance: timedelta = DEFAULT_LATE_TOLERANCE) -> bool:
    """
    True iff the event should fire at ``now``.

    The event must be an active, un-notified reminder, ``now`` must lie in
    ``[notice_start, start_time)`` and the window must have opened no more than
    ``late_tolerance`` ago. A reminder with no advance notice fires at its start
    time, up to ``late_tolerance`` late, and never before.
    """
    if not _is_candidate(event):
        return False
    if event.advance_notice_minutes == 0:
        return event.start_time <= now <= event.start_time + late_tolerance
    opened_at = notice_start(event)
    if not (opened_at <= now < event.start_time):
        return False
    return now - opened_at <= late_tolerance


def due_events(now: datetime, events: Iterable[ScheduledEvent],
               late_tolerance: timedelta = DEFAULT_LATE_TOLERANCE) -> List[ScheduledEvent]:
    """Subset of ``events`` that should fire a notification right now."""
    return [event for event in events if is_due(now, event, late_tolerance)]


def missed_events(now: datetime, events: Iterable[ScheduledEvent],
                  late_tolerance: timedelta = DEFAULT_LATE_TOLERANCE) -> List[ScheduledEvent]:
    """Reminders whose notice window opened too long ago to fire retroactively."""
    return [
        event for event in events
        if _is_candidate(event)
        and notice_start(event) <= now
        and not is_due(now, event, late_tolerance)
    ]


def classify_event(now: datetime, event: ScheduledEvent) -> EventStatus:
    """Calendar status of an event; day boundaries are taken in Israel time."""
    if not event.is_active:
        return EventStatus.COMPLETED
    if event.start_time < now:
        return EventStatus.OVERDUE

    event_day = utc_to_israel(event.start_time).date()
    today = utc_to_israel(now).date()
    if event_day == today:
        return EventStatus.TODAY
    if event_day == today + timedelta(days=1):
        return EventStatus.TOMORROW
    return EventStatus.UPCOMING
