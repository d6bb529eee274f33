from datetime import timedelta

import pytest

from crm_reminders.engine.evaluator import classify_event, due_events, is_due, missed_events, notice_start
from crm_reminders.engine.types import EventKind, EventStatus

from .support import START, make_event

TOLERANCE = timedelta(minutes=10)


def at(minutes_from_start: int):
    return START + timedelta(minutes=minutes_from_start)


def test_notice_start():
    assert notice_start(make_event(advance_notice_minutes=60)) == at(-60)


@pytest.mark.parametrize("offset, expected", [
    (-65, False),  # before the window opens
    (-60, True),   # window opens
    (-55, True),
    (-50, True),   # exactly at the tolerance boundary
    (-49, False),  # window opened eleven minutes ago
    (-5, False),
    (0, False),    # at start
    (1, False),    # past start
])
def test_sixty_minute_notice_window(offset, expected):
    event = make_event(advance_notice_minutes=60)
    assert is_due(at(offset), event, TOLERANCE) is expected


def test_already_notified_event_is_not_due():
    event = make_event(advance_notice_minutes=60, notified=True)
    assert not is_due(at(-55), event, TOLERANCE)


def test_late_tolerance_excludes_stale_window():
    # Window opened 20 minutes ago, start still 40 minutes away
    event = make_event(advance_notice_minutes=60)
    assert not is_due(at(-40), event, TOLERANCE)
    assert is_due(at(-40), event, timedelta(minutes=30))


@pytest.mark.parametrize("offset, expected", [
    (-1, False),   # never before start
    (0, True),
    (1, True),
    (5, True),
    (10, True),    # tolerance boundary
    (11, False),
])
def test_zero_notice_reminder_fires_at_start(offset, expected):
    event = make_event(advance_notice_minutes=0)
    assert is_due(at(offset), event, TOLERANCE) is expected


def test_zero_notice_reminder_past_tolerance_is_missed():
    event = make_event(advance_notice_minutes=0)
    assert missed_events(at(5), [event], TOLERANCE) == []
    assert missed_events(at(11), [event], TOLERANCE) == [event]


@pytest.mark.parametrize("overrides", [
    {"kind": EventKind.MEETING},
    {"kind": EventKind.TASK},
    {"kind": EventKind.NO_REMINDER},
    {"is_active": False},
    {"notified": True},
])
def test_only_active_unnotified_reminders_fire(overrides):
    event = make_event(advance_notice_minutes=60, **overrides)
    assert not is_due(at(-55), event, TOLERANCE)


def test_due_events_filters_batch():
    due = make_event("due", advance_notice_minutes=60)
    early = make_event("early", advance_notice_minutes=10)
    stale = make_event("stale", advance_notice_minutes=120)
    meeting = make_event("meeting", advance_notice_minutes=60, kind=EventKind.MEETING)

    result = due_events(at(-55), [due, early, stale, meeting], TOLERANCE)

    assert [event.id for event in result] == ["due"]


def test_missed_events_are_the_stale_ones():
    due = make_event("due", advance_notice_minutes=60)
    stale = make_event("stale", advance_notice_minutes=120)

    assert [event.id for event in missed_events(at(-55), [due, stale], TOLERANCE)] == ["stale"]


def test_classify_event():
    now = START.replace(hour=8)
    assert classify_event(now, make_event(is_active=False)) == EventStatus.COMPLETED
    assert classify_event(now, make_event(start_time=now - timedelta(minutes=1))) == EventStatus.OVERDUE
    assert classify_event(now, make_event(start_time=now + timedelta(hours=2))) == EventStatus.TODAY
    assert classify_event(now, make_event(start_time=now + timedelta(days=1))) == EventStatus.TOMORROW
    assert classify_event(now, make_event(start_time=now + timedelta(days=5))) == EventStatus.UPCOMING


def test_classify_event_uses_israel_day_boundary():
    # 23:00 UTC on 10 March is already 11 March in Israel (UTC+2)
    now = START.replace(hour=12)
    late_evening = START.replace(hour=23)
    assert classify_event(now, make_event(start_time=late_evening)) == EventStatus.TOMORROW
