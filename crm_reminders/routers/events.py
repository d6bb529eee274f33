"""Unified events router: the event store the reminder engine polls."""
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlmodel import Session

from crm_reminders.config import settings
from crm_reminders.db.config import get_session
from crm_reminders.engine.errors import MalformedEventError
from crm_reminders.engine.evaluator import classify_event, due_events, missed_events
from crm_reminders.engine.types import coerce_event, ingest_events
from crm_reminders.middleware.auth import get_current_user, CurrentUser, ensure_same_user
from crm_reminders.schemas.event import EventCreate, EventUpdate, EventResponse
from crm_reminders.services.event_service import EventService
from crm_reminders.utils.israel_time import to_display_local, utc_now
from crm_reminders.utils.metrics import metrics_collector

router = APIRouter(tags=["Events"])  # No prefix since main.py adds /api prefix


def get_event_service(session: Session = Depends(get_session)) -> EventService:
    """Dependency for getting EventService instance."""
    return EventService(session)


def describe_event(row, now: datetime) -> EventResponse:
    """Response for ``row`` with its calendar status and Israel display time."""
    response = EventResponse.model_validate(row)
    display = to_display_local(row.start_time)
    try:
        event_status = classify_event(now, coerce_event(row))
    except MalformedEventError:
        event_status = None
    return response.model_copy(update={
        "status": event_status,
        "display_date": display.date_str,
        "display_time": display.time_str,
    })


@router.get("/{user_id}/events", response_model=Dict[str, Any])
async def list_events(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
    event_type: Optional[str] = Query(None, description="Filter by type: reminder, meeting, task, no-reminder"),
    active_only: bool = Query(False, description="Only return active events"),
):
    """List the user's events ordered by start time, with calendar status."""
    ensure_same_user(user_id, current_user)

    events = service.list_for_user(user_id, event_type=event_type, active_only=active_only)
    now = utc_now()
    return {
        "events": [describe_event(event, now) for event in events],
        "count": len(events),
    }


@router.post("/{user_id}/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    user_id: str,
    event_data: EventCreate,
    current_user: CurrentUser = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Create an event; reminders default to a one-day advance notice."""
    ensure_same_user(user_id, current_user)

    data = event_data.model_dump(exclude={"reminder_date", "reminder_time"})
    return service.create(user_id, data)


@router.get("/{user_id}/events/due/now", response_model=Dict[str, Any])
async def list_due_events(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Reminders that should fire right now, evaluated at server time."""
    ensure_same_user(user_id, current_user)

    rows = service.list_for_user(user_id, event_type="reminder", active_only=True)
    due_ids = {
        event.id
        for event in due_events(utc_now(), ingest_events(rows, metrics=metrics_collector), settings.late_tolerance)
    }
    due = [EventResponse.model_validate(row) for row in rows if str(row.id) in due_ids]
    return {"events": due, "count": len(due)}


@router.get("/{user_id}/events/missed", response_model=Dict[str, Any])
async def list_missed_events(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Reminders whose notice window opened too long ago to fire; shown as overdue instead."""
    ensure_same_user(user_id, current_user)

    rows = service.list_for_user(user_id, event_type="reminder", active_only=True)
    now = utc_now()
    missed_ids = {
        event.id
        for event in missed_events(now, ingest_events(rows, metrics=metrics_collector), settings.late_tolerance)
    }
    missed = [describe_event(row, now) for row in rows if str(row.id) in missed_ids]
    return {"events": missed, "count": len(missed)}


@router.get("/{user_id}/events/{event_id}", response_model=EventResponse)
async def get_event(
    user_id: str,
    event_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Get a specific event by ID."""
    ensure_same_user(user_id, current_user)

    event = service.get_by_id(event_id, user_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return event


@router.put("/{user_id}/events/{event_id}", response_model=EventResponse)
async def update_event(
    user_id: str,
    event_id: int,
    event_data: EventUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Update an event. Moving it or changing its notice re-arms the reminder."""
    ensure_same_user(user_id, current_user)

    event = service.update(event_id, event_data.model_dump(exclude_unset=True), user_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return event


@router.delete("/{user_id}/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    user_id: str,
    event_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Delete an event."""
    ensure_same_user(user_id, current_user)

    if not service.delete(event_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return None


@router.patch("/{user_id}/events/{event_id}/notified", response_model=Dict[str, Any])
async def mark_event_notified(
    user_id: str,
    event_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: EventService = Depends(get_event_service),
):
    """Record that the reminder for this event has fired."""
    ensure_same_user(user_id, current_user)

    if not service.mark_notified(event_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found"
        )
    return {"message": "Event marked as notified", "id": event_id}
