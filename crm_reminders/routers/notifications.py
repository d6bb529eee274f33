"""Notification center router."""
from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlmodel import Session

from crm_reminders.db.config import get_session_factory
from crm_reminders.middleware.auth import get_current_user, CurrentUser, ensure_same_user
from crm_reminders.schemas.notification import NotificationCreate, NotificationResponse
from crm_reminders.services.notification_center import NotificationCenter, SQLNotificationCenter, build_record

router = APIRouter(tags=["Notifications"])


def get_notification_center(
    session_factory: Callable[[], Session] = Depends(get_session_factory),
) -> NotificationCenter:
    """Dependency for getting the notification center store."""
    return SQLNotificationCenter(session_factory)


@router.get("/{user_id}/notifications", response_model=Dict[str, Any])
async def list_notifications(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    center: NotificationCenter = Depends(get_notification_center),
    unread_only: bool = Query(False, description="Only return unread notifications"),
):
    """List the user's notifications, newest first."""
    ensure_same_user(user_id, current_user)

    entries = center.list_for_user(user_id, unread_only=unread_only)
    return {
        "notifications": [NotificationResponse.model_validate(entry) for entry in entries],
        "count": len(entries),
        "unread_count": center.unread_count(user_id),
    }


@router.post("/{user_id}/notifications", response_model=NotificationResponse, status_code=status.HTTP_201_CREATED)
async def create_notification(
    user_id: str,
    notification_data: NotificationCreate,
    current_user: CurrentUser = Depends(get_current_user),
    center: NotificationCenter = Depends(get_notification_center),
):
    """Add a notification; 409 when an identical one is still unread."""
    ensure_same_user(user_id, current_user)

    entry = build_record(
        user_id=user_id,
        title=notification_data.title,
        message=notification_data.message,
        notification_type=notification_data.type,
        priority=notification_data.priority,
        event_id=notification_data.event_id,
        metadata=notification_data.metadata,
    )
    stored = center.record(entry)
    if stored is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="An identical unread notification already exists"
        )
    return NotificationResponse.model_validate(stored)


@router.patch("/{user_id}/notifications/read-all", response_model=Dict[str, Any])
async def mark_all_notifications_read(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    center: NotificationCenter = Depends(get_notification_center),
):
    ensure_same_user(user_id, current_user)
    return {"updated": center.mark_all_as_read(user_id)}


@router.patch("/{user_id}/notifications/{notification_id}/read", response_model=Dict[str, Any])
async def mark_notification_read(
    user_id: str,
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    center: NotificationCenter = Depends(get_notification_center),
):
    ensure_same_user(user_id, current_user)

    if not center.mark_as_read(notification_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    return {"message": "Notification marked as read", "id": notification_id}


@router.delete("/{user_id}/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    user_id: str,
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    center: NotificationCenter = Depends(get_notification_center),
):
    ensure_same_user(user_id, current_user)

    if not center.remove(notification_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found"
        )
    return None


@router.delete("/{user_id}/notifications", response_model=Dict[str, Any])
async def clear_notifications(
    user_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    center: NotificationCenter = Depends(get_notification_center),
):
    """Remove every notification of the user."""
    ensure_same_user(user_id, current_user)
    return {"deleted": center.clear_all(user_id)}
