"""
Notification Center Service.

Stores the in-app notification list each user sees, in the database or
through the REST API. Both stores skip an entry that duplicates one still
unread.
"""

import abc
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx
from pydantic_core import to_jsonable_python
from sqlmodel import Session, select

from crm_reminders.models.notification import NotificationRecord
from crm_reminders.utils.israel_time import parse_instant

logger = logging.getLogger(__name__)


def build_record(user_id: str, title: str, message: str, notification_type: str = "reminder",
                 priority: str = "medium", event_id: Optional[str] = None,
                 metadata: Optional[Dict[str, Any]] = None) -> NotificationRecord:
    return NotificationRecord(
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        priority=priority,
        event_id=event_id,
        details=metadata or {},
    )


def is_duplicate(existing: NotificationRecord, candidate: NotificationRecord) -> bool:
    return (
        not existing.read
        and existing.user_id == candidate.user_id
        and existing.type == candidate.type
        and existing.title == candidate.title
        and existing.message == candidate.message
        and existing.event_id == candidate.event_id
    )


class NotificationCenter(abc.ABC):
    """Abstract notification center store."""

    @abc.abstractmethod
    def record(self, entry: NotificationRecord) -> Optional[NotificationRecord]:
        """
        Add an entry for its user.

        Returns:
            The stored entry, or None when an unread duplicate already exists
        """

    @abc.abstractmethod
    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[NotificationRecord]:
        """Entries for a user, newest first."""

    @abc.abstractmethod
    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        pass

    @abc.abstractmethod
    def mark_all_as_read(self, user_id: str) -> int:
        pass

    @abc.abstractmethod
    def remove(self, notification_id: str, user_id: str) -> bool:
        pass

    @abc.abstractmethod
    def clear_all(self, user_id: str) -> int:
        pass

    def unread_count(self, user_id: str) -> int:
        return len(self.list_for_user(user_id, unread_only=True))


class SQLNotificationCenter(NotificationCenter):
    """Notification center persisted in the ``notifications`` table."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def record(self, entry: NotificationRecord) -> Optional[NotificationRecord]:
        with self.session_factory() as session:
            statement = select(NotificationRecord).where(
                NotificationRecord.user_id == entry.user_id,
                NotificationRecord.read == False,  # noqa: E712
                NotificationRecord.type == entry.type,
                NotificationRecord.title == entry.title,
            )
            if any(is_duplicate(existing, entry) for existing in session.exec(statement).all()):
                logger.debug(f"Skipping duplicate notification '{entry.title}' for user {entry.user_id}")
                return None

            session.add(entry)
            session.commit()
            session.refresh(entry)
            return entry

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[NotificationRecord]:
        with self.session_factory() as session:
            statement = select(NotificationRecord).where(NotificationRecord.user_id == user_id)
            if unread_only:
                statement = statement.where(NotificationRecord.read == False)  # noqa: E712
            statement = statement.order_by(NotificationRecord.created_at.desc())
            return list(session.exec(statement).all())

    def _get(self, session: Session, notification_id: str, user_id: str) -> Optional[NotificationRecord]:
        entry = session.get(NotificationRecord, notification_id)
        if entry is None or entry.user_id != user_id:
            return None
        return entry

    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        with self.session_factory() as session:
            entry = self._get(session, notification_id, user_id)
            if entry is None:
                return False
            entry.read = True
            session.add(entry)
            session.commit()
            return True

    def mark_all_as_read(self, user_id: str) -> int:
        with self.session_factory() as session:
            statement = select(NotificationRecord).where(
                NotificationRecord.user_id == user_id,
                NotificationRecord.read == False,  # noqa: E712
            )
            entries = session.exec(statement).all()
            for entry in entries:
                entry.read = True
                session.add(entry)
            session.commit()
            return len(entries)

    def remove(self, notification_id: str, user_id: str) -> bool:
        with self.session_factory() as session:
            entry = self._get(session, notification_id, user_id)
            if entry is None:
                return False
            session.delete(entry)
            session.commit()
            return True

    def clear_all(self, user_id: str) -> int:
        with self.session_factory() as session:
            entries = session.exec(
                select(NotificationRecord).where(NotificationRecord.user_id == user_id)
            ).all()
            for entry in entries:
                session.delete(entry)
            session.commit()
            return len(entries)


def _record_from_json(data: Dict[str, Any]) -> NotificationRecord:
    return NotificationRecord(
        id=data["id"],
        user_id=data["user_id"],
        type=data["type"],
        title=data["title"],
        message=data["message"],
        priority=data["priority"],
        read=data["read"],
        event_id=data.get("event_id"),
        details=data.get("metadata"),
        created_at=parse_instant(data["created_at"]),
    )


class HttpNotificationCenter(NotificationCenter):
    """
    Notification center behind the REST API, for processes without database access.

    Entries land in the same ``notifications`` table the API serves. Calls block,
    so async callers run them in a worker thread. Pass ``client`` to share a
    connection pool or route requests to an app in tests.
    """

    def __init__(self, base_url: str, access_token: str,
                 client: Optional[httpx.Client] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def close(self):
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def _url(self, user_id: str, path: str = "") -> str:
        return f"{self.base_url}/{user_id}/notifications{path}"

    def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        return self.client.request(method, url, headers=headers, **kwargs)

    def record(self, entry: NotificationRecord) -> Optional[NotificationRecord]:
        body = {
            "type": entry.type,
            "title": entry.title,
            "message": entry.message,
            "priority": entry.priority,
            "event_id": entry.event_id,
            "metadata": to_jsonable_python(entry.details or {}),
        }
        response = self._request("POST", self._url(entry.user_id), json=body)
        if response.status_code == 409:
            logger.debug(f"Skipping duplicate notification '{entry.title}' for user {entry.user_id}")
            return None
        response.raise_for_status()
        return _record_from_json(response.json())

    def list_for_user(self, user_id: str, unread_only: bool = False) -> List[NotificationRecord]:
        response = self._request("GET", self._url(user_id), params={"unread_only": str(unread_only).lower()})
        response.raise_for_status()
        return [_record_from_json(item) for item in response.json()["notifications"]]

    def mark_as_read(self, notification_id: str, user_id: str) -> bool:
        response = self._request("PATCH", self._url(user_id, f"/{notification_id}/read"))
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True

    def mark_all_as_read(self, user_id: str) -> int:
        response = self._request("PATCH", self._url(user_id, "/read-all"))
        response.raise_for_status()
        return response.json()["updated"]

    def remove(self, notification_id: str, user_id: str) -> bool:
        response = self._request("DELETE", self._url(user_id, f"/{notification_id}"))
        if response.status_code == 404:
            return False
        response.raise_for_status()
        return True

    def clear_all(self, user_id: str) -> int:
        response = self._request("DELETE", self._url(user_id))
        response.raise_for_status()
        return response.json()["deleted"]
