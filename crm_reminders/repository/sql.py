"""Event repository over the SQLModel event store."""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from crm_reminders.engine.errors import RepositoryError
from crm_reminders.engine.types import ScheduledEvent, coerce_event, ingest_events
from crm_reminders.repository.base import EventRepository, to_store_columns
from crm_reminders.services.event_service import EventService

logger = logging.getLogger(__name__)


def _row_id(event_id: str) -> int:
    try:
        return int(event_id)
    except (TypeError, ValueError):
        raise RepositoryError(f"Invalid event id: {event_id!r}")


class SQLEventRepository(EventRepository):
    """
    Runs EventService calls in a worker thread so the event loop never blocks.

    Each call opens its own session from ``session_factory``.
    """

    def __init__(self, session_factory: Callable[[], Session], owner_id: Optional[str] = None, metrics=None):
        self.session_factory = session_factory
        self.owner_id = owner_id
        self.metrics = metrics

    async def _run(self, operation: Callable[[EventService], Any]) -> Any:
        def call():
            with self.session_factory() as session:
                return operation(EventService(session))

        try:
            return await asyncio.to_thread(call)
        except SQLAlchemyError as e:
            logger.error(f"Event store query failed: {str(e)}")
            raise RepositoryError(str(e)) from e
        except (KeyError, ValueError, TypeError) as e:
            # Missing title, unparseable start_time and the like
            logger.error(f"Invalid event data for store: {e!r}")
            raise RepositoryError(f"Invalid event data: {e!r}") from e

    async def list_events(self, owner_id: Optional[str]) -> List[ScheduledEvent]:
        rows = await self._run(lambda service: service.list_for_user(owner_id))
        return ingest_events(rows, metrics=self.metrics)

    async def create_event(self, data: Dict[str, Any]) -> ScheduledEvent:
        columns = to_store_columns(data)
        owner_id = columns.pop("created_by", None) or self.owner_id
        if owner_id is None:
            raise RepositoryError("create_event requires an owner")
        row = await self._run(lambda service: service.create(str(owner_id), columns))
        return coerce_event(row)

    async def update_event(self, event_id: str, patch: Dict[str, Any]) -> Optional[ScheduledEvent]:
        row_id = _row_id(event_id)
        columns = to_store_columns(patch)
        row = await self._run(lambda service: service.update(row_id, columns))
        return coerce_event(row) if row is not None else None

    async def delete_event(self, event_id: str) -> None:
        row_id = _row_id(event_id)
        await self._run(lambda service: service.delete(row_id))

    async def mark_notified(self, event_id: str) -> bool:
        row_id = _row_id(event_id)
        return await self._run(lambda service: service.mark_notified(row_id))
