"""Event repository talking to the REST event store over HTTP."""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic_core import to_jsonable_python

from crm_reminders.engine.errors import RepositoryError
from crm_reminders.engine.types import ScheduledEvent, coerce_event, ingest_events
from crm_reminders.repository.base import EventRepository, to_store_columns

logger = logging.getLogger(__name__)


class HttpEventRepository(EventRepository):
    """
    Polls ``{base_url}/{user_id}/events`` with a bearer token.

    Pass ``client`` to share a connection pool or to inject a transport in tests;
    otherwise one AsyncClient is created lazily and closed by ``aclose``.
    """

    def __init__(self, base_url: str, access_token: str, user_id: str,
                 client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0, metrics=None):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.user_id = user_id
        self.timeout = timeout
        self.metrics = metrics
        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.access_token}",
        }

    def _body(self, data: Dict[str, Any]) -> Dict[str, Any]:
        columns = to_store_columns(data)
        columns.pop("created_by", None)
        return to_jsonable_python(columns)

    def _url(self, path: str, owner_id: Optional[str] = None) -> str:
        return f"{self.base_url}/{owner_id or self.user_id}/events{path}"

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self.client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Event store request {method} {url} failed: {str(e)}")
            raise RepositoryError(f"{method} {url} failed: {e}") from e

    async def list_events(self, owner_id: Optional[str]) -> List[ScheduledEvent]:
        response = await self._request("GET", self._url("", owner_id))
        if response.status_code != 200:
            raise RepositoryError(f"Failed to fetch events: HTTP {response.status_code}")

        data = response.json()
        # Accept both {"events": [...]} and a bare list
        payloads = data.get("events", []) if isinstance(data, dict) else data
        return ingest_events(payloads, metrics=self.metrics)

    async def create_event(self, data: Dict[str, Any]) -> ScheduledEvent:
        response = await self._request("POST", self._url(""), json=self._body(data))
        if response.status_code not in (200, 201):
            raise RepositoryError(f"Failed to create event: HTTP {response.status_code}")
        return coerce_event(response.json())

    async def update_event(self, event_id: str, patch: Dict[str, Any]) -> Optional[ScheduledEvent]:
        response = await self._request("PUT", self._url(f"/{event_id}"), json=self._body(patch))
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise RepositoryError(f"Failed to update event {event_id}: HTTP {response.status_code}")
        return coerce_event(response.json())

    async def delete_event(self, event_id: str) -> None:
        response = await self._request("DELETE", self._url(f"/{event_id}"))
        if response.status_code not in (200, 204, 404):
            raise RepositoryError(f"Failed to delete event {event_id}: HTTP {response.status_code}")

    async def mark_notified(self, event_id: str) -> bool:
        response = await self._request("PATCH", self._url(f"/{event_id}/notified"))
        if response.status_code != 200:
            logger.warning(f"Event store refused notified flag for {event_id}: HTTP {response.status_code}")
            return False
        return True

    async def aclose(self):
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
