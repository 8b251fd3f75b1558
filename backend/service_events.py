"""
Service / facade layer.

This module implements the ingestion pipeline and the read operations. It
is free of Cosmos specifics: it validates input, composes queries with
`EventQueryBuilder` and calls `EventRepo` to touch the store. All routes go
through this service.

Ingestion is linear with no retries:
    receive payload -> normalize -> persist -> done
Validation failures leave before any store call (client error); store
failures propagate unchanged (server error). A single document insert
means an event is either fully stored or not stored at all.
"""

import logging
from typing import Any, List, Optional

from errors import MissingDeviceIdError
from models import Event, EventIn, normalize
from queries import EventQueryBuilder
from repo_events import EventRepo

logger = logging.getLogger(__name__)


class EventService:
    """Validation + normalization + query composition.

    Example usage:
        repo = EventRepo(container)
        svc = EventService(repo, EventQueryBuilder())
        await svc.ingest(EventIn(DeviceId="dev1", PublishedAt="...", Data="{}"))
    """

    def __init__(self, repo: EventRepo, queries: Optional[EventQueryBuilder] = None):
        self.repo = repo
        self.queries = queries or EventQueryBuilder()

    async def ingest(self, payload: EventIn) -> Event:
        """Validate `payload` and persist it as a new event.

        Raises:
        - `ValidationError` subclasses for bad input (nothing is written)
        - `ConflictError` / `StoreError` from the repository
        """

        event = normalize(payload)
        await self.repo.insert_event(event)
        logger.info(f"Stored event {event.id} for device {event.device_id}")
        return event

    async def event_data(
        self,
        device_id: Optional[str] = None,
        user_id: Optional[str] = None,
        event_name: Optional[str] = None,
    ) -> List[Any]:
        """Events matching every given filter, or `[count]` with no filters."""

        query = self.queries.attribute_filter(device_id, user_id, event_name)
        return await self.repo.run_query(query)

    async def event_range(
        self,
        device_id: Optional[str],
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> List[Any]:
        query = self.queries.time_range(device_id, start, end)
        return await self.repo.run_query(query)

    async def field_data(
        self,
        device_id: Optional[str],
        field_name: Optional[str],
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> List[Any]:
        query = self.queries.field_projection(device_id, field_name, start, end)
        return await self.repo.run_query(query)

    async def get_event(self, event_id: str, device_id: Optional[str]) -> Optional[Event]:
        """Point read by id within the device partition; None if absent."""

        if not device_id:
            raise MissingDeviceIdError("deviceId is required.")
        return await self.repo.get_event(event_id, device_id)

    async def all_events(self) -> List[Event]:
        return await self.repo.all_events()

    async def health_check(self) -> None:
        await self.repo.ping()
