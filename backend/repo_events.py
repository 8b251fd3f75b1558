"""
Repository: store operations for events.

Binds the generic `DocumentStore` to the `Event` model and the events
container. It knows that `deviceId` is the partition key and how an `Event`
maps to a document; it holds no validation or query-composition rules.
"""

from typing import Any, List, Optional

from azure.cosmos.aio import ContainerProxy

from models import Event
from queries import StoreQuery
from store import DocumentStore


def event_partition_key(event: Event) -> str:
    return event.device_id


class EventRepo:
    """DB access only. No business logic here.

    Responsibilities:
    - Map `Event` <-> Cosmos documents
    - Route writes and point reads to the `deviceId` partition
    - Execute prepared `StoreQuery` objects and return the rows
    """

    def __init__(self, container: ContainerProxy):
        self.store: DocumentStore[Event] = DocumentStore(
            container,
            Event,
            partition_key=event_partition_key,
            to_document=Event.to_document,
            from_document=Event.from_document,
        )

    async def insert_event(self, event: Event) -> Event:
        return await self.store.create(event)

    async def get_event(self, event_id: str, device_id: str) -> Optional[Event]:
        return await self.store.get_by_id(event_id, device_id)

    async def run_query(self, query: StoreQuery) -> List[Any]:
        return await self.store.query(query)

    async def all_events(self) -> List[Event]:
        return await self.store.query_all()

    async def ping(self) -> None:
        await self.store.ping()
