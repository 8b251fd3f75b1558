"""
Generic document store over one partitioned Cosmos DB container.

This module is the only place that talks to the Azure SDK. It maps Pydantic
models to documents, hides partition-key mechanics and translates SDK
exceptions into the taxonomy in `errors.py`. Keep business rules out of here.

Important notes:
- The partition key value is read through an explicit accessor passed in by
  the caller, never by inspecting the entity.
- `query()` is cross-partition and drains every continuation page before it
  returns, so callers never see a partial result.
- Nothing is retried here. The SDK's own retry policy is the only one.
"""

import logging
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from azure.core.exceptions import AzureError
from azure.cosmos.aio import ContainerProxy
from azure.cosmos.exceptions import (
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)
from pydantic import BaseModel

from errors import ConflictError, PartitionKeyMissingError, StoreError
from queries import StoreQuery

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _store_error(e: AzureError) -> StoreError:
    status = getattr(e, "status_code", None)
    message = str(e)
    if isinstance(e, CosmosHttpResponseError):
        message = getattr(e, "http_error_message", None) or message
    return StoreError(message, status_code=status)


class DocumentStore(Generic[T]):
    """Create/read/query for one model type in one container.

    Example usage:
        store = DocumentStore(container, Event, partition_key=lambda e: e.device_id)
        await store.create(event)
        same = await store.get_by_id(event.id, event.device_id)
    """

    def __init__(
        self,
        container: ContainerProxy,
        model: Type[T],
        partition_key: Callable[[T], Optional[str]],
        to_document: Optional[Callable[[T], Dict[str, Any]]] = None,
        from_document: Optional[Callable[[Dict[str, Any]], T]] = None,
    ):
        self.container = container
        self.model = model
        self.partition_key = partition_key
        self._to_document = to_document or (
            lambda entity: entity.model_dump(mode="json", by_alias=True)
        )
        self._from_document = from_document or model.model_validate

    async def create(self, entity: T) -> T:
        """Insert `entity` into its partition.

        Raises:
        - `PartitionKeyMissingError` if the accessor yields an empty value
        - `ConflictError` if the id already exists in that partition
        - `StoreError` for any other backend failure
        """

        pk = self.partition_key(entity)
        if not pk:
            raise PartitionKeyMissingError("PartitionKey is missing or invalid.")

        doc = self._to_document(entity)
        try:
            await self.container.create_item(body=doc)
        except CosmosResourceExistsError as e:
            raise ConflictError(
                f"{self.model.__name__} {doc.get('id')!r} already exists in partition {pk!r}"
            ) from e
        except AzureError as e:
            raise _store_error(e) from e
        return entity

    async def get_by_id(self, item_id: str, partition_key_value: str) -> Optional[T]:
        """Point read. Returns None when the item does not exist."""

        try:
            doc = await self.container.read_item(
                item=item_id, partition_key=partition_key_value
            )
        except CosmosResourceNotFoundError as e:
            # A non-zero sub-status means the database or container is missing.
            if getattr(e, "sub_status", None):
                raise _store_error(e) from e
            return None
        except AzureError as e:
            raise _store_error(e) from e
        return self._from_document(doc)

    async def query(
        self,
        query: StoreQuery | str,
        parameters: Optional[List[Dict[str, Any]]] = None,
    ) -> List[Any]:
        """Run a read-only query across all partitions and return every row.

        Rows are returned as the store produced them: documents, projections
        or scalar aggregates depending on the query text.
        """

        if isinstance(query, StoreQuery):
            text, params = query.text, query.parameters
        else:
            text, params = query, parameters or []

        logger.debug(f"Query: {text} params={params}")
        try:
            pager = self.container.query_items(query=text, parameters=params or None)
            return await self._drain(pager)
        except AzureError as e:
            raise _store_error(e) from e

    async def query_all(self) -> List[T]:
        """Every item in the container, as models."""

        try:
            docs = await self._drain(self.container.read_all_items())
        except AzureError as e:
            raise _store_error(e) from e
        return [self._from_document(d) for d in docs]

    async def ping(self) -> None:
        """Lightweight reachability check. Raises `StoreError` on failure."""

        try:
            await self.container.read()
        except AzureError as e:
            raise _store_error(e) from e

    @staticmethod
    async def _drain(pager) -> List[Any]:
        results: List[Any] = []
        pages = 0
        async for page in pager.by_page():
            async for item in page:
                results.append(item)
            pages += 1
        logger.debug(f"Drained {pages} page(s), {len(results)} row(s)")
        return results
