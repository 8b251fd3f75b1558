"""
Cosmos DB connection helper.

One `CosmosClient` is opened per process and shared by every request; the
async client is safe for concurrent use. `open_container()` is called from
the FastAPI lifespan and `close()` on shutdown.

Usage:
    container = open_container()
    ...
    await close()

Note: repository code only ever sees the container proxy, so switching
credentials (e.g. to `DefaultAzureCredential`) only changes this module.
"""

import logging
from typing import Optional

from azure.cosmos.aio import ContainerProxy, CosmosClient

from settings import settings

logger = logging.getLogger(__name__)

_client: Optional[CosmosClient] = None


def get_client() -> CosmosClient:
    """Return the process-wide client, creating it on first use."""

    global _client
    if _client is None:
        logger.info(f"Creating Cosmos client for {settings.cosmos_endpoint}")
        _client = CosmosClient(settings.cosmos_endpoint, credential=settings.cosmos_key)
    return _client


def open_container() -> ContainerProxy:
    database = get_client().get_database_client(settings.cosmos_database)
    return database.get_container_client(settings.cosmos_container)


async def close() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
        logger.info("Cosmos client closed")
