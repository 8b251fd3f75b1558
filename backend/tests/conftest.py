"""
Pytest fixtures and configuration for the event store backend tests.

Provides:
- An in-memory stand-in for the async Cosmos container proxy. It pages its
  results so the draining logic is exercised, raises the real SDK exceptions
  and understands just enough of the generated SQL to filter documents.
- A fixed clock, a service wired to the fake container, and an
  authenticated TestClient.
"""

import copy
import re
from datetime import datetime, timezone

import pytest
from azure.cosmos.exceptions import (
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)
from fastapi.testclient import TestClient

from main import app, get_event_service
from queries import EventQueryBuilder
from repo_events import EventRepo
from service_events import EventService
from settings import settings


FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
TEST_API_KEY = "test-api-key"

PROJECTION = re.compile(r'c\.data\["(\w+)"\] AS (\w+)')


async def _rows(rows):
    for row in rows:
        yield row


class FakePager:
    """Mimics `AsyncItemPaged`: `by_page()` yields async-iterable pages."""

    def __init__(self, rows, page_size):
        self.rows = rows
        self.page_size = page_size
        self.pages_served = 0

    def by_page(self, continuation_token=None):
        return self._pages()

    async def _pages(self):
        for start in range(0, len(self.rows), self.page_size):
            self.pages_served += 1
            yield _rows(self.rows[start:start + self.page_size])


class FakeContainer:
    """In-memory events container partitioned on `deviceId`."""

    def __init__(self, page_size=2):
        self.page_size = page_size
        self.items = {}
        self.queries = []
        self.fail_with = None
        self.last_pager = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def create_item(self, body, **kwargs):
        self._check()
        key = (body["deviceId"], body["id"])
        if key in self.items:
            raise CosmosResourceExistsError(
                status_code=409,
                message="Entity with the specified id already exists in the system.",
            )
        self.items[key] = copy.deepcopy(body)
        return body

    async def read_item(self, item, partition_key, **kwargs):
        self._check()
        doc = self.items.get((partition_key, item))
        if doc is None:
            raise CosmosResourceNotFoundError(
                status_code=404,
                message="Entity with the specified id does not exist in the system.",
            )
        return {**copy.deepcopy(doc), "_rid": "abc==", "_etag": '"0"', "_ts": 1704067200}

    def query_items(self, query, parameters=None, **kwargs):
        self._check()
        self.queries.append((query, parameters))
        self.last_pager = FakePager(self._evaluate(query, parameters or []), self.page_size)
        return self.last_pager

    def read_all_items(self, **kwargs):
        self._check()
        self.last_pager = FakePager([copy.deepcopy(d) for d in self.items.values()], self.page_size)
        return self.last_pager

    async def read(self, **kwargs):
        self._check()
        return {"id": "events"}

    def _evaluate(self, query, parameters):
        params = {p["name"]: p["value"] for p in parameters}
        docs = [copy.deepcopy(d) for d in self.items.values()]

        if "COUNT(1)" in query:
            return [len(docs)]

        equality = {"@deviceId": "deviceId", "@userId": "userId", "@eventName": "event"}
        for name, attr in equality.items():
            if name in params:
                docs = [d for d in docs if d.get(attr) == params[name]]

        if "c.data.ts" in query:
            def key(d):
                return d.get("data", {}).get("ts")
        else:
            def key(d):
                return d.get("publishedAt")

        if "@start" in params:
            docs = [
                d for d in docs
                if key(d) is not None and params["@start"] <= key(d) <= params["@end"]
            ]

        match = PROJECTION.search(query)
        if match:
            field, alias = match.groups()
            rows = []
            for d in docs:
                row = {}
                if field in d["data"]:
                    row[alias] = d["data"][field]
                if "ts" in d["data"]:
                    row["ts"] = d["data"]["ts"]
                rows.append(row)
            return rows
        if query.startswith("SELECT c.data.ts AS ts"):
            return [{"ts": d["data"]["ts"]} for d in docs if "ts" in d["data"]]
        return docs


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def container():
    return FakeContainer()


@pytest.fixture
def service(container, fixed_clock):
    return EventService(EventRepo(container), EventQueryBuilder(clock=fixed_clock))


@pytest.fixture
def auth_headers():
    """Authentication headers for API requests."""
    return {"Authorization": f"Bearer {TEST_API_KEY}"}


@pytest.fixture
def client(service, monkeypatch):
    """Test client backed by the fake container, with an isolated override."""
    monkeypatch.setattr(settings, "api_key", TEST_API_KEY)
    app.dependency_overrides[get_event_service] = lambda: service

    yield TestClient(app)

    app.dependency_overrides.clear()


# ============================================================
# Test Data Fixtures
# ============================================================

@pytest.fixture
def sample_payload():
    """Webhook payload as Particle sends it."""
    return {
        "EventId": "evt-001",
        "Event": "power",
        "DeviceId": "dev1",
        "PublishedAt": "2024-01-01T00:00:00Z",
        "Data": '{"pC": 1.5, "dID": "dev1", "pV": 3.3, "ts": 1704067200}',
        "userid": "user-42",
        "ProductId": "prod-7",
        "FwVersion": "1.2.0",
    }
