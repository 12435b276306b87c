"""
Shared pytest fixtures.

Service and endpoint tests run against InMemoryDocumentStore with a clock
pinned to America/Chicago; store tests also run against a SQLite file so
no Postgres is required.
"""
import os

os.environ["DATABASE_URL"] = "sqlite:///./test_flextime.db"
os.environ["APP_ENV"] = "test"
os.environ["TIMEZONE"] = "America/Chicago"
os.environ["PARENT_TOKENS"] = "parent-token:u-parent:mom@example.com:Mom"

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from flextime.db.base import Base
from flextime.dependencies import get_now
from flextime.main import create_app
from flextime.services.week_clock import WeekClock
from flextime.store import InMemoryDocumentStore, SqlDocumentStore

SQLITE_URL = "sqlite:///./test_flextime.db"
CHICAGO = ZoneInfo("America/Chicago")

PARENT_HEADERS = {"Authorization": "Bearer parent-token"}

# Monday of the week that starts Saturday 2026-10-17; voting is open.
MONDAY_MORNING = datetime(2026, 10, 19, 9, 0, tzinfo=CHICAGO)


class FrozenNow:
    """Mutable stand-in for the request-time `now` dependency."""

    def __init__(self, value: datetime) -> None:
        self.value = value

    def __call__(self) -> datetime:
        return self.value


@pytest.fixture()
def clock():
    return WeekClock(tz=CHICAGO)


@pytest.fixture()
def memory_store():
    return InMemoryDocumentStore()


@pytest.fixture()
def sql_store():
    store = SqlDocumentStore.from_url(SQLITE_URL)
    store.create_schema()
    try:
        yield store
    finally:
        Base.metadata.drop_all(bind=store.engine)
        store.dispose()


@pytest.fixture()
def frozen_now():
    return FrozenNow(MONDAY_MORNING)


@pytest.fixture()
def make_client(clock, frozen_now):
    """Build a TestClient around any store; `now` comes from `frozen_now`."""
    clients = []

    def _make(store):
        app = create_app(store=store, clock=clock)
        app.dependency_overrides[get_now] = frozen_now
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture()
def client(make_client, memory_store):
    return make_client(memory_store)


@pytest.fixture()
def parent_headers():
    return dict(PARENT_HEADERS)
