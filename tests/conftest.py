"""
Test configuration and fixtures for the ShortLink service.
This centralizes all test setup, making individual tests clean.
"""

import time
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from main import app
from shortlink_app.database.connection import Base
from shortlink_app.dependencies import get_clock, get_link_store
from shortlink_app.store.strategies import InMemoryLinkStore, SQLLinkStore
import shortlink_app.models  # noqa: F401  (registers tables with Base)

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
# Worker threads write concurrently; wait on the SQLite lock instead of failing
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False, "timeout": 30})
TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)

START = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_store():
    return InMemoryLinkStore()


@pytest.fixture(scope="function")
def sql_store():
    """
    SQL store on a fresh database for each test.
    Tables are created before and dropped after, so tests stay isolated.
    """
    Base.metadata.create_all(bind=engine)
    try:
        yield SQLLinkStore(TestingSessionLocal)
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def slow_sql(sql_store):
    """
    Call with a number of seconds to make every SQL statement sleep that
    long before reaching the driver, like a hung database.
    """
    delays = []

    def slow_down(seconds: float):
        def delay(conn, cursor, statement, parameters, context, executemany):
            time.sleep(seconds)

        event.listen(engine, "before_cursor_execute", delay)
        delays.append(delay)

    yield slow_down

    for delay in delays:
        event.remove(engine, "before_cursor_execute", delay)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Every store backend that runs without external services."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture(scope="function")
def client(sql_store, clock):
    """
    Test client with the link store and clock overridden.
    This is the main fixture that API tests will use.
    """
    app.dependency_overrides[get_link_store] = lambda: sql_store
    app.dependency_overrides[get_clock] = lambda: clock

    with TestClient(app) as test_client:
        yield test_client

    # Clean up overrides
    app.dependency_overrides.clear()
