"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import random

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from draftpod.db.models import Base
from draftpod.db.session import make_session_factory
from draftpod.event.controller import EventController
from draftpod.event.models import EventType
from draftpod.storage.memory import MemoryEventStore
from draftpod.storage.sql import SqlEventStore

# 2026-01-10 12:00:00 UTC
START_MS = 1_768_046_400_000


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, start_ms: int = START_MS):
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> int:
        self.now += int(seconds * 1000)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_controller(clock):
    """
    Build a controller around a fresh event with ``players`` seated
    (host included).
    """

    def _make(players: int = 8, event_type: EventType = EventType.DRAFT) -> EventController:
        controller = EventController.create_event(
            event_type, "Host", clock=clock, rng=random.Random(7)
        )
        for i in range(2, players + 1):
            controller.add_player(f"Player {i}")
        return controller

    return _make


@pytest.fixture
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory with a single shared connection so that every
    session (and every TestClient worker thread) sees the same database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def memory_store(clock):
    return MemoryEventStore(clock=clock)


@pytest.fixture
def sql_store(test_engine, clock):
    return SqlEventStore(make_session_factory(test_engine), clock=clock)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Run a test against both store backends."""
    return request.getfixturevalue(f"{request.param}_store")
