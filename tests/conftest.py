"""Pytest configuration and shared fixtures for HabitKeep tests.

Provides an isolated SQLite database per test, the key/value store on top of it,
a controllable clock, and factories for habits and stores, so tests never touch the
real data directory.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlmodel import SQLModel, create_engine

from habitkeep.infra.database import create_session_factory
from habitkeep.infra.repositories import SQLModelKeyValueStore
from habitkeep.models import Habit, StoredValue  # noqa: F401  (registers the table)
from habitkeep.services.store import HabitStore

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create an isolated SQLite database file for each test.

    Yields:
        Engine: SQLModel engine with all tables created
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'habitkeep-test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory matching what the application context builds."""
    return create_session_factory(db_engine)


@pytest.fixture
def kv_store(session_factory) -> SQLModelKeyValueStore:
    return SQLModelKeyValueStore(session_factory)


# =============================================================================
# Clock Fixtures
# =============================================================================


class FakeClock:
    """Callable returning a settable local date."""

    def __init__(self, today: date):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> date:
        self.today = self.today + timedelta(days=days)
        return self.today


class TickingNow:
    """Callable returning strictly increasing UTC timestamps."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(date(2024, 1, 1))


@pytest.fixture
def ticking_now() -> TickingNow:
    return TickingNow(datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc))


# =============================================================================
# Test Data Factories
# =============================================================================


class RecordingStorage:
    """In-memory key/value double that records writes and can be told to fail."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self.data: dict[str, str] = dict(initial or {})
        self.writes: list[tuple[str, str]] = []
        self.fail_get = False
        self.fail_set = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail_get:
            raise OSError("storage unavailable")
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        if self.fail_set:
            raise OSError("disk full")
        self.writes.append((key, value))
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


@pytest.fixture
def recording_storage() -> RecordingStorage:
    return RecordingStorage()


@pytest.fixture
def store_factory(recording_storage, clock, ticking_now):
    """Factory for stores wired to the recording storage and fake clocks.

    Returns:
        Callable: Function that builds a HabitStore, accepting HabitStore kwargs
    """

    def _create_store(storage=None, **kwargs) -> HabitStore:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("now", ticking_now)
        return HabitStore(storage if storage is not None else recording_storage, **kwargs)

    return _create_store


@pytest.fixture
def store(store_factory) -> HabitStore:
    return store_factory()


@pytest.fixture
def habit_factory(ticking_now):
    """Factory for detached Habit records with sensible defaults."""

    counter = {"n": 0}

    def _create_habit(
        title: str = "Drink water",
        category: str = "General",
        streak: int = 0,
        history: Optional[list[str]] = None,
        key: Optional[str] = None,
        **kwargs,
    ) -> Habit:
        counter["n"] += 1
        created_at = kwargs.pop("created_at", None) or ticking_now()
        return Habit(
            key=key or f"habit-{counter['n']}",
            title=title,
            category=category,
            streak=streak,
            history=tuple(history or ()),
            created_at=created_at,
            **kwargs,
        )

    return _create_habit
