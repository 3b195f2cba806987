"""
Shared test fixtures.

Database fixtures build a throwaway SQLite file per test; event factories
produce deterministic interaction windows with explicit timestamps.
"""

import tempfile
from pathlib import Path
from typing import List

import aiosqlite
import pytest

from synapse.domain.models.interaction import EventType, InteractionEvent
from synapse.persistence.database import init_database
from synapse.persistence.repositories.concept_repo import ConceptRepository
from synapse.persistence.repositories.interaction_repo import InteractionRepository

T0 = 1_700_000_000_000.0  # Arbitrary epoch-ms origin for synthetic windows


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, now: float = T0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


def _make_event(event_type: str, timestamp: float, **payload) -> InteractionEvent:
    return InteractionEvent(type=EventType(event_type), timestamp=timestamp, payload=payload)


def _keypresses(count: int, start: float = T0, interval: float = 200.0) -> List[InteractionEvent]:
    return [_make_event("keypress", start + i * interval, key="a") for i in range(count)]


@pytest.fixture
def t0() -> float:
    return T0


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_event():
    """Factory: make_event("pointermove", ts, x=1, y=2)."""
    return _make_event


@pytest.fixture
def keypresses():
    """Factory: keypresses(count, start=T0, interval=200.0)."""
    return _keypresses


@pytest.fixture
async def test_db():
    """Create and initialize test database."""
    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = Path(tmpdir) / "test.db"
        await init_database(db_path)
        yield db_path


@pytest.fixture
async def db_connection(test_db):
    """Create a database connection for testing."""
    async with aiosqlite.connect(str(test_db)) as db:
        db.row_factory = aiosqlite.Row
        yield db


@pytest.fixture
async def concept_repo(db_connection):
    return ConceptRepository(db_connection)


@pytest.fixture
async def interaction_repo(db_connection):
    return InteractionRepository(db_connection)
