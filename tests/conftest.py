"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp storage DB and event factories.
"""

import os

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("LLM_API_KEY", "fake-llm-key-for-tests")
os.environ.setdefault("LLM_PROVIDER", "gemini")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("TIMEZONE", "UTC")

import itertools
from datetime import datetime

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_lumina.db")


@pytest.fixture
def storage(tmp_db_path):
    """Return a SQLiteEventStorage instance backed by a temp file."""
    from src.data.storage import SQLiteEventStorage
    return SQLiteEventStorage(db_path=tmp_db_path, key="lumina_events")


@pytest.fixture
def sequential_ids():
    """Deterministic identifier service: evt-1, evt-2, ..."""
    counter = itertools.count(1)
    return lambda: f"evt-{next(counter)}"


@pytest.fixture
def store(sequential_ids):
    """Return an empty EventStore with deterministic ids."""
    from src.core.event_store import EventStore
    return EventStore(id_factory=sequential_ids)


@pytest.fixture
def make_event():
    """Factory for CalendarEvent with sensible defaults."""
    from src.data.models import CalendarEvent

    counter = itertools.count(1)

    def _make(
        start: datetime,
        end: datetime | None = None,
        title: str | None = None,
        event_id: str | None = None,
        color: str = "#3b82f6",
        description: str | None = None,
    ) -> CalendarEvent:
        n = next(counter)
        return CalendarEvent(
            id=event_id or f"e{n}",
            title=title or f"Event {n}",
            start=start,
            end=end or start.replace(hour=min(start.hour + 1, 23)),
            color=color,
            description=description,
        )

    return _make
