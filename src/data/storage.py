"""
Lumina Calendar — Event Storage.

The whole event list persists as one JSON blob under a single key in a
SQLite key-value table. Loading fails open: corrupt or missing data is
logged and treated as "no saved events".
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import tzinfo
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Sequence

from src.core.date_window import local_zone, to_wall_clock
from src.data.models import CalendarEvent
from src.ports.storage_port import StorageError, StorageReadError

if TYPE_CHECKING:
    from src.core.event_store import EventStore
    from src.ports.storage_port import StoragePort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _event_to_dict(event: CalendarEvent) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": event.id,
        "title": event.title,
        "start": event.start.isoformat(),
        "end": event.end.isoformat(),
        "color": event.color,
    }
    if event.description is not None:
        data["description"] = event.description
    return data


def _event_from_dict(data: Any, tz: tzinfo | None) -> CalendarEvent:
    if not isinstance(data, dict):
        raise StorageReadError(f"Expected event object, got {type(data).__name__}")
    try:
        description = data.get("description")
        if description is not None and not isinstance(description, str):
            raise TypeError("description must be a string")
        return CalendarEvent(
            id=str(data["id"]),
            title=str(data["title"]),
            start=to_wall_clock(data["start"], tz),
            end=to_wall_clock(data["end"], tz),
            color=str(data["color"]),
            description=description,
        )
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise StorageReadError(f"Malformed stored event {data!r}: {exc}") from exc


def serialize_events(events: Sequence[CalendarEvent]) -> str:
    """Encode events as a JSON array of {id, title, description?, start, end, color}."""
    return json.dumps([_event_to_dict(ev) for ev in events])


def deserialize_events(raw: str, tz: tzinfo | None = None) -> list[CalendarEvent]:
    """Decode a JSON blob produced by serialize_events.

    Timestamps with an offset (e.g. "...Z") are converted to wall-clock time
    in `tz` (system zone when None).

    Raises StorageReadError on any malformed content, including duplicate ids.
    """
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as exc:
        raise StorageReadError(f"Stored events are not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise StorageReadError(f"Expected a JSON array, got {type(data).__name__}")

    events = [_event_from_dict(item, tz) for item in data]
    ids = [ev.id for ev in events]
    if len(ids) != len(set(ids)):
        raise StorageReadError("Stored events contain duplicate ids")
    return events


# ---------------------------------------------------------------------------
# SQLite key-value backend
# ---------------------------------------------------------------------------


class SQLiteEventStorage:
    """SQLite-backed key-value blob storage for the event list."""

    def __init__(
        self,
        db_path: str | None = None,
        key: str | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        from src.config import settings

        self._db_path = db_path or settings.DATABASE_PATH
        self._key = key or settings.STORAGE_KEY
        self._tz = tz or local_zone(settings.TIMEZONE)
        # An in-memory database lives only as long as its connection
        self._memory_conn: sqlite3.Connection | None = None
        if self._db_path == ":memory:":
            self._memory_conn = sqlite3.connect(":memory:")
        else:
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        if self._memory_conn is not None:
            return self._memory_conn
        return sqlite3.connect(self._db_path)

    def _init_db(self) -> None:
        """Create the key-value table if it doesn't exist."""
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key   TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)
        logger.debug("kv_store table initialized at %s", self._db_path)

    def load_raw(self) -> str | None:
        """Return the stored blob, or None if nothing was saved yet."""
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (self._key,)
            ).fetchone()
        return None if row is None else row[0]

    def load(self) -> list[CalendarEvent] | None:
        """Load saved events. Returns None when nothing usable is stored."""
        try:
            raw = self.load_raw()
            if raw is None:
                logger.info("No saved events under key '%s'", self._key)
                return None
            events = deserialize_events(raw, self._tz)
        except (StorageReadError, sqlite3.Error) as exc:
            logger.error("Failed to load saved events, starting empty: %s", exc)
            return None

        logger.info("Loaded %d saved events", len(events))
        return events

    def save(self, events: Sequence[CalendarEvent]) -> None:
        """Overwrite the stored blob with the given events."""
        blob = serialize_events(events)
        try:
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO kv_store (key, value) VALUES (?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                    (self._key, blob),
                )
        except sqlite3.Error as exc:
            raise StorageError(f"Failed to save events: {exc}") from exc
        logger.debug("Saved %d events under key '%s'", len(events), self._key)


# ---------------------------------------------------------------------------
# Store wiring
# ---------------------------------------------------------------------------


def bind_store(store: EventStore, storage: StoragePort) -> Callable[[], None]:
    """Load saved events into the store and persist every later change.

    Returns the unsubscribe function for the persistence listener.
    """
    saved = storage.load()
    if saved:
        try:
            store.replace_all(saved)
        except ValueError as exc:
            logger.error("Saved events conflict with store contents, ignoring: %s", exc)

    def _persist(events: tuple[CalendarEvent, ...]) -> None:
        try:
            storage.save(events)
        except StorageError as exc:
            logger.error("Could not persist events: %s", exc)

    return store.subscribe(_persist)
