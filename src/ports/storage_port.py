"""Storage port — abstract interface for event persistence.

Core modules depend on this protocol, never on a specific backend.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence

if TYPE_CHECKING:
    from src.data.models import CalendarEvent


class StorageError(Exception):
    """Raised when the storage backend fails to write."""


class StorageReadError(StorageError):
    """Raised when persisted data is missing, corrupt, or malformed."""


class StoragePort(Protocol):
    """Abstract key-value blob storage for the event collection."""

    def load(self) -> list[CalendarEvent] | None: ...

    def save(self, events: Sequence[CalendarEvent]) -> None: ...
