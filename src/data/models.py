"""
Lumina Calendar — Data Models.

Calendar events live in the EventStore and are persisted as a single
JSON blob. Events are immutable: edits replace the whole record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CalendarEvent:
    """A single calendar entry in local wall-clock time.

    Created from the manual /add flow or from a smart (free-text) suggestion.
    The id is opaque and generated outside the model (uuid4 by default).
    """

    id: str
    title: str
    start: datetime
    end: datetime
    color: str                        # e.g. "#3b82f6", opaque to layout logic
    description: str | None = None

    @property
    def duration_hours(self) -> float:
        """Signed duration; negative when end precedes start."""
        return (self.end - self.start).total_seconds() / 3600
