"""
Lumina Calendar — Event Store.

Ordered in-memory collection of CalendarEvents keyed by id. Holds no
business logic: it gives the layout engine a stable collection to read and
tells subscribers (e.g. persistence) whenever the collection changes.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Iterable, Iterator

from src.data.models import CalendarEvent

logger = logging.getLogger(__name__)

ChangeListener = Callable[[tuple[CalendarEvent, ...]], None]


def new_event_id() -> str:
    """Default identifier service."""
    return str(uuid.uuid4())


class EventStore:
    """Insertion-ordered event collection with change notifications."""

    def __init__(
        self,
        events: Iterable[CalendarEvent] = (),
        id_factory: Callable[[], str] = new_event_id,
    ) -> None:
        self._events: dict[str, CalendarEvent] = {}
        self._listeners: list[ChangeListener] = []
        self._id_factory = id_factory
        for event in events:
            self._insert(event)

    # -- reads --------------------------------------------------------------

    def all(self) -> tuple[CalendarEvent, ...]:
        """Read-only snapshot in insertion order."""
        return tuple(self._events.values())

    def get(self, event_id: str) -> CalendarEvent | None:
        return self._events.get(event_id)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[CalendarEvent]:
        return iter(self.all())

    def __contains__(self, event_id: object) -> bool:
        return event_id in self._events

    # -- writes -------------------------------------------------------------

    def new_id(self) -> str:
        """Mint an id from the identifier service."""
        return self._id_factory()

    def _insert(self, event: CalendarEvent) -> None:
        if event.id in self._events:
            raise ValueError(f"Duplicate event id: {event.id!r}")
        self._events[event.id] = event

    def add(self, event: CalendarEvent) -> CalendarEvent:
        """Append an event. Its id must not already be in the store."""
        self._insert(event)
        logger.info("Event added: %s '%s' at %s", event.id, event.title, event.start.isoformat())
        self._notify()
        return event

    def create(
        self,
        title: str,
        start: datetime,
        end: datetime,
        color: str,
        description: str | None = None,
    ) -> CalendarEvent:
        """Mint a fresh id and add the resulting event."""
        event = CalendarEvent(
            id=self.new_id(),
            title=title,
            start=start,
            end=end,
            color=color,
            description=description,
        )
        return self.add(event)

    def remove(self, event_id: str) -> bool:
        """Delete an event by id. Missing ids are ignored.

        Returns True if something was removed.
        """
        event = self._events.pop(event_id, None)
        if event is None:
            logger.debug("Remove ignored, no event with id %s", event_id)
            return False
        logger.info("Event removed: %s '%s'", event.id, event.title)
        self._notify()
        return True

    def replace_all(self, events: Iterable[CalendarEvent]) -> None:
        """Swap in a whole new collection (e.g. after loading from storage)."""
        previous = self._events
        self._events = {}
        try:
            for event in events:
                self._insert(event)
        except ValueError:
            self._events = previous
            raise
        self._notify()

    # -- notifications ------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.all()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                logger.error("Event store listener %r failed: %s", listener, exc)
