"""
Lumina Calendar — Calendar Session.

Per-user UI state on top of the pure core: the anchor date, the active view
mode, and the in-flight guard for smart (free-text) event creation. Every
user intent from the presentation layer (navigate, switch view, add, delete,
submit free text) lands here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, tzinfo
from enum import Enum
from typing import TYPE_CHECKING

from src.core import date_window
from src.core.date_window import Direction, ViewMode, local_zone
from src.core.layout import MonthCell, TimeGridColumn, build_month_grid, build_time_grid
from src.core.smart_parser import ParseFailure, parse_smart_event, suggestion_to_event

if TYPE_CHECKING:
    from src.core.event_store import EventStore
    from src.data.models import CalendarEvent

logger = logging.getLogger(__name__)


class EventValidationError(ValueError):
    """Raised when manual event input is rejected at the input boundary."""


class SmartSubmitStatus(str, Enum):
    CREATED = "created"
    EMPTY_INPUT = "empty_input"
    BUSY = "busy"
    FAILED = "failed"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class SmartSubmitOutcome:
    """Result of one free-text submission."""

    status: SmartSubmitStatus
    event: CalendarEvent | None = None
    failure: ParseFailure | None = None


def _parse_time(raw: str | time) -> time:
    if isinstance(raw, time):
        return raw
    try:
        return datetime.strptime(raw.strip(), "%H:%M").time()
    except ValueError as exc:
        raise EventValidationError(f"Invalid time {raw!r}, expected HH:MM") from exc


class CalendarSession:
    """Navigation state plus event intents for one calendar view."""

    def __init__(
        self,
        store: EventStore,
        anchor: date | None = None,
        view_mode: ViewMode = ViewMode.MONTH,
        settings=None,
    ) -> None:
        if settings is None:
            from src.config import settings
        self._settings = settings
        self.store = store
        self.anchor: date = anchor or date_window.today(tz=self.zone)
        self.view_mode = ViewMode(view_mode)
        self.smart_in_flight = False
        self._smart_generation = 0

    # -- navigation ---------------------------------------------------------

    @property
    def zone(self) -> tzinfo | None:
        """Configured wall-clock zone; None means the system zone."""
        return local_zone(self._settings.TIMEZONE)


    def prev(self) -> date:
        self.anchor = date_window.step(self.anchor, self.view_mode, Direction.PREV)
        return self.anchor

    def next(self) -> date:
        self.anchor = date_window.step(self.anchor, self.view_mode, Direction.NEXT)
        return self.anchor

    def go_today(self, now: datetime | None = None) -> date:
        self.anchor = date_window.today(now, self.zone)
        return self.anchor

    def set_view(self, mode: ViewMode | str) -> None:
        self.view_mode = ViewMode(mode)

    def select_date(self, day: date) -> None:
        """Jump to a day picked from the mini month navigator."""
        self.anchor = day

    # -- rendering data -----------------------------------------------------

    def title(self) -> str:
        return date_window.header_title(self.anchor)

    def visible_days(self) -> list[date]:
        return date_window.days_for_view(self.anchor, self.view_mode)

    def visible_events(self) -> list[CalendarEvent]:
        """Events starting on any visible day, in store order."""
        days = set(self.visible_days())
        return [ev for ev in self.store.all() if ev.start.date() in days]

    def month_grid(self, now: datetime | None = None) -> list[MonthCell]:
        return build_month_grid(
            self.anchor,
            self.store.all(),
            today=date_window.today(now, self.zone),
            cap=self._settings.MONTH_CELL_EVENT_CAP,
            sort_by_start=self._settings.MONTH_SORT_BY_START,
        )

    def time_grid(self, now: datetime | None = None) -> list[TimeGridColumn]:
        mode = self.view_mode if self.view_mode is not ViewMode.MONTH else ViewMode.WEEK
        return build_time_grid(
            self.anchor,
            mode,
            self.store.all(),
            today=date_window.today(now, self.zone),
            unit_height=self._settings.HOUR_UNIT_HEIGHT,
            min_height=self._settings.MIN_EVENT_HEIGHT,
        )

    # -- manual events ------------------------------------------------------

    def add_manual_event(
        self,
        title: str,
        day: date,
        start_time: str | time,
        end_time: str | time,
        color: str | None = None,
        description: str | None = None,
    ) -> CalendarEvent:
        """Create an event from the manual form.

        End before start is accepted; the layout engine floors the height.
        """
        if not title or not title.strip():
            raise EventValidationError("Event title is required")

        start = datetime.combine(day, _parse_time(start_time))
        end = datetime.combine(day, _parse_time(end_time))
        return self.store.create(
            title=title.strip(),
            start=start,
            end=end,
            color=color or self._settings.DEFAULT_EVENT_COLOR,
            description=description,
        )

    def delete_event(self, event_id: str) -> bool:
        return self.store.remove(event_id)

    # -- smart events -------------------------------------------------------

    def dismiss_smart_input(self) -> None:
        """Forget any outstanding smart request; its reply will be discarded."""
        self._smart_generation += 1
        self.smart_in_flight = False

    async def submit_smart_text(
        self, text: str, now: datetime | None = None,
    ) -> SmartSubmitOutcome:
        """Create an event from free text via the smart parser."""
        if not text or not text.strip():
            return SmartSubmitOutcome(SmartSubmitStatus.EMPTY_INPUT)
        if self.smart_in_flight:
            logger.info("Smart submission ignored: another request is in flight")
            return SmartSubmitOutcome(SmartSubmitStatus.BUSY)

        reference = now or date_window.now_in(self.zone)
        generation = self._smart_generation
        self.smart_in_flight = True
        try:
            result = await parse_smart_event(text, reference)
        finally:
            if generation == self._smart_generation:
                self.smart_in_flight = False

        if generation != self._smart_generation:
            logger.info("Smart input dismissed while in flight, discarding reply")
            return SmartSubmitOutcome(SmartSubmitStatus.DISCARDED)

        if not result.ok:
            return SmartSubmitOutcome(SmartSubmitStatus.FAILED, failure=result.failure)

        try:
            event = suggestion_to_event(
                result.suggestion,
                event_id=self.store.new_id(),
                color=self._settings.DEFAULT_EVENT_COLOR,
                tz=self.zone,
            )
        except ValueError as exc:
            logger.warning("Smart suggestion has unusable dates: %s", exc)
            return SmartSubmitOutcome(
                SmartSubmitStatus.FAILED, failure=ParseFailure.SCHEMA_MISMATCH,
            )

        self.store.add(event)
        return SmartSubmitOutcome(SmartSubmitStatus.CREATED, event=event)
