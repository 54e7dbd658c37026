"""
Lumina Calendar — Event Layout Engine.

Maps events onto the visual grid:
- Month view: each cell shows up to `cap` events plus an overflow count.
- Week/Day views: each event gets a vertical offset and height within
  its day column, scaled by the per-hour unit height.

Known simplifications, kept on purpose:
- Overlapping events are not separated; they share the same band.
- An event crossing midnight belongs only to its start day and its height
  covers the full duration, so it may run past the bottom of the column.
- Top offset is never clamped; only height has a floor (min_height).

No I/O: this module only reads events, never mutates them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Sequence

from src.core.date_window import ViewMode, days_for_view, is_same_month
from src.core.time_slots import DEFAULT_UNIT_HEIGHT, time_to_offset
from src.data.models import CalendarEvent

logger = logging.getLogger(__name__)

MONTH_CELL_EVENT_CAP = 3
DEFAULT_MIN_HEIGHT = 20.0


@dataclass(frozen=True)
class MonthDayLayout:
    """Events shown in one month cell."""

    visible: tuple[CalendarEvent, ...]
    overflow_count: int


@dataclass(frozen=True)
class PositionedEvent:
    """An event placed in a time-grid column."""

    event: CalendarEvent
    top_offset: float
    height: float


@dataclass(frozen=True)
class MonthCell:
    day: date
    is_current_month: bool
    is_today: bool
    layout: MonthDayLayout


@dataclass(frozen=True)
class TimeGridColumn:
    day: date
    is_today: bool
    events: list[PositionedEvent]


def _day_of(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def events_on_day(day: date | datetime, events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """Events whose start falls on the given calendar day, in source order."""
    target = _day_of(day)
    return [ev for ev in events if ev.start.date() == target]


def layout_month_day(
    day: date | datetime,
    events: Iterable[CalendarEvent],
    cap: int = MONTH_CELL_EVENT_CAP,
    sort_by_start: bool = False,
) -> MonthDayLayout:
    """Truncate a day's events to `cap` and count the rest.

    Order is the collection's insertion order unless sort_by_start is set,
    in which case events are ordered by start time (stable for ties).
    """
    matching = events_on_day(day, events)
    if sort_by_start:
        matching.sort(key=lambda ev: ev.start)
    return MonthDayLayout(
        visible=tuple(matching[:cap]),
        overflow_count=max(0, len(matching) - cap),
    )


def position_event(
    event: CalendarEvent,
    unit_height: float = DEFAULT_UNIT_HEIGHT,
    min_height: float = DEFAULT_MIN_HEIGHT,
) -> PositionedEvent:
    """Compute top offset and height for a single event."""
    top = time_to_offset(event.start.hour, event.start.minute, unit_height)
    height = max(event.duration_hours * unit_height, min_height)
    return PositionedEvent(event=event, top_offset=top, height=height)


def layout_time_grid_day(
    day: date | datetime,
    events: Iterable[CalendarEvent],
    unit_height: float = DEFAULT_UNIT_HEIGHT,
    min_height: float = DEFAULT_MIN_HEIGHT,
) -> list[PositionedEvent]:
    """Position every event that starts on `day` within its column."""
    positioned = [
        position_event(ev, unit_height, min_height)
        for ev in events_on_day(day, events)
    ]
    for p in positioned:
        if p.event.end < p.event.start:
            logger.warning(
                "Event %s ends before it starts; height floored to %s",
                p.event.id, min_height,
            )
    return positioned


def build_month_grid(
    anchor: date | datetime,
    events: Sequence[CalendarEvent],
    today: date,
    cap: int = MONTH_CELL_EVENT_CAP,
    sort_by_start: bool = False,
) -> list[MonthCell]:
    """Lay out every cell of the month view around the anchor."""
    return [
        MonthCell(
            day=day,
            is_current_month=is_same_month(day, anchor),
            is_today=day == today,
            layout=layout_month_day(day, events, cap=cap, sort_by_start=sort_by_start),
        )
        for day in days_for_view(anchor, ViewMode.MONTH)
    ]


def build_time_grid(
    anchor: date | datetime,
    mode: ViewMode,
    events: Sequence[CalendarEvent],
    today: date,
    unit_height: float = DEFAULT_UNIT_HEIGHT,
    min_height: float = DEFAULT_MIN_HEIGHT,
) -> list[TimeGridColumn]:
    """Lay out the Week (7 columns) or Day (1 column) time grid."""
    mode = ViewMode(mode)
    if mode is ViewMode.MONTH:
        raise ValueError("Month view has no time grid; use build_month_grid()")

    return [
        TimeGridColumn(
            day=day,
            is_today=day == today,
            events=layout_time_grid_day(day, events, unit_height, min_height),
        )
        for day in days_for_view(anchor, mode)
    ]
