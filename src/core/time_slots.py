"""Hourly scaffolding for the Week and Day time grids."""

from __future__ import annotations

from typing import Iterator, NamedTuple

HOURS_PER_DAY = 24
DEFAULT_UNIT_HEIGHT = 80.0


class TimeSlot(NamedTuple):
    hour: int     # 0..23
    label: str    # "9:00"


def time_slots() -> Iterator[TimeSlot]:
    """Yield the 24 hourly markers. Each call returns a fresh iterator."""
    for hour in range(HOURS_PER_DAY):
        yield TimeSlot(hour=hour, label=f"{hour}:00")


def time_to_offset(hour: int, minute: int, unit_height: float = DEFAULT_UNIT_HEIGHT) -> float:
    """Vertical offset of a time of day, where one hour spans unit_height."""
    return hour * unit_height + minute / 60 * unit_height
