"""Date window — which days a view shows, and how navigation moves the anchor.

Pure calendar arithmetic. Weeks start on Sunday. Month stepping clamps the
day-of-month (Jan 31 + 1 month → Feb 28/29) via dateutil's relativedelta.

No I/O: this module only transforms data.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from enum import Enum
from typing import TypeVar
from zoneinfo import ZoneInfo

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

WEEKDAY_LABELS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

_D = TypeVar("_D", date, datetime)


class ViewMode(str, Enum):
    MONTH = "Month"
    WEEK = "Week"
    DAY = "Day"


class Direction(str, Enum):
    PREV = "prev"
    NEXT = "next"


def _as_date(value: date | datetime) -> date:
    """Start-of-day for either a date or a datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value


def start_of_week(value: date | datetime) -> date:
    """Return the Sunday on or before the given day."""
    day = _as_date(value)
    # weekday(): Monday=0 … Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def end_of_week(value: date | datetime) -> date:
    """Return the Saturday on or after the given day."""
    return start_of_week(value) + timedelta(days=6)


def start_of_month(value: date | datetime) -> date:
    return _as_date(value).replace(day=1)


def end_of_month(value: date | datetime) -> date:
    return start_of_month(value) + relativedelta(months=1, days=-1)


def is_same_month(a: date | datetime, b: date | datetime) -> bool:
    return (a.year, a.month) == (b.year, b.month)


def _each_day(start: date, end: date) -> list[date]:
    """Every day in the closed interval [start, end]."""
    return [start + timedelta(days=i) for i in range((end - start).days + 1)]


def days_for_view(anchor: date | datetime, mode: ViewMode) -> list[date]:
    """Compute the ordered days to render for the anchor and view mode.

    Month: full Sunday–Saturday rows covering the anchor's month (35–42 days).
    Week:  the 7 days of the week containing the anchor.
    Day:   just the anchor's day.
    """
    mode = ViewMode(mode)
    if mode is ViewMode.MONTH:
        return _each_day(
            start_of_week(start_of_month(anchor)),
            end_of_week(end_of_month(anchor)),
        )
    if mode is ViewMode.WEEK:
        return _each_day(start_of_week(anchor), end_of_week(anchor))
    return [_as_date(anchor)]


_STEPS = {
    ViewMode.MONTH: relativedelta(months=1),
    ViewMode.WEEK: relativedelta(weeks=1),
    ViewMode.DAY: relativedelta(days=1),
}


def step(anchor: _D, mode: ViewMode, direction: Direction) -> _D:
    """Move the anchor one month, week, or day backwards or forwards."""
    delta = _STEPS[ViewMode(mode)]
    if Direction(direction) is Direction.PREV:
        return anchor - delta
    return anchor + delta


def now_in(tz: tzinfo | None = None) -> datetime:
    """Current aware instant in `tz` (system zone when None)."""
    if tz is None:
        return datetime.now().astimezone()
    return datetime.now(tz)


def today(now: datetime | None = None, tz: tzinfo | None = None) -> date:
    """Start of the current day.

    `now` is the reference instant; pass it explicitly to keep callers
    deterministic. Defaults to the clock in `tz` (system zone when None).
    An aware `now` is read in `tz` when one is given.
    """
    if now is None:
        now = now_in(tz)
    elif now.tzinfo is not None and tz is not None:
        now = now.astimezone(tz)
    return now.date()


def header_title(anchor: date | datetime) -> str:
    """Header label for the anchor, e.g. 'March 2025'."""
    return anchor.strftime("%B %Y")


def local_zone(name: str | None = None) -> tzinfo | None:
    """ZoneInfo for a configured zone name, or None for the system zone."""
    if name:
        return ZoneInfo(name)
    return None


def to_wall_clock(raw: str, tz: tzinfo | None = None) -> datetime:
    """Parse ISO-8601 text into a naive local datetime.

    Offset-aware values are converted into `tz` (system zone when None);
    naive values are taken as already being local wall-clock time.
    """
    dt = isoparse(raw)
    if dt.tzinfo is not None:
        dt = dt.astimezone(tz).replace(tzinfo=None)
    return dt
