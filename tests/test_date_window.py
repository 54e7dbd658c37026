"""Tests for src.core.date_window — view windows and navigation."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from src.core.date_window import (
    Direction,
    ViewMode,
    days_for_view,
    end_of_month,
    end_of_week,
    header_title,
    is_same_month,
    now_in,
    start_of_month,
    start_of_week,
    step,
    today,
)

# Sunday is weekday() == 6, Saturday is 5
SUNDAY, SATURDAY = 6, 5

_ANCHORS = [
    date(2024, 1, 1),
    date(2024, 2, 29),
    date(2024, 12, 31),
    date(2025, 2, 1),    # Feb 2025 starts on a Saturday
    date(2025, 3, 31),
    date(2026, 2, 15),   # Feb 2026 is exactly 4 weeks, Sun–Sat
    date(2026, 8, 31),
]


class TestWeekAndMonthBounds:
    def test_start_of_week_is_sunday(self):
        assert start_of_week(date(2025, 3, 12)) == date(2025, 3, 9)

    def test_start_of_week_on_sunday_is_same_day(self):
        assert start_of_week(date(2025, 3, 9)) == date(2025, 3, 9)

    def test_end_of_week_is_saturday(self):
        assert end_of_week(date(2025, 3, 9)) == date(2025, 3, 15)

    def test_week_crosses_year_boundary(self):
        assert start_of_week(date(2025, 1, 1)) == date(2024, 12, 29)
        assert end_of_week(date(2024, 12, 30)) == date(2025, 1, 4)

    def test_month_bounds(self):
        assert start_of_month(date(2024, 2, 17)) == date(2024, 2, 1)
        assert end_of_month(date(2024, 2, 17)) == date(2024, 2, 29)
        assert end_of_month(date(2023, 2, 17)) == date(2023, 2, 28)
        assert end_of_month(date(2024, 12, 5)) == date(2024, 12, 31)

    def test_accepts_datetime(self):
        assert start_of_week(datetime(2025, 3, 12, 15, 30)) == date(2025, 3, 9)

    def test_is_same_month(self):
        assert is_same_month(date(2025, 3, 1), datetime(2025, 3, 31, 23, 59))
        assert not is_same_month(date(2025, 3, 1), date(2024, 3, 1))


class TestMonthWindow:
    @pytest.mark.parametrize("anchor", _ANCHORS)
    def test_whole_weeks_sunday_to_saturday(self, anchor):
        days = days_for_view(anchor, ViewMode.MONTH)
        assert len(days) % 7 == 0
        assert days[0].weekday() == SUNDAY
        assert days[-1].weekday() == SATURDAY

    @pytest.mark.parametrize("anchor", _ANCHORS)
    def test_contains_entire_month(self, anchor):
        days = days_for_view(anchor, ViewMode.MONTH)
        assert start_of_month(anchor) in days
        assert end_of_month(anchor) in days

    @pytest.mark.parametrize("anchor", _ANCHORS)
    def test_ascending_without_gaps(self, anchor):
        days = days_for_view(anchor, ViewMode.MONTH)
        for a, b in zip(days, days[1:]):
            assert b - a == timedelta(days=1)

    def test_march_2025_has_six_rows(self):
        # Mar 1 2025 is a Saturday, Mar 31 a Monday
        days = days_for_view(date(2025, 3, 15), ViewMode.MONTH)
        assert len(days) == 42
        assert days[0] == date(2025, 2, 23)
        assert days[-1] == date(2025, 4, 5)

    def test_february_2026_is_exactly_four_rows(self):
        days = days_for_view(date(2026, 2, 10), ViewMode.MONTH)
        assert len(days) == 28
        assert days[0] == date(2026, 2, 1)

    def test_accepts_string_mode(self):
        assert days_for_view(date(2025, 3, 15), "Month") == days_for_view(date(2025, 3, 15), ViewMode.MONTH)


class TestWeekAndDayWindow:
    @pytest.mark.parametrize("anchor", _ANCHORS)
    def test_week_is_seven_consecutive_days(self, anchor):
        days = days_for_view(anchor, ViewMode.WEEK)
        assert len(days) == 7
        assert days[0].weekday() == SUNDAY
        assert anchor in days
        assert days == [days[0] + timedelta(days=i) for i in range(7)]

    def test_day_is_anchor_start_of_day(self):
        assert days_for_view(datetime(2025, 3, 12, 18, 45), ViewMode.DAY) == [date(2025, 3, 12)]


class TestStep:
    def test_month_next_and_prev(self):
        assert step(date(2025, 3, 15), ViewMode.MONTH, Direction.NEXT) == date(2025, 4, 15)
        assert step(date(2025, 3, 15), ViewMode.MONTH, Direction.PREV) == date(2025, 2, 15)

    def test_month_clamps_day_of_month(self):
        assert step(date(2025, 1, 31), ViewMode.MONTH, Direction.NEXT) == date(2025, 2, 28)
        assert step(date(2024, 1, 31), ViewMode.MONTH, Direction.NEXT) == date(2024, 2, 29)
        assert step(date(2025, 3, 31), ViewMode.MONTH, Direction.PREV) == date(2025, 2, 28)

    def test_month_crosses_year(self):
        assert step(date(2024, 12, 10), ViewMode.MONTH, Direction.NEXT) == date(2025, 1, 10)
        assert step(date(2025, 1, 10), ViewMode.MONTH, Direction.PREV) == date(2024, 12, 10)

    def test_week_and_day(self):
        assert step(date(2024, 12, 28), ViewMode.WEEK, Direction.NEXT) == date(2025, 1, 4)
        assert step(date(2025, 1, 1), ViewMode.DAY, Direction.PREV) == date(2024, 12, 31)

    def test_preserves_datetime_type(self):
        result = step(datetime(2025, 1, 31, 9, 30), ViewMode.MONTH, Direction.NEXT)
        assert result == datetime(2025, 2, 28, 9, 30)

    @pytest.mark.parametrize("anchor", _ANCHORS)
    @pytest.mark.parametrize("mode", list(ViewMode))
    def test_next_then_prev_stays_in_same_period(self, anchor, mode):
        back = step(step(anchor, mode, Direction.NEXT), mode, Direction.PREV)
        if mode is ViewMode.MONTH:
            assert is_same_month(back, anchor)
        elif mode is ViewMode.WEEK:
            assert start_of_week(back) == start_of_week(anchor)
        else:
            assert back == anchor


class TestTodayAndTitle:
    def test_today_uses_reference_instant(self):
        assert today(datetime(2025, 6, 1, 23, 59)) == date(2025, 6, 1)

    def test_today_defaults_to_clock(self):
        assert today() == date.today()

    def test_today_reads_aware_reference_in_zone(self):
        evening_utc = datetime(2026, 10, 17, 18, 0, tzinfo=timezone.utc)
        assert today(evening_utc) == date(2026, 10, 17)
        assert today(evening_utc, ZoneInfo("Asia/Tokyo")) == date(2026, 10, 18)

    def test_now_in_zone_is_aware(self):
        tokyo = ZoneInfo("Asia/Tokyo")
        assert now_in(tokyo).utcoffset() == timedelta(hours=9)
        assert now_in().tzinfo is not None

    def test_header_title(self):
        assert header_title(date(2025, 3, 9)) == "March 2025"
