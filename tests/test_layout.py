"""Tests for src.core.layout — month truncation and time-grid positioning."""

from datetime import date, datetime

import pytest

from src.core.date_window import ViewMode
from src.core.layout import (
    MonthDayLayout,
    PositionedEvent,
    build_month_grid,
    build_time_grid,
    events_on_day,
    layout_month_day,
    layout_time_grid_day,
    position_event,
)


DAY = date(2025, 3, 12)


# ---------------------------------------------------------------------------
# Day selection
# ---------------------------------------------------------------------------


class TestEventsOnDay:
    def test_selects_by_start_day_only(self, make_event):
        same = make_event(datetime(2025, 3, 12, 9, 0))
        other = make_event(datetime(2025, 3, 13, 9, 0))
        assert events_on_day(DAY, [same, other]) == [same]

    def test_midnight_spanning_event_belongs_to_start_day(self, make_event):
        late = make_event(datetime(2025, 3, 12, 23, 0), datetime(2025, 3, 13, 2, 0))
        assert events_on_day(date(2025, 3, 12), [late]) == [late]
        assert events_on_day(date(2025, 3, 13), [late]) == []

    def test_accepts_datetime_day(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 9, 0))
        assert events_on_day(datetime(2025, 3, 12, 17, 0), [ev]) == [ev]


# ---------------------------------------------------------------------------
# Month strategy
# ---------------------------------------------------------------------------


class TestLayoutMonthDay:
    def test_five_events_show_three_and_overflow_two(self, make_event):
        events = [make_event(datetime(2025, 3, 12, h, 0)) for h in range(8, 13)]
        result = layout_month_day(DAY, events)
        assert isinstance(result, MonthDayLayout)
        assert len(result.visible) == 3
        assert result.overflow_count == 2

    def test_fewer_than_cap_has_no_overflow(self, make_event):
        events = [make_event(datetime(2025, 3, 12, 9, 0))]
        result = layout_month_day(DAY, events)
        assert result.visible == (events[0],)
        assert result.overflow_count == 0

    def test_empty_day(self):
        result = layout_month_day(DAY, [])
        assert result.visible == ()
        assert result.overflow_count == 0

    def test_keeps_insertion_order_by_default(self, make_event):
        # Insertion order, not chronological — matches the source collection.
        evening = make_event(datetime(2025, 3, 12, 19, 0), title="Evening")
        morning = make_event(datetime(2025, 3, 12, 8, 0), title="Morning")
        result = layout_month_day(DAY, [evening, morning])
        assert [e.title for e in result.visible] == ["Evening", "Morning"]

    def test_sort_by_start_orders_chronologically(self, make_event):
        evening = make_event(datetime(2025, 3, 12, 19, 0), title="Evening")
        morning = make_event(datetime(2025, 3, 12, 8, 0), title="Morning")
        result = layout_month_day(DAY, [evening, morning], sort_by_start=True)
        assert [e.title for e in result.visible] == ["Morning", "Evening"]

    def test_custom_cap(self, make_event):
        events = [make_event(datetime(2025, 3, 12, h, 0)) for h in range(8, 13)]
        result = layout_month_day(DAY, events, cap=1)
        assert len(result.visible) == 1
        assert result.overflow_count == 4

    def test_does_not_mutate_input(self, make_event):
        events = [make_event(datetime(2025, 3, 12, h, 0)) for h in (15, 9)]
        snapshot = list(events)
        layout_month_day(DAY, events, sort_by_start=True)
        assert events == snapshot


# ---------------------------------------------------------------------------
# Time-grid strategy
# ---------------------------------------------------------------------------


class TestLayoutTimeGrid:
    def test_nine_to_ten_thirty(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 9, 0), datetime(2025, 3, 12, 10, 30))
        [positioned] = layout_time_grid_day(DAY, [ev], unit_height=80)
        assert isinstance(positioned, PositionedEvent)
        assert positioned.event is ev
        assert positioned.top_offset == 720
        assert positioned.height == 120

    def test_short_event_gets_minimum_height(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 9, 0), datetime(2025, 3, 12, 9, 5))
        [positioned] = layout_time_grid_day(DAY, [ev])
        assert positioned.height == 20

    def test_minutes_contribute_to_top_offset(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 14, 45), datetime(2025, 3, 12, 15, 45))
        positioned = position_event(ev, unit_height=80)
        assert positioned.top_offset == pytest.approx(14 * 80 + 60)
        assert positioned.height == pytest.approx(80)

    def test_unit_height_is_configurable(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 2, 0), datetime(2025, 3, 12, 4, 0))
        positioned = position_event(ev, unit_height=50, min_height=10)
        assert positioned.top_offset == 100
        assert positioned.height == 100

    def test_end_before_start_floors_height(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 10, 0), datetime(2025, 3, 12, 9, 0))
        [positioned] = layout_time_grid_day(DAY, [ev])
        assert positioned.height == 20
        assert positioned.top_offset == 800

    def test_midnight_spanning_height_uses_full_duration(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 22, 0), datetime(2025, 3, 13, 2, 0))
        [positioned] = layout_time_grid_day(DAY, [ev])
        assert positioned.top_offset == 22 * 80
        assert positioned.height == 4 * 80

    def test_overlapping_events_are_not_separated(self, make_event):
        a = make_event(datetime(2025, 3, 12, 9, 0), datetime(2025, 3, 12, 10, 0))
        b = make_event(datetime(2025, 3, 12, 9, 0), datetime(2025, 3, 12, 10, 0))
        result = layout_time_grid_day(DAY, [a, b])
        assert [p.top_offset for p in result] == [720, 720]


# ---------------------------------------------------------------------------
# Whole-view grids
# ---------------------------------------------------------------------------


class TestBuildGrids:
    def test_month_grid_flags(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 9, 0))
        cells = build_month_grid(date(2025, 3, 1), [ev], today=date(2025, 3, 12))
        assert len(cells) == 42
        assert cells[0].day == date(2025, 2, 23)
        assert cells[0].is_current_month is False
        busy = [c for c in cells if c.layout.visible]
        assert len(busy) == 1
        assert busy[0].day == DAY
        assert busy[0].is_today is True
        assert sum(c.is_today for c in cells) == 1

    def test_week_time_grid(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 9, 0), datetime(2025, 3, 12, 10, 30))
        columns = build_time_grid(DAY, ViewMode.WEEK, [ev], today=date(2025, 1, 1))
        assert [c.day for c in columns][0] == date(2025, 3, 9)
        assert len(columns) == 7
        wednesday = columns[3]
        assert wednesday.day == DAY
        assert [p.top_offset for p in wednesday.events] == [720]
        assert not any(c.is_today for c in columns)

    def test_day_time_grid(self, make_event):
        ev = make_event(datetime(2025, 3, 12, 9, 0))
        columns = build_time_grid(DAY, ViewMode.DAY, [ev], today=DAY)
        assert len(columns) == 1
        assert columns[0].is_today is True
        assert len(columns[0].events) == 1

    def test_month_has_no_time_grid(self):
        with pytest.raises(ValueError, match="Month view"):
            build_time_grid(DAY, ViewMode.MONTH, [], today=DAY)
