"""Text rendering of calendar grids for Telegram messages."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from telegram.helpers import escape_markdown

from src.core.date_window import WEEKDAY_LABELS
from src.core.time_slots import time_slots

if TYPE_CHECKING:
    from src.core.layout import MonthCell, PositionedEvent, TimeGridColumn
    from src.data.models import CalendarEvent


def md(text: str) -> str:
    """Escape user text for parse_mode="Markdown" messages."""
    return escape_markdown(text)


def format_event_line(event: CalendarEvent, escape: bool = False) -> str:
    """'09:00–10:30  Standup' style line. `escape` for Markdown messages."""
    title = md(event.title) if escape else event.title
    return f"{event.start:%H:%M}–{event.end:%H:%M}  {title}"


def _month_cell_token(cell: MonthCell) -> str:
    if not cell.is_current_month:
        return "  .  "
    count = len(cell.layout.visible) + cell.layout.overflow_count
    mark = "*" if cell.is_today else " "
    dot = "•" if count else " "
    return f"{mark}{cell.day.day:>2}{dot} "


def render_month(title: str, cells: list[MonthCell]) -> str:
    """Monospace month table, then the visible events of each busy day."""
    lines = [f"*{title}*", "```"]
    lines.append("".join(f"{label:^5}" for label in WEEKDAY_LABELS))
    for row_start in range(0, len(cells), 7):
        row = cells[row_start:row_start + 7]
        lines.append("".join(_month_cell_token(c) for c in row).rstrip())
    lines.append("```")

    for cell in cells:
        if not cell.is_current_month:
            continue
        layout = cell.layout
        if not layout.visible:
            continue
        lines.append(f"\n*{cell.day:%a %d}*")
        for ev in layout.visible:
            lines.append(f"• {format_event_line(ev, escape=True)}")
        if layout.overflow_count:
            lines.append(f"  + {layout.overflow_count} more")

    return "\n".join(lines)


def _positioned_line(p: PositionedEvent) -> str:
    return f"    • {format_event_line(p.event, escape=True)}  `[{p.top_offset:g}px, {p.height:g}px]`"


def render_time_grid(title: str, columns: list[TimeGridColumn]) -> str:
    """Week/Day view as one section per column, events under their hour marker."""
    lines = [f"*{title}*"]
    for col in columns:
        today_mark = " (today)" if col.is_today else ""
        lines.append(f"\n*{col.day:%a %d %b}*{today_mark}")
        if not col.events:
            lines.append("  —")
            continue
        by_hour: dict[int, list[PositionedEvent]] = defaultdict(list)
        for p in col.events:
            by_hour[p.event.start.hour].append(p)
        for slot in time_slots():
            if slot.hour not in by_hour:
                continue
            lines.append(f"  `{slot.label:>5}`")
            lines.extend(_positioned_line(p) for p in by_hour[slot.hour])
    return "\n".join(lines)


def render_event_details(event: CalendarEvent) -> str:
    lines = [
        f"*{md(event.title)}*",
        f"{event.start:%a %d %b %Y}, {event.start:%H:%M} – {event.end:%H:%M}",
    ]
    if event.description:
        lines.append(md(event.description))
    return "\n".join(lines)
