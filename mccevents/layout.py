"""
Week grid layout.

Places the events of one week into seven day columns. The vertical extent
of each event is clamped into a display window (8:00-20:00 by default) and
expressed as percentages of that window, so any renderer can draw it.

The window and the minimum visual height are presentation policy and are
passed in as a GridWindow.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Optional

from mccevents.model import Event, GridPosition, WeekGrid
from mccevents.timegrid import day_column_index, end_of_week, minutes_since_midnight, start_of_week


@dataclass(frozen=True)
class GridWindow:
    start_hour: int = 8
    end_hour: int = 20
    min_height_pct: float = 8.0

    def __post_init__(self) -> None:
        if not (0 <= self.start_hour < self.end_hour <= 24):
            raise ValueError(f"Invalid display window: {self.start_hour}-{self.end_hour}")

    @property
    def span_minutes(self) -> int:
        return (self.end_hour - self.start_hour) * 60

    @property
    def hours(self) -> list[int]:
        """Hour marks for a time ruler, both ends included."""
        return list(range(self.start_hour, self.end_hour + 1))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def position_event(
    ev: Event,
    week_start_day: int,
    window: GridWindow,
    tz: Optional[tzinfo] = None,
) -> GridPosition:
    """
    Compute the grid position of a single event.
    """
    start_local = ev.start_ts.astimezone(tz) if tz else ev.start_ts
    end_local = ev.end_ts.astimezone(tz) if tz else ev.end_ts

    window_start = window.start_hour * 60
    span = window.span_minutes

    s_min = minutes_since_midnight(start_local) - window_start
    if end_local.date() > start_local.date():
        # runs past midnight: the block extends to the bottom of the window
        e_min = span
    else:
        e_min = minutes_since_midnight(end_local) - window_start

    s_min = _clamp(s_min, 0, span)
    e_min = _clamp(e_min, s_min, span)

    top_pct = s_min / span * 100
    height_pct = max(window.min_height_pct, (e_min - s_min) / span * 100)

    return GridPosition(
        event=ev,
        column=day_column_index(start_local, week_start_day),
        start_minute=s_min,
        end_minute=e_min,
        top_pct=top_pct,
        height_pct=height_pct,
    )


def layout_week(
    events: Iterable[Event],
    reference: datetime,
    week_start_day: int,
    window: GridWindow = GridWindow(),
    tz: Optional[tzinfo] = None,
) -> WeekGrid:
    """
    Lay out the events that start inside the week containing `reference`.

    Events outside [start_of_week, end_of_week) are dropped.
    """
    week_start = start_of_week(reference, week_start_day, tz)
    week_end = end_of_week(reference, week_start_day, tz)

    week_events = [ev for ev in events if week_start <= ev.start_ts < week_end]
    week_events.sort(key=lambda ev: ev.start_ts)

    # columns follow the same zone as the week bounds
    local_tz = tz or week_start.tzinfo
    positions = tuple(position_event(ev, week_start_day, window, local_tz) for ev in week_events)
    days = tuple(week_start.date() + timedelta(days=i) for i in range(7))

    return WeekGrid(week_start=week_start, week_end=week_end, days=days, positions=positions)
