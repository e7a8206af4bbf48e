"""
Terminal rendering with rich.

Three views, mirroring the pages of the site:
- agenda:  upcoming events grouped by day
- week:    one table column per day of the week grid
- kiosk:   today's events, large, with loading / error / empty states
"""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Optional, Sequence

from rich import box
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from mccevents.feed import Failed, FeedState, Loaded, Loading
from mccevents.model import DayGroup, Event, WeekGrid

console = Console()

TBD = "TBD"


def fmt_day(d: datetime) -> str:
    """'Fri, Sep 5'"""
    return f"{d.strftime('%a, %b')} {d.day}"


def fmt_time(dt: datetime, tz: Optional[tzinfo] = None) -> str:
    """'5:00 PM'"""
    local = dt.astimezone(tz) if tz else dt
    hour = local.hour % 12 or 12
    return f"{hour}:{local.minute:02d} {'AM' if local.hour < 12 else 'PM'}"


def fmt_range(ev: Event, tz: Optional[tzinfo] = None) -> str:
    return f"{fmt_time(ev.start_ts, tz)} – {fmt_time(ev.end_ts, tz)}"


def event_line(ev: Event, tz: Optional[tzinfo] = None) -> str:
    return f"{fmt_range(ev, tz)} {ev.title} · {ev.venue or TBD}"


def render_agenda(groups: Sequence[DayGroup], tz: Optional[tzinfo] = None) -> RenderableType:
    if not groups:
        return Text("No upcoming events.", style="yellow")

    parts: list[RenderableType] = []
    for group in groups:
        first = group.events[0].start_ts
        heading = fmt_day(first.astimezone(tz) if tz else first)

        table = Table(title=heading, title_justify="left", box=box.SIMPLE, show_header=False)
        table.add_column("time", no_wrap=True)
        table.add_column("title", style="bold green")
        table.add_column("venue")
        table.add_column("id", style="dim")
        for ev in group.events:
            table.add_row(fmt_range(ev, tz), ev.title, ev.venue or TBD, ev.id)
        parts.append(table)
    return Group(*parts)


def render_week(grid: WeekGrid, tz: Optional[tzinfo] = None) -> RenderableType:
    table = Table(
        title=f"Week of {fmt_day(grid.week_start)}",
        box=box.SIMPLE,
        show_lines=False,
    )
    for d in grid.days:
        table.add_column(f"{d.strftime('%a, %b')} {d.day}", overflow="fold")

    columns = [grid.column(i) for i in range(7)]
    depth = max((len(c) for c in columns), default=0)
    for r in range(depth):
        row = []
        for col in columns:
            row.append(event_line(col[r].event, tz) if r < len(col) else "")
        table.add_row(*row)

    if depth == 0:
        return Group(table, Text("No events this week.", style="yellow"))
    return table


def render_kiosk(state: FeedState, now: datetime, tz: Optional[tzinfo] = None) -> RenderableType:
    local_now = now.astimezone(tz) if tz else now
    header = Text.assemble(
        ("Today at the MCC", "bold green"),
        "   ",
        (f"{fmt_day(local_now)} {fmt_time(local_now)}", "dim"),
    )

    if isinstance(state, Loading):
        body: RenderableType = Text("Loading…", style="green")
    elif isinstance(state, Failed):
        body = Text(f"Error: {state.message}", style="red")
    elif isinstance(state, Loaded) and not state.items:
        body = Text("No events scheduled today.", style="green")
    else:
        rows: list[RenderableType] = []
        for ev in state.items:
            line = Text.assemble((ev.title, "bold"), "  ", (fmt_range(ev, tz), "bold green"))
            if ev.venue:
                rows.append(Panel(Group(line, Text(ev.venue, style="dim"))))
            else:
                rows.append(Panel(line))
        body = Group(*rows)

    return Group(header, Text(""), body)
