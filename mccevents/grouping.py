"""
Group events by calendar day for the list view.

Grouping rule:
    day key = ISO date (YYYY-MM-DD) of the event start in the given timezone
Groups are ordered by day key, events inside a group by start instant.
Both sorts are stable, so events with equal starts keep their input order.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone, tzinfo
from typing import Iterable

from mccevents.model import DayGroup, Event


def day_key(instant: datetime, tz: tzinfo = timezone.utc) -> str:
    """
    Convert an instant to its 'YYYY-MM-DD' day key in `tz`.
    """
    return instant.astimezone(tz).date().isoformat()


def group_by_day(events: Iterable[Event], tz: tzinfo = timezone.utc) -> tuple[DayGroup, ...]:
    """
    Group events by the calendar day of their start.

    Empty input gives an empty tuple.
    """
    by_day: dict[str, list[Event]] = defaultdict(list)
    for ev in events:
        by_day[day_key(ev.start_ts, tz)].append(ev)

    groups: list[DayGroup] = []
    for key in sorted(by_day):
        rows = sorted(by_day[key], key=lambda ev: ev.start_ts)
        groups.append(DayGroup(day=key, events=tuple(rows)))
    return tuple(groups)


def flatten(groups: Iterable[DayGroup]) -> list[Event]:
    """
    Events of all groups, in group order.
    """
    out: list[Event] = []
    for group in groups:
        out.extend(group.events)
    return out
