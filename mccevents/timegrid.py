"""
Time grid math for the week view and the kiosk.

All functions are pure: the caller passes the week start convention and the
local timezone explicitly. Week start days follow the usual calendar numbering:

    0 = Sunday, 1 = Monday, ... 6 = Saturday

Instants are reported raw; clamping into a display window is the caller's job
(see mccevents.layout).
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, tzinfo
from typing import Optional, Tuple

SUNDAY = 0
MONDAY = 1


def _local(instant: datetime, tz: Optional[tzinfo]) -> datetime:
    if tz is None:
        return instant
    return instant.astimezone(tz)


def _check_week_start(week_start_day: int) -> None:
    if not 0 <= week_start_day <= 6:
        raise ValueError(f"week_start_day must be 0..6, got {week_start_day!r}")


def _sunday_based_weekday(local: datetime) -> int:
    # datetime.weekday() is Monday=0; shift so that Sunday=0
    return (local.weekday() + 1) % 7


def day_column_index(instant: datetime, week_start_day: int, tz: Optional[tzinfo] = None) -> int:
    """
    Return the instant's day offset (0..6) from the start of its week.
    """
    _check_week_start(week_start_day)
    local = _local(instant, tz)
    return (_sunday_based_weekday(local) - week_start_day + 7) % 7


def start_of_week(reference: datetime, week_start_day: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Local midnight of the first day of the week containing `reference`.

    Local time is `tz` when given, otherwise the reference's own timezone.
    """
    local = _local(reference, tz)
    offset = day_column_index(local, week_start_day)
    first_day = local.date() - timedelta(days=offset)
    return datetime.combine(first_day, time(0, 0), tzinfo=local.tzinfo)


def end_of_week(reference: datetime, week_start_day: int, tz: Optional[tzinfo] = None) -> datetime:
    """
    Exclusive upper bound of the week: start_of_week + 7 days.
    """
    return start_of_week(reference, week_start_day, tz) + timedelta(days=7)


def minutes_since_midnight(instant: datetime, tz: Optional[tzinfo] = None) -> int:
    local = _local(instant, tz)
    return local.hour * 60 + local.minute


def day_bounds(reference: datetime, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """
    Return (local midnight, next local midnight) for the day containing `reference`.
    """
    local = _local(reference, tz)
    start = datetime.combine(local.date(), time(0, 0), tzinfo=local.tzinfo)
    return start, start + timedelta(days=1)
