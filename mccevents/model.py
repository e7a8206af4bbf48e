"""
Central data model definitions used across the project.

This module defines the canonical structure of Event objects and of the
presentation structures derived from them, so that:
- the store adapters, the HTTP handlers and the CLI share the same field names
- derived structures (day groups, grid positions) are plain, immutable values
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Optional, Tuple

from dateutil import parser as dateutil_parser

from mccevents.errors import ValidationError


def parse_timestamp(value: Any, tz: Optional[tzinfo] = None) -> datetime:
    """
    Parse an ISO-8601 timestamp (as returned by the store) into an aware datetime.

    Naive values are taken in `tz`. Without one they are taken as UTC, because
    the store keeps `timestamptz` columns.
    Raises ValueError for anything that is not a timestamp.
    """
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value or "").strip()
        if not text:
            raise ValueError("empty timestamp")
        try:
            dt = dateutil_parser.isoparse(text)
        except (ValueError, OverflowError) as exc:
            raise ValueError(f"Invalid timestamp: {text!r}") from exc

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz or timezone.utc)
    return dt


@dataclass(frozen=True)
class Event:
    """
    One event as stored in the `events` table.

    The core never mutates an Event; it only derives values from it.
    `venue` None means "to be determined".
    """

    id: str
    title: str
    start_ts: datetime
    end_ts: datetime
    venue: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Event":
        """
        Build an Event from a store row.

        Raises ValidationError if a required field is missing or unparseable.
        """
        event_id = str(row.get("id") or "").strip()
        title = str(row.get("title") or "").strip()
        if not event_id or not title:
            raise ValidationError("id and title are required")

        try:
            start = parse_timestamp(row.get("start_ts"))
            end = parse_timestamp(row.get("end_ts"))
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        created_raw = row.get("created_at")
        created_at = None
        if created_raw:
            try:
                created_at = parse_timestamp(created_raw)
            except ValueError:
                created_at = None

        venue = row.get("venue")
        venue = str(venue).strip() if venue is not None else None

        return cls(
            id=event_id,
            title=title,
            start_ts=start,
            end_ts=end,
            venue=venue or None,
            created_at=created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "start_ts": self.start_ts.isoformat(),
            "end_ts": self.end_ts.isoformat(),
            "venue": self.venue,
        }
        if self.created_at is not None:
            out["created_at"] = self.created_at.isoformat()
        return out


@dataclass(frozen=True)
class DayGroup:
    """
    Events whose start falls on the same calendar day.

    `day` is an ISO date string (YYYY-MM-DD), which sorts chronologically.
    """

    day: str
    events: Tuple[Event, ...]


@dataclass(frozen=True)
class GridPosition:
    """
    Placement of one event inside a week grid.

    Minutes are offsets from the start of the display window (already clamped),
    percentages are relative to the window length.
    """

    event: Event
    column: int
    start_minute: int
    end_minute: int
    top_pct: float
    height_pct: float


@dataclass(frozen=True)
class WeekGrid:
    week_start: datetime
    week_end: datetime
    days: Tuple[date, ...]
    positions: Tuple[GridPosition, ...]

    def column(self, index: int) -> list[GridPosition]:
        """Positions in one day column, in start order."""
        return [p for p in self.positions if p.column == index]


REQUIRED_FIELDS = ("title", "start_ts", "end_ts")


def validate_event_payload(body: Any) -> dict[str, Any]:
    """
    Check a create-event body and return the row to insert.

    Raises ValidationError when title, start_ts or end_ts is missing or empty.
    Timestamp syntax is left to the store.
    """
    data = body if isinstance(body, dict) else {}
    missing = [name for name in REQUIRED_FIELDS if not str(data.get(name) or "").strip()]
    if missing:
        raise ValidationError("title, start_ts, and end_ts are required")

    venue = data.get("venue")
    if isinstance(venue, str):
        venue = venue.strip()
    return {
        "title": str(data["title"]).strip(),
        "start_ts": data["start_ts"],
        "end_ts": data["end_ts"],
        "venue": venue or None,
    }
