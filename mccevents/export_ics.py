"""
iCalendar (.ics) export.

We convert events into calendar documents that can be imported into:
- Google Calendar
- Outlook
- Apple Calendar

All timestamps are written in UTC ('YYYYMMDDTHHMMSSZ'). Lines are joined
with CRLF, as RFC 5545 requires.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from mccevents.model import Event

DEFAULT_PRODID = "-//MCC Events//EN"
DEFAULT_UID_DOMAIN = "mcc-events"

CRLF = "\r\n"
MAX_LINE_OCTETS = 75


def ics_escape(text: str) -> str:
    """
    Escape text for ICS TEXT values.

    Backslash goes first so the escapes added afterwards are not doubled.
    """
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\r", "\\n")
        .replace("\n", "\\n")
    )


def format_ics_utc(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def fold_line(line: str) -> str:
    """
    Fold a content line longer than 75 octets (continuation lines start with a space).

    Never splits inside a multi-byte UTF-8 character.
    """
    if len(line.encode("utf-8")) <= MAX_LINE_OCTETS:
        return line

    parts: list[str] = []
    current = ""
    size = 0
    limit = MAX_LINE_OCTETS
    for ch in line:
        n = len(ch.encode("utf-8"))
        if size + n > limit:
            parts.append(current)
            current = ""
            size = 0
            # the leading space of a continuation line counts too
            limit = MAX_LINE_OCTETS - 1
        current += ch
        size += n
    parts.append(current)
    return (CRLF + " ").join(parts)


def _vevent_lines(event: Event, dtstamp: str, uid_domain: str) -> list[str]:
    return [
        "BEGIN:VEVENT",
        f"UID:{event.id}@{uid_domain}",
        f"DTSTAMP:{dtstamp}",
        f"DTSTART:{format_ics_utc(event.start_ts)}",
        f"DTEND:{format_ics_utc(event.end_ts)}",
        f"SUMMARY:{ics_escape(event.title)}",
        f"LOCATION:{ics_escape(event.venue or '')}",
        "END:VEVENT",
    ]


def build_calendar_ics(
    events: Iterable[Event],
    generated_at: datetime,
    prodid: str = DEFAULT_PRODID,
    uid_domain: str = DEFAULT_UID_DOMAIN,
) -> str:
    """
    Build one VCALENDAR document holding a VEVENT per event.

    `generated_at` is written as DTSTAMP; pass a fixed value for reproducible output.
    """
    dtstamp = format_ics_utc(generated_at)

    lines: list[str] = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{prodid}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    for ev in events:
        lines.extend(_vevent_lines(ev, dtstamp, uid_domain))
    lines.append("END:VCALENDAR")

    return CRLF.join(fold_line(line) for line in lines) + CRLF


def build_event_ics(
    event: Event,
    generated_at: datetime,
    prodid: str = DEFAULT_PRODID,
    uid_domain: str = DEFAULT_UID_DOMAIN,
) -> str:
    """
    Build the single-event document served by the calendar file endpoint.
    """
    return build_calendar_ics([event], generated_at, prodid=prodid, uid_domain=uid_domain)


def ics_filename(title: str) -> str:
    """
    Download filename for an event: 'event-<sanitized title>.ics'.

    Only ASCII letters, digits, '_' and '-' survive; the title part is cut at 50 chars.
    """
    safe = re.sub(r"[^A-Za-z0-9_\-]", "_", title)[:50]
    return f"event-{safe}.ics"


def export_events_to_ics(
    events: list[Event],
    out_path: str | Path,
    generated_at: datetime | None = None,
    prodid: str = DEFAULT_PRODID,
    uid_domain: str = DEFAULT_UID_DOMAIN,
) -> int:
    """
    Export events to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    stamp = generated_at or datetime.now(timezone.utc)
    text = build_calendar_ics(events, stamp, prodid=prodid, uid_domain=uid_domain)

    # newline="" keeps the CRLF terminators untouched on every platform
    with out.open("w", encoding="utf-8", newline="") as fh:
        fh.write(text)
    return len(events)
