"""
"Add to Google Calendar" links.

Builds a quick-add URL for calendar.google.com. No network call is made.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"


def google_date(dt: datetime) -> str:
    """
    Convert an aware datetime to Google's compact UTC form 'YYYYMMDDTHHMMSSZ'.
    """
    return dt.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def build_google_calendar_url(
    title: str,
    start: datetime,
    end: datetime,
    location: Optional[str] = None,
    details: Optional[str] = None,
) -> str:
    params = {
        "action": "TEMPLATE",
        "text": title,
        "dates": f"{google_date(start)}/{google_date(end)}",
    }
    if location:
        params["location"] = location
    if details:
        params["details"] = details
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"
