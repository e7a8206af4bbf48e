"""
CLI (Command Line Interface).

Terminal counterparts of the site's pages and endpoints, e.g.:

    mccevents upcoming
    mccevents week [--ref 2025-09-05]
    mccevents today [--watch]
    mccevents add --title "Welcome BBQ" --start 2025-09-05T17:00 --end 2025-09-05T19:00
    mccevents ics <event_id> [--out file.ics]
    mccevents link <event_id>
    mccevents export <file.ics>
    mccevents serve

Configuration (store, timezone, week start, ...) comes from the environment,
see mccevents/config.py.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path

from rich.live import Live

from mccevents.config import Settings, configure_logging, get_settings
from mccevents.errors import MccEventsError, NotFoundError, StoreError, ValidationError
from mccevents.export_ics import build_event_ics, export_events_to_ics, ics_filename
from mccevents.feed import EventFeed, FeedState, Loaded, Loading, store_fetcher
from mccevents.gcal import build_google_calendar_url
from mccevents.grouping import group_by_day
from mccevents.layout import layout_week
from mccevents.model import parse_timestamp, validate_event_payload
from mccevents.render import console, render_agenda, render_kiosk, render_week
from mccevents.storage import build_store, todays_events, upcoming_events, week_events
from mccevents.timegrid import end_of_week, start_of_week

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _local_to_utc_iso(value: str, settings: Settings) -> str:
    """
    Convert an admin-entered time ('2025-09-05T17:00', local) to a UTC ISO string.

    Values that carry their own offset are converted from that offset.
    """
    text = (value or "").strip()
    if not text:
        return ""
    dt = parse_timestamp_local(text, settings)
    return dt.astimezone(timezone.utc).isoformat()


def parse_timestamp_local(text: str, settings: Settings) -> datetime:
    tz = settings.local_tz()
    try:
        return parse_timestamp(text, tz)
    except ValueError as exc:
        raise ValidationError(f"Invalid date/time: {text!r}") from exc


def _cmd_upcoming(args: argparse.Namespace, settings: Settings) -> int:
    """
    Print upcoming events grouped by day.
    """
    store = build_store(settings)
    tz = settings.local_tz()
    events = upcoming_events(store, _now())
    console.print(render_agenda(group_by_day(events, tz), tz))
    return 0


def _cmd_week(args: argparse.Namespace, settings: Settings) -> int:
    """
    Print the week grid for the week containing --ref (default: now).
    """
    tz = settings.local_tz()
    reference = parse_timestamp_local(args.ref, settings) if args.ref else _now()

    store = build_store(settings)
    ws = start_of_week(reference, settings.WEEK_START, tz)
    we = end_of_week(reference, settings.WEEK_START, tz)
    events = week_events(store, ws, we)

    grid = layout_week(events, reference, settings.WEEK_START, settings.grid_window(), tz)
    console.print(render_week(grid, tz))
    return 0


async def _watch_today(settings: Settings, interval: float) -> None:
    tz = settings.local_tz()
    store = build_store(settings)

    with Live(render_kiosk(Loading(), _now(), tz), console=console) as live:

        def on_change(state: FeedState) -> None:
            live.update(render_kiosk(state, _now(), tz))

        feed = EventFeed(store_fetcher(lambda: todays_events(store, _now(), tz)), on_change=on_change)
        feed.start(interval)
        try:
            while True:
                await asyncio.sleep(1)
                # keep the clock in the header moving between refreshes
                live.update(render_kiosk(feed.state, _now(), tz))
        finally:
            await feed.stop()


def _cmd_today(args: argparse.Namespace, settings: Settings) -> int:
    """
    Kiosk view: today's events, optionally refreshed every --interval seconds.
    """
    tz = settings.local_tz()
    if args.watch:
        interval = args.interval or settings.KIOSK_REFRESH_SECONDS
        try:
            asyncio.run(_watch_today(settings, interval))
        except KeyboardInterrupt:
            pass
        return 0

    store = build_store(settings)
    events = todays_events(store, _now(), tz)
    console.print(render_kiosk(Loaded(tuple(events)), _now(), tz))
    return 0


def _cmd_add(args: argparse.Namespace, settings: Settings) -> int:
    """
    Create an event (the admin form).
    """
    body = {
        "title": args.title,
        "start_ts": _local_to_utc_iso(args.start, settings),
        "end_ts": _local_to_utc_iso(args.end, settings),
        "venue": args.venue,
    }
    row = validate_event_payload(body)
    created = build_store(settings, write=True).insert_event(row)
    console.print(f"Event created: {created.id} | {created.title}")
    return 0


def _cmd_ics(args: argparse.Namespace, settings: Settings) -> int:
    """
    Write one event as an .ics file (or print it when --out is '-').
    """
    event_id = (args.event_id or "").strip()
    if not event_id:
        console.print("Please provide an event id.")
        return 1

    ev = build_store(settings).get_event(event_id)
    text = build_event_ics(ev, _now(), prodid=settings.ICS_PRODID, uid_domain=settings.ICS_UID_DOMAIN)

    if args.out == "-":
        print(text, end="")
        return 0

    out = Path(args.out) if args.out else Path(ics_filename(ev.title))
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8", newline="") as fh:
        fh.write(text)
    console.print(f"Saved to: {out.resolve()}")
    return 0


def _cmd_link(args: argparse.Namespace, settings: Settings) -> int:
    """
    Print the "Add to Google Calendar" link of one event.
    """
    event_id = (args.event_id or "").strip()
    if not event_id:
        console.print("Please provide an event id.")
        return 1

    ev = build_store(settings).get_event(event_id)
    print(build_google_calendar_url(ev.title, ev.start_ts, ev.end_ts, location=ev.venue))
    return 0


def _cmd_export(args: argparse.Namespace, settings: Settings) -> int:
    """
    Export all upcoming events into one iCalendar (.ics) file.
    """
    out_path = (args.out or "").strip()
    if not out_path:
        console.print("Please provide output .ics path.")
        return 1

    events = upcoming_events(build_store(settings), _now())
    if not events:
        console.print("No upcoming events to export.")
        return 0

    n = export_events_to_ics(events, out_path, prodid=settings.ICS_PRODID, uid_domain=settings.ICS_UID_DOMAIN)
    console.print(f"Exported {n} events to: {out_path}")
    return 0


def _cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    uvicorn.run(
        "mccevents.api:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


COMMANDS = {
    "upcoming": _cmd_upcoming,
    "week": _cmd_week,
    "today": _cmd_today,
    "add": _cmd_add,
    "ics": _cmd_ics,
    "link": _cmd_link,
    "export": _cmd_export,
    "serve": _cmd_serve,
}


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="mccevents", description="MCC Events CLI")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default: LOG_LEVEL)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("upcoming", help="List upcoming events grouped by day")

    p_week = sub.add_parser("week", help="Show the week grid")
    p_week.add_argument("--ref", type=str, default=None, help="Any date/time inside the week (default: now)")

    p_today = sub.add_parser("today", help="Kiosk view of today's events")
    p_today.add_argument("--watch", action="store_true", help="Keep refreshing until Ctrl+C")
    p_today.add_argument("--interval", type=float, default=None, help="Refresh interval in seconds")

    p_add = sub.add_parser("add", help="Create an event")
    p_add.add_argument("--title", type=str, required=True)
    p_add.add_argument("--start", type=str, required=True, help="Local start, e.g. 2025-09-05T17:00")
    p_add.add_argument("--end", type=str, required=True, help="Local end, e.g. 2025-09-05T19:00")
    p_add.add_argument("--venue", type=str, default=None)

    p_ics = sub.add_parser("ics", help="Write one event as .ics")
    p_ics.add_argument("event_id", type=str, help="Event id")
    p_ics.add_argument("--out", type=str, default=None, help="Output path ('-' = stdout)")

    p_link = sub.add_parser("link", help="Print the Google Calendar link of an event")
    p_link.add_argument("event_id", type=str, help="Event id")

    p_export = sub.add_parser("export", help="Export upcoming events to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--host", type=str, default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level)

    handler = COMMANDS.get(args.command)
    if handler is None:
        raise SystemExit(2)
    logger.debug("Running command %s", args.command)

    try:
        rc = handler(args, settings)
    except NotFoundError:
        console.print(f"Event not found: {getattr(args, 'event_id', '')}")
        rc = 1
    except ValidationError as exc:
        console.print(f"Invalid input: {exc}")
        rc = 1
    except StoreError as exc:
        console.print(f"Store error: {exc.message}")
        rc = 1
    except (MccEventsError, ValueError) as exc:
        # ValueError: bad TIMEZONE / WEEK_START configuration
        console.print(f"Error: {exc}")
        rc = 1

    raise SystemExit(rc)
