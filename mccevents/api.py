"""
HTTP API for the events site.

Endpoints:

    POST /api/events          create an event (admin form)
    GET  /api/ics/{event_id}  download one event as an .ics file
    GET  /api/events          upcoming events grouped by day (list view)
    GET  /api/events/week     week grid for the week containing ?ref= (week view)
    GET  /api/events/today    today's events (kiosk)
    GET  /health

Run with:

    uvicorn mccevents.api:app --reload
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from mccevents.config import Settings, get_settings
from mccevents.errors import NotFoundError, StoreError, ValidationError
from mccevents.export_ics import build_event_ics, ics_filename
from mccevents.gcal import build_google_calendar_url
from mccevents.grouping import group_by_day
from mccevents.layout import layout_week
from mccevents.model import Event, parse_timestamp, validate_event_payload
from mccevents.storage import EventStore, build_store, todays_events, upcoming_events, week_events
from mccevents.timegrid import end_of_week, start_of_week

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Dependencies (overridden in tests)
# ---------------------------------------------------------------------------


def get_read_store(settings: Settings = Depends(get_settings)) -> EventStore:
    return build_store(settings, write=False)


def get_write_store(settings: Settings = Depends(get_settings)) -> EventStore:
    return build_store(settings, write=True)


def get_now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def event_payload(ev: Event) -> dict[str, Any]:
    """Event JSON plus the two "add to calendar" links the pages show."""
    out = ev.to_dict()
    out["google_calendar_url"] = build_google_calendar_url(
        title=ev.title, start=ev.start_ts, end=ev.end_ts, location=ev.venue
    )
    out["ics_url"] = f"/api/ics/{ev.id}"
    return out


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    app = FastAPI(
        title="MCC Events API",
        description="Upcoming events, kiosk feed and calendar files for the Multicultural Center",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Unexpected error")

    @app.get("/health")
    def health(settings: Settings = Depends(get_settings)) -> dict[str, Any]:
        return {
            "status": "ok",
            "store": "supabase" if settings.SUPABASE_URL.strip() else "memory",
        }

    @app.post("/api/events", status_code=201)
    async def create_event(request: Request, store: EventStore = Depends(get_write_store)) -> JSONResponse:
        try:
            body = await request.json()
            row = validate_event_payload(body)
            created = store.insert_event(row)
        except ValidationError as exc:
            return _error(400, str(exc))
        except StoreError as exc:
            # surface the store's own message (e.g. constraint or type errors)
            return _error(400, exc.message)
        except Exception as exc:
            logger.exception("Create event failed")
            return _error(500, str(exc) or "Unexpected error")

        logger.info("Created event %s (%s)", created.id, created.title)
        return JSONResponse(created.to_dict(), status_code=201)

    @app.get("/api/ics", include_in_schema=False)
    @app.get("/api/ics/")
    def ics_missing_id() -> PlainTextResponse:
        return PlainTextResponse("Missing event id", status_code=400)

    @app.get("/api/ics/{event_id}")
    def event_ics(
        event_id: str,
        store: EventStore = Depends(get_read_store),
        settings: Settings = Depends(get_settings),
        now: datetime = Depends(get_now),
    ) -> Response:
        event_id = event_id.strip()
        if not event_id:
            return PlainTextResponse("Missing event id", status_code=400)

        try:
            ev = store.get_event(event_id)
        except (NotFoundError, StoreError) as exc:
            logger.info("ICS lookup for %s failed: %s", event_id, exc)
            return PlainTextResponse("Event not found", status_code=404)

        body = build_event_ics(ev, now, prodid=settings.ICS_PRODID, uid_domain=settings.ICS_UID_DOMAIN)
        return Response(
            content=body,
            status_code=200,
            media_type="text/calendar; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{ics_filename(ev.title)}"'},
        )

    @app.get("/api/events")
    def list_upcoming(
        store: EventStore = Depends(get_read_store),
        settings: Settings = Depends(get_settings),
        now: datetime = Depends(get_now),
    ) -> JSONResponse:
        try:
            events = upcoming_events(store, now)
        except StoreError as exc:
            return _error(500, exc.message)

        groups = group_by_day(events, settings.local_tz())
        return JSONResponse(
            {
                "groups": [
                    {"day": g.day, "events": [event_payload(ev) for ev in g.events]} for g in groups
                ]
            }
        )

    @app.get("/api/events/week")
    def week_grid(
        ref: Optional[str] = Query(default=None, description="ISO timestamp inside the wanted week"),
        store: EventStore = Depends(get_read_store),
        settings: Settings = Depends(get_settings),
        now: datetime = Depends(get_now),
    ) -> JSONResponse:
        tz = settings.local_tz()
        try:
            reference = parse_timestamp(ref, tz) if ref else now
        except ValueError as exc:
            return _error(400, str(exc))

        ws = start_of_week(reference, settings.WEEK_START, tz)
        we = end_of_week(reference, settings.WEEK_START, tz)
        try:
            events = week_events(store, ws, we)
        except StoreError as exc:
            return _error(500, exc.message)

        grid = layout_week(events, reference, settings.WEEK_START, settings.grid_window(), tz)
        return JSONResponse(
            {
                "week_start": grid.week_start.isoformat(),
                "week_end": grid.week_end.isoformat(),
                "days": [d.isoformat() for d in grid.days],
                "positions": [
                    {
                        "event": event_payload(p.event),
                        "column": p.column,
                        "start_minute": p.start_minute,
                        "end_minute": p.end_minute,
                        "top_pct": round(p.top_pct, 3),
                        "height_pct": round(p.height_pct, 3),
                    }
                    for p in grid.positions
                ],
            }
        )

    @app.get("/api/events/today")
    def list_today(
        store: EventStore = Depends(get_read_store),
        settings: Settings = Depends(get_settings),
        now: datetime = Depends(get_now),
    ) -> JSONResponse:
        tz = settings.local_tz()
        try:
            events = todays_events(store, now, tz)
        except StoreError as exc:
            return _error(500, exc.message)

        return JSONResponse(
            {
                "date": now.astimezone(tz).date().isoformat(),
                "events": [ev.to_dict() for ev in events],
            }
        )

    return app


app = create_app()
