"""
Backing store adapters.

The events live in an external store (a Supabase project exposing the
`events` table over PostgREST). This module only adapts to the three
operations the application needs:

    list_events(start_gte, start_lt)  -> events ordered by start, ascending
    get_event(event_id)               -> one event, or NotFoundError
    insert_event(row)                 -> the stored event with id/created_at

For local use and tests there is an in-memory store that can be seeded
from a JSON file:

    data/events.json   ->   [{"id": ..., "title": ..., "start_ts": ..., ...}, ...]
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

import requests

from mccevents.config import Settings
from mccevents.errors import NotFoundError, StoreError, ValidationError
from mccevents.model import Event, parse_timestamp
from mccevents.timegrid import day_bounds

logger = logging.getLogger(__name__)

EVENT_COLUMNS = "id,title,start_ts,end_ts,venue"


class EventStore(Protocol):
    def list_events(
        self, start_gte: Optional[datetime] = None, start_lt: Optional[datetime] = None
    ) -> list[Event]: ...

    def get_event(self, event_id: str) -> Event: ...

    def insert_event(self, row: dict[str, Any]) -> Event: ...


# ---------------------------------------------------------------------------
# Supabase (PostgREST over HTTP)
# ---------------------------------------------------------------------------


class SupabaseEventStore:
    """
    Talks to the `events` table of a Supabase project.

    Reads work with the anon key (row-level security allows SELECT);
    inserts need the service-role key, which must stay server-side.
    """

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = url.rstrip("/") + "/rest/v1/events"
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self, extra: Optional[dict[str, str]] = None) -> dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }
        if extra:
            headers.update(extra)
        return headers

    def _request(self, method: str, **kwargs: Any) -> Any:
        try:
            resp = self.session.request(method, self.base_url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            logger.warning("Store request failed: %s", exc)
            raise StoreError(str(exc)) from exc

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning("Store returned %s: %s", resp.status_code, message)
            raise StoreError(message, status_code=resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise StoreError("Store returned invalid JSON") from exc

    def list_events(
        self, start_gte: Optional[datetime] = None, start_lt: Optional[datetime] = None
    ) -> list[Event]:
        params: list[tuple[str, str]] = [("select", EVENT_COLUMNS)]
        if start_gte is not None:
            params.append(("start_ts", f"gte.{start_gte.isoformat()}"))
        if start_lt is not None:
            params.append(("start_ts", f"lt.{start_lt.isoformat()}"))
        params.append(("order", "start_ts.asc"))

        rows = self._request("GET", params=params, headers=self._headers())
        return _rows_to_events(rows)

    def get_event(self, event_id: str) -> Event:
        params = [("select", EVENT_COLUMNS), ("id", f"eq.{event_id}")]
        rows = self._request("GET", params=params, headers=self._headers())
        events = _rows_to_events(rows)
        if not events:
            raise NotFoundError(f"Event not found: {event_id}")
        return events[0]

    def insert_event(self, row: dict[str, Any]) -> Event:
        payload = {
            "title": row.get("title"),
            "start_ts": row.get("start_ts"),
            "end_ts": row.get("end_ts"),
            "venue": row.get("venue"),
        }
        rows = self._request(
            "POST",
            json=[payload],
            headers=self._headers({"Content-Type": "application/json", "Prefer": "return=representation"}),
        )
        events = _rows_to_events(rows)
        if not events:
            raise StoreError("Store did not return the inserted row")
        logger.info("Inserted event %s", events[0].id)
        return events[0]


def _error_message(resp: requests.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(data, dict):
        for key in ("message", "error_description", "error", "hint"):
            if data.get(key):
                return str(data[key])
    return f"HTTP {resp.status_code}"


def _rows_to_events(rows: Any) -> list[Event]:
    if isinstance(rows, dict):
        rows = [rows]
    if not isinstance(rows, list):
        raise StoreError("Unexpected response from store")

    out: list[Event] = []
    for row in rows:
        try:
            out.append(Event.from_row(row))
        except (ValidationError, AttributeError):
            # skip rows that do not have the required fields
            logger.warning("Skipping malformed event row: %r", row)
    return out


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------


class InMemoryEventStore:
    """
    Process-local store with the same contract as the Supabase one.
    """

    def __init__(self, events: Iterable[Event] = (), path: str | Path | None = None) -> None:
        self._lock = threading.Lock()
        self._events: dict[str, Event] = {ev.id: ev for ev in events}
        # when set, inserts are written back to this JSON file
        self.path = Path(path) if path else None

    def list_events(
        self, start_gte: Optional[datetime] = None, start_lt: Optional[datetime] = None
    ) -> list[Event]:
        with self._lock:
            events = list(self._events.values())
        if start_gte is not None:
            events = [ev for ev in events if ev.start_ts >= start_gte]
        if start_lt is not None:
            events = [ev for ev in events if ev.start_ts < start_lt]
        return sorted(events, key=lambda ev: ev.start_ts)

    def get_event(self, event_id: str) -> Event:
        with self._lock:
            ev = self._events.get(event_id)
        if ev is None:
            raise NotFoundError(f"Event not found: {event_id}")
        return ev

    def insert_event(self, row: dict[str, Any]) -> Event:
        title = str(row.get("title") or "").strip()
        if not title:
            raise StoreError('null value in column "title" violates not-null constraint')
        try:
            start = parse_timestamp(row.get("start_ts"))
            end = parse_timestamp(row.get("end_ts"))
        except ValueError as exc:
            raise StoreError(f"invalid input syntax for type timestamp with time zone: {exc}") from exc

        venue = str(row.get("venue") or "").strip() or None
        ev = Event(
            id=str(uuid.uuid4()),
            title=title,
            start_ts=start,
            end_ts=end,
            venue=venue,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._events[ev.id] = ev
            snapshot = list(self._events.values())
        if self.path is not None:
            save_events_json(snapshot, self.path)
        logger.info("Inserted event %s", ev.id)
        return ev


def load_events_json(path: str | Path) -> list[Event]:
    """
    Load events from a JSON file (a list of store rows).

    Returns an empty list if the file does not exist or is invalid;
    rows without the required fields are skipped.
    """
    p = Path(path)
    if not p.exists():
        return []

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Could not read events file %s", p)
        return []
    if not isinstance(data, list):
        return []

    out: list[Event] = []
    for row in data:
        if not isinstance(row, dict):
            continue
        try:
            out.append(Event.from_row(row))
        except ValidationError:
            continue
    return out


def save_events_json(events: Iterable[Event], path: str | Path) -> None:
    """
    Save events to a JSON file, ordered by start. Creates parent directories if needed.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    rows = [ev.to_dict() for ev in sorted(events, key=lambda ev: ev.start_ts)]
    p.write_text(json.dumps(rows, indent=2, ensure_ascii=False), encoding="utf-8")


# ---------------------------------------------------------------------------
# Queries used by the pages
# ---------------------------------------------------------------------------


def upcoming_events(store: EventStore, now: datetime) -> list[Event]:
    """Events starting at or after `now`, ascending."""
    return store.list_events(start_gte=now)


def todays_events(store: EventStore, now: datetime, tz: Optional[tzinfo] = None) -> list[Event]:
    """Events starting between local midnight and the next local midnight."""
    start, end = day_bounds(now, tz)
    return store.list_events(start_gte=start, start_lt=end)


def week_events(store: EventStore, week_start: datetime, week_end: datetime) -> list[Event]:
    """Events starting inside [week_start, week_end)."""
    return store.list_events(start_gte=week_start, start_lt=week_end)


_memory_stores: dict[str, InMemoryEventStore] = {}


def build_store(settings: Settings, write: bool = False) -> EventStore:
    """
    Pick the store for the current configuration.

    Supabase when SUPABASE_URL is set (service-role key for writes, anon key
    for reads), otherwise a shared in-memory store seeded from EVENTS_FILE.
    """
    if settings.SUPABASE_URL.strip():
        key = settings.SUPABASE_SERVICE_ROLE_KEY if write else settings.SUPABASE_ANON_KEY
        return SupabaseEventStore(settings.SUPABASE_URL, key, timeout=settings.STORE_TIMEOUT_SECONDS)

    events_file = settings.EVENTS_FILE.strip()
    store = _memory_stores.get(events_file)
    if store is None:
        seed = load_events_json(events_file) if events_file else []
        store = InMemoryEventStore(seed, path=events_file or None)
        _memory_stores[events_file] = store
    return store
