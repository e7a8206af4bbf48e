"""
Tests for the HTTP handlers.

The stores and the clock are FastAPI dependencies; every test overrides them
with an in-memory store and a fixed "now".
"""

import unittest
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi.testclient import TestClient

from mccevents.api import create_app, get_now, get_read_store, get_write_store
from mccevents.config import Settings, get_settings
from mccevents.errors import StoreError
from mccevents.model import Event
from mccevents.storage import InMemoryEventStore

UTC = timezone.utc
NOW = datetime(2025, 9, 1, 12, 0, tzinfo=UTC)  # Monday

BBQ = Event(
    id="e1",
    title="Welcome BBQ",
    start_ts=datetime(2025, 9, 5, 17, 0, tzinfo=UTC),
    end_ts=datetime(2025, 9, 5, 19, 0, tzinfo=UTC),
    venue="Main Hall",
)


class FailingStore(InMemoryEventStore):
    def insert_event(self, row: dict[str, Any]) -> Event:
        raise StoreError('new row violates check constraint "events_time_check"')

    def list_events(self, start_gte=None, start_lt=None) -> list[Event]:
        raise StoreError("upstream unavailable")

    def get_event(self, event_id: str) -> Event:
        raise StoreError("upstream unavailable")


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryEventStore([BBQ])
        self.settings = Settings(SUPABASE_URL="", TIMEZONE="UTC", WEEK_START=1)
        self.app = create_app()
        self.use_store(self.store)
        self.app.dependency_overrides[get_settings] = lambda: self.settings
        self.app.dependency_overrides[get_now] = lambda: NOW
        self.client = TestClient(self.app)

    def use_store(self, store: InMemoryEventStore) -> None:
        self.app.dependency_overrides[get_read_store] = lambda: store
        self.app.dependency_overrides[get_write_store] = lambda: store


class TestCreateEvent(ApiTestCase):
    def test_created(self) -> None:
        resp = self.client.post(
            "/api/events",
            json={"title": "Film Night", "start_ts": "2025-09-06T18:00:00Z", "end_ts": "2025-09-06T20:00:00Z"},
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["title"], "Film Night")
        self.assertIsNone(body["venue"])
        self.assertTrue(body["id"])
        self.assertIn("created_at", body)
        self.assertEqual(self.store.get_event(body["id"]).title, "Film Night")

    def test_missing_fields(self) -> None:
        resp = self.client.post("/api/events", json={"title": "No times"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": "title, start_ts, and end_ts are required"})

    def test_empty_title(self) -> None:
        resp = self.client.post(
            "/api/events", json={"title": "  ", "start_ts": "2025-09-06T18:00:00Z", "end_ts": "2025-09-06T20:00:00Z"}
        )
        self.assertEqual(resp.status_code, 400)

    def test_store_error_message_is_returned(self) -> None:
        self.use_store(FailingStore())
        resp = self.client.post(
            "/api/events",
            json={"title": "Bad", "start_ts": "2025-09-06T18:00:00Z", "end_ts": "2025-09-06T17:00:00Z"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], 'new row violates check constraint "events_time_check"')

    def test_malformed_body(self) -> None:
        resp = self.client.post(
            "/api/events", content=b"{not json", headers={"content-type": "application/json"}
        )
        self.assertEqual(resp.status_code, 500)
        self.assertIn("error", resp.json())


class TestEventICS(ApiTestCase):
    def test_download(self) -> None:
        resp = self.client.get("/api/ics/e1")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "text/calendar; charset=utf-8")
        self.assertEqual(resp.headers["content-disposition"], 'attachment; filename="event-Welcome_BBQ.ics"')

        text = resp.content.decode("utf-8")
        self.assertIn("\r\nDTSTART:20250905T170000Z\r\n", text)
        self.assertIn("\r\nDTSTAMP:20250901T120000Z\r\n", text)
        self.assertIn("\r\nUID:e1@mcc-events\r\n", text)
        self.assertEqual(text.count("BEGIN:VEVENT"), 1)

    def test_not_found(self) -> None:
        resp = self.client.get("/api/ics/does-not-exist")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.text, "Event not found")

    def test_store_error_is_not_found(self) -> None:
        self.use_store(FailingStore())
        self.assertEqual(self.client.get("/api/ics/e1").status_code, 404)

    def test_missing_id(self) -> None:
        for path in ("/api/ics/", "/api/ics/%20"):
            resp = self.client.get(path)
            self.assertEqual(resp.status_code, 400, path)
            self.assertEqual(resp.text, "Missing event id")


class TestReadEndpoints(ApiTestCase):
    def test_upcoming_grouped_with_links(self) -> None:
        self.store.insert_event({"title": "Past", "start_ts": "2025-08-01T10:00:00Z", "end_ts": "2025-08-01T11:00:00Z"})
        self.store.insert_event({"title": "Later", "start_ts": "2025-09-05T20:00:00Z", "end_ts": "2025-09-05T21:00:00Z"})

        resp = self.client.get("/api/events")
        self.assertEqual(resp.status_code, 200)
        groups = resp.json()["groups"]
        self.assertEqual([g["day"] for g in groups], ["2025-09-05"])
        titles = [ev["title"] for ev in groups[0]["events"]]
        self.assertEqual(titles, ["Welcome BBQ", "Later"])

        first = groups[0]["events"][0]
        self.assertEqual(first["ics_url"], "/api/ics/e1")
        self.assertTrue(first["google_calendar_url"].startswith("https://calendar.google.com/calendar/render?"))

    def test_week_grid(self) -> None:
        resp = self.client.get("/api/events/week", params={"ref": "2025-09-03T09:00:00Z"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["days"][0], "2025-09-01")
        self.assertEqual(len(body["days"]), 7)
        self.assertEqual(len(body["positions"]), 1)
        pos = body["positions"][0]
        self.assertEqual(pos["column"], 4)
        self.assertEqual(pos["start_minute"], 9 * 60)
        self.assertEqual(pos["end_minute"], 11 * 60)

    def test_week_grid_date_only_ref_uses_local_zone(self) -> None:
        self.settings = Settings(SUPABASE_URL="", TIMEZONE="America/Chicago", WEEK_START=1)
        resp = self.client.get("/api/events/week", params={"ref": "2025-09-08"})
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["days"][0], "2025-09-08")
        self.assertEqual(body["week_start"], "2025-09-08T00:00:00-05:00")

    def test_week_grid_empty_week(self) -> None:
        resp = self.client.get("/api/events/week", params={"ref": "2025-10-01T09:00:00Z"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["positions"], [])

    def test_week_grid_bad_ref(self) -> None:
        resp = self.client.get("/api/events/week", params={"ref": "next week"})
        self.assertEqual(resp.status_code, 400)

    def test_today(self) -> None:
        self.store.insert_event({"title": "Lunch", "start_ts": "2025-09-01T12:30:00Z", "end_ts": "2025-09-01T13:30:00Z"})
        resp = self.client.get("/api/events/today")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["date"], "2025-09-01")
        self.assertEqual([ev["title"] for ev in body["events"]], ["Lunch"])

    def test_upstream_failure(self) -> None:
        self.use_store(FailingStore())
        resp = self.client.get("/api/events")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json(), {"error": "upstream unavailable"})

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/health").json(), {"status": "ok", "store": "memory"})


if __name__ == "__main__":
    unittest.main()
