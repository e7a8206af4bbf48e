"""
Unit tests for the week grid time math.

Week start days: 0 = Sunday, 1 = Monday.
Weeks are half-open intervals [start_of_week, end_of_week).
"""

import unittest
from datetime import datetime, timedelta, timezone

from dateutil import tz as dateutil_tz

from mccevents.timegrid import (
    MONDAY,
    SUNDAY,
    day_bounds,
    day_column_index,
    end_of_week,
    minutes_since_midnight,
    start_of_week,
)

UTC = timezone.utc
NEW_YORK = dateutil_tz.gettz("America/New_York")


class TestStartOfWeek(unittest.TestCase):
    def test_monday_week(self) -> None:
        t = datetime(2025, 1, 8, 14, 0, tzinfo=UTC)
        self.assertEqual(start_of_week(t, MONDAY), datetime(2025, 1, 6, tzinfo=UTC))
        self.assertEqual(end_of_week(t, MONDAY), datetime(2025, 1, 13, tzinfo=UTC))

    def test_sunday_week(self) -> None:
        t = datetime(2025, 1, 8, 14, 0, tzinfo=UTC)
        self.assertEqual(start_of_week(t, SUNDAY), datetime(2025, 1, 5, tzinfo=UTC))

    def test_instant_at_week_start_belongs_to_that_week(self) -> None:
        ws = datetime(2025, 1, 6, tzinfo=UTC)
        self.assertEqual(start_of_week(ws, MONDAY), ws)
        self.assertEqual(day_column_index(ws, MONDAY), 0)

    def test_instant_at_week_end_starts_next_week(self) -> None:
        t = datetime(2025, 1, 8, 9, 0, tzinfo=UTC)
        we = end_of_week(t, MONDAY)
        self.assertEqual(start_of_week(we, MONDAY), we)

    def test_local_midnight_in_given_timezone(self) -> None:
        # 03:00 UTC on Monday is still Sunday evening in New York
        t = datetime(2025, 1, 13, 3, 0, tzinfo=UTC)
        ws = start_of_week(t, MONDAY, NEW_YORK)
        self.assertEqual(ws.replace(tzinfo=None), datetime(2025, 1, 6))
        self.assertEqual(ws.utcoffset(), timedelta(hours=-5))

    def test_invalid_week_start_raises(self) -> None:
        t = datetime(2025, 1, 8, tzinfo=UTC)
        with self.assertRaises(ValueError):
            start_of_week(t, 7)


class TestDayColumnIndex(unittest.TestCase):
    def test_wednesday_in_monday_week(self) -> None:
        t = datetime(2025, 1, 8, 14, 0, tzinfo=UTC)
        self.assertEqual(day_column_index(t, MONDAY), 2)

    def test_sunday_wraps_to_last_column_in_monday_week(self) -> None:
        t = datetime(2025, 1, 12, 10, 0, tzinfo=UTC)
        self.assertEqual(day_column_index(t, MONDAY), 6)
        self.assertEqual(day_column_index(t, SUNDAY), 0)

    def test_properties_hold_across_weeks_and_dst(self) -> None:
        # hourly over three weeks around the March DST switch
        t = datetime(2025, 3, 1, 0, 0, tzinfo=UTC)
        for _ in range(24 * 21):
            for week_start in (SUNDAY, MONDAY):
                idx = day_column_index(t, week_start, NEW_YORK)
                ws = start_of_week(t, week_start, NEW_YORK)
                self.assertTrue(0 <= idx <= 6)
                self.assertEqual((ws + timedelta(days=idx)).date(), t.astimezone(NEW_YORK).date())
                self.assertEqual(end_of_week(t, week_start, NEW_YORK), ws + timedelta(days=7))
                self.assertTrue(ws <= t < end_of_week(t, week_start, NEW_YORK))
            t += timedelta(hours=1)


class TestMinutesSinceMidnight(unittest.TestCase):
    def test_utc(self) -> None:
        self.assertEqual(minutes_since_midnight(datetime(2025, 1, 8, 14, 30, tzinfo=UTC)), 870)
        self.assertEqual(minutes_since_midnight(datetime(2025, 1, 8, 0, 0, tzinfo=UTC)), 0)
        self.assertEqual(minutes_since_midnight(datetime(2025, 1, 8, 23, 59, 59, tzinfo=UTC)), 1439)

    def test_local_timezone(self) -> None:
        t = datetime(2025, 1, 8, 14, 30, tzinfo=UTC)
        self.assertEqual(minutes_since_midnight(t, NEW_YORK), 9 * 60 + 30)


class TestDayBounds(unittest.TestCase):
    def test_bounds_cover_local_day(self) -> None:
        t = datetime(2025, 9, 5, 2, 0, tzinfo=UTC)  # Sep 4, 22:00 in New York
        start, end = day_bounds(t, NEW_YORK)
        self.assertEqual(start.replace(tzinfo=None), datetime(2025, 9, 4))
        self.assertEqual(end.replace(tzinfo=None), datetime(2025, 9, 5))
        self.assertTrue(start <= t < end)


if __name__ == "__main__":
    unittest.main()
