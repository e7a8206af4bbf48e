"""
Unit tests for grouping events by day.

Grouping contract:
- one group per calendar day of the event start (ISO date key)
- groups ascending by day, events ascending by start
- equal starts keep their input order
"""

import unittest
from datetime import datetime, timezone

from dateutil import tz as dateutil_tz

from mccevents.grouping import day_key, flatten, group_by_day
from mccevents.model import Event

UTC = timezone.utc


def _ev(event_id: str, start: datetime, title: str = "Event") -> Event:
    return Event(id=event_id, title=title, start_ts=start, end_ts=start)


class TestGroupByDay(unittest.TestCase):
    def test_empty_input(self) -> None:
        self.assertEqual(group_by_day([]), ())

    def test_same_utc_day_is_one_group(self) -> None:
        late = _ev("b", datetime(2025, 1, 1, 23, 0, tzinfo=UTC))
        early = _ev("a", datetime(2025, 1, 1, 10, 0, tzinfo=UTC))
        groups = group_by_day([late, early])

        self.assertEqual(len(groups), 1)
        self.assertEqual(groups[0].day, "2025-01-01")
        self.assertEqual([ev.id for ev in groups[0].events], ["a", "b"])

    def test_groups_sorted_by_day(self) -> None:
        events = [
            _ev("c", datetime(2025, 2, 3, 9, 0, tzinfo=UTC)),
            _ev("a", datetime(2024, 12, 31, 9, 0, tzinfo=UTC)),
            _ev("b", datetime(2025, 1, 15, 9, 0, tzinfo=UTC)),
        ]
        groups = group_by_day(events)
        self.assertEqual([g.day for g in groups], ["2024-12-31", "2025-01-15", "2025-02-03"])

    def test_equal_starts_keep_input_order(self) -> None:
        start = datetime(2025, 5, 1, 12, 0, tzinfo=UTC)
        events = [_ev("x", start), _ev("y", start), _ev("z", start)]
        groups = group_by_day(events)
        self.assertEqual([ev.id for ev in groups[0].events], ["x", "y", "z"])

    def test_timezone_changes_day_key(self) -> None:
        t = datetime(2025, 1, 2, 3, 0, tzinfo=UTC)
        new_york = dateutil_tz.gettz("America/New_York")
        self.assertEqual(day_key(t), "2025-01-02")
        self.assertEqual(day_key(t, new_york), "2025-01-01")

    def test_regrouping_flattened_groups_is_idempotent(self) -> None:
        events = [
            _ev("d", datetime(2025, 3, 2, 8, 0, tzinfo=UTC)),
            _ev("a", datetime(2025, 3, 1, 18, 0, tzinfo=UTC)),
            _ev("c", datetime(2025, 3, 2, 8, 0, tzinfo=UTC)),
            _ev("b", datetime(2025, 3, 1, 9, 30, tzinfo=UTC)),
        ]
        groups = group_by_day(events)
        self.assertEqual(group_by_day(flatten(groups)), groups)
        self.assertEqual([ev.id for ev in flatten(groups)], ["b", "a", "d", "c"])


if __name__ == "__main__":
    unittest.main()
