from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from lottomoji.draw.window import WindowKey


class WindowKeyTests(unittest.TestCase):
    def test_truncates_to_minute(self) -> None:
        key = WindowKey(datetime(2024, 5, 1, 12, 30, 59, 999, tzinfo=timezone.utc))
        self.assertEqual(key.start, datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc))
        self.assertEqual(str(key), "2024-05-01-12-30")

    def test_same_minute_same_key(self) -> None:
        early = WindowKey(datetime(2024, 5, 1, 12, 30, 0, tzinfo=timezone.utc))
        late = WindowKey(datetime(2024, 5, 1, 12, 30, 59, tzinfo=timezone.utc))
        self.assertEqual(early, late)
        self.assertEqual(hash(early), hash(late))
        self.assertNotEqual(early, early.next())

    def test_converts_to_utc(self) -> None:
        tz = timezone(timedelta(hours=-6))
        local = WindowKey(datetime(2024, 5, 1, 6, 30, 10, tzinfo=tz))
        self.assertEqual(str(local), "2024-05-01-12-30")

    def test_naive_datetime_rejected(self) -> None:
        with self.assertRaises(ValueError):
            WindowKey(datetime(2024, 5, 1, 12, 30))
        with self.assertRaises(TypeError):
            WindowKey("2024-05-01-12-30")  # type: ignore[arg-type]

    def test_parse_round_trip_and_invalid(self) -> None:
        key = WindowKey.parse("2024-05-01-09-05")
        self.assertEqual(str(key), "2024-05-01-09-05")
        with self.assertRaises(ValueError):
            WindowKey.parse("2024-5-1-9-5x")

    def test_ordering_and_bounds(self) -> None:
        key = WindowKey.parse("2024-12-31-23-59")
        nxt = key.next()
        self.assertEqual(str(nxt), "2025-01-01-00-00")
        self.assertLess(key, nxt)
        self.assertLess(str(key), str(nxt))
        self.assertEqual(key.end, nxt.start)
        self.assertTrue(key.contains(key.start))
        self.assertFalse(key.contains(key.end))

    def test_current_uses_supplied_time(self) -> None:
        now = datetime(2024, 5, 1, 12, 30, 15, tzinfo=timezone.utc)
        self.assertEqual(str(WindowKey.current(now)), "2024-05-01-12-30")


if __name__ == "__main__":
    unittest.main()
