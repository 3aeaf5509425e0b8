from __future__ import annotations

import threading
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from lottomoji.config import Settings
from lottomoji.draw.engine import DrawOutcome
from lottomoji.draw.window import WindowKey
from lottomoji.scheduler import DrawScheduler, run_scheduled_draw, trigger_draw

from draw_fixtures import FakeClock


def _engine_returning(outcome=None, error=None):
    engine = MagicMock()
    engine.settings = Settings()
    if error is not None:
        engine.run_draw.side_effect = error
    else:
        engine.run_draw.return_value = outcome
    return engine


class TriggerTests(unittest.TestCase):
    def test_trigger_draw_returns_payload(self):
        outcome = DrawOutcome(window_key="2024-05-01-12-30", success=True, result_id="abc")
        engine = _engine_returning(outcome)
        window = WindowKey.parse("2024-05-01-12-30")

        self.assertEqual(trigger_draw(engine, window), {"success": True, "resultId": "abc"})
        engine.run_draw.assert_called_once_with(window)

    def test_trigger_draw_reports_failure(self):
        outcome = DrawOutcome(window_key="2024-05-01-12-30", success=False, error="boom")
        payload = trigger_draw(_engine_returning(outcome))
        self.assertEqual(payload, {"success": False, "error": "boom"})

    def test_scheduled_draw_never_raises(self):
        engine = _engine_returning(error=RuntimeError("store down"))
        with self.assertLogs("lottomoji.scheduler", level="ERROR"):
            self.assertIsNone(run_scheduled_draw(engine))

    def test_scheduled_draw_logs_failure(self):
        outcome = DrawOutcome(window_key="2024-05-01-12-30", success=False, error="boom")
        with self.assertLogs("lottomoji.scheduler", level="ERROR") as logs:
            run_scheduled_draw(_engine_returning(outcome))
        self.assertIn("boom", logs.output[0])

    def test_scheduled_draw_logs_busy(self):
        outcome = DrawOutcome(window_key="2024-05-01-12-30", success=False, busy=True)
        with self.assertLogs("lottomoji.scheduler", level="INFO") as logs:
            run_scheduled_draw(_engine_returning(outcome))
        self.assertIn("already in progress", logs.output[0])


class DrawSchedulerTests(unittest.TestCase):
    def test_fires_on_window_boundaries(self):
        clock = FakeClock(datetime(2024, 5, 1, 12, 30, 15, tzinfo=timezone.utc))
        outcome = DrawOutcome(window_key="2024-05-01-12-30", success=True, result_id="abc")
        scheduler = DrawScheduler(_engine_returning(outcome), clock=clock)

        self.assertAlmostEqual(scheduler.seconds_until_next_fire(), 45)
        clock.advance(44.5)
        self.assertAlmostEqual(scheduler.seconds_until_next_fire(), 0.5)

    def test_custom_interval(self):
        clock = FakeClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))
        scheduler = DrawScheduler(_engine_returning(), interval_seconds=300, clock=clock)
        self.assertAlmostEqual(scheduler.seconds_until_next_fire(), 300)

    def test_run_forever_runs_once_then_stops(self):
        outcome = DrawOutcome(window_key="2024-05-01-12-30", success=True, result_id="abc")
        engine = _engine_returning(outcome)
        stop = threading.Event()
        stop.set()

        DrawScheduler(engine).run_forever(stop)
        engine.run_draw.assert_called_once_with()

    def test_rejects_non_positive_interval(self):
        with self.assertRaises(ValueError):
            DrawScheduler(_engine_returning(), interval_seconds=-5)

    def test_rejects_partial_minute_interval(self):
        with self.assertRaises(ValueError):
            DrawScheduler(_engine_returning(), interval_seconds=90)


if __name__ == "__main__":
    unittest.main()
