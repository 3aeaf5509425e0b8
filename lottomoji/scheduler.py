"""Trigger surface for the settlement engine.

Two entry points share the engine:

* :func:`trigger_draw` is the on-demand call and returns the structured
  outcome to its caller.
* :func:`run_scheduled_draw` is what the cadence fires. It logs the outcome
  and returns nothing. Failed draws are not retried here; the lock's stale
  threshold is the only recovery path, which keeps retries from producing a
  second winning sequence for the same window.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .draw.engine import SettlementEngine
from .draw.window import WindowKey

logger = logging.getLogger(__name__)


def trigger_draw(
    engine: SettlementEngine, window: Optional[WindowKey] = None
) -> dict[str, Any]:
    """Run a draw on demand and return ``{success, resultId?, alreadyProcessed?, error?}``."""
    logger.info("Manual draw requested")
    return engine.run_draw(window).to_dict()


def run_scheduled_draw(engine: SettlementEngine) -> None:
    """Run the draw for the current window; never raises."""
    try:
        outcome = engine.run_draw()
    except Exception:
        logger.exception("Scheduled draw crashed")
        return
    if outcome.busy:
        logger.info("Scheduled draw for %s skipped: already in progress", outcome.window_key)
    elif outcome.success:
        logger.info(
            "Scheduled draw for %s finished: result %s%s",
            outcome.window_key,
            outcome.result_id,
            " (already processed)" if outcome.already_settled else "",
        )
    else:
        logger.error("Scheduled draw for %s failed: %s", outcome.window_key, outcome.error)


class DrawScheduler:
    """Fire :func:`run_scheduled_draw` once at the start of every window.

    Parameters
    ----------
    engine : SettlementEngine
        Engine to run.
    interval_seconds : Optional[int], default: None
        Cadence; defaults to the engine's ``window_seconds`` setting.
    clock : Callable[[], datetime], optional
        Source of the current UTC time.
    """

    def __init__(
        self,
        engine: SettlementEngine,
        *,
        interval_seconds: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._engine = engine
        self._interval = interval_seconds or engine.settings.window_seconds
        if self._interval <= 0 or self._interval % 60:
            raise ValueError("interval_seconds must be a positive whole number of minutes")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def seconds_until_next_fire(self) -> float:
        now = self._clock().timestamp()
        return self._interval - (now % self._interval)

    def run_once(self) -> None:
        run_scheduled_draw(self._engine)

    def run_forever(self, stop_event: Optional[threading.Event] = None) -> None:
        """Loop until ``stop_event`` is set (or forever when omitted)."""
        stop_event = stop_event or threading.Event()
        logger.info("Draw scheduler started with a %ss cadence", self._interval)
        self.run_once()
        while not stop_event.wait(self.seconds_until_next_fire()):
            self.run_once()
        logger.info("Draw scheduler stopped")


__all__ = ["DrawScheduler", "run_scheduled_draw", "trigger_draw"]
