"""Run draws on a fixed cadence until interrupted."""

from __future__ import annotations

import logging
import signal
import threading

from lottomoji.config import Settings
from lottomoji.db.engine import get_sessionmaker, make_engine
from lottomoji.draw.engine import SettlementEngine
from lottomoji.logging_config import configure_logging
from lottomoji.scheduler import DrawScheduler

logger = logging.getLogger(__name__)


def main() -> None:
    settings = Settings.from_env()
    configure_logging(settings)
    engine = SettlementEngine(get_sessionmaker(make_engine()), settings=settings)

    stop_event = threading.Event()

    def _stop(signum, _frame):
        logger.info("Received signal %s, stopping after the current draw", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _stop)
    signal.signal(signal.SIGTERM, _stop)
    DrawScheduler(engine).run_forever(stop_event)


if __name__ == "__main__":
    main()
