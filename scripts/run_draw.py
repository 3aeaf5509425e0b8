"""Run the draw for the current (or a given) window once.

Exit codes: 0 when a result exists for the window afterwards or another
attempt is already settling it, 1 when the draw failed.

Usage:
  python scripts/run_draw.py [--window 2024-05-01-12-30]
"""

from __future__ import annotations

import argparse
import json
from typing import Optional, Sequence

from lottomoji.config import Settings
from lottomoji.db.engine import get_sessionmaker, make_engine
from lottomoji.draw.engine import SettlementEngine
from lottomoji.draw.window import WindowKey
from lottomoji.logging_config import configure_logging
from lottomoji.scheduler import trigger_draw


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Run a LottoMoji draw on demand")
    parser.add_argument(
        "--window",
        type=WindowKey.parse,
        default=None,
        help="UTC window key YYYY-MM-DD-HH-MM (default: current minute)",
    )
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    configure_logging(settings)
    engine = SettlementEngine(get_sessionmaker(make_engine()), settings=settings)

    payload = trigger_draw(engine, args.window)
    print(json.dumps(payload, ensure_ascii=False))
    if payload["success"] or payload.get("inProgress"):
        return 0
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
