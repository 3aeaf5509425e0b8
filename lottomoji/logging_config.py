"""Logging setup shared by the command-line scripts."""

from __future__ import annotations

import logging
from typing import Optional

from .config import Settings


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure root logging from ``settings.log_level``."""

    settings = settings or Settings.from_env()
    level = getattr(logging, settings.log_level, logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # SQL echo is controlled by make_engine(echo=...), not the log level.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
