"""Environment-based configuration for the draw settlement engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

TICKET_SCOPE_ALL = "all"
TICKET_SCOPE_SINCE_LAST_SETTLEMENT = "since_last_settlement"
TICKET_SCOPES = (TICKET_SCOPE_ALL, TICKET_SCOPE_SINCE_LAST_SETTLEMENT)


def _positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Runtime knobs for draws, the lock, and ticket maintenance.

    Attributes
    ----------
    window_seconds : int
        Scheduler cadence and the gap advertised as ``next_draw_at``. Lock and
        result keys stay per UTC minute (see :class:`~lottomoji.draw.window.WindowKey`),
        so the value must be a whole number of minutes; each firing then
        settles the minute it lands on.
    lock_stale_seconds : int
        Age after which an ``in_progress`` draw lock may be reclaimed. Must
        exceed the slowest expected draw, otherwise a healthy attempt can be
        reclaimed while it is still running.
    ticket_scope : str
        ``"all"`` evaluates every stored ticket on every draw.
        ``"since_last_settlement"`` only evaluates tickets created after the
        previous settlement.
    ticket_retention_days : int
        Tickets older than this are eligible for cleanup.
    cleanup_batch_size : int
        Maximum tickets deleted by one cleanup call.
    log_level : str
        Root log level used by the scripts.
    """

    window_seconds: int = 60
    lock_stale_seconds: int = 30
    ticket_scope: str = TICKET_SCOPE_ALL
    ticket_retention_days: int = 7
    cleanup_batch_size: int = 500
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.ticket_scope not in TICKET_SCOPES:
            raise ValueError(
                f"ticket_scope must be one of {TICKET_SCOPES}, got {self.ticket_scope!r}"
            )
        if self.window_seconds <= 0 or self.lock_stale_seconds <= 0:
            raise ValueError("window_seconds and lock_stale_seconds must be positive")
        if self.window_seconds % 60:
            raise ValueError(
                f"window_seconds must be a multiple of 60, got {self.window_seconds}"
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ`` after ``.env``)."""
        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            window_seconds=_positive_int(env, "DRAW_WINDOW_SECONDS", 60),
            lock_stale_seconds=_positive_int(env, "DRAW_LOCK_STALE_SECONDS", 30),
            ticket_scope=env.get("TICKET_SCOPE", TICKET_SCOPE_ALL).strip().lower(),
            ticket_retention_days=_positive_int(env, "TICKET_RETENTION_DAYS", 7),
            cleanup_batch_size=_positive_int(env, "CLEANUP_BATCH_SIZE", 500),
            log_level=env.get("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )


__all__ = [
    "Settings",
    "TICKET_SCOPE_ALL",
    "TICKET_SCOPE_SINCE_LAST_SETTLEMENT",
    "TICKET_SCOPES",
]
