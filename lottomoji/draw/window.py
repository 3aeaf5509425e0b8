"""Value type naming the one-minute window a draw settles."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

WINDOW_KEY_FORMAT = "%Y-%m-%d-%H-%M"


@dataclass(frozen=True, order=True)
class WindowKey:
    """A calendar minute in UTC.

    Construction truncates to the minute and converts to UTC, so every
    invocation that observes the same UTC minute derives an equal key
    regardless of host timezone. The string form is zero padded, so ordering
    strings matches ordering windows.
    """

    start: datetime

    def __post_init__(self) -> None:
        start = self.start
        if not isinstance(start, datetime):
            raise TypeError("WindowKey.start must be a datetime")
        if start.tzinfo is None:
            raise ValueError("WindowKey.start must be timezone-aware")
        start = start.astimezone(timezone.utc).replace(second=0, microsecond=0)
        object.__setattr__(self, "start", start)

    @classmethod
    def from_datetime(cls, moment: datetime) -> "WindowKey":
        return cls(moment)

    @classmethod
    def current(cls, now: Optional[datetime] = None) -> "WindowKey":
        return cls(now or datetime.now(timezone.utc))

    @classmethod
    def parse(cls, value: str) -> "WindowKey":
        """Parse the ``YYYY-MM-DD-HH-MM`` form produced by ``str()``."""
        try:
            moment = datetime.strptime(value, WINDOW_KEY_FORMAT)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid window key {value!r}") from exc
        return cls(moment.replace(tzinfo=timezone.utc))

    @property
    def end(self) -> datetime:
        """Exclusive upper bound of the window."""
        return self.start + timedelta(minutes=1)

    def next(self) -> "WindowKey":
        return WindowKey(self.end)

    def contains(self, moment: datetime) -> bool:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return self.start <= moment < self.end

    def __str__(self) -> str:
        return self.start.strftime(WINDOW_KEY_FORMAT)


__all__ = ["WindowKey", "WINDOW_KEY_FORMAT"]
