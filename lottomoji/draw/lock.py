"""Per-window draw lock giving exactly-once settlement across processes.

Every decision is made inside one short transaction and every overwrite is a
compare-and-set on ``(window_key, owner_token, state)``, so two attempts can
never both believe they hold the same window:

* a missing row is claimed by INSERT; the primary key rejects a concurrent
  claimant with ``IntegrityError`` and the loser re-reads the row;
* ``failed`` and stale ``in_progress`` rows are claimed by a conditional
  UPDATE that only one attempt can win;
* ``completed`` and fresh ``in_progress`` rows are never written.
"""

from __future__ import annotations

import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .window import WindowKey
from ..db.utils import as_utc
from ..models import LockState
from ..store import SettlementStore

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(seconds=30)
# Lost races only happen when another attempt changed the row between our
# read and write; a handful of re-reads always settles on a stable state.
MAX_ACQUIRE_ROUNDS = 5


def new_owner_token() -> str:
    return secrets.token_hex(16)


class AcquireStatus(str, enum.Enum):
    ACQUIRED = "acquired"
    BUSY = "busy"
    ALREADY_SETTLED = "already_settled"


@dataclass(frozen=True)
class LockAcquisition:
    """Outcome of :meth:`DrawLockManager.acquire`.

    Attributes
    ----------
    status : AcquireStatus
        What the caller may do next.
    window_key : str
        Window the decision applies to.
    owner_token : Optional[str]
        Token proving ownership when ``status`` is ``ACQUIRED``.
    result_id : Optional[str]
        Existing result when ``status`` is ``ALREADY_SETTLED``.
    reclaimed_from : Optional[str]
        Previous state (``"failed"`` or ``"in_progress"``) when the lock was
        taken over from an earlier attempt.
    previous_error : Optional[str]
        Failure recorded by the earlier attempt, kept for diagnostics.
    """

    status: AcquireStatus
    window_key: str
    owner_token: Optional[str] = None
    result_id: Optional[str] = None
    reclaimed_from: Optional[str] = None
    previous_error: Optional[str] = None

    @property
    def acquired(self) -> bool:
        return self.status is AcquireStatus.ACQUIRED


class DrawLockManager:
    """Acquire and release :class:`~lottomoji.models.DrawLock` rows.

    Parameters
    ----------
    session_factory : sessionmaker
        Factory for the short transactions used by each lock operation.
    stale_after : timedelta, default: 30 seconds
        Age after which an ``in_progress`` lock is considered abandoned.
    clock : Callable[[], datetime], optional
        Source of the current UTC time.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        stale_after: timedelta = DEFAULT_STALE_AFTER,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        if stale_after <= timedelta(0):
            raise ValueError("stale_after must be positive")
        self._session_factory = session_factory
        self._stale_after = stale_after
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def stale_after(self) -> timedelta:
        return self._stale_after

    def acquire(
        self, window: WindowKey, owner_token: Optional[str] = None
    ) -> LockAcquisition:
        """Try to take the lock for ``window``.

        Never blocks on another attempt: a fresh ``in_progress`` lock yields
        ``BUSY`` immediately.
        """
        key = str(window)
        token = owner_token or new_owner_token()
        for _ in range(MAX_ACQUIRE_ROUNDS):
            try:
                decision = self._try_acquire(key, token)
            except IntegrityError:
                logger.info("[%s] lost insert race for window %s, re-reading", token, key)
                continue
            if decision is not None:
                return decision
        logger.info("[%s] lock for window %s kept changing, backing off", token, key)
        return LockAcquisition(status=AcquireStatus.BUSY, window_key=key)

    def _try_acquire(self, key: str, token: str) -> Optional[LockAcquisition]:
        """Run one read-decide-write round. ``None`` means re-read."""
        now = self._clock()
        with self._session_factory.begin() as session:
            store = SettlementStore(session)
            lock = store.get_lock(key)

            if lock is None:
                store.insert_lock(
                    key,
                    state=LockState.IN_PROGRESS.value,
                    owner_token=token,
                    started_at=now,
                )
                return LockAcquisition(
                    status=AcquireStatus.ACQUIRED, window_key=key, owner_token=token
                )

            if lock.state == LockState.COMPLETED.value:
                return LockAcquisition(
                    status=AcquireStatus.ALREADY_SETTLED,
                    window_key=key,
                    result_id=lock.result_id,
                )

            if lock.state == LockState.IN_PROGRESS.value:
                elapsed = now - as_utc(lock.started_at)
                if elapsed < self._stale_after:
                    return LockAcquisition(status=AcquireStatus.BUSY, window_key=key)
                logger.warning(
                    "[%s] lock for window %s held by %s is stale (%.1fs), reclaiming",
                    token,
                    key,
                    lock.owner_token,
                    elapsed.total_seconds(),
                )

            previous_state = lock.state
            previous_error = lock.error
            claimed = store.compare_and_set_lock(
                key,
                expected_token=lock.owner_token,
                expected_state=previous_state,
                state=LockState.IN_PROGRESS.value,
                owner_token=token,
                started_at=now,
                result_id=None,
                updated_at=now,
            )
            if not claimed:
                return None
            return LockAcquisition(
                status=AcquireStatus.ACQUIRED,
                window_key=key,
                owner_token=token,
                reclaimed_from=previous_state,
                previous_error=previous_error,
            )

    def mark_completed(self, window: WindowKey, owner_token: str, result_id: str) -> bool:
        """Move the lock to ``completed`` if ``owner_token`` still holds it."""
        key = str(window)
        with self._session_factory.begin() as session:
            updated = SettlementStore(session).compare_and_set_lock(
                key,
                expected_token=owner_token,
                expected_state=LockState.IN_PROGRESS.value,
                state=LockState.COMPLETED.value,
                result_id=result_id,
                updated_at=self._clock(),
            )
        if not updated:
            logger.warning(
                "[%s] lock for window %s was taken over before completion", owner_token, key
            )
        return updated

    def mark_failed(self, window: WindowKey, owner_token: str, error: str) -> bool:
        """Record ``error`` and move the lock to ``failed``; other columns are kept."""
        key = str(window)
        with self._session_factory.begin() as session:
            updated = SettlementStore(session).compare_and_set_lock(
                key,
                expected_token=owner_token,
                expected_state=LockState.IN_PROGRESS.value,
                state=LockState.FAILED.value,
                error=error,
                updated_at=self._clock(),
            )
        if not updated:
            logger.warning(
                "[%s] could not record failure on window %s; lock no longer held",
                owner_token,
                key,
            )
        return updated


__all__ = [
    "AcquireStatus",
    "DEFAULT_STALE_AFTER",
    "DrawLockManager",
    "LockAcquisition",
    "new_owner_token",
]
