"""Settlement engine running one complete draw per window."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .lock import AcquireStatus, DrawLockManager, new_owner_token
from .matching import PrizeTier, evaluate
from .symbols import SymbolPool, TICKET_LENGTH
from .window import WindowKey
from ..config import TICKET_SCOPE_SINCE_LAST_SETTLEMENT, Settings
from ..store import SettlementStore, TicketSnapshot

logger = logging.getLogger(__name__)


def new_result_id() -> str:
    return secrets.token_hex(10)


class WindowAlreadySettled(Exception):
    """A competing attempt committed the result for this window first."""

    def __init__(self, result_id: Optional[str]) -> None:
        super().__init__(f"window already settled by result {result_id}")
        self.result_id = result_id


@dataclass
class DrawOutcome:
    """Structured result of :meth:`SettlementEngine.run_draw`.

    Attributes
    ----------
    window_key : str
        Window the invocation targeted.
    success : bool
        ``True`` when a result exists for the window after this call.
    result_id : Optional[str]
        Identifier of that result.
    already_settled : bool
        The result was produced by an earlier or concurrent attempt.
    busy : bool
        Another attempt holds the lock; nothing was written.
    error : Optional[str]
        Failure message when ``success`` is ``False`` and not busy.
    tier_sizes : dict[str, int]
        Winners per tier, only for draws settled by this call.
    bonus_tickets : int
        Bonus tickets issued by this call.
    skipped_tickets : int
        Malformed tickets ignored by this call.
    """

    window_key: str
    success: bool
    result_id: Optional[str] = None
    already_settled: bool = False
    busy: bool = False
    error: Optional[str] = None
    tier_sizes: dict[str, int] = field(default_factory=dict)
    bonus_tickets: int = 0
    skipped_tickets: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the ``{success, resultId?, alreadyProcessed?, error?}`` payload."""
        payload: dict[str, Any] = {"success": self.success}
        if self.result_id is not None:
            payload["resultId"] = self.result_id
        if self.already_settled:
            payload["alreadyProcessed"] = True
        if self.busy:
            payload["inProgress"] = True
        if self.error is not None:
            payload["error"] = self.error
        return payload


def classify_tickets(
    tickets: Iterable[TicketSnapshot], winning_symbols: list[str]
) -> dict[PrizeTier, list[TicketSnapshot]]:
    """Bucket ``tickets`` into prize tiers; losing tickets are dropped."""

    tiers: dict[PrizeTier, list[TicketSnapshot]] = {tier: [] for tier in PrizeTier}
    for ticket in tickets:
        tier = evaluate(ticket.numbers, winning_symbols).tier
        if tier is not None:
            tiers[tier].append(ticket)
    return tiers


class SettlementEngine:
    """Run draws with an exactly-once guarantee per :class:`WindowKey`.

    Each phase opens its own short transaction so the lock decision is
    committed and visible to competing attempts before any draw work starts.
    No state is shared between invocations beyond the database.

    Parameters
    ----------
    session_factory : sessionmaker
        Factory producing sessions bound to the shared database.
    pool : Optional[SymbolPool], default: None
        Symbol catalog; the default 25-symbol pool when omitted.
    settings : Optional[Settings], default: None
        Window length, stale-lock threshold and ticket scope.
    clock : Callable[[], datetime], optional
        Source of the current UTC time.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        pool: Optional[SymbolPool] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._session_factory = session_factory
        self._pool = pool or SymbolPool()
        self._settings = settings or Settings()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks = DrawLockManager(
            session_factory,
            stale_after=timedelta(seconds=self._settings.lock_stale_seconds),
            clock=self._clock,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def locks(self) -> DrawLockManager:
        return self._locks

    def current_window(self) -> WindowKey:
        return WindowKey.current(self._clock())

    def run_draw(self, window: Optional[WindowKey] = None) -> DrawOutcome:
        """Settle ``window`` (default: the current minute) at most once.

        The steps are:

        1. Look for a result already tagged with the window, then for an
           untagged legacy result written inside it.
        2. Acquire the draw lock; return quietly when busy and return the
           stored result id when it is already completed.
        3. Draw the winning symbols, load and classify tickets, persist the
           result, publish the game state and issue bonus tickets.
        4. Mark the lock completed, or failed with the error message.

        Store errors and unexpected exceptions are returned as
        ``success=False``; they never propagate to the caller.
        """
        window = window or self.current_window()
        key = str(window)
        token = new_owner_token()
        logger.info("[%s] processing draw for window %s", token, key)

        try:
            existing_id = self._find_existing_result(window)
        except SQLAlchemyError as exc:
            logger.exception("[%s] idempotency check failed for window %s", token, key)
            return DrawOutcome(window_key=key, success=False, error=str(exc))
        if existing_id is not None:
            logger.info("[%s] window %s already settled as %s", token, key, existing_id)
            return DrawOutcome(
                window_key=key, success=True, result_id=existing_id, already_settled=True
            )

        try:
            acquisition = self._locks.acquire(window, token)
        except SQLAlchemyError as exc:
            logger.exception("[%s] could not acquire lock for window %s", token, key)
            return DrawOutcome(window_key=key, success=False, error=str(exc))

        if acquisition.status is AcquireStatus.ALREADY_SETTLED:
            logger.info(
                "[%s] lock for window %s already completed with %s",
                token,
                key,
                acquisition.result_id,
            )
            return DrawOutcome(
                window_key=key,
                success=True,
                result_id=acquisition.result_id,
                already_settled=True,
            )
        if acquisition.status is AcquireStatus.BUSY:
            logger.info("[%s] window %s is being settled elsewhere, aborting", token, key)
            return DrawOutcome(window_key=key, success=False, busy=True)
        if acquisition.reclaimed_from is not None:
            logger.info(
                "[%s] took over window %s from a %s attempt (previous error: %s)",
                token,
                key,
                acquisition.reclaimed_from,
                acquisition.previous_error,
            )

        try:
            outcome = self._settle(window, token)
        except WindowAlreadySettled as exc:
            self._complete_lock(window, token, exc.result_id)
            return DrawOutcome(
                window_key=key, success=True, result_id=exc.result_id, already_settled=True
            )
        except Exception as exc:
            logger.exception("[%s] draw for window %s failed", token, key)
            self._fail_lock(window, token, exc)
            return DrawOutcome(
                window_key=key, success=False, error=str(exc) or exc.__class__.__name__
            )

        self._complete_lock(window, token, outcome.result_id)
        logger.info("[%s] window %s settled as %s", token, key, outcome.result_id)
        return outcome

    def _find_existing_result(self, window: WindowKey) -> Optional[str]:
        with self._session_factory() as session:
            store = SettlementStore(session)
            result = store.find_result(str(window))
            if result is None:
                result = store.find_result_in_range(window.start, window.end)
            return result.id if result is not None else None

    def _settle(self, window: WindowKey, token: str) -> DrawOutcome:
        key = str(window)
        winning_symbols = self._pool.draw(TICKET_LENGTH)
        logger.info("[%s] winning symbols for %s: %s", token, key, " ".join(winning_symbols))

        # The result is stamped with the load cutoff, which becomes the next
        # draw's lower bound in since_last_settlement mode.
        loaded_at = self._clock()
        with self._session_factory() as session:
            store = SettlementStore(session)
            since = until = None
            if self._settings.ticket_scope == TICKET_SCOPE_SINCE_LAST_SETTLEMENT:
                since = store.latest_result_time()
                until = loaded_at
            batch = store.load_tickets(since=since, until=until)

        for skipped in batch.skipped:
            logger.warning("[%s] skipping ticket: %s", token, skipped)
        logger.info(
            "[%s] evaluating %d of %d tickets", token, len(batch.tickets), batch.total
        )

        tiers = classify_tickets(batch.tickets, winning_symbols)
        tier_sizes = {tier.value: len(tickets) for tier, tickets in tiers.items()}
        logger.info("[%s] winners per tier: %s", token, tier_sizes)

        result_id = new_result_id()
        try:
            with self._session_factory.begin() as session:
                SettlementStore(session).save_result(
                    result_id=result_id,
                    window_key=key,
                    winning_symbols=winning_symbols,
                    tiers={tier.value: tickets for tier, tickets in tiers.items()},
                    attempt_token=token,
                    created_at=loaded_at,
                )
        except IntegrityError:
            existing_id = self._find_existing_result(window)
            if existing_id is None:
                raise
            logger.warning(
                "[%s] window %s was settled concurrently as %s; discarding this draw",
                token,
                key,
                existing_id,
            )
            raise WindowAlreadySettled(existing_id)

        self._publish_game_state(window, winning_symbols, token)
        bonus_count = self._issue_bonus_tickets(tiers[PrizeTier.FREE], token)

        return DrawOutcome(
            window_key=key,
            success=True,
            result_id=result_id,
            tier_sizes=tier_sizes,
            bonus_tickets=bonus_count,
            skipped_tickets=len(batch.skipped),
        )

    def _publish_game_state(
        self, window: WindowKey, winning_symbols: list[str], token: str
    ) -> None:
        next_draw_at = window.start + timedelta(seconds=self._settings.window_seconds)
        try:
            with self._session_factory.begin() as session:
                SettlementStore(session).set_game_state(
                    winning_symbols=winning_symbols,
                    next_draw_at=next_draw_at,
                    attempt_token=token,
                )
        except SQLAlchemyError:
            # The result is already committed; the countdown catches up next draw.
            logger.exception("[%s] failed to update game state", token)

    def _issue_bonus_tickets(self, winners: list[TicketSnapshot], token: str) -> int:
        issued = 0
        for ticket in winners:
            if not ticket.is_real_account:
                logger.info(
                    "[%s] no bonus for ticket %s: owner %r is not an account",
                    token,
                    ticket.id,
                    ticket.owner_key,
                )
                continue
            try:
                with self._session_factory.begin() as session:
                    bonus = SettlementStore(session).issue_bonus_ticket(
                        ticket, self._pool.draw(TICKET_LENGTH)
                    )
                    bonus_id = bonus.id
            except SQLAlchemyError:
                logger.exception(
                    "[%s] failed to issue bonus ticket for ticket %s", token, ticket.id
                )
                continue
            issued += 1
            logger.info(
                "[%s] bonus ticket %s issued to %s for ticket %s",
                token,
                bonus_id,
                ticket.owner_key,
                ticket.id,
            )
        return issued

    def _complete_lock(self, window: WindowKey, token: str, result_id: Optional[str]) -> None:
        if result_id is None:
            return
        try:
            self._locks.mark_completed(window, token, result_id)
        except SQLAlchemyError:
            # The committed result still short-circuits the next attempt.
            logger.exception("[%s] failed to mark window %s completed", token, window)

    def _fail_lock(self, window: WindowKey, token: str, exc: BaseException) -> None:
        try:
            self._locks.mark_failed(window, token, str(exc) or exc.__class__.__name__)
        except SQLAlchemyError:
            logger.exception("[%s] failed to record failure for window %s", token, window)


__all__ = [
    "DrawOutcome",
    "SettlementEngine",
    "WindowAlreadySettled",
    "classify_tickets",
    "new_result_id",
]
