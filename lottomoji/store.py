"""Session-bound data access for settlement, with a strict ticket decoder.

Everything the engine reads from or writes to the database goes through
:class:`SettlementStore`. Ticket rows are decoded into immutable
:class:`TicketSnapshot` objects at this boundary so the rest of the engine
never inspects raw JSON.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session, selectinload

from .db.utils import as_utc
from .models import (
    TICKET_LENGTH,
    GAME_STATE_ID,
    DrawLock,
    GameState,
    SettlementEntry,
    SettlementResult,
    Ticket,
)

logger = logging.getLogger(__name__)

# Owner keys the client uses for sessions that are not real accounts.
ANONYMOUS_OWNER_KEYS = frozenset({"anonymous", "temp"})


class MalformedTicketError(ValueError):
    """Raised when a stored ticket row does not hold a usable symbol sequence."""

    def __init__(self, ticket_id: Optional[int], reason: str) -> None:
        super().__init__(f"Ticket {ticket_id} is malformed: {reason}")
        self.ticket_id = ticket_id
        self.reason = reason


@dataclass(frozen=True)
class TicketSnapshot:
    """Decoded, read-only view of a ticket row."""

    id: int
    numbers: tuple[str, ...]
    owner_key: str
    created_at: Optional[datetime]
    is_bonus: bool = False

    @property
    def is_real_account(self) -> bool:
        """``False`` for anonymous or temporary owners that cannot receive bonuses."""
        key = self.owner_key.strip()
        return bool(key) and key.lower() not in ANONYMOUS_OWNER_KEYS

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "numbers": list(self.numbers),
            "owner_key": self.owner_key,
        }


def decode_ticket(ticket: Ticket) -> TicketSnapshot:
    """Decode ``ticket`` or raise :class:`MalformedTicketError`."""

    numbers = ticket.numbers
    if not isinstance(numbers, (list, tuple)):
        raise MalformedTicketError(ticket.id, "numbers is not a list")
    if len(numbers) != TICKET_LENGTH:
        raise MalformedTicketError(
            ticket.id, f"expected {TICKET_LENGTH} symbols, got {len(numbers)}"
        )
    if not all(isinstance(symbol, str) and symbol for symbol in numbers):
        raise MalformedTicketError(ticket.id, "symbols must be non-empty strings")
    owner_key = ticket.owner_key if isinstance(ticket.owner_key, str) else ""
    return TicketSnapshot(
        id=ticket.id,
        numbers=tuple(numbers),
        owner_key=owner_key,
        created_at=as_utc(ticket.created_at),
        is_bonus=bool(ticket.is_bonus),
    )


@dataclass
class TicketBatch:
    """Tickets loaded for one draw, split into usable and skipped rows."""

    tickets: list[TicketSnapshot]
    skipped: list[MalformedTicketError]

    @property
    def total(self) -> int:
        return len(self.tickets) + len(self.skipped)


class SettlementStore:
    """Data access helpers bound to one SQLAlchemy session.

    The store never commits; callers own the transaction boundaries.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    # -------- draw locks --------
    def get_lock(self, window_key: str) -> Optional[DrawLock]:
        return self._session.get(DrawLock, window_key, populate_existing=True)

    def insert_lock(
        self, window_key: str, *, state: str, owner_token: str, started_at: datetime
    ) -> DrawLock:
        """Insert a new lock row. A concurrent insert surfaces as ``IntegrityError``."""
        lock = DrawLock(
            window_key=window_key,
            state=state,
            owner_token=owner_token,
            started_at=started_at,
            updated_at=started_at,
        )
        self._session.add(lock)
        self._session.flush()
        return lock

    def compare_and_set_lock(
        self,
        window_key: str,
        *,
        expected_token: str,
        expected_state: str,
        **values: Any,
    ) -> bool:
        """Update the lock only if it still carries ``expected_token`` and state.

        Returns ``True`` when exactly one row changed.
        """
        values.setdefault("updated_at", datetime.now(timezone.utc))
        stmt = (
            update(DrawLock)
            .where(
                DrawLock.window_key == window_key,
                DrawLock.owner_token == expected_token,
                DrawLock.state == expected_state,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount == 1

    # -------- settlement results --------
    def find_result(self, window_key: str) -> Optional[SettlementResult]:
        return SettlementResult.get_by_window_key(self._session, window_key)

    def find_result_in_range(
        self, start: datetime, end: datetime
    ) -> Optional[SettlementResult]:
        """Return an untagged (legacy) result written inside ``[start, end)``."""
        stmt = (
            select(SettlementResult)
            .where(
                SettlementResult.window_key.is_(None),
                SettlementResult.created_at >= start,
                SettlementResult.created_at < end,
            )
            .order_by(SettlementResult.created_at.asc())
            .limit(1)
        )
        return self._session.scalar(stmt)

    def latest_result_time(self) -> Optional[datetime]:
        return as_utc(self._session.scalar(select(func.max(SettlementResult.created_at))))

    def recent_results(self, limit: int) -> list[SettlementResult]:
        stmt = (
            select(SettlementResult)
            .options(selectinload(SettlementResult.entries))
            .order_by(SettlementResult.created_at.desc(), SettlementResult.id.desc())
            .limit(limit)
        )
        return list(self._session.scalars(stmt).all())

    def save_result(
        self,
        *,
        result_id: str,
        window_key: Optional[str],
        winning_symbols: Sequence[str],
        tiers: Mapping[str, Sequence[TicketSnapshot]],
        attempt_token: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> SettlementResult:
        """Persist a result and its tier snapshots.

        A second result for the same ``window_key`` violates the unique
        constraint and raises ``IntegrityError`` on flush.
        """
        entries = [
            SettlementEntry(
                tier=tier,
                ticket_id=ticket.id,
                numbers=list(ticket.numbers),
                owner_key=ticket.owner_key,
            )
            for tier, tickets in tiers.items()
            for ticket in tickets
        ]
        result = SettlementResult(
            id=result_id,
            window_key=window_key,
            winning_symbols=list(winning_symbols),
            attempt_token=attempt_token,
            created_at=created_at or datetime.now(timezone.utc),
            entries=entries,
        )
        self._session.add(result)
        self._session.flush()
        return result

    # -------- tickets --------
    def load_tickets(
        self,
        *,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> TicketBatch:
        """Load and decode tickets created in ``[since, until)``.

        Either bound may be omitted. The interval is half-open so consecutive
        draws that pass one draw's ``until`` as the next draw's ``since``
        evaluate every ticket exactly once.
        """
        stmt = select(Ticket).order_by(Ticket.id.asc())
        if since is not None:
            stmt = stmt.where(Ticket.created_at >= since)
        if until is not None:
            stmt = stmt.where(Ticket.created_at < until)

        batch = TicketBatch(tickets=[], skipped=[])
        for ticket in self._session.scalars(stmt):
            try:
                batch.tickets.append(decode_ticket(ticket))
            except MalformedTicketError as exc:
                batch.skipped.append(exc)
        return batch

    def issue_bonus_ticket(
        self, source: TicketSnapshot, numbers: Sequence[str]
    ) -> Ticket:
        ticket = Ticket(
            numbers=list(numbers),
            owner_key=source.owner_key,
            is_bonus=True,
            won_from_id=source.id,
        )
        self._session.add(ticket)
        self._session.flush()
        return ticket

    def old_ticket_ids(self, older_than: datetime) -> list[int]:
        stmt = (
            select(Ticket.id)
            .where(Ticket.created_at < older_than)
            .order_by(Ticket.created_at.asc(), Ticket.id.asc())
        )
        return list(self._session.scalars(stmt).all())

    def delete_tickets(self, ticket_ids: Iterable[int]) -> int:
        ids = list(ticket_ids)
        if not ids:
            return 0
        stmt = (
            delete(Ticket)
            .where(Ticket.id.in_(ids))
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount

    # -------- game state --------
    def set_game_state(
        self,
        *,
        winning_symbols: Sequence[str],
        next_draw_at: datetime,
        attempt_token: Optional[str] = None,
    ) -> GameState:
        state = self._session.get(GameState, GAME_STATE_ID)
        if state is None:
            state = GameState(id=GAME_STATE_ID)
            self._session.add(state)
        state.winning_symbols = list(winning_symbols)
        state.next_draw_at = next_draw_at
        state.last_attempt_token = attempt_token
        state.updated_at = datetime.now(timezone.utc)
        self._session.flush()
        return state


__all__ = [
    "ANONYMOUS_OWNER_KEYS",
    "MalformedTicketError",
    "SettlementStore",
    "TicketBatch",
    "TicketSnapshot",
    "decode_ticket",
]
