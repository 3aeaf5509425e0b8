"""Ticket, draw and result operations that take an explicit session."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload, sessionmaker

from .config import Settings
from .draw.engine import DrawOutcome, SettlementEngine
from .draw.symbols import SymbolPool
from .draw.window import WindowKey
from .models import GameState, SettlementEntry, SettlementResult, Ticket
from .store import ANONYMOUS_OWNER_KEYS, SettlementStore

logger = logging.getLogger(__name__)


def submit_ticket(
    session: Session,
    owner_key: str,
    numbers: Sequence[str],
    *,
    pool: Optional[SymbolPool] = None,
) -> Ticket:
    """Validate and persist a player-submitted ticket.

    The owner is passed explicitly; there is no ambient "current user".

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    owner_key : str
        Account or wallet identifier of the player. Anonymous and temporary
        keys are accepted but never receive bonus tickets.
    numbers : Sequence[str]
        Exactly four symbols from the pool's catalog, in order.
    pool : Optional[SymbolPool], default: None
        Catalog to validate against. The default catalog is used when omitted.

    Returns
    -------
    Ticket
        The flushed ticket with its ``id`` populated.

    Raises
    ------
    ValueError
        If the owner key is blank or the symbols are not a full ticket from
        the catalog.
    """

    if not owner_key or not owner_key.strip():
        raise ValueError("owner_key is required to submit a ticket")

    pool = pool or SymbolPool()
    ticket = Ticket(numbers=pool.validate(numbers), owner_key=owner_key.strip())
    session.add(ticket)
    session.flush()
    logger.info("Ticket %s submitted by %s", ticket.id, ticket.owner_key)
    return ticket


def run_draw(
    session_factory: sessionmaker,
    window: Optional[WindowKey] = None,
    *,
    pool: Optional[SymbolPool] = None,
    settings: Optional[Settings] = None,
) -> DrawOutcome:
    """Settle ``window`` (default: the current minute) and return the outcome.

    This function essentially wraps :class:`SettlementEngine`. It takes a
    session factory rather than a session because the engine commits the lock
    decision and the result in separate transactions.
    """

    engine = SettlementEngine(session_factory, pool=pool, settings=settings)
    return engine.run_draw(window)


@dataclass(frozen=True)
class CleanupReport:
    deleted_count: int
    total_old_tickets: int

    def to_dict(self) -> dict:
        return {
            "success": True,
            "deletedCount": self.deleted_count,
            "totalOldTickets": self.total_old_tickets,
        }


def cleanup_old_tickets(
    session: Session,
    *,
    older_than: Optional[datetime] = None,
    batch_size: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> CleanupReport:
    """Delete up to ``batch_size`` tickets created before ``older_than``.

    Settlement results keep their own snapshots of winning tickets, so
    deleting a ticket never changes a published result. Bonus tickets that
    point at a deleted ticket keep existing with ``won_from`` cleared.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session; the caller commits.
    older_than : Optional[datetime], default: None
        Cutoff. Defaults to now minus ``settings.ticket_retention_days``.
    batch_size : Optional[int], default: None
        Maximum rows deleted in this call. Defaults to
        ``settings.cleanup_batch_size``. Run again to drain larger backlogs.
    settings : Optional[Settings], default: None
        Source of the defaults above.
    """

    settings = settings or Settings()
    if older_than is None:
        older_than = datetime.now(timezone.utc) - timedelta(
            days=settings.ticket_retention_days
        )
    limit = batch_size if batch_size is not None else settings.cleanup_batch_size
    if limit <= 0:
        raise ValueError("batch_size must be a positive integer")

    store = SettlementStore(session)
    old_ids = store.old_ticket_ids(older_than)
    deleted = store.delete_tickets(old_ids[:limit])
    logger.info(
        "Deleted %d of %d tickets created before %s",
        deleted,
        len(old_ids),
        older_than.isoformat(),
    )
    return CleanupReport(deleted_count=deleted, total_old_tickets=len(old_ids))


def latest_settlement(session: Session) -> Optional[SettlementResult]:
    """Return the most recently written settlement result, if any."""

    results = SettlementStore(session).recent_results(limit=1)
    return results[0] if results else None


def recent_settlements(session: Session, *, limit: int = 10) -> list[SettlementResult]:
    """Return up to ``limit`` settlement results, newest first."""

    if limit <= 0:
        raise ValueError("limit must be a positive integer")
    return SettlementStore(session).recent_results(limit=limit)


def settlements_for_owner(session: Session, owner_key: str) -> list[SettlementResult]:
    """Return results in which ``owner_key`` holds at least one winning ticket."""

    if owner_key.strip().lower() in ANONYMOUS_OWNER_KEYS:
        return []
    won = select(SettlementEntry.result_id).where(SettlementEntry.owner_key == owner_key)
    stmt = (
        select(SettlementResult)
        .where(SettlementResult.id.in_(won))
        .options(selectinload(SettlementResult.entries))
        .order_by(SettlementResult.created_at.desc(), SettlementResult.id.desc())
    )
    return list(session.scalars(stmt).all())


def current_game_state(session: Session) -> Optional[GameState]:
    """Return the live game state singleton, or ``None`` before the first draw."""

    return GameState.current(session)
