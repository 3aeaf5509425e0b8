"""Database models for settled draws."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from ..db.utils import dt_iso

TIER_NAMES = ("first", "second", "third", "free")


class SettlementResult(Base):
    """Immutable record of one completed draw window."""

    __tablename__ = "settlement_results"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    """Random identifier assigned by the engine."""

    window_key: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    """Draw window this result settles. ``NULL`` only on legacy imports."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp when the result was written."""

    winning_symbols: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    """The four drawn symbols in draw order."""

    attempt_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    """Owner token of the lock attempt that produced the result."""

    entries: Mapped[list["SettlementEntry"]] = relationship(
        back_populates="result",
        cascade="all, delete-orphan",
        order_by="SettlementEntry.id",
    )
    """Winning ticket snapshots across all tiers."""

    __table_args__ = (
        # At most one visible result per window, enforced by the database.
        UniqueConstraint("window_key", name="uq_settlement_results_window_key"),
        Index("ix_settlement_results_created_at", "created_at"),
    )

    def __init__(
        self,
        *,
        id: str,
        winning_symbols: list[str],
        window_key: Optional[str] = None,
        attempt_token: Optional[str] = None,
        created_at: Optional[datetime] = None,
        entries: Optional[list["SettlementEntry"]] = None,
    ) -> None:
        self.id = id
        self.winning_symbols = list(winning_symbols)
        self.window_key = window_key
        self.attempt_token = attempt_token
        if created_at is not None:
            self.created_at = created_at
        if entries is not None:
            self.entries = entries

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<SettlementResult(id={id}, window_key={window}, winning_symbols={symbols})>".format(
            id=self.id,
            window=self.window_key,
            symbols=self.winning_symbols,
        )

    def tier(self, name: str) -> list["SettlementEntry"]:
        """Return the entries recorded under tier ``name``."""
        if name not in TIER_NAMES:
            raise ValueError(f"Unknown prize tier '{name}'")
        return [entry for entry in self.entries if entry.tier == name]

    @property
    def tier_sizes(self) -> dict[str, int]:
        sizes = {name: 0 for name in TIER_NAMES}
        for entry in self.entries:
            sizes[entry.tier] += 1
        return sizes

    def to_json(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "id": self.id,
            "window_key": self.window_key,
            "created_at": dt_iso(self.created_at),
            "winning_symbols": list(self.winning_symbols),
        }
        for name in TIER_NAMES:
            payload[name] = [entry.to_json() for entry in self.tier(name)]
        return payload

    @classmethod
    def get_by_window_key(
        cls, session: Session, window_key: str
    ) -> Optional["SettlementResult"]:
        return session.scalar(select(cls).where(cls.window_key == window_key))


class SettlementEntry(Base):
    """Snapshot of a winning ticket taken when the result was written.

    The snapshot keeps the numbers and owner so the result stays readable
    after the ticket itself is cleaned up.
    """

    __tablename__ = "settlement_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    result_id: Mapped[str] = mapped_column(
        ForeignKey("settlement_results.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tier: Mapped[str] = mapped_column(String(10), nullable=False)
    ticket_id: Mapped[int] = mapped_column(Integer, nullable=False)
    numbers: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    owner_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    result: Mapped["SettlementResult"] = relationship(back_populates="entries")

    __table_args__ = (
        CheckConstraint(
            "tier IN ('first','second','third','free')", name="tier_enum"
        ),
    )

    def __init__(
        self,
        *,
        tier: str,
        ticket_id: int,
        numbers: list[str],
        owner_key: str,
    ) -> None:
        self.tier = tier
        self.ticket_id = ticket_id
        self.numbers = list(numbers)
        self.owner_key = owner_key

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.ticket_id,
            "numbers": list(self.numbers),
            "owner_key": self.owner_key,
        }


__all__ = ["SettlementEntry", "SettlementResult", "TIER_NAMES"]
