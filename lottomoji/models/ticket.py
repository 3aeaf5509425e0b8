"""Ticket rows submitted by players or issued as free-tier bonuses."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import Base
from ..db.utils import dt_iso

TICKET_LENGTH = 4
"""Number of symbols on every ticket and in every winning sequence."""


class Ticket(Base):
    """A 4-symbol entry into every draw that settles while it is stored."""

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    """Store-assigned primary key."""

    numbers: Mapped[Any] = mapped_column(JSON, nullable=False)
    """Ordered list of symbols. Read through the store decoder, never trusted raw."""

    owner_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    """Account or wallet identifier of the ticket holder."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Timestamp when the ticket was created."""

    is_bonus: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    """``True`` when the ticket was issued as a free-tier reward."""

    won_from_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tickets.id", ondelete="SET NULL"), nullable=True
    )
    """Ticket whose free-tier win produced this bonus ticket."""

    won_from: Mapped[Optional["Ticket"]] = relationship(remote_side=[id])

    __table_args__ = (Index("ix_tickets_created_at", "created_at"),)

    def __init__(
        self,
        *,
        numbers: list[str],
        owner_key: str,
        is_bonus: bool = False,
        won_from_id: Optional[int] = None,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.numbers = list(numbers)
        self.owner_key = owner_key
        self.is_bonus = is_bonus
        self.won_from_id = won_from_id
        if created_at is not None:
            self.created_at = created_at

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Ticket(id={id}, owner_key={owner}, numbers={numbers}, is_bonus={bonus})>".format(
            id=self.id,
            owner=self.owner_key,
            numbers=self.numbers,
            bonus=self.is_bonus,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "numbers": self.numbers,
            "owner_key": self.owner_key,
            "created_at": dt_iso(self.created_at),
            "is_bonus": self.is_bonus,
            "won_from": self.won_from_id,
        }

    @classmethod
    def for_owner(cls, session: Session, owner_key: str) -> list["Ticket"]:
        """Return the tickets held by ``owner_key``, newest first."""

        stmt = (
            select(cls)
            .where(cls.owner_key == owner_key)
            .order_by(cls.created_at.desc(), cls.id.desc())
        )
        return list(session.scalars(stmt).all())


__all__ = ["Ticket", "TICKET_LENGTH"]
