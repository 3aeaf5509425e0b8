from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, Integer, JSON, String
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base
from ..db.utils import dt_iso

GAME_STATE_ID = 1


class GameState(Base):
    """Singleton row the presentation layer polls for the live countdown.

    Overwritten by every draw. Nothing in settlement reads it back.
    """

    __tablename__ = "game_state"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=GAME_STATE_ID)
    winning_symbols: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    next_draw_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    last_attempt_token: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    def to_json(self) -> dict[str, Any]:
        return {
            "winning_symbols": list(self.winning_symbols),
            "next_draw_at": dt_iso(self.next_draw_at),
            "updated_at": dt_iso(self.updated_at),
        }

    @classmethod
    def current(cls, session: Session) -> Optional["GameState"]:
        return session.get(cls, GAME_STATE_ID)


__all__ = ["GameState", "GAME_STATE_ID"]
