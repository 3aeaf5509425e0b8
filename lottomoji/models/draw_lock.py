from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class LockState(str, enum.Enum):
    """Persisted states of a draw lock. A missing row means uninitialized."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class DrawLock(Base):
    """Per-window mutual exclusion record for draw attempts.

    Only the attempt holding ``owner_token`` may move the row out of
    ``in_progress``. Rows are never deleted so failures stay diagnosable.
    """

    __tablename__ = "draw_locks"

    window_key: Mapped[str] = mapped_column(String(16), primary_key=True)
    state: Mapped[str] = mapped_column(String(20), nullable=False)
    owner_token: Mapped[str] = mapped_column(String(64), nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    result_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "state IN ('in_progress','completed','failed')", name="state_enum"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<DrawLock(window_key={self.window_key}, state='{self.state}', "
            f"owner_token={self.owner_token}, result_id={self.result_id})>"
        )


__all__ = ["DrawLock", "LockState"]
