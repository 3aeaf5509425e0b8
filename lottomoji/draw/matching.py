"""Classification of a ticket against the winning symbols."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Sequence

from .symbols import TICKET_LENGTH


class PrizeTier(str, enum.Enum):
    """Prize tiers in payout order."""

    FIRST = "first"
    SECOND = "second"
    THIRD = "third"
    FREE = "free"


@dataclass(frozen=True)
class MatchOutcome:
    """Result of comparing one ticket with the winning symbols.

    Attributes
    ----------
    exact : int
        Symbols equal to the winning symbol at the same position.
    any_order : int
        Size of the multiset intersection of ticket and winning symbols.
    first : bool
        All four symbols in the drawn order.
    second : bool
        All four symbols, but not in the drawn order.
    third : bool
        Exactly three symbols in their drawn positions.
    free : bool
        Three symbols in any order, without three exact positions.
        Earns a bonus ticket.
    """

    exact: int = 0
    any_order: int = 0
    first: bool = False
    second: bool = False
    third: bool = False
    free: bool = False

    @property
    def tier(self) -> Optional[PrizeTier]:
        """Return the prize tier won, or ``None``."""
        if self.first:
            return PrizeTier.FIRST
        if self.second:
            return PrizeTier.SECOND
        if self.third:
            return PrizeTier.THIRD
        if self.free:
            return PrizeTier.FREE
        return None


NO_MATCH = MatchOutcome()


def count_exact(ticket: Sequence[str], winning: Sequence[str]) -> int:
    """Count positions where ``ticket`` and ``winning`` hold the same symbol."""
    return sum(1 for left, right in zip(ticket, winning) if left == right)


def count_any_order(ticket: Sequence[str], winning: Sequence[str]) -> int:
    """Count winning symbols matched by distinct ticket symbols.

    Each ticket symbol can satisfy one winning symbol only, so a symbol
    repeated in the winning sequence needs the same repetition on the ticket.
    """
    remaining = list(ticket)
    matched = 0
    for symbol in winning:
        if symbol in remaining:
            remaining.remove(symbol)
            matched += 1
    return matched


def evaluate(
    ticket: Optional[Sequence[str]], winning: Optional[Sequence[str]]
) -> MatchOutcome:
    """Classify ``ticket`` against ``winning``.

    Missing or wrong-length inputs produce :data:`NO_MATCH`; callers are
    expected to filter malformed tickets beforehand.
    """
    if ticket is None or winning is None:
        return NO_MATCH
    if len(ticket) != TICKET_LENGTH or len(winning) != TICKET_LENGTH:
        return NO_MATCH

    exact = count_exact(ticket, winning)
    any_order = count_any_order(ticket, winning)

    # exact == 4 implies any_order == 4 and exact == 3 implies any_order >= 3,
    # so the guards below keep the four flags mutually exclusive.
    return MatchOutcome(
        exact=exact,
        any_order=any_order,
        first=exact == 4,
        second=any_order == 4 and exact != 4,
        third=exact == 3,
        free=any_order == 3 and exact != 3,
    )


__all__ = [
    "MatchOutcome",
    "NO_MATCH",
    "PrizeTier",
    "count_any_order",
    "count_exact",
    "evaluate",
]
