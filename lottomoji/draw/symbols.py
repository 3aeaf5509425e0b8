"""Catalog of drawable symbols and the uniform random draw over it."""

from __future__ import annotations

import random
import secrets
from typing import Iterable, Optional, Sequence

from ..models.ticket import TICKET_LENGTH

DEFAULT_SYMBOLS: tuple[str, ...] = (
    "🌟", "🎈", "🎨", "🌈", "🦄", "🍭", "🎪", "🎠", "🎡", "🎢",
    "🌺", "🦋", "🐬", "🌸", "🍦", "🎵", "🎯", "🌴", "🎩", "🎭",
    "🎁", "🎮", "🚀", "🌍", "🍀",
)


class SymbolPool:
    """Fixed, ordered catalog of symbols with sampling with replacement.

    Parameters
    ----------
    symbols : Iterable[str], default: DEFAULT_SYMBOLS
        Catalog to draw from. Duplicates are dropped, first occurrence wins.
        The catalog size sets the win odds, so keep it a constructor argument
        rather than baking it into the match rules.
    rng : Optional[random.Random], default: None
        Randomness source. ``None`` uses :mod:`secrets`; tests inject a
        seeded :class:`random.Random`.
    """

    def __init__(
        self,
        symbols: Iterable[str] = DEFAULT_SYMBOLS,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        catalog: list[str] = []
        for symbol in symbols:
            if not isinstance(symbol, str) or not symbol:
                raise ValueError("symbols must be non-empty strings")
            if symbol not in catalog:
                catalog.append(symbol)
        if not catalog:
            raise ValueError("symbol catalog must not be empty")
        self._symbols = tuple(catalog)
        self._rng = rng

    @property
    def symbols(self) -> tuple[str, ...]:
        return self._symbols

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._symbols

    def draw(self, n: int = TICKET_LENGTH) -> list[str]:
        """Return ``n`` symbols drawn uniformly and independently, with repetition."""
        if n < 0:
            raise ValueError("n must be non-negative")
        if self._rng is None:
            return [secrets.choice(self._symbols) for _ in range(n)]
        return [self._rng.choice(self._symbols) for _ in range(n)]

    def validate(self, numbers: Sequence[str]) -> list[str]:
        """Return ``numbers`` as a list if it is a full ticket from this catalog."""
        if isinstance(numbers, (str, bytes)) or len(numbers) != TICKET_LENGTH:
            raise ValueError(f"a ticket needs exactly {TICKET_LENGTH} symbols")
        unknown = [symbol for symbol in numbers if symbol not in self._symbols]
        if unknown:
            raise ValueError(f"symbols not in catalog: {unknown!r}")
        return list(numbers)


__all__ = ["DEFAULT_SYMBOLS", "SymbolPool", "TICKET_LENGTH"]
