from __future__ import annotations

import random
import unittest
from collections import Counter

from lottomoji.draw.symbols import DEFAULT_SYMBOLS, SymbolPool


class SymbolPoolTests(unittest.TestCase):
    def test_default_catalog_has_25_distinct_symbols(self) -> None:
        pool = SymbolPool()
        self.assertEqual(len(pool), 25)
        self.assertEqual(len(set(DEFAULT_SYMBOLS)), 25)
        self.assertIn("🍀", pool)

    def test_draw_returns_catalog_symbols(self) -> None:
        pool = SymbolPool()
        drawn = pool.draw(4)
        self.assertEqual(len(drawn), 4)
        for symbol in drawn:
            self.assertIn(symbol, pool.symbols)
        self.assertEqual(pool.draw(0), [])

    def test_draw_is_with_replacement(self) -> None:
        pool = SymbolPool(["a", "b"], rng=random.Random(7))
        drawn = pool.draw(50)
        counts = Counter(drawn)
        self.assertEqual(set(counts), {"a", "b"})
        self.assertEqual(sum(counts.values()), 50)

    def test_seeded_rng_is_deterministic(self) -> None:
        first = SymbolPool(rng=random.Random(42)).draw(8)
        second = SymbolPool(rng=random.Random(42)).draw(8)
        self.assertEqual(first, second)

    def test_empty_catalog_rejected(self) -> None:
        with self.assertRaises(ValueError):
            SymbolPool([])
        with self.assertRaises(ValueError):
            SymbolPool(["a", ""])

    def test_duplicates_are_dropped(self) -> None:
        pool = SymbolPool(["a", "b", "a"])
        self.assertEqual(pool.symbols, ("a", "b"))

    def test_negative_draw_rejected(self) -> None:
        with self.assertRaises(ValueError):
            SymbolPool().draw(-1)

    def test_validate(self) -> None:
        pool = SymbolPool()
        self.assertEqual(pool.validate(("🌟", "🎈", "🎨", "🌈")), ["🌟", "🎈", "🎨", "🌈"])
        with self.assertRaises(ValueError):
            pool.validate(["🌟", "🎈", "🎨"])
        with self.assertRaises(ValueError):
            pool.validate(["🌟", "🎈", "🎨", "Z"])
        with self.assertRaises(ValueError):
            pool.validate("abcd")


if __name__ == "__main__":
    unittest.main()
