import unittest
from collections import Counter

from rewardsdraw.drawing.ledger import (
    ensure_capacity,
    quantities_by_user,
    remaining_capacity,
    total_quantity,
)
from rewardsdraw.drawing.selection import (
    SeededUniformSource,
    SystemUniformSource,
    cumulative_bounds,
    locate,
    pick_weighted,
)
from rewardsdraw.exceptions import CapacityExceeded
from rewardsdraw.models import DrawingEntry


class CumulativeBoundsTests(unittest.TestCase):
    def test_bounds_and_locate(self):
        bounds = cumulative_bounds([2, 1, 3])
        self.assertEqual(bounds, [2, 3, 6])
        expected = [0, 0, 1, 2, 2, 2]
        self.assertEqual([locate(bounds, ticket) for ticket in range(6)], expected)

    def test_locate_outside_range(self):
        bounds = cumulative_bounds([1, 1])
        with self.assertRaises(ValueError):
            locate(bounds, 2)
        with self.assertRaises(ValueError):
            locate(bounds, -1)
        with self.assertRaises(ValueError):
            locate([], 0)

    def test_non_positive_weight(self):
        with self.assertRaises(ValueError):
            cumulative_bounds([1, 0])


class PickWeightedTests(unittest.TestCase):
    def test_empty_sequence(self):
        with self.assertRaises(ValueError):
            pick_weighted([], SeededUniformSource(1), weight=lambda item: 1)

    def test_single_item_always_wins(self):
        pick = pick_weighted(["only"], SystemUniformSource(), weight=lambda item: 5)
        self.assertEqual(pick.item, "only")
        self.assertEqual(pick.total, 5)
        self.assertTrue(0 <= pick.ticket < 5)

    def test_seeded_source_is_reproducible(self):
        items = [("a", 1), ("b", 2), ("c", 3)]

        def run(seed):
            source = SeededUniformSource(seed)
            return [
                pick_weighted(items, source, weight=lambda item: item[1]).item
                for _ in range(50)
            ]

        first = run(99)
        second = run(99)
        self.assertEqual(first, second)

    def test_quantity_weighted_fairness(self):
        items = [("A", 1), ("B", 3)]
        source = SeededUniformSource(2024)
        draws = 10_000
        wins = Counter(
            pick_weighted(items, source, weight=lambda item: item[1]).item[0]
            for _ in range(draws)
        )
        self.assertAlmostEqual(wins["B"] / draws, 0.75, delta=0.02)
        self.assertAlmostEqual(wins["A"] / draws, 0.25, delta=0.02)

    def test_sources_reject_empty_range(self):
        for source in (SystemUniformSource(), SeededUniformSource(3)):
            with self.subTest(source=type(source).__name__):
                with self.assertRaises(ValueError):
                    source.next(0)


class LedgerProjectionTests(unittest.TestCase):
    def test_totals(self):
        entries = [
            DrawingEntry(user_id=1, quantity=2),
            DrawingEntry(user_id=2, quantity=1),
            DrawingEntry(user_id=1, quantity=4),
        ]
        self.assertEqual(total_quantity(entries), 7)
        self.assertEqual(total_quantity([]), 0)
        self.assertEqual(quantities_by_user(entries), {1: 6, 2: 1})

    def test_capacity(self):
        self.assertIsNone(remaining_capacity(None, 100))
        self.assertEqual(remaining_capacity(5, 4), 1)
        ensure_capacity(None, 1000, 1)
        ensure_capacity(5, 4, 1)
        with self.assertRaises(CapacityExceeded):
            ensure_capacity(5, 4, 2)


if __name__ == "__main__":
    unittest.main()
