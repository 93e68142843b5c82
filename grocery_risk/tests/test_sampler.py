"""
Unit tests for the single-month spending sampler.

STRATEGY:
    1. Property: for randomized valid statistics, every unit and price draw is >= 0
    2. Determinism: identical Generator seed reproduces the total bit-for-bit
    3. Aggregation: breakdown sums to the total, zero consumption gives zero spend
    4. Statistics: mean monthly total close to weeks * E[units] * E[price]
"""

import math
import unittest

import numpy as np

from grocery_risk.distributions import DistributionKind
from grocery_risk.errors import InvalidConfigurationError
from grocery_risk.models import CategoryStatistics
from grocery_risk.sampler import SpendingSampler, sample_month


def _random_statistics(rng: np.random.Generator, idx: int) -> CategoryStatistics:
    kind = list(DistributionKind)[idx % 4]
    if kind is DistributionKind.LOGNORMAL:
        params = (rng.uniform(-1.0, 3.0), rng.uniform(0.05, 1.5))
    elif kind is DistributionKind.GAMMA:
        params = (rng.uniform(0.2, 10.0), rng.uniform(0.1, 5.0))
    elif kind is DistributionKind.NORMAL:
        # Small means with wide spread force truncation.
        params = (rng.uniform(0.0, 5.0), rng.uniform(0.5, 5.0))
    else:
        params = (rng.uniform(0.1, 10.0),)
    mean = rng.uniform(0.0, 5.0)
    return CategoryStatistics(
        category=f"cat_{idx}",
        distribution_kind=kind,
        distribution_params=params,
        consumption_mean=mean,
        consumption_std=rng.uniform(0.0, 3.0 * mean + 0.5),
    )


class TestNonNegativeDraws(unittest.TestCase):
    """Property-based checks over randomized statistics."""

    def test_units_and_prices_never_negative(self):
        rng = np.random.default_rng(2024)
        for idx in range(200):
            stats = _random_statistics(rng, idx)
            sampler = SpendingSampler([stats], weeks_per_month=4)
            units, prices = sampler.sample_week_draws(stats, np.random.default_rng(idx))
            with self.subTest(stats=stats):
                self.assertEqual(units.shape, (4,))
                self.assertEqual(prices.shape, (4,))
                self.assertTrue(np.all(units >= 0.0))
                self.assertTrue(np.all(prices >= 0.0))

    def test_monthly_total_never_negative(self):
        rng = np.random.default_rng(99)
        categories = [_random_statistics(rng, idx) for idx in range(12)]
        sampler = SpendingSampler(categories, weeks_per_month=4)
        gen = np.random.default_rng(5)
        totals = [sampler.sample_month(gen) for _ in range(500)]
        self.assertTrue(all(t >= 0.0 for t in totals))


class TestSpendingSampler(unittest.TestCase):
    """Test aggregation and determinism."""

    def setUp(self):
        self.produce = CategoryStatistics(
            category="Produce",
            distribution_kind=DistributionKind.LOGNORMAL,
            distribution_params=(2.0, 0.3),
            consumption_mean=3.0,
            consumption_std=0.9,
        )
        self.dairy = CategoryStatistics(
            category="Dairy",
            distribution_kind=DistributionKind.GAMMA,
            distribution_params=(9.0, 0.5),
            consumption_mean=2.0,
        )
        self.sampler = SpendingSampler([self.produce, self.dairy], weeks_per_month=4)

    def test_identical_seed_reproduces_total_exactly(self):
        a = self.sampler.sample_month(np.random.default_rng(42))
        b = self.sampler.sample_month(np.random.default_rng(42))
        self.assertEqual(a, b)

    def test_different_seed_changes_total(self):
        a = self.sampler.sample_month(np.random.default_rng(42))
        b = self.sampler.sample_month(np.random.default_rng(43))
        self.assertNotEqual(a, b)

    def test_breakdown_sums_to_total(self):
        breakdown = self.sampler.sample_month_breakdown(np.random.default_rng(1))
        total = self.sampler.sample_month(np.random.default_rng(1))
        self.assertEqual(breakdown.shape, (2,))
        self.assertAlmostEqual(float(breakdown.sum()), total)

    def test_zero_consumption_spends_nothing(self):
        idle = CategoryStatistics(
            category="Snacks",
            distribution_kind=DistributionKind.EXPONENTIAL,
            distribution_params=(4.0,),
            consumption_mean=0.0,
        )
        self.assertEqual(sample_month([idle], 4, np.random.default_rng(0)), 0.0)

    def test_mean_total_matches_expectation(self):
        """E[month] = weeks * E[units] * E[price] when units barely truncate."""
        stats = CategoryStatistics(
            category="Produce",
            distribution_kind=DistributionKind.LOGNORMAL,
            distribution_params=(2.0, 0.3),
            consumption_mean=10.0,
            consumption_std=1.0,
        )
        sampler = SpendingSampler([stats], weeks_per_month=4)
        gen = np.random.default_rng(8)
        totals = np.array([sampler.sample_month(gen) for _ in range(5000)])
        expected = 4 * 10.0 * math.exp(2.0 + 0.045)
        self.assertAlmostEqual(np.mean(totals), expected, delta=0.02 * expected)

    def test_weeks_per_month_scales_draw_count(self):
        sampler = SpendingSampler([self.produce], weeks_per_month=5)
        units, prices = sampler.sample_week_draws(self.produce, np.random.default_rng(0))
        self.assertEqual(units.shape, (5,))
        self.assertEqual(prices.shape, (5,))


class TestCategoryStatistics(unittest.TestCase):
    """Test invariants of the category value type."""

    def test_consumption_std_default(self):
        stats = CategoryStatistics("Bakery", DistributionKind.NORMAL, (3.0, 0.5), consumption_mean=4.0)
        self.assertAlmostEqual(stats.consumption_std, 1.2)

    def test_kind_accepts_string_value(self):
        stats = CategoryStatistics("Bakery", "Exponential", [3.0], consumption_mean=1.0)
        self.assertIs(stats.distribution_kind, DistributionKind.EXPONENTIAL)
        self.assertEqual(stats.distribution_params, (3.0,))

    def test_invalid_params_raise(self):
        with self.assertRaises(InvalidConfigurationError):
            CategoryStatistics("Bakery", DistributionKind.GAMMA, (0.0, 1.0), consumption_mean=1.0)

    def test_negative_consumption_raises(self):
        with self.assertRaises(InvalidConfigurationError):
            CategoryStatistics("Bakery", DistributionKind.NORMAL, (3.0, 0.5), consumption_mean=-1.0)
        with self.assertRaises(InvalidConfigurationError):
            CategoryStatistics(
                "Bakery", DistributionKind.NORMAL, (3.0, 0.5), consumption_mean=1.0, consumption_std=-0.1
            )

    def test_empty_category_raises(self):
        with self.assertRaises(InvalidConfigurationError):
            CategoryStatistics("", DistributionKind.NORMAL, (3.0, 0.5), consumption_mean=1.0)

    def test_unknown_kind_or_malformed_values_raise_configuration_error(self):
        with self.assertRaises(InvalidConfigurationError):
            CategoryStatistics("Bakery", "bogus", (3.0, 0.5), consumption_mean=1.0)
        with self.assertRaises(InvalidConfigurationError):
            CategoryStatistics("Bakery", DistributionKind.NORMAL, None, consumption_mean=1.0)
        with self.assertRaises(InvalidConfigurationError):
            CategoryStatistics("Bakery", DistributionKind.NORMAL, (3.0, 0.5), consumption_mean="4")

    def test_to_dict(self):
        stats = CategoryStatistics("Bakery", DistributionKind.NORMAL, (3.0, 0.5), consumption_mean=4.0)
        payload = stats.to_dict()
        self.assertEqual(payload["distribution_kind"], "Normal")
        self.assertEqual(payload["distribution_params"], [3.0, 0.5])


if __name__ == "__main__":
    unittest.main()
