"""
PURPOSE: Draw one simulated month of grocery spending from fitted category models.

RESPONSIBILITIES:
- Sample weekly units consumed (Normal, truncated at zero) per category
- Sample weekly unit prices from each category's fitted distribution
- Aggregate week → category → month total
- Single responsibility: one trial only; the caller owns the Generator and its seeding
"""

from typing import Sequence, Tuple

import numpy as np

from grocery_risk.distributions import sample_prices
from grocery_risk.models import CategoryStatistics


class SpendingSampler:
    """Samples monthly spending totals for a fixed category set."""

    def __init__(self, categories: Sequence[CategoryStatistics], weeks_per_month: int):
        """
        Initialize sampler.

        Args:
            categories: Category set to simulate (order fixes the draw order)
            weeks_per_month: Weeks per simulated month
        """
        self.categories = tuple(categories)
        self.weeks_per_month = int(weeks_per_month)

    def sample_week_draws(
        self, category: CategoryStatistics, rng: np.random.Generator
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Draw weekly units and unit prices for one category.

        Negative unit draws are clipped to zero rather than re-drawn.

        Returns:
            (units, prices), each of shape (weeks_per_month,)
        """
        units = rng.normal(
            loc=category.consumption_mean,
            scale=category.consumption_std,
            size=self.weeks_per_month,
        )
        units = np.maximum(units, 0.0)
        prices = sample_prices(
            category.distribution_kind,
            category.distribution_params,
            rng,
            size=self.weeks_per_month,
        )
        return units, prices

    def sample_month_breakdown(self, rng: np.random.Generator) -> np.ndarray:
        """Monthly cost per category, in category order."""
        costs = np.empty(len(self.categories))
        for idx, category in enumerate(self.categories):
            units, prices = self.sample_week_draws(category, rng)
            costs[idx] = float(np.sum(units * prices))
        return costs

    def sample_month(self, rng: np.random.Generator) -> float:
        """Total spending for one simulated month."""
        return float(np.sum(self.sample_month_breakdown(rng)))


def sample_month(
    categories: Sequence[CategoryStatistics],
    weeks_per_month: int,
    rng: np.random.Generator,
) -> float:
    """Module-level wrapper for one month's total."""
    return SpendingSampler(categories, weeks_per_month).sample_month(rng)
