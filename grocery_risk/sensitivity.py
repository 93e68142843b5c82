"""
PURPOSE: Sensitivity of overspend risk to budget and price inflation, and category drivers.

This module sweeps a budget × inflation grid over baseline trial totals and
reports the overspend probability for every cell. It also ranks which
categories drive the variance of total spending (first-order, covariance-based).

SRP/DRY: Single responsibility = sensitivity analysis only.
         No simulation, no formatting. Baseline totals are never modified.
"""

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Sequence

import numpy as np

from grocery_risk.errors import InsufficientDataError, InvalidConfigurationError
from grocery_risk.models import SimulationRun
from grocery_risk.risk import overspend_probability

logger = logging.getLogger(__name__)


def _as_range(values: Sequence[float], name: str) -> np.ndarray:
    grid = np.asarray(values, dtype=float).ravel()
    if grid.size == 0:
        raise InvalidConfigurationError(f"{name} must not be empty")
    if not np.all(np.isfinite(grid)):
        raise InvalidConfigurationError(f"{name} must be finite")
    if grid.size > 1 and not np.all(np.diff(grid) > 0):
        raise InvalidConfigurationError(f"{name} must be strictly increasing, got {grid.tolist()}")
    return grid


@dataclass(frozen=True)
class SensitivityMatrix:
    """Overspend probability for every (budget, inflation) pair.

    Attributes:
        budgets (ndarray): Budget axis (rows), strictly increasing.
        inflations (ndarray): Inflation percentages (columns), strictly increasing.
        risk (ndarray): risk[i, j] = P(total * (1 + inflations[j]/100) > budgets[i]).
    """
    budgets: np.ndarray
    inflations: np.ndarray
    risk: np.ndarray

    def risk_at(self, budget: float, inflation: float) -> float:
        """Look up one cell; both keys must be on the grid."""
        rows = np.flatnonzero(self.budgets == budget)
        cols = np.flatnonzero(self.inflations == inflation)
        if rows.size == 0 or cols.size == 0:
            raise KeyError((budget, inflation))
        return float(self.risk[rows[0], cols[0]])

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "budgets": self.budgets.tolist(),
            "inflations": self.inflations.tolist(),
            "risk": self.risk.tolist(),
        }

    def to_dataframe_compatible(self) -> Dict[str, List]:
        """
        Long-format columns compatible with pandas/CSV.

        Returns:
            Dictionary with keys as column names, values as lists (one per cell).
        """
        budgets, inflations = np.meshgrid(self.budgets, self.inflations, indexing="ij")
        return {
            "budget": budgets.ravel().tolist(),
            "inflation_pct": inflations.ravel().tolist(),
            "overspend_probability": self.risk.ravel().tolist(),
        }


@dataclass
class SensitivityDriver:
    """One category's first-order share of the variance of the monthly total."""
    category: str
    variance_share: float  # Cov(cost, total) / Var(total), clipped to [0, 1]
    covariance: float
    rank: int  # 1 = largest share

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SensitivityAnalyzer:
    """
    Budget × inflation risk surfaces and category driver ranking.

    Each grid cell is independent: the baseline totals are scaled into a new
    array per inflation level and compared against every budget.
    """

    def __init__(self, top_n: int = 10):
        """
        Initialize analyzer.

        Args:
            top_n: Number of top category drivers to return (default 10).
        """
        self.top_n = top_n

    def sweep(
        self,
        totals: Sequence[float],
        budgets: Sequence[float],
        inflations: Sequence[float],
    ) -> SensitivityMatrix:
        """
        Compute the overspend probability for every (budget, inflation) pair.

        Args:
            totals: Baseline monthly totals
            budgets: Strictly increasing budgets
            inflations: Strictly increasing inflation percentages (> -100)

        Returns:
            SensitivityMatrix with risk of shape (len(budgets), len(inflations))

        Raises:
            InsufficientDataError: Empty totals
            InvalidConfigurationError: Empty, non-finite or unordered ranges
        """
        baseline = np.asarray(totals, dtype=float).ravel()
        if baseline.size == 0:
            raise InsufficientDataError("totals must contain at least one trial")
        budget_grid = _as_range(budgets, "budget range")
        inflation_grid = _as_range(inflations, "inflation range")
        if np.any(inflation_grid <= -100):
            raise InvalidConfigurationError("inflation percentages must be greater than -100")

        risk = np.empty((budget_grid.size, inflation_grid.size))
        for j, inflation in enumerate(inflation_grid):
            scaled = baseline * (1.0 + inflation / 100.0)
            for i, budget in enumerate(budget_grid):
                risk[i, j] = overspend_probability(scaled, budget)

        logger.debug("Sensitivity sweep: %d budgets x %d inflation levels", budget_grid.size, inflation_grid.size)
        return SensitivityMatrix(budgets=budget_grid, inflations=inflation_grid, risk=risk)

    def rank_category_drivers(self, run: SimulationRun) -> List[SensitivityDriver]:
        """
        Rank categories by their contribution to the variance of the monthly total.

        Var(total) = sum_c Cov(cost_c, total), so each category's covariance
        with the total is its first-order share.

        Raises:
            InvalidConfigurationError: Run recorded without the per-category breakdown
            InsufficientDataError: Fewer than 2 trials
        """
        if run.category_totals is None:
            raise InvalidConfigurationError("run has no per-category breakdown; use record_breakdown=True")
        breakdown = run.category_totals
        if breakdown.shape[0] < 2:
            raise InsufficientDataError("driver ranking needs at least 2 trials")

        total = breakdown.sum(axis=1)
        total_variance = float(np.var(total))
        centered_total = total - total.mean()
        contributions = [
            float(np.mean((breakdown[:, c] - breakdown[:, c].mean()) * centered_total))
            for c in range(breakdown.shape[1])
        ]

        ranked = sorted(zip(run.category_names, contributions), key=lambda x: x[1], reverse=True)
        results = []
        for rank, (category, contribution) in enumerate(ranked[: self.top_n], 1):
            if total_variance < 1e-10 or not math.isfinite(contribution):
                share = 0.0
            else:
                share = min(1.0, max(0.0, contribution / total_variance))
            results.append(
                SensitivityDriver(
                    category=category,
                    variance_share=share,
                    covariance=contribution,
                    rank=rank,
                )
            )
        return results
