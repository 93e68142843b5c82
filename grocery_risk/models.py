"""
PURPOSE: Immutable value types shared by fitting, sampling and the simulation engine.

RESPONSIBILITIES:
- CategoryStatistics: fitted price model + weekly consumption for one category
- SimulationConfig: budget, iteration count, weeks per month, seed, category set
- SimulationRun: the ordered trial totals produced by one engine run
- Single responsibility: data only; no sampling, no I/O
"""

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from grocery_risk import config
from grocery_risk.distributions import DistributionKind, validate_params
from grocery_risk.errors import InvalidConfigurationError


def _is_number(value) -> bool:
    return not isinstance(value, bool) and isinstance(value, (int, float, np.integer, np.floating))


@dataclass(frozen=True)
class CategoryStatistics:
    """Fitted price model and consumption parameters for one grocery category.

    Attributes:
        category (str): Category identifier (e.g. "Produce").
        distribution_kind (DistributionKind): Selected price family.
        distribution_params (tuple): Family parameters, see distributions.py.
        aic_score (float): AIC of the selected fit (nan when built by hand).
        consumption_mean (float): Mean units consumed per week.
        consumption_std (float): Std of weekly units; defaults to
            CONSUMPTION_STD_RATIO * consumption_mean when not given.
    """
    category: str
    distribution_kind: DistributionKind
    distribution_params: Tuple[float, ...]
    consumption_mean: float
    consumption_std: Optional[float] = None
    aic_score: float = math.nan

    def __post_init__(self):
        if not self.category:
            raise InvalidConfigurationError("category identifier must be non-empty")
        try:
            kind = DistributionKind(self.distribution_kind)
            params = validate_params(kind, self.distribution_params)
        except (ValueError, TypeError) as e:
            raise InvalidConfigurationError(f"category {self.category!r}: {e}") from e

        mean = self.consumption_mean
        if not _is_number(mean) or not math.isfinite(mean) or mean < 0:
            raise InvalidConfigurationError(
                f"category {self.category!r}: consumption_mean must be finite and non-negative, "
                f"got {self.consumption_mean}"
            )
        std = self.consumption_std
        if std is None:
            std = config.CONSUMPTION_STD_RATIO * self.consumption_mean
        if not _is_number(std) or not math.isfinite(std) or std < 0:
            raise InvalidConfigurationError(
                f"category {self.category!r}: consumption_std must be finite and non-negative, got {std}"
            )

        # Frozen dataclass: normalise through object.__setattr__.
        object.__setattr__(self, "distribution_kind", kind)
        object.__setattr__(self, "distribution_params", params)
        object.__setattr__(self, "consumption_mean", float(self.consumption_mean))
        object.__setattr__(self, "consumption_std", float(std))

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            "category": self.category,
            "distribution_kind": self.distribution_kind.value,
            "distribution_params": list(self.distribution_params),
            "aic_score": self.aic_score,
            "consumption_mean": self.consumption_mean,
            "consumption_std": self.consumption_std,
        }


@dataclass(frozen=True)
class SimulationConfig:
    """Inputs for one Monte Carlo run.

    Attributes:
        budget (float): Monthly grocery budget.
        categories (tuple): Non-empty tuple of CategoryStatistics.
        iterations (int): Number of trials N (>= 1).
        weeks_per_month (int): Weeks simulated per month.
        seed (int): Base seed; trial i uses the sub-stream keyed by i.
    """
    budget: float
    categories: Tuple[CategoryStatistics, ...]
    iterations: int = config.NUM_RUNS
    weeks_per_month: int = config.WEEKS_PER_MONTH
    seed: int = config.RANDOM_SEED

    def __post_init__(self):
        object.__setattr__(self, "categories", tuple(self.categories))

    def validate(self) -> None:
        """Raise InvalidConfigurationError if the config cannot drive a run."""
        if isinstance(self.iterations, bool) or not isinstance(self.iterations, (int, np.integer)):
            raise InvalidConfigurationError(f"iterations must be an integer, got {self.iterations!r}")
        if self.iterations < 1:
            raise InvalidConfigurationError(f"iterations must be >= 1, got {self.iterations}")
        if not self.categories:
            raise InvalidConfigurationError("category set must not be empty")
        if not all(isinstance(c, CategoryStatistics) for c in self.categories):
            raise InvalidConfigurationError("categories must be CategoryStatistics instances")
        names = [c.category for c in self.categories]
        if len(set(names)) != len(names):
            raise InvalidConfigurationError(f"duplicate category identifiers: {names}")
        if not isinstance(self.weeks_per_month, (int, np.integer)) or self.weeks_per_month < 1:
            raise InvalidConfigurationError(
                f"weeks_per_month must be a positive integer, got {self.weeks_per_month!r}"
            )
        if not _is_number(self.budget) or not math.isfinite(self.budget):
            raise InvalidConfigurationError(f"budget must be a finite number, got {self.budget!r}")
        if isinstance(self.seed, bool) or not isinstance(self.seed, (int, np.integer)) or self.seed < 0:
            raise InvalidConfigurationError(f"seed must be a non-negative integer, got {self.seed!r}")


@dataclass(frozen=True)
class SimulationRun:
    """Ordered monthly totals from one engine run (position = trial index).

    A cancelled run holds only the finished prefix of trials and has
    completed=False. Arrays are flagged read-only.
    """
    config: SimulationConfig
    totals: np.ndarray
    requested_iterations: int
    completed: bool = True
    category_totals: Optional[np.ndarray] = field(default=None, repr=False)

    def __post_init__(self):
        totals = np.array(self.totals, dtype=float)
        totals.setflags(write=False)
        object.__setattr__(self, "totals", totals)
        if self.category_totals is not None:
            breakdown = np.array(self.category_totals, dtype=float)
            breakdown.setflags(write=False)
            object.__setattr__(self, "category_totals", breakdown)

    @property
    def size(self) -> int:
        return int(self.totals.shape[0])

    @property
    def category_names(self) -> Tuple[str, ...]:
        return tuple(c.category for c in self.config.categories)

    def require_complete(self) -> "SimulationRun":
        """Return self, or raise if the run was cancelled before all trials finished."""
        if not self.completed:
            raise InvalidConfigurationError(
                f"run is partial: {self.size} of {self.requested_iterations} trials completed"
            )
        return self
