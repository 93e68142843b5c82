"""
PURPOSE: Fit candidate price distributions by maximum likelihood and select by AIC.

RESPONSIBILITIES:
- Fit every family in DistributionKind to one category's price observations
- Score each fit with AIC = 2k - 2 logL and pick the minimum
- Recover from per-family numerical failure; fall back to a floored-variance Normal
- Build immutable CategoryStatistics snapshots from price/consumption history
- Single responsibility: fitting and selection only, no sampling
"""

import logging
import math
import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from grocery_risk import config
from grocery_risk.distributions import (
    DistributionKind,
    FAMILIES,
    log_likelihood,
    validate_params,
)
from grocery_risk.errors import (
    InsufficientDataError,
    InvalidConfigurationError,
    NumericalDegeneracyError,
)
from grocery_risk.models import CategoryStatistics

logger = logging.getLogger(__name__)

__all__ = [
    "FitResult",
    "FitSelection",
    "DistributionFitter",
    "fit_distribution",
    "fit_category",
    "fit_categories",
]


@dataclass(frozen=True)
class FitResult:
    """Outcome of fitting one family to a price sample."""
    kind: DistributionKind
    params: Tuple[float, ...]
    log_likelihood: float
    aic: float
    num_params: int
    fit_success: bool = True
    error: Optional[str] = None


@dataclass(frozen=True)
class FitSelection:
    """Selected family plus every candidate that was tried."""
    selected: FitResult
    candidates: List[FitResult] = field(default_factory=list)
    fallback: bool = False
    n: int = 0


def _aic(num_params: int, log_lik: float) -> float:
    return 2 * num_params - 2 * log_lik


def _failed(kind: DistributionKind, num_params: int, reason: str) -> FitResult:
    return FitResult(
        kind=kind,
        params=(),
        log_likelihood=-math.inf,
        aic=math.inf,
        num_params=num_params,
        fit_success=False,
        error=reason,
    )


class DistributionFitter:
    """
    Maximum-likelihood fitter over the closed set of price families.

    Candidates are tried in DistributionKind order. The minimum-AIC candidate
    wins; equal AIC prefers fewer parameters, then enumeration order.
    """

    def __init__(
        self,
        min_samples: int = config.MIN_FIT_SAMPLES,
        variance_floor: float = config.VARIANCE_FLOOR,
        strict: bool = False,
    ):
        """
        Initialize fitter.

        Args:
            min_samples: Minimum number of price observations (default 5)
            variance_floor: Variance used by the Normal fallback
            strict: Raise NumericalDegeneracyError instead of falling back
        """
        if min_samples < 1:
            raise InvalidConfigurationError(f"min_samples must be >= 1, got {min_samples}")
        if not variance_floor > 0:
            raise InvalidConfigurationError(f"variance_floor must be positive, got {variance_floor}")
        self.min_samples = min_samples
        self.variance_floor = variance_floor
        self.strict = strict

    def fit(self, prices: Sequence[float]) -> FitSelection:
        """
        Fit all candidate families and select one by AIC.

        Args:
            prices: Positive price observations for one category

        Returns:
            FitSelection with the selected fit and all candidates

        Raises:
            InsufficientDataError: Fewer than min_samples observations
            InvalidConfigurationError: Non-finite or non-positive observations
            NumericalDegeneracyError: Every candidate failed and strict=True
        """
        data = self._prepare(prices)
        degenerate = bool(np.ptp(data) == 0)

        candidates = []
        for kind, family in FAMILIES.items():
            if degenerate:
                candidates.append(_failed(kind, family.num_params, "zero-variance sample"))
                continue
            candidates.append(self._fit_one(kind, data))

        usable = [c for c in candidates if c.fit_success]
        if usable:
            order = list(DistributionKind)
            selected = min(usable, key=lambda c: (c.aic, c.num_params, order.index(c.kind)))
            logger.debug(
                "Selected %s (AIC %.3f) from %d usable candidate(s), n=%d",
                selected.kind.value, selected.aic, len(usable), len(data),
            )
            return FitSelection(selected=selected, candidates=candidates, fallback=False, n=len(data))

        reasons = "; ".join(f"{c.kind.value}: {c.error}" for c in candidates)
        if self.strict:
            raise NumericalDegeneracyError(f"no candidate distribution could be fitted ({reasons})")

        logger.warning("All candidate fits failed (%s); falling back to floored-variance Normal", reasons)
        return FitSelection(
            selected=self._normal_fallback(data),
            candidates=candidates,
            fallback=True,
            n=len(data),
        )

    def _prepare(self, prices: Sequence[float]) -> np.ndarray:
        data = np.asarray(prices, dtype=float).ravel()
        if data.size < self.min_samples:
            raise InsufficientDataError(
                f"need at least {self.min_samples} price observations, got {data.size}"
            )
        if not np.all(np.isfinite(data)):
            raise InvalidConfigurationError("price observations must be finite")
        if np.any(data <= 0):
            raise InvalidConfigurationError("price observations must be strictly positive")
        return data

    @staticmethod
    def _fit_one(kind: DistributionKind, data: np.ndarray) -> FitResult:
        family = FAMILIES[kind]
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", RuntimeWarning)
                params = validate_params(kind, family.fit(data))
                log_lik = log_likelihood(kind, params, data)
        except (ValueError, ArithmeticError, RuntimeError) as e:
            logger.debug("%s fit failed: %s", kind.value, e)
            return _failed(kind, family.num_params, str(e))

        aic = _aic(family.num_params, log_lik)
        if not (math.isfinite(log_lik) and math.isfinite(aic)):
            logger.debug("%s fit has non-finite likelihood (%s)", kind.value, log_lik)
            return _failed(kind, family.num_params, "non-finite log-likelihood")

        return FitResult(
            kind=kind,
            params=params,
            log_likelihood=log_lik,
            aic=aic,
            num_params=family.num_params,
        )

    def _normal_fallback(self, data: np.ndarray) -> FitResult:
        mean = float(np.mean(data))
        std = math.sqrt(max(float(np.var(data)), self.variance_floor))
        params = (mean, std)
        log_lik = log_likelihood(DistributionKind.NORMAL, params, data)
        return FitResult(
            kind=DistributionKind.NORMAL,
            params=params,
            log_likelihood=log_lik,
            aic=_aic(2, log_lik),
            num_params=2,
            error="fallback",
        )


def fit_distribution(prices: Sequence[float], strict: bool = False) -> FitSelection:
    """Module-level wrapper around DistributionFitter.fit with default limits."""
    return DistributionFitter(strict=strict).fit(prices)


def fit_category(
    category: str,
    prices: Sequence[float],
    consumption_mean: float,
    consumption_std: Optional[float] = None,
    fitter: Optional[DistributionFitter] = None,
) -> CategoryStatistics:
    """
    Fit a price model for one category and wrap it with consumption parameters.

    Args:
        category: Category identifier
        prices: Positive price observations
        consumption_mean: Mean units consumed per week
        consumption_std: Std of weekly units (None → 30% of mean)
        fitter: Optional pre-configured DistributionFitter

    Returns:
        Immutable CategoryStatistics
    """
    selection = (fitter or DistributionFitter()).fit(prices)
    chosen = selection.selected
    logger.info(
        "Category %r: %s%s with params %s (AIC %.3f, n=%d)",
        category,
        chosen.kind.value,
        " (fallback)" if selection.fallback else "",
        tuple(round(p, 4) for p in chosen.params),
        chosen.aic,
        selection.n,
    )
    return CategoryStatistics(
        category=category,
        distribution_kind=chosen.kind,
        distribution_params=chosen.params,
        consumption_mean=consumption_mean,
        consumption_std=consumption_std,
        aic_score=chosen.aic,
    )


def fit_categories(
    price_samples: Mapping[str, Sequence[float]],
    consumption: Mapping[str, Sequence[float]],
    fitter: Optional[DistributionFitter] = None,
) -> Tuple[CategoryStatistics, ...]:
    """
    Build a fresh category snapshot from cleaned history.

    Args:
        price_samples: category → positive price observations
        consumption: category → (mean,) or (mean, std) weekly units
        fitter: Optional pre-configured DistributionFitter

    Returns:
        Tuple of CategoryStatistics sorted by category identifier

    Raises:
        InvalidConfigurationError: Empty input or a category without consumption data
    """
    if not price_samples:
        raise InvalidConfigurationError("price_samples must contain at least one category")

    missing = sorted(set(price_samples) - set(consumption))
    if missing:
        raise InvalidConfigurationError(f"no consumption parameters for categories: {missing}")

    fitter = fitter or DistributionFitter()
    snapshot: Dict[str, CategoryStatistics] = {}
    for category in sorted(price_samples):
        params = tuple(consumption[category])
        if len(params) not in (1, 2):
            raise InvalidConfigurationError(
                f"consumption for {category!r} must be (mean,) or (mean, std), got {params}"
            )
        mean = params[0]
        std = params[1] if len(params) == 2 else None
        snapshot[category] = fit_category(category, price_samples[category], mean, std, fitter=fitter)

    return tuple(snapshot.values())
