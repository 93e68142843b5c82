"""
PURPOSE: Statistical validation of a simulated spending distribution.

RESPONSIBILITIES:
- Bootstrap confidence interval for the mean (one seeded sub-stream per resample)
- Two-sample Kolmogorov-Smirnov goodness of fit against observed monthly totals
- Convergence diagnostic on the P95 over growing prefixes of the trial sequence
- Single responsibility: validation only, no simulation, no risk metrics
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
from pydantic import BaseModel
from scipy.stats import kstwobign

from grocery_risk import config
from grocery_risk.errors import InsufficientDataError, InvalidConfigurationError
from grocery_risk.models import SimulationRun
from grocery_risk.simulation import substream

logger = logging.getLogger(__name__)


class BootstrapResult(BaseModel):
    """Percentile bootstrap interval for the mean."""
    estimate: float
    lower: float
    upper: float
    confidence: float
    n_bootstrap: int

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper

    def to_dict(self) -> dict:
        return self.model_dump()


class GoodnessOfFitResult(BaseModel):
    """Two-sample KS statistic D and its asymptotic p-value."""
    statistic: float
    p_value: float
    n_simulated: int
    n_actual: int

    def to_dict(self) -> dict:
        return self.model_dump()


class ConvergenceResult(BaseModel):
    """P95 trace over prefixes of length window_size, 2*window_size, ..."""
    window_size: int
    prefix_sizes: List[int]
    p95_trace: List[float]
    relative_change: Optional[float] = None
    converged: bool = False

    def to_dict(self) -> dict:
        return self.model_dump()


class ValidationReport(BaseModel):
    bootstrap: BootstrapResult
    goodness_of_fit: GoodnessOfFitResult
    convergence: ConvergenceResult
    complete: bool = True

    def to_dict(self) -> dict:
        return self.model_dump()


def _as_sample(data: Sequence[float], name: str) -> np.ndarray:
    values = np.asarray(data, dtype=float).ravel()
    if not np.all(np.isfinite(values)):
        raise InvalidConfigurationError(f"{name} must be finite")
    return values


def bootstrap_ci(
    data: Sequence[float],
    n_bootstrap: int = config.BOOTSTRAP_RESAMPLES,
    confidence: float = config.BOOTSTRAP_CONFIDENCE,
    seed: int = config.RANDOM_SEED,
) -> BootstrapResult:
    """
    Percentile bootstrap confidence interval for the mean.

    Resample i draws len(data) indices with replacement from its own
    bootstrap sub-stream (seed, i), separate from the trial stream with the
    same index, so the interval does not depend on evaluation order.

    Args:
        data: Sample to resample
        n_bootstrap: Number of resamples
        confidence: Interval coverage in (0, 1)
        seed: Base seed

    Returns:
        BootstrapResult with the [alpha/2, 1 - alpha/2] percentiles of the
        resample means, alpha = 1 - confidence

    Raises:
        InsufficientDataError: Empty data
        InvalidConfigurationError: n_bootstrap < 1 or confidence outside (0, 1)
    """
    values = _as_sample(data, "data")
    if values.size == 0:
        raise InsufficientDataError("bootstrap needs at least one observation")
    if n_bootstrap < 1:
        raise InvalidConfigurationError(f"n_bootstrap must be >= 1, got {n_bootstrap}")
    if not 0 < confidence < 1:
        raise InvalidConfigurationError(f"confidence must be in (0, 1), got {confidence}")

    n = values.size
    means = np.empty(n_bootstrap)
    for i in range(n_bootstrap):
        idx = substream(seed, i, domain=config.STREAM_BOOTSTRAP).integers(0, n, size=n)
        means[i] = np.mean(values[idx])

    alpha = 1.0 - confidence
    lower, upper = np.percentile(means, [100 * alpha / 2, 100 * (1 - alpha / 2)], method="linear")
    return BootstrapResult(
        estimate=float(np.mean(values)),
        lower=float(lower),
        upper=float(upper),
        confidence=float(confidence),
        n_bootstrap=int(n_bootstrap),
    )


def ks_statistic(simulated: Sequence[float], actual: Sequence[float]) -> float:
    """D = max_x |F_sim(x) - F_actual(x)| over the merged, sorted samples."""
    sim = np.sort(_as_sample(simulated, "simulated"))
    act = np.sort(_as_sample(actual, "actual"))
    merged = np.concatenate([sim, act])
    cdf_sim = np.searchsorted(sim, merged, side="right") / sim.size
    cdf_act = np.searchsorted(act, merged, side="right") / act.size
    return float(np.max(np.abs(cdf_sim - cdf_act)))


def goodness_of_fit(simulated: Sequence[float], actual: Sequence[float]) -> GoodnessOfFitResult:
    """
    Two-sample Kolmogorov-Smirnov test.

    The p-value uses the asymptotic Kolmogorov distribution evaluated at
    sqrt(n*m / (n+m)) * D.

    Raises:
        InsufficientDataError: Either sample has fewer than 2 points
    """
    sim = _as_sample(simulated, "simulated")
    act = _as_sample(actual, "actual")
    if sim.size < 2 or act.size < 2:
        raise InsufficientDataError(
            f"KS test needs at least 2 points per sample, got {sim.size} simulated and {act.size} actual"
        )

    d = ks_statistic(sim, act)
    en = math.sqrt(sim.size * act.size / (sim.size + act.size))
    p_value = float(min(1.0, max(0.0, kstwobign.sf(en * d))))
    return GoodnessOfFitResult(statistic=d, p_value=p_value, n_simulated=int(sim.size), n_actual=int(act.size))


def convergence_check(
    totals: Sequence[float],
    window_size: int = config.CONVERGENCE_WINDOW,
    tolerance: float = config.CONVERGENCE_TOLERANCE,
) -> ConvergenceResult:
    """
    Track P95 over growing prefixes and flag convergence.

    Prefixes are window_size, 2*window_size, ... plus the full length when it
    is not a multiple. Converged once the relative P95 change between the last
    two prefixes is below tolerance; fewer than two prefixes never converge.
    """
    data = _as_sample(totals, "totals")
    if window_size < 1:
        raise InvalidConfigurationError(f"window_size must be >= 1, got {window_size}")
    if data.size == 0:
        raise InsufficientDataError("convergence check needs at least one trial")

    sizes = list(range(window_size, data.size + 1, window_size))
    if not sizes or sizes[-1] != data.size:
        sizes.append(data.size)
    trace = [float(np.percentile(data[:k], config.CONVERGENCE_PERCENTILE, method="linear")) for k in sizes]

    relative_change = None
    converged = False
    if len(trace) >= 2:
        previous, last = trace[-2], trace[-1]
        if previous != 0:
            relative_change = abs(last - previous) / abs(previous)
        else:
            relative_change = 0.0 if last == 0 else math.inf
        converged = relative_change < tolerance

    return ConvergenceResult(
        window_size=int(window_size),
        prefix_sizes=sizes,
        p95_trace=trace,
        relative_change=relative_change,
        converged=converged,
    )


class ValidationSuite:
    """Runs bootstrap, goodness of fit and convergence checks against one run."""

    def __init__(
        self,
        n_bootstrap: int = config.BOOTSTRAP_RESAMPLES,
        confidence: float = config.BOOTSTRAP_CONFIDENCE,
        window_size: int = config.CONVERGENCE_WINDOW,
        seed: Optional[int] = None,
    ):
        self.n_bootstrap = n_bootstrap
        self.confidence = confidence
        self.window_size = window_size
        self.seed = seed

    def validate(self, run: SimulationRun, actual_data: Sequence[float]) -> ValidationReport:
        if not run.completed:
            logger.warning(
                "Validating a partial run (%d of %d trials)", run.size, run.requested_iterations
            )
        seed = self.seed if self.seed is not None else run.config.seed
        report = ValidationReport(
            bootstrap=bootstrap_ci(run.totals, self.n_bootstrap, self.confidence, seed=seed),
            goodness_of_fit=goodness_of_fit(run.totals, actual_data),
            convergence=convergence_check(run.totals, self.window_size),
            complete=run.completed,
        )
        logger.info(
            "Validation: KS D=%.4f (p=%.4f), P95 converged=%s",
            report.goodness_of_fit.statistic,
            report.goodness_of_fit.p_value,
            report.convergence.converged,
        )
        return report
