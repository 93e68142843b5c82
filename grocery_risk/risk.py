"""
PURPOSE: Risk metrics over simulated monthly totals.

This module turns the raw trial totals into percentiles, Value at Risk,
Conditional Value at Risk and the probability of overspending a budget, and
classifies the overspend probability into a LOW / MODERATE / HIGH risk level.

SRP/DRY: Single responsibility = risk metrics only.
         Pure functions over a totals sequence; no simulation, no hidden state.
"""

import math
from typing import Dict, Optional, Sequence

import numpy as np
from pydantic import BaseModel

from grocery_risk import config
from grocery_risk.errors import InsufficientDataError, InvalidConfigurationError


class RiskReport(BaseModel):
    """Risk metrics for one budget and confidence level.

    Attributes:
        budget: Budget the overspend probability is measured against.
        alpha: Confidence level used for VaR / CVaR.
        n: Number of totals analysed.
        mean: Mean monthly total.
        std: Standard deviation of monthly totals.
        percentiles: Map of "p5", "p25", ... → value (includes p{100*alpha}).
        value_at_risk: VaR at alpha.
        conditional_value_at_risk: Mean of totals at or above VaR.
        overspend_probability: Share of totals strictly above budget.
        expected_overspend: Mean of max(0, total - budget).
        risk_level: "LOW", "MODERATE" or "HIGH".
        complete: False when computed from a cancelled, partial run.
    """
    budget: float
    alpha: float
    n: int
    mean: float
    std: float
    percentiles: Dict[str, float]
    value_at_risk: float
    conditional_value_at_risk: float
    overspend_probability: float
    expected_overspend: float
    risk_level: str
    complete: bool = True

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "budget": round(self.budget, config.ROUND_AMOUNT),
            "alpha": self.alpha,
            "n": self.n,
            "mean": round(self.mean, config.ROUND_AMOUNT),
            "std": round(self.std, config.ROUND_AMOUNT),
            "percentiles": {k: round(v, config.ROUND_AMOUNT) for k, v in self.percentiles.items()},
            "value_at_risk": round(self.value_at_risk, config.ROUND_AMOUNT),
            "conditional_value_at_risk": round(self.conditional_value_at_risk, config.ROUND_AMOUNT),
            "overspend_probability": round(self.overspend_probability, config.ROUND_PROBABILITY),
            "expected_overspend": round(self.expected_overspend, config.ROUND_AMOUNT),
            "risk_level": self.risk_level,
            "complete": self.complete,
        }


def _as_totals(totals: Sequence[float]) -> np.ndarray:
    data = np.asarray(totals, dtype=float).ravel()
    if data.size == 0:
        raise InsufficientDataError("totals must contain at least one trial")
    if not np.all(np.isfinite(data)):
        raise InvalidConfigurationError("totals must be finite")
    return data


def _check_alpha(alpha: float) -> float:
    if not 0 < alpha < 1:
        raise InvalidConfigurationError(f"alpha must be in (0, 1), got {alpha}")
    return float(alpha)


def _check_budget(budget: float) -> float:
    if budget is None or not math.isfinite(budget):
        raise InvalidConfigurationError(f"budget must be finite, got {budget}")
    return float(budget)


def percentile_key(p: float) -> str:
    """Label for a percentile, e.g. 95 → "p95", 97.5 → "p97.5"."""
    return f"p{p:g}"


def percentile(totals: Sequence[float], p: float) -> float:
    """Linear-interpolated order statistic; percentile([1..10], 50) == 5.5."""
    if not 0 <= p <= 100:
        raise InvalidConfigurationError(f"percentile must be in [0, 100], got {p}")
    return float(np.percentile(_as_totals(totals), p, method="linear"))


def value_at_risk(totals: Sequence[float], alpha: float = config.DEFAULT_ALPHA) -> float:
    """Spending level not exceeded with confidence alpha."""
    return percentile(totals, 100 * _check_alpha(alpha))


def conditional_value_at_risk(totals: Sequence[float], alpha: float = config.DEFAULT_ALPHA) -> float:
    """Mean of all totals at or above VaR_alpha."""
    data = _as_totals(totals)
    var = value_at_risk(data, alpha)
    tail = data[data >= var]
    # Interpolated VaR never exceeds the maximum, so the tail holds at least that element.
    # max() absorbs rounding in the mean when every tail value equals VaR.
    return max(float(np.mean(tail)), var)


def overspend_probability(totals: Sequence[float], budget: float) -> float:
    """Share of trials whose total is strictly above budget."""
    data = _as_totals(totals)
    return float(np.count_nonzero(data > _check_budget(budget)) / data.size)


def expected_overspend(totals: Sequence[float], budget: float) -> float:
    """Mean amount by which trials exceed the budget (zero for trials within budget)."""
    data = _as_totals(totals)
    return float(np.mean(np.maximum(data - _check_budget(budget), 0.0)))


def classify_risk(probability: float, thresholds: Optional[Dict[str, float]] = None) -> str:
    """
    Map an overspend probability to a risk level.

    Args:
        probability: Overspend probability (0-1)
        thresholds: {"low": ..., "high": ...}; defaults from config

    Returns:
        "LOW", "MODERATE" or "HIGH"
    """
    thresholds = thresholds or config.get_risk_level_thresholds()
    if probability < thresholds["low"]:
        return "LOW"
    elif probability >= thresholds["high"]:
        return "HIGH"
    else:
        return "MODERATE"


class RiskAnalyzer:
    """
    Computes a RiskReport from trial totals.

    Reported percentiles are REPORT_PERCENTILES plus 100*alpha.
    """

    def __init__(self, alpha: float = config.DEFAULT_ALPHA, percentiles: Optional[Sequence[float]] = None):
        self.alpha = _check_alpha(alpha)
        self.percentiles = list(percentiles if percentiles is not None else config.REPORT_PERCENTILES)

    def analyze(self, totals: Sequence[float], budget: float, complete: bool = True) -> RiskReport:
        data = _as_totals(totals)
        budget = _check_budget(budget)

        levels = sorted(set(self.percentiles) | {100 * self.alpha})
        values = np.percentile(data, levels, method="linear")
        pcts = {percentile_key(p): float(v) for p, v in zip(levels, values)}

        prob = overspend_probability(data, budget)
        return RiskReport(
            budget=budget,
            alpha=self.alpha,
            n=int(data.size),
            mean=float(np.mean(data)),
            std=float(np.std(data)),
            percentiles=pcts,
            value_at_risk=value_at_risk(data, self.alpha),
            conditional_value_at_risk=conditional_value_at_risk(data, self.alpha),
            overspend_probability=prob,
            expected_overspend=expected_overspend(data, budget),
            risk_level=classify_risk(prob),
            complete=complete,
        )
