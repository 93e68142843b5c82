"""
PURPOSE: Library boundary of the grocery budget risk engine.

The four operations external callers build on:
    run_simulation(config)                         -> SimulationRun
    analyze_risk(run, budget, alpha)               -> RiskReport
    validate(run, actual_data)                     -> ValidationReport
    sweep_sensitivity(run, budgets, inflations)    -> SensitivityMatrix

No I/O happens here; persistence, rendering and user interfaces belong to the caller.
"""

import logging
import threading
from typing import Callable, Optional, Sequence

from grocery_risk import config
from grocery_risk.models import SimulationConfig, SimulationRun
from grocery_risk.risk import RiskAnalyzer, RiskReport
from grocery_risk.sensitivity import SensitivityAnalyzer, SensitivityMatrix
from grocery_risk.simulation import MonteCarloEngine
from grocery_risk.validation import ValidationReport, ValidationSuite

logger = logging.getLogger(__name__)


def run_simulation(
    sim_config: SimulationConfig,
    n_workers: int = 1,
    batch_size: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    record_breakdown: bool = False,
) -> SimulationRun:
    """Run sim_config.iterations trials; output is identical for any n_workers."""
    if batch_size is None:
        batch_size = config.BATCH_SIZE
    engine = MonteCarloEngine(n_workers=n_workers, batch_size=batch_size)
    return engine.run(
        sim_config,
        cancel_event=cancel_event,
        progress_callback=progress_callback,
        record_breakdown=record_breakdown,
    )


def analyze_risk(
    run: SimulationRun,
    budget: Optional[float] = None,
    alpha: float = config.DEFAULT_ALPHA,
) -> RiskReport:
    """Risk metrics for the run; budget defaults to the run's configured budget."""
    if budget is None:
        budget = run.config.budget
    if not run.completed:
        logger.warning("Analyzing a partial run (%d of %d trials)", run.size, run.requested_iterations)
    return RiskAnalyzer(alpha=alpha).analyze(run.totals, budget, complete=run.completed)


def validate(
    run: SimulationRun,
    actual_data: Sequence[float],
    n_bootstrap: int = config.BOOTSTRAP_RESAMPLES,
    confidence: float = config.BOOTSTRAP_CONFIDENCE,
    window_size: int = config.CONVERGENCE_WINDOW,
) -> ValidationReport:
    """Bootstrap CI, KS goodness of fit against actual_data, and P95 convergence."""
    suite = ValidationSuite(n_bootstrap=n_bootstrap, confidence=confidence, window_size=window_size)
    return suite.validate(run, actual_data)


def sweep_sensitivity(
    run: SimulationRun,
    budget_range: Sequence[float],
    inflation_range: Sequence[float],
) -> SensitivityMatrix:
    """Overspend probability for every (budget, inflation %) pair."""
    if not run.completed:
        logger.warning("Sweeping a partial run (%d of %d trials)", run.size, run.requested_iterations)
    return SensitivityAnalyzer().sweep(run.totals, budget_range, inflation_range)
