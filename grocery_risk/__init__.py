"""
Monte Carlo risk engine for monthly grocery budgets.

PURPOSE:
    Estimate the probability that a household's monthly grocery spending
    exceeds its budget, from per-category price history and weekly consumption.

RESPONSIBILITIES:
    - Fit price distributions by maximum likelihood and select them by AIC
    - Simulate monthly spending with reproducible, per-trial random streams
    - Derive percentiles, VaR, CVaR and overspend probability
    - Validate the simulated distribution (bootstrap, KS test, convergence)
    - Sweep budget × inflation sensitivity grids

SRP/DRY CHECK:
    Each submodule has a single responsibility:
    - distributions.py: Per-family fit / sample / log-density only
    - fitting.py: MLE + AIC model selection only
    - sampler.py: One simulated month only
    - simulation.py: N-trial orchestration only
    - risk.py: Risk metrics only
    - validation.py: Statistical validation only
    - sensitivity.py: Sensitivity analysis only
"""

from .api import analyze_risk, run_simulation, sweep_sensitivity, validate
from .distributions import DistributionKind
from .errors import (
    GroceryRiskError,
    InsufficientDataError,
    InvalidConfigurationError,
    NumericalDegeneracyError,
)
from .fitting import DistributionFitter, fit_categories, fit_category
from .models import CategoryStatistics, SimulationConfig, SimulationRun
from .risk import RiskAnalyzer, RiskReport
from .sensitivity import SensitivityAnalyzer, SensitivityDriver, SensitivityMatrix
from .simulation import MonteCarloEngine
from .validation import ValidationReport, ValidationSuite

__version__ = "0.1.0"

__all__ = [
    "run_simulation",
    "analyze_risk",
    "validate",
    "sweep_sensitivity",
    "DistributionKind",
    "DistributionFitter",
    "fit_category",
    "fit_categories",
    "CategoryStatistics",
    "SimulationConfig",
    "SimulationRun",
    "MonteCarloEngine",
    "RiskAnalyzer",
    "RiskReport",
    "ValidationSuite",
    "ValidationReport",
    "SensitivityAnalyzer",
    "SensitivityDriver",
    "SensitivityMatrix",
    "GroceryRiskError",
    "InsufficientDataError",
    "InvalidConfigurationError",
    "NumericalDegeneracyError",
]
