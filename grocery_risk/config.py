"""
PURPOSE: Simulation configuration and threshold parameters for the spending engine.

RESPONSIBILITIES:
- Define simulation hyperparameters (number of runs, random seed, batching)
- Fitting limits (minimum sample count, variance floor)
- Risk reporting parameters (confidence level, percentiles, risk-level thresholds)
- Validation parameters (bootstrap size, convergence window and tolerance)
- Single responsibility: configuration only, no simulation logic
"""

# Simulation Parameters
NUM_RUNS = 10000  # Standard Monte Carlo sample size
RANDOM_SEED = 42  # Base seed; every trial derives its own stream from it
WEEKS_PER_MONTH = 4
BATCH_SIZE = 1000  # Trials per batch; cancellation is checked between batches

# Random stream domains: first element of the spawn key, so a trial and a
# bootstrap resample with the same index never share a stream
STREAM_TRIAL = 0
STREAM_BOOTSTRAP = 1

# Distribution Fitting
MIN_FIT_SAMPLES = 5  # Fewer price observations than this cannot be fitted
VARIANCE_FLOOR = 1e-6  # Variance used by the Normal fallback for degenerate input
CONSUMPTION_STD_RATIO = 0.3  # Consumption std as a share of mean when history is absent

# Risk Analysis
DEFAULT_ALPHA = 0.95  # Confidence level for VaR / CVaR
REPORT_PERCENTILES = [5, 25, 50, 75, 95]  # P5 ... P95, 100*alpha is appended

# Overspend probability thresholds for the reported risk level
LOW_RISK_THRESHOLD = 0.20  # P(overspend) < 20% → LOW
HIGH_RISK_THRESHOLD = 0.50  # P(overspend) >= 50% → HIGH, in between → MODERATE

# Validation
BOOTSTRAP_RESAMPLES = 1000
BOOTSTRAP_CONFIDENCE = 0.95
CONVERGENCE_WINDOW = 1000  # Trials added between successive P95 checks
CONVERGENCE_TOLERANCE = 0.01  # Relative P95 change below 1% → converged
CONVERGENCE_PERCENTILE = 95

# Output Configuration
ROUND_PROBABILITY = 4  # Decimal places for probabilities
ROUND_AMOUNT = 2  # Decimal places for money amounts


def get_fitting_limits():
    """Return limits used by the distribution fitter."""
    return {
        "min_samples": MIN_FIT_SAMPLES,
        "variance_floor": VARIANCE_FLOOR,
        "consumption_std_ratio": CONSUMPTION_STD_RATIO,
    }


def get_risk_level_thresholds():
    """Return overspend probability thresholds for LOW/MODERATE/HIGH risk levels."""
    return {
        "low": LOW_RISK_THRESHOLD,
        "high": HIGH_RISK_THRESHOLD,
    }


def get_validation_defaults():
    """Return default parameters for the validation suite."""
    return {
        "n_bootstrap": BOOTSTRAP_RESAMPLES,
        "confidence": BOOTSTRAP_CONFIDENCE,
        "window_size": CONVERGENCE_WINDOW,
        "tolerance": CONVERGENCE_TOLERANCE,
    }
