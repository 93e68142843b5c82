"""
PURPOSE: Error taxonomy for the grocery budget risk engine.

Every error also subclasses ValueError so callers that already guard numeric
input with ``except ValueError`` keep working.
"""


class GroceryRiskError(Exception):
    """Base class for all errors raised by grocery_risk."""


class InsufficientDataError(GroceryRiskError, ValueError):
    """A fit or statistical test received fewer samples than it needs."""


class InvalidConfigurationError(GroceryRiskError, ValueError):
    """Iteration count, category set, budget or range arguments are unusable."""


class NumericalDegeneracyError(GroceryRiskError, ValueError):
    """No candidate distribution produced a finite likelihood.

    Only raised when the caller asks for strict fitting; the default policy is
    to fall back to a floored-variance Normal.
    """
