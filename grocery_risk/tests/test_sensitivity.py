"""
PURPOSE: Unit tests for sensitivity.py module.

Tests cover:
1. Budget × inflation matrix shape and values
2. Monotonicity: risk non-increasing in budget, non-decreasing in inflation
3. Baseline totals are never modified
4. Error handling for empty / unordered / invalid ranges
5. Category driver ranking from a run with per-category breakdown
"""

import numpy as np
import pytest

from grocery_risk.api import run_simulation, sweep_sensitivity
from grocery_risk.distributions import DistributionKind
from grocery_risk.errors import InsufficientDataError, InvalidConfigurationError
from grocery_risk.models import CategoryStatistics, SimulationConfig
from grocery_risk.risk import overspend_probability
from grocery_risk.sensitivity import SensitivityAnalyzer, SensitivityMatrix


@pytest.fixture
def baseline():
    return np.random.default_rng(17).normal(100.0, 12.0, size=3000)


class TestSweep:
    """Tests for the budget × inflation sweep."""

    def test_shape_and_cells(self, baseline):
        budgets = [80.0, 100.0, 120.0]
        inflations = [0.0, 5.0, 10.0, 20.0]
        matrix = SensitivityAnalyzer().sweep(baseline, budgets, inflations)
        assert isinstance(matrix, SensitivityMatrix)
        assert matrix.risk.shape == (3, 4)
        assert matrix.risk_at(100.0, 0.0) == overspend_probability(baseline, 100.0)
        assert matrix.risk_at(120.0, 10.0) == overspend_probability(baseline * 1.1, 120.0)

    def test_values_are_probabilities(self, baseline):
        matrix = SensitivityAnalyzer().sweep(baseline, np.linspace(50, 150, 11), [-10.0, 0.0, 10.0])
        assert np.all(matrix.risk >= 0.0)
        assert np.all(matrix.risk <= 1.0)

    def test_monotone_in_budget_and_inflation(self, baseline):
        matrix = SensitivityAnalyzer().sweep(baseline, np.linspace(60, 160, 21), np.linspace(-20, 30, 11))
        assert np.all(np.diff(matrix.risk, axis=0) <= 0.0)
        assert np.all(np.diff(matrix.risk, axis=1) >= 0.0)

    def test_baseline_not_mutated(self, baseline):
        before = baseline.copy()
        SensitivityAnalyzer().sweep(baseline, [90.0, 110.0], [0.0, 50.0])
        np.testing.assert_array_equal(baseline, before)

    def test_unknown_cell_raises_key_error(self, baseline):
        matrix = SensitivityAnalyzer().sweep(baseline, [90.0], [0.0])
        with pytest.raises(KeyError):
            matrix.risk_at(95.0, 0.0)

    def test_exports(self, baseline):
        matrix = SensitivityAnalyzer().sweep(baseline, [90.0, 110.0], [0.0, 5.0, 10.0])
        payload = matrix.to_dict()
        assert payload["budgets"] == [90.0, 110.0]
        assert len(payload["risk"]) == 2 and len(payload["risk"][0]) == 3
        columns = matrix.to_dataframe_compatible()
        assert len(columns["budget"]) == 6
        assert columns["budget"][:3] == [90.0, 90.0, 90.0]
        assert columns["inflation_pct"][:3] == [0.0, 5.0, 10.0]
        assert columns["overspend_probability"][4] == matrix.risk_at(110.0, 5.0)

    @pytest.mark.parametrize(
        "budgets, inflations",
        [
            ([], [0.0]),
            ([100.0], []),
            ([110.0, 100.0], [0.0]),
            ([100.0, 100.0], [0.0]),
            ([100.0], [5.0, 0.0]),
            ([float("nan")], [0.0]),
            ([100.0], [-100.0]),
        ],
    )
    def test_invalid_ranges_raise(self, baseline, budgets, inflations):
        with pytest.raises(InvalidConfigurationError):
            SensitivityAnalyzer().sweep(baseline, budgets, inflations)

    def test_empty_totals_raise(self):
        with pytest.raises(InsufficientDataError):
            SensitivityAnalyzer().sweep([], [100.0], [0.0])


class TestCategoryDrivers:
    """Tests for variance-based category ranking."""

    def setup_method(self):
        self.volatile = CategoryStatistics(
            category="Meat",
            distribution_kind=DistributionKind.LOGNORMAL,
            distribution_params=(3.0, 0.6),
            consumption_mean=2.0,
            consumption_std=1.0,
        )
        self.steady = CategoryStatistics(
            category="Bread",
            distribution_kind=DistributionKind.NORMAL,
            distribution_params=(3.0, 0.05),
            consumption_mean=1.0,
            consumption_std=0.05,
        )
        self.config = SimulationConfig(
            budget=300.0, categories=(self.steady, self.volatile), iterations=2000, seed=3
        )

    def test_volatile_category_ranks_first(self):
        run = run_simulation(self.config, record_breakdown=True)
        drivers = SensitivityAnalyzer().rank_category_drivers(run)
        assert [d.category for d in drivers] == ["Meat", "Bread"]
        assert drivers[0].rank == 1
        assert drivers[0].variance_share > 0.9
        assert sum(d.covariance for d in drivers) == pytest.approx(np.var(run.totals))

    def test_top_n_limits_output(self):
        run = run_simulation(self.config, record_breakdown=True)
        drivers = SensitivityAnalyzer(top_n=1).rank_category_drivers(run)
        assert len(drivers) == 1
        assert drivers[0].to_dict()["category"] == "Meat"

    def test_requires_breakdown(self):
        run = run_simulation(self.config)
        with pytest.raises(InvalidConfigurationError):
            SensitivityAnalyzer().rank_category_drivers(run)


class TestSweepSensitivityApi:
    """Tests for the library-level sweep."""

    def test_sweep_over_run(self):
        produce = CategoryStatistics(
            category="Produce",
            distribution_kind=DistributionKind.LOGNORMAL,
            distribution_params=(2.0, 0.3),
            consumption_mean=3.0,
            consumption_std=0.9,
        )
        run = run_simulation(SimulationConfig(budget=100.0, categories=(produce,), iterations=2000, seed=42))
        matrix = sweep_sensitivity(run, [80.0, 100.0, 120.0], [0.0, 10.0])
        assert matrix.risk_at(100.0, 0.0) == overspend_probability(run.totals, 100.0)
        assert run.totals.flags.writeable is False
