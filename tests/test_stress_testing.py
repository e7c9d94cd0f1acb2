"""
Tests for scenario stress testing
"""

import copy

import pytest

from fx_risk import (
    DEFAULT_SCENARIOS,
    InvalidInput,
    Portfolio,
    RiskLevel,
    StressScenario,
    StressTester,
)
from fx_risk.stress_testing import assess_survivability


@pytest.fixture
def stress_tester(risk_manager):
    return StressTester(risk_manager.analyze_portfolio_risk, seed=42)


class TestStressScenario:
    """Test scenario parsing"""

    def test_default_scenarios(self):
        assert DEFAULT_SCENARIOS == {
            "marketCrash": StressScenario(-0.20, 0.05),
            "flashCrash": StressScenario(-0.10, 0.10),
            "interestRateShock": StressScenario(-0.05, 0.03),
            "currencyCrisis": StressScenario(-0.15, 0.08),
            "liquidityCrisis": StressScenario(-0.08, 0.06),
        }

    @pytest.mark.parametrize("value", [
        {'price_change_pct': -0.3, 'volatility': 0.1},
        {'priceChangePct': -0.3, 'volatility': 0.1},
        {'priceChange': -0.3, 'volatility': 0.1},
    ])
    def test_from_mapping(self, value):
        assert StressScenario.from_value(value) == StressScenario(-0.3, 0.1)

    def test_volatility_defaults_to_zero(self):
        assert StressScenario.from_value({'priceChange': -0.1}).volatility == 0.0

    @pytest.mark.parametrize("value", [
        {'volatility': 0.1},
        {'priceChange': 'down', 'volatility': 0.1},
        [-0.3, 0.1],
    ])
    def test_invalid_scenarios(self, value):
        with pytest.raises(InvalidInput):
            StressScenario.from_value(value)


class TestApplyScenario:
    """Test the price shock on a cloned portfolio"""

    def test_original_is_untouched(self, stress_tester, multi_portfolio):
        before = copy.deepcopy(multi_portfolio)

        stress_tester.perform_stress_test(multi_portfolio)

        assert multi_portfolio == before

    def test_exact_shock_without_volatility(self, stress_tester, sample_portfolio):
        stressed = stress_tester.apply_stress_scenario(sample_portfolio, StressScenario(-0.5, 0.0))
        position = stressed.positions[0]

        assert position.price == pytest.approx(1.0850 * 0.5)
        assert position.stop_loss == pytest.approx(1.0800 * 0.5)
        assert position.take_profit == pytest.approx(1.0950 * 0.5)
        assert position.lot_size == 1.0
        assert position.margin == 1085

    def test_jitter_stays_within_band(self, stress_tester, sample_portfolio):
        scenario = DEFAULT_SCENARIOS["marketCrash"]

        for _ in range(200):
            stressed = stress_tester.apply_stress_scenario(sample_portfolio, scenario)
            factor = stressed.positions[0].price / sample_portfolio.positions[0].price

            assert 0.775 - 1e-12 <= factor <= 0.825 + 1e-12

    def test_bounds_scale_with_price(self, stress_tester, sample_portfolio):
        stressed = stress_tester.apply_stress_scenario(sample_portfolio, DEFAULT_SCENARIOS["flashCrash"])
        position = stressed.positions[0]
        original = sample_portfolio.positions[0]
        factor = position.price / original.price

        assert position.stop_loss == pytest.approx(original.stop_loss * factor)
        assert position.take_profit == pytest.approx(original.take_profit * factor)

    def test_missing_bounds_stay_missing(self, stress_tester, multi_portfolio):
        stressed = stress_tester.apply_stress_scenario(multi_portfolio, DEFAULT_SCENARIOS["flashCrash"])

        assert stressed.positions[1].stop_loss is None

    def test_positions_get_independent_jitter(self, stress_tester, multi_portfolio):
        stressed = stress_tester.apply_stress_scenario(multi_portfolio, DEFAULT_SCENARIOS["flashCrash"])
        factors = [
            s.price / o.price for s, o in zip(stressed.positions, multi_portfolio.positions)
        ]

        assert factors[0] != factors[1]


class TestPerformStressTest:
    """Test the full scenario sweep"""

    def test_runs_every_default_scenario(self, stress_tester, sample_portfolio):
        results = stress_tester.perform_stress_test(sample_portfolio)

        assert set(results) == set(DEFAULT_SCENARIOS)

    def test_custom_scenarios_are_added(self, stress_tester, sample_portfolio):
        results = stress_tester.perform_stress_test(sample_portfolio, {
            'blackSwan': {'priceChange': -0.4, 'volatility': 0.2}
        })

        assert len(results) == 6
        assert results['blackSwan'].scenario == StressScenario(-0.4, 0.2)

    def test_custom_scenarios_override_defaults(self, stress_tester, sample_portfolio):
        results = stress_tester.perform_stress_test(sample_portfolio, {
            'marketCrash': {'priceChange': -0.5, 'volatility': 0}
        })
        result = results['marketCrash']

        assert len(results) == 5
        assert result.original_value == pytest.approx(118500)
        assert result.stressed_value == pytest.approx(10000 + 108500 * 0.5)
        assert result.value_change == pytest.approx((64250 - 118500) / 118500)

    def test_value_change_is_negative_for_crashes(self, stress_tester, sample_portfolio):
        results = stress_tester.perform_stress_test(sample_portfolio)

        for result in results.values():
            assert result.stressed_value < result.original_value
            assert result.value_change < 0

    def test_results_carry_full_analysis(self, stress_tester, multi_portfolio):
        result = stress_tester.perform_stress_test(multi_portfolio)['currencyCrisis']

        assert set(result.risk_metrics.correlation_matrix) == {"EURUSD", "GBPUSD"}
        assert result.risk_metrics.leverage_risk > 0

    def test_survivability_uses_unchanged_margin(self, stress_tester, sample_portfolio, multi_portfolio):
        low = stress_tester.perform_stress_test(sample_portfolio)
        high = stress_tester.perform_stress_test(multi_portfolio)

        assert all(r.survivability == RiskLevel.LOW for r in low.values())
        assert all(r.survivability == RiskLevel.HIGH for r in high.values())

    def test_seed_is_reproducible(self, risk_manager, sample_portfolio):
        a = StressTester(risk_manager.analyze_portfolio_risk, seed=9).perform_stress_test(sample_portfolio)
        b = StressTester(risk_manager.analyze_portfolio_risk, seed=9).perform_stress_test(sample_portfolio)

        assert [r.stressed_value for r in a.values()] == [r.stressed_value for r in b.values()]

    def test_manager_keeps_latest_results(self, risk_manager, sample_portfolio):
        results = risk_manager.get_stress_test_results(sample_portfolio)

        assert risk_manager.stress_test_results is results
        assert len(risk_manager.get_risk_history()) == len(DEFAULT_SCENARIOS)


class TestSurvivability:
    """Test the margin-utilization classifier"""

    @pytest.mark.parametrize("margin_used,level", [
        (2.5, RiskLevel.LOW),
        (5.0, RiskLevel.LOW),
        (6.0, RiskLevel.MEDIUM),
        (7.0, RiskLevel.MEDIUM),
        (8.0, RiskLevel.HIGH),
        (9.0, RiskLevel.HIGH),
        (9.5, RiskLevel.CRITICAL),
    ])
    def test_thresholds(self, margin_used, level):
        portfolio = Portfolio(balance=1000, margin_available=10, margin_used=margin_used)

        assert assess_survivability(portfolio) == level

    def test_no_available_margin_is_low(self):
        assert assess_survivability(Portfolio(balance=1000)) == RiskLevel.LOW
