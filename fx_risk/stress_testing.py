"""
Stress Testing and Scenario Analysis
Shock scenarios applied to a cloned portfolio and re-analysed
"""

import copy
import logging
from typing import Callable, Dict, Optional, Any, Union
from dataclasses import dataclass

import numpy as np

from .exceptions import InvalidInput
from .portfolio import Portfolio, safe_divide
from .portfolio_risk import RiskAnalysis, RiskLevel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StressScenario:
    """Stress test scenario definition"""
    price_change_pct: float  # Signed price shock
    volatility: float  # Width of the per-position random jitter

    @classmethod
    def from_value(cls, value: Union["StressScenario", Dict[str, Any]]) -> "StressScenario":
        """Accept a scenario or a mapping using priceChange / priceChangePct keys"""
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            raise InvalidInput(f"Scenario must be a mapping, got {type(value).__name__}")

        for key in ('price_change_pct', 'priceChangePct', 'priceChange'):
            if key in value:
                price_change = value[key]
                break
        else:
            raise InvalidInput("Scenario is missing a price change")

        try:
            return cls(
                price_change_pct=float(price_change),
                volatility=float(value.get('volatility', 0.0)),
            )
        except (TypeError, ValueError):
            raise InvalidInput(f"Scenario values must be numeric: {value!r}")

    def to_dict(self) -> Dict[str, float]:
        return {'price_change_pct': self.price_change_pct, 'volatility': self.volatility}


DEFAULT_SCENARIOS: Dict[str, StressScenario] = {
    "marketCrash": StressScenario(price_change_pct=-0.20, volatility=0.05),
    "flashCrash": StressScenario(price_change_pct=-0.10, volatility=0.10),
    "interestRateShock": StressScenario(price_change_pct=-0.05, volatility=0.03),
    "currencyCrisis": StressScenario(price_change_pct=-0.15, volatility=0.08),
    "liquidityCrisis": StressScenario(price_change_pct=-0.08, volatility=0.06),
}


@dataclass
class StressTestResult:
    """Stress test results"""
    scenario: StressScenario
    original_value: float
    stressed_value: float
    value_change: float
    risk_metrics: RiskAnalysis
    survivability: RiskLevel

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scenario': self.scenario.to_dict(),
            'original_value': self.original_value,
            'stressed_value': self.stressed_value,
            'value_change': self.value_change,
            'risk_metrics': self.risk_metrics.to_dict(),
            'survivability': self.survivability.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StressTestResult":
        return cls(
            scenario=StressScenario.from_value(data['scenario']),
            original_value=data['original_value'],
            stressed_value=data['stressed_value'],
            value_change=data['value_change'],
            risk_metrics=RiskAnalysis.from_dict(data['risk_metrics']),
            survivability=RiskLevel(data['survivability']),
        )


def assess_survivability(portfolio: Portfolio) -> RiskLevel:
    """Classify the margin cushion left after a shock"""
    margin_utilization = portfolio.margin_utilization
    if margin_utilization > 0.9:
        return RiskLevel.CRITICAL
    if margin_utilization > 0.7:
        return RiskLevel.HIGH
    if margin_utilization > 0.5:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class StressTester:
    """
    Scenario stress testing over the risk analysis pipeline
    """

    def __init__(self,
                 analyzer: Callable[[Portfolio], RiskAnalysis],
                 seed: Optional[int] = None):
        """
        Initialize Stress Tester

        Args:
            analyzer: Runs the full risk analysis on a portfolio
            seed: Seed for the per-position price jitter
        """
        self.analyzer = analyzer
        self.rng = np.random.default_rng(seed)
        self.scenarios = dict(DEFAULT_SCENARIOS)

        logger.info("Stress Tester initialized")

    def build_scenarios(self,
                        overrides: Optional[Dict[str, Any]] = None) -> Dict[str, StressScenario]:
        """Defaults merged with caller scenarios by name"""
        scenarios = dict(self.scenarios)
        for name, scenario in (overrides or {}).items():
            scenarios[name] = StressScenario.from_value(scenario)
        return scenarios

    def apply_stress_scenario(self, portfolio: Portfolio, scenario: StressScenario) -> Portfolio:
        """
        Shock a deep copy of the portfolio

        Every position gets its own jitter:
        change = price_change_pct + U(-0.5, 0.5) * volatility.
        Stop loss and take profit are rescaled by the same factor.
        """
        stressed_portfolio = copy.deepcopy(portfolio)

        for position in stressed_portfolio.positions:
            price_change = scenario.price_change_pct + (self.rng.random() - 0.5) * scenario.volatility
            factor = 1 + price_change

            position.price *= factor
            if position.stop_loss:
                position.stop_loss *= factor
            if position.take_profit:
                position.take_profit *= factor

        return stressed_portfolio

    def run_scenario_test(self, portfolio: Portfolio, scenario: StressScenario) -> StressTestResult:
        """Run one scenario against the portfolio"""
        stressed_portfolio = self.apply_stress_scenario(portfolio, scenario)
        risk_analysis = self.analyzer(stressed_portfolio)

        original_value = portfolio.total_value
        stressed_value = stressed_portfolio.total_value

        return StressTestResult(
            scenario=scenario,
            original_value=original_value,
            stressed_value=stressed_value,
            value_change=safe_divide(stressed_value - original_value, original_value),
            risk_metrics=risk_analysis,
            survivability=assess_survivability(stressed_portfolio)
        )

    def perform_stress_test(self,
                            portfolio: Portfolio,
                            scenarios: Optional[Dict[str, Any]] = None) -> Dict[str, StressTestResult]:
        """
        Run every default scenario plus any caller scenarios

        Args:
            portfolio: Portfolio snapshot (left untouched)
            scenarios: Extra or overriding scenarios keyed by name

        Returns:
            Results keyed by scenario name
        """
        results = {}

        for scenario_name, scenario in self.build_scenarios(scenarios).items():
            result = self.run_scenario_test(portfolio, scenario)
            results[scenario_name] = result

            logger.info(
                f"Stress scenario {scenario_name}: value change {result.value_change:.2%}, "
                f"survivability {result.survivability.value}"
            )

        return results
