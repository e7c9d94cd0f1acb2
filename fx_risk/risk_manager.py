"""
Central Risk Management System
Aggregates portfolio risk metrics into a scored report, and fronts stress
testing, position sizing, alerts and persisted risk state
"""

import logging
import threading
from collections import deque
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

import numpy as np

from .config import RiskConfig, RiskLimits
from .exceptions import ConfigurationError
from .persistence import RiskDataStore
from .portfolio import Portfolio
from .portfolio_risk import (
    RiskAnalysis,
    RiskLevel,
    calculate_var,
    calculate_cvar,
    calculate_var_parametric,
    calculate_portfolio_risk,
    calculate_max_drawdown,
    calculate_sharpe_ratio,
    calculate_correlation_matrix,
    assess_correlation_risk,
    calculate_concentration_risk,
    calculate_leverage_risk,
    calculate_margin_risk,
)
from .position_sizer import PositionSizer, DEFAULT_RISK_PER_TRADE
from .returns import ReturnSource, SyntheticReturnSource
from .risk_monitor import RiskAlert, RiskAlertGenerator
from .stress_testing import StressTester, StressTestResult

logger = logging.getLogger(__name__)

T = TypeVar('T')

RISK_SCORE_WEIGHTS = {
    'var95': 0.25,
    'max_drawdown': 0.20,
    'correlation_risk': 0.15,
    'concentration_risk': 0.15,
    'leverage_risk': 0.15,
    'margin_risk': 0.10,
}

# Upper bounds (exclusive) of each risk level, ascending
RISK_LEVEL_THRESHOLDS = (
    (0.1, RiskLevel.LOW),
    (0.3, RiskLevel.MEDIUM),
    (0.5, RiskLevel.HIGH),
)

RECOMMENDATION_RULES = (
    ('var95', 0.05, "Reduce position sizes to lower Value at Risk"),
    ('max_drawdown', 0.15, "Implement tighter stop losses to limit drawdown"),
    ('correlation_risk', 0.7, "Diversify portfolio with uncorrelated assets"),
    ('concentration_risk', 0.0, "Reduce concentration in single positions"),
    ('leverage_risk', 0.0, "Reduce leverage to meet risk limits"),
    ('margin_risk', 0.0, "Add funds or close positions to maintain margin"),
)

PortfolioLike = Union[Portfolio, Dict[str, Any]]


class RiskManager:
    """
    Central Risk Management System
    Stateless per analysis apart from the shared limits and report history
    """

    def __init__(self,
                 risk_limits: Optional[RiskLimits] = None,
                 return_source: Optional[ReturnSource] = None,
                 config: Optional[RiskConfig] = None,
                 store: Optional[RiskDataStore] = None):
        """
        Initialize Risk Manager

        Args:
            risk_limits: Risk limit configuration
            return_source: Supplier of return series (synthetic by default)
            config: Engine settings
            store: Persistence backend; None keeps everything in memory
        """
        self.config = config or RiskConfig()
        self.return_source = return_source or SyntheticReturnSource(
            n_samples=self.config.return_samples,
            seed=self.config.random_seed
        )
        self.store = store

        self._lock = threading.RLock()
        self._risk_limits = risk_limits or RiskLimits()

        # Risk state
        self.risk_reports: deque = deque(maxlen=self.config.history_size)
        self.risk_alerts: List[RiskAlert] = []
        self.stress_test_results: Dict[str, StressTestResult] = {}

        # Components
        self.position_sizer = PositionSizer(self._risk_limits)
        self.alert_generator = RiskAlertGenerator(self._risk_limits)
        self.stress_tester = StressTester(self.analyze_portfolio_risk, seed=self.config.random_seed)

        if self.store is not None:
            self._load_state()

        logger.info("Risk Manager initialized")

    @classmethod
    def from_config(cls, config: Optional[RiskConfig] = None, **kwargs) -> "RiskManager":
        """Build a manager, persisting to config.data_path when it is set"""
        config = config or RiskConfig()
        store = RiskDataStore(config.data_path) if config.data_path else None
        return cls(config=config, store=store, **kwargs)

    @property
    def risk_limits(self) -> RiskLimits:
        with self._lock:
            return self._risk_limits

    # Portfolio risk analysis

    def analyze_portfolio_risk(self, portfolio: PortfolioLike) -> RiskAnalysis:
        """
        Run every risk calculator and combine them into a report

        A failing calculator is logged and scored as 0; the report is
        always complete.

        Args:
            portfolio: Portfolio snapshot or mapping

        Returns:
            Risk analysis
        """
        portfolio = Portfolio.coerce(portfolio)
        limits = self.risk_limits
        analysis = RiskAnalysis()

        if portfolio.positions:
            self._populate_metrics(analysis, portfolio, limits)

        analysis.overall_risk_score = self.calculate_overall_risk_score(analysis)
        analysis.risk_level = self.determine_risk_level(analysis.overall_risk_score)
        analysis.recommendations = self.generate_risk_recommendations(analysis)

        with self._lock:
            self.risk_reports.append(analysis)
        self._save_state()

        logger.info(
            f"Risk analysis complete: {len(portfolio.positions)} positions, "
            f"score {analysis.overall_risk_score:.4f} ({analysis.risk_level.value})"
        )
        return analysis

    def _populate_metrics(self, analysis: RiskAnalysis, portfolio: Portfolio, limits: RiskLimits):
        source = self.return_source
        confidence = self.config.confidence_level

        returns = self._safe_metric(
            'portfolio returns', lambda: source.portfolio_returns(portfolio), np.array([])
        )

        # Value at Risk
        analysis.var95 = self._safe_metric('VaR', lambda: calculate_var(returns, confidence), 0.0)
        analysis.cvar95 = self._safe_metric('CVaR', lambda: calculate_cvar(returns, confidence), 0.0)
        analysis.var95_parametric = self._safe_metric(
            'parametric VaR', lambda: calculate_var_parametric(returns, confidence), 0.0
        )

        # Portfolio risk metrics
        analysis.portfolio_risk = self._safe_metric(
            'portfolio risk', lambda: calculate_portfolio_risk(portfolio, source), 0.0
        )
        analysis.max_drawdown = self._safe_metric(
            'max drawdown', lambda: calculate_max_drawdown(source.equity_curve(portfolio.balance)), 0.0
        )
        analysis.sharpe_ratio = self._safe_metric(
            'Sharpe ratio', lambda: calculate_sharpe_ratio(returns, self.config.risk_free_rate), 0.0
        )

        # Correlation analysis
        analysis.correlation_matrix = self._safe_metric(
            'correlation matrix', lambda: calculate_correlation_matrix(portfolio, source), {}
        )
        analysis.correlation_risk = self._safe_metric(
            'correlation risk', lambda: assess_correlation_risk(analysis.correlation_matrix), 0.0
        )

        # Concentration, leverage and margin
        analysis.concentration_risk = self._safe_metric(
            'concentration risk', lambda: calculate_concentration_risk(portfolio, limits), 0.0
        )
        analysis.leverage_risk = self._safe_metric(
            'leverage risk', lambda: calculate_leverage_risk(portfolio, limits), 0.0
        )
        analysis.margin_risk = self._safe_metric(
            'margin risk', lambda: calculate_margin_risk(portfolio, limits), 0.0
        )

    def _safe_metric(self, name: str, calculation: Callable[[], T], default: T) -> T:
        try:
            return calculation()
        except Exception as e:
            logger.warning(f"{name} calculation failed, using {default!r}: {e}")
            return default

    def calculate_overall_risk_score(self, analysis: RiskAnalysis) -> float:
        """Weighted sum of the six scored metrics"""
        return sum(
            getattr(analysis, metric) * weight
            for metric, weight in RISK_SCORE_WEIGHTS.items()
        )

    def determine_risk_level(self, risk_score: float) -> RiskLevel:
        """Determine risk level from score"""
        for upper_bound, level in RISK_LEVEL_THRESHOLDS:
            if risk_score < upper_bound:
                return level
        return RiskLevel.CRITICAL

    def generate_risk_recommendations(self, analysis: RiskAnalysis) -> List[str]:
        """One fixed sentence per metric above its threshold"""
        return [
            recommendation
            for metric, threshold, recommendation in RECOMMENDATION_RULES
            if getattr(analysis, metric) > threshold
        ]

    # Stress testing

    def perform_stress_test(self,
                            portfolio: PortfolioLike,
                            scenarios: Optional[Dict[str, Any]] = None) -> Dict[str, StressTestResult]:
        """
        Run default and caller scenarios against a copy of the portfolio

        Args:
            portfolio: Portfolio snapshot or mapping (never modified)
            scenarios: Extra or overriding scenarios keyed by name

        Returns:
            Results keyed by scenario name
        """
        portfolio = Portfolio.coerce(portfolio)
        results = self.stress_tester.perform_stress_test(portfolio, scenarios)

        with self._lock:
            self.stress_test_results = results
        self._save_state()

        return results

    # Position sizing

    def calculate_optimal_position_size(self,
                                        portfolio: Any,
                                        symbol: str,
                                        price: float,
                                        stop_loss: float,
                                        risk_per_trade: float = DEFAULT_RISK_PER_TRADE) -> float:
        """Lot size risking risk_per_trade of balance, capped by max_position_size"""
        return self.position_sizer.calculate_optimal_position_size(
            portfolio, symbol, price, stop_loss, risk_per_trade
        )

    def calculate_position_size(self, portfolio: Any, symbol: str, price: float,
                                stop_loss: float, risk_per_trade: float = DEFAULT_RISK_PER_TRADE) -> float:
        return self.calculate_optimal_position_size(portfolio, symbol, price, stop_loss, risk_per_trade)

    # Alerts

    def generate_risk_alerts(self, analysis: RiskAnalysis) -> List[RiskAlert]:
        """Generate alerts for an analysis and keep them as the latest set"""
        alerts = self.alert_generator.generate_risk_alerts(analysis)

        with self._lock:
            self.risk_alerts = alerts
        self._save_state()

        return alerts

    # Risk limits

    def update_risk_limits(self, new_limits: Dict[str, Any]) -> RiskLimits:
        """
        Shallow-merge named limits over the current ones

        Args:
            new_limits: Partial mapping of limit name to value

        Returns:
            The new limits

        Raises:
            ConfigurationError: unknown name or out-of-range value
        """
        with self._lock:
            updated = self._risk_limits.merged(new_limits)
            self._apply_limits(updated)

        self._save_state()
        logger.info(f"Risk limits updated: {new_limits}")
        return updated

    def _apply_limits(self, limits: RiskLimits):
        self._risk_limits = limits
        self.position_sizer.risk_limits = limits
        self.alert_generator.risk_limits = limits

    # Public API

    def get_risk_analysis(self, portfolio: PortfolioLike) -> RiskAnalysis:
        return self.analyze_portfolio_risk(portfolio)

    def get_stress_test_results(self, portfolio: PortfolioLike,
                                scenarios: Optional[Dict[str, Any]] = None) -> Dict[str, StressTestResult]:
        return self.perform_stress_test(portfolio, scenarios)

    def get_risk_alerts(self) -> List[RiskAlert]:
        with self._lock:
            return list(self.risk_alerts)

    def get_risk_limits(self) -> RiskLimits:
        return self.risk_limits

    def get_risk_history(self) -> List[RiskAnalysis]:
        """Retained analyses, oldest first"""
        with self._lock:
            return list(self.risk_reports)

    def get_latest_analysis(self) -> Optional[RiskAnalysis]:
        with self._lock:
            return self.risk_reports[-1] if self.risk_reports else None

    def get_risk_report(self) -> Dict[str, Any]:
        """
        Summary of the current risk state

        Returns:
            Limits, latest analysis, alerts, stress results and history size
        """
        with self._lock:
            latest = self.risk_reports[-1] if self.risk_reports else None
            return {
                "risk_limits": self._risk_limits.to_dict(),
                "latest_analysis": latest.to_dict() if latest else None,
                "alerts": [alert.to_dict() for alert in self.risk_alerts],
                "stress_tests": {
                    name: {
                        "value_change": result.value_change,
                        "survivability": result.survivability.value,
                        "risk_level": result.risk_metrics.risk_level.value
                    }
                    for name, result in self.stress_test_results.items()
                },
                "history": {
                    "size": len(self.risk_reports),
                    "capacity": self.risk_reports.maxlen
                }
            }

    # Persistence

    def _snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "risk_limits": self._risk_limits.to_dict(),
                "risk_alerts": [alert.to_dict() for alert in self.risk_alerts],
                "stress_test_results": {
                    name: result.to_dict() for name, result in self.stress_test_results.items()
                },
                "risk_reports": [
                    [analysis.timestamp.isoformat(), analysis.to_dict()]
                    for analysis in self.risk_reports
                ]
            }

    def _save_state(self):
        if self.store is not None:
            self.store.save(self._snapshot())

    def _load_state(self):
        data = self.store.load()
        if data is None:
            return

        with self._lock:
            if data.get("risk_limits"):
                try:
                    self._apply_limits(RiskLimits.from_dict(data["risk_limits"]))
                except ConfigurationError as e:
                    logger.warning(f"Ignoring stored risk limits: {e}")

            try:
                self.risk_alerts = [RiskAlert.from_dict(a) for a in data.get("risk_alerts", [])]
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Ignoring stored risk alerts: {e}")

            try:
                self.stress_test_results = {
                    name: StressTestResult.from_dict(result)
                    for name, result in data.get("stress_test_results", {}).items()
                }
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Ignoring stored stress test results: {e}")

            try:
                self.risk_reports.extend(
                    RiskAnalysis.from_dict(report) for _, report in data.get("risk_reports", [])
                )
            except (KeyError, TypeError, ValueError) as e:
                self.risk_reports.clear()
                logger.warning(f"Ignoring stored risk reports: {e}")

        logger.info(f"Loaded risk data: {len(self.risk_reports)} historical reports")
