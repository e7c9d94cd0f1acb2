"""
Tests for risk alert generation
"""

import logging

import numpy as np
import pytest

from fx_risk import (
    AlertType,
    RiskAlert,
    RiskAlertGenerator,
    RiskAnalysis,
    RiskLevel,
    RiskLimits,
    RiskManager,
)

from .test_utils import LINEAR_RETURNS, FixedReturnSource


@pytest.fixture
def breached_analysis():
    """Analysis breaching every alert threshold"""
    return RiskAnalysis(
        var95=0.06,
        max_drawdown=0.2,
        correlation_risk=0.8,
        concentration_risk=0.1,
        leverage_risk=1.0,
        margin_risk=0.1
    )


class TestRiskAlertGenerator:
    """Test RiskAlertGenerator"""

    def test_every_alert_in_order(self, breached_analysis):
        alerts = RiskAlertGenerator().generate_risk_alerts(breached_analysis)

        assert [(a.type, a.severity) for a in alerts] == [
            (AlertType.HIGH_VAR, RiskLevel.HIGH),
            (AlertType.MAX_DRAWDOWN, RiskLevel.CRITICAL),
            (AlertType.HIGH_CORRELATION, RiskLevel.MEDIUM),
            (AlertType.HIGH_CONCENTRATION, RiskLevel.MEDIUM),
            (AlertType.HIGH_LEVERAGE, RiskLevel.HIGH),
            (AlertType.LOW_MARGIN, RiskLevel.CRITICAL),
        ]

    def test_message_templates(self, breached_analysis):
        alerts = RiskAlertGenerator().generate_risk_alerts(breached_analysis)

        assert alerts[0].message == "Value at Risk (6.00%) exceeds 5% of portfolio"
        assert alerts[0].recommendation == "Consider reducing position sizes or hedging positions"
        assert alerts[1].message == "Maximum drawdown (20.00%) exceeds limit"
        assert alerts[1].recommendation == "Close some positions to reduce exposure"
        assert alerts[5].recommendation == "Add funds or close positions to maintain margin"

    def test_clean_analysis_has_no_alerts(self):
        assert RiskAlertGenerator().generate_risk_alerts(RiskAnalysis()) == []

    def test_thresholds_are_strict(self):
        analysis = RiskAnalysis(var95=0.05, max_drawdown=0.15, correlation_risk=0.7)

        assert RiskAlertGenerator().generate_risk_alerts(analysis) == []

    def test_drawdown_uses_configured_limit(self, breached_analysis):
        generator = RiskAlertGenerator(RiskLimits(max_drawdown_limit=0.25))

        types = [a.type for a in generator.generate_risk_alerts(breached_analysis)]

        assert AlertType.MAX_DRAWDOWN not in types
        assert len(types) == 5

    def test_critical_alerts_logged_as_errors(self, breached_analysis, caplog):
        with caplog.at_level(logging.INFO, logger='fx_risk.risk_monitor'):
            RiskAlertGenerator().generate_risk_alerts(breached_analysis)

        levels = [record.levelno for record in caplog.records if record.name == 'fx_risk.risk_monitor']
        assert levels.count(logging.ERROR) == 2
        assert levels.count(logging.WARNING) == 2
        assert levels.count(logging.INFO) == 2

    def test_alert_dict_round_trip(self, breached_analysis):
        for alert in RiskAlertGenerator().generate_risk_alerts(breached_analysis):
            assert RiskAlert.from_dict(alert.to_dict()) == alert


class TestManagerAlerts:
    """Test alert retention on the manager"""

    def test_latest_alerts_replace_previous(self, risk_manager, breached_analysis):
        first = risk_manager.generate_risk_alerts(breached_analysis)
        assert risk_manager.get_risk_alerts() == first

        risk_manager.generate_risk_alerts(RiskAnalysis())
        assert risk_manager.get_risk_alerts() == []

    def test_alerts_from_live_analysis(self, risk_manager, sample_portfolio):
        analysis = risk_manager.analyze_portfolio_risk(sample_portfolio)
        types = [a.type for a in risk_manager.generate_risk_alerts(analysis)]

        assert AlertType.HIGH_CONCENTRATION in types
        assert AlertType.HIGH_LEVERAGE in types
        assert AlertType.LOW_MARGIN not in types

    def test_correlated_pair_raises_correlation_alert(self, test_config, multi_portfolio):
        source = FixedReturnSource(symbol_series={
            "GBPUSD": LINEAR_RETURNS + 0.001 * np.sin(np.arange(100))
        })
        manager = RiskManager(return_source=source, config=test_config)

        analysis = manager.analyze_portfolio_risk(multi_portfolio)
        types = [a.type for a in manager.generate_risk_alerts(analysis)]

        assert 0.7 < analysis.correlation_matrix["EURUSD"]["GBPUSD"] < 1.0
        assert analysis.correlation_risk == pytest.approx(1.0)
        assert AlertType.HIGH_CORRELATION in types
        assert "Diversify portfolio with uncorrelated assets" in analysis.recommendations
