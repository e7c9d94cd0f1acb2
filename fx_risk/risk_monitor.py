"""
Risk Alert Generation
Thresholds a risk analysis into actionable alerts with severities
"""

import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass
from enum import Enum

from .config import RiskLimits
from .portfolio_risk import RiskAnalysis, RiskLevel, HIGH_CORRELATION_THRESHOLD

logger = logging.getLogger(__name__)

# VaR is a fraction of balance, so this is "5% of portfolio"
VAR_ALERT_THRESHOLD = 0.05


class AlertType(Enum):
    """Types of risk alerts"""
    HIGH_VAR = "HIGH_VAR"
    MAX_DRAWDOWN = "MAX_DRAWDOWN"
    HIGH_CORRELATION = "HIGH_CORRELATION"
    HIGH_CONCENTRATION = "HIGH_CONCENTRATION"
    HIGH_LEVERAGE = "HIGH_LEVERAGE"
    LOW_MARGIN = "LOW_MARGIN"


@dataclass
class RiskAlert:
    """Risk alert"""
    type: AlertType
    severity: RiskLevel
    message: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type.value,
            'severity': self.severity.value,
            'message': self.message,
            'recommendation': self.recommendation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskAlert":
        return cls(
            type=AlertType(data['type']),
            severity=RiskLevel(data['severity']),
            message=data['message'],
            recommendation=data['recommendation'],
        )


class RiskAlertGenerator:
    """
    Derives alerts from a RiskAnalysis

    Mirrors the aggregator's recommendation rules but with explicit
    severities and fixed message / recommendation templates.
    """

    def __init__(self, risk_limits: Optional[RiskLimits] = None):
        self.risk_limits = risk_limits or RiskLimits()

    def generate_risk_alerts(self, analysis: RiskAnalysis) -> List[RiskAlert]:
        """
        Generate alerts for every breached threshold

        Args:
            analysis: Risk analysis to check

        Returns:
            Alerts in a fixed order (VaR, drawdown, correlation,
            concentration, leverage, margin)
        """
        alerts = []

        # VaR alerts
        if analysis.var95 > VAR_ALERT_THRESHOLD:
            alerts.append(RiskAlert(
                AlertType.HIGH_VAR,
                RiskLevel.HIGH,
                f"Value at Risk ({analysis.var95 * 100:.2f}%) exceeds 5% of portfolio",
                "Consider reducing position sizes or hedging positions"
            ))

        # Drawdown alerts
        if analysis.max_drawdown > self.risk_limits.max_drawdown_limit:
            alerts.append(RiskAlert(
                AlertType.MAX_DRAWDOWN,
                RiskLevel.CRITICAL,
                f"Maximum drawdown ({analysis.max_drawdown * 100:.2f}%) exceeds limit",
                "Close some positions to reduce exposure"
            ))

        # Correlation alerts
        if analysis.correlation_risk > HIGH_CORRELATION_THRESHOLD:
            alerts.append(RiskAlert(
                AlertType.HIGH_CORRELATION,
                RiskLevel.MEDIUM,
                "High correlation detected between positions",
                "Diversify portfolio with uncorrelated assets"
            ))

        # Concentration alerts
        if analysis.concentration_risk > 0:
            alerts.append(RiskAlert(
                AlertType.HIGH_CONCENTRATION,
                RiskLevel.MEDIUM,
                "Portfolio concentration exceeds limits",
                "Reduce position sizes in concentrated assets"
            ))

        # Leverage alerts
        if analysis.leverage_risk > 0:
            alerts.append(RiskAlert(
                AlertType.HIGH_LEVERAGE,
                RiskLevel.HIGH,
                "Leverage exceeds risk limits",
                "Reduce leverage to meet risk requirements"
            ))

        # Margin alerts
        if analysis.margin_risk > 0:
            alerts.append(RiskAlert(
                AlertType.LOW_MARGIN,
                RiskLevel.CRITICAL,
                "Margin utilization approaching limits",
                "Add funds or close positions to maintain margin"
            ))

        for alert in alerts:
            self._log_alert(alert)

        return alerts

    def _log_alert(self, alert: RiskAlert):
        if alert.severity == RiskLevel.CRITICAL:
            logger.error(f"{alert.type.value}: {alert.message}")
        elif alert.severity == RiskLevel.HIGH:
            logger.warning(f"{alert.type.value}: {alert.message}")
        else:
            logger.info(f"{alert.type.value}: {alert.message}")
