"""
Portfolio-Level Risk Metrics
VaR, CVaR, drawdown, Sharpe, correlation, concentration, leverage and margin risk
"""

import math
import logging
from typing import Dict, List, Sequence, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

import numpy as np
import pandas as pd
from scipy.stats import norm

from .config import RiskLimits
from .portfolio import Portfolio, STANDARD_LOT, safe_divide
from .returns import ReturnSource

logger = logging.getLogger(__name__)

RISK_FREE_RATE = 0.02
HIGH_CORRELATION_THRESHOLD = 0.7

CorrelationMatrix = Dict[str, Dict[str, float]]


class RiskLevel(Enum):
    """Risk level classifications"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


@dataclass
class RiskAnalysis:
    """Point-in-time portfolio risk report"""
    timestamp: datetime = field(default_factory=datetime.now)
    var95: float = 0.0
    cvar95: float = 0.0
    var95_parametric: float = 0.0
    portfolio_risk: float = 0.0
    max_drawdown: float = 0.0
    sharpe_ratio: float = 0.0
    correlation_matrix: CorrelationMatrix = field(default_factory=dict)
    correlation_risk: float = 0.0
    concentration_risk: float = 0.0
    leverage_risk: float = 0.0
    margin_risk: float = 0.0
    overall_risk_score: float = 0.0
    risk_level: RiskLevel = RiskLevel.LOW
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp.isoformat(),
            'var95': self.var95,
            'cvar95': self.cvar95,
            'var95_parametric': self.var95_parametric,
            'portfolio_risk': self.portfolio_risk,
            'max_drawdown': self.max_drawdown,
            'sharpe_ratio': self.sharpe_ratio,
            'correlation_matrix': {k: dict(v) for k, v in self.correlation_matrix.items()},
            'correlation_risk': self.correlation_risk,
            'concentration_risk': self.concentration_risk,
            'leverage_risk': self.leverage_risk,
            'margin_risk': self.margin_risk,
            'overall_risk_score': self.overall_risk_score,
            'risk_level': self.risk_level.value,
            'recommendations': list(self.recommendations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskAnalysis":
        values = dict(data)
        values['timestamp'] = datetime.fromisoformat(values['timestamp'])
        values['risk_level'] = RiskLevel(values.get('risk_level', RiskLevel.LOW.value))
        known = cls.__dataclass_fields__
        return cls(**{k: v for k, v in values.items() if k in known})


def calculate_var(returns: Sequence[float], confidence_level: float = 0.95) -> float:
    """
    Historical-simulation Value at Risk

    Args:
        returns: Return series (fractions of balance)
        confidence_level: VaR confidence level

    Returns:
        Absolute return at the (1 - confidence) quantile, 0 for an empty series
    """
    sorted_returns = np.sort(np.asarray(returns, dtype=float))
    if sorted_returns.size == 0:
        return 0.0

    var_index = math.floor((1 - confidence_level) * sorted_returns.size)
    var_index = min(max(var_index, 0), sorted_returns.size - 1)
    return abs(float(sorted_returns[var_index]))


def calculate_cvar(returns: Sequence[float], confidence_level: float = 0.95) -> float:
    """
    Conditional Value at Risk (Expected Shortfall)

    Averages every return at or below -VaR; 0 if nothing is in the tail.
    """
    returns = np.asarray(returns, dtype=float)
    if returns.size == 0:
        return 0.0

    var = calculate_var(returns, confidence_level)
    tail_returns = returns[returns <= -var]
    if tail_returns.size == 0:
        return 0.0

    return abs(float(tail_returns.mean()))


def calculate_var_parametric(returns: Sequence[float], confidence_level: float = 0.95) -> float:
    """Normal-approximation VaR over the same series"""
    returns = np.asarray(returns, dtype=float)
    if returns.size < 2:
        return 0.0

    sigma = returns.std()
    if sigma == 0:
        return 0.0

    z_score = norm.ppf(1 - confidence_level)
    return abs(float(returns.mean() + z_score * sigma))


def calculate_position_risk(lot_size: float, margin: float, volatility: float) -> float:
    """Volatility scaled by the position's leverage (units / margin)"""
    leverage = safe_divide(lot_size * STANDARD_LOT, margin)
    return volatility * leverage


def calculate_portfolio_risk(portfolio: Portfolio, source: ReturnSource) -> float:
    """Notional-weighted average of per-position leveraged volatility"""
    total_risk = 0.0
    total_value = 0.0

    for position in portfolio.positions:
        position_value = position.notional_value
        volatility = source.estimate_volatility(position.symbol)
        position_risk = calculate_position_risk(position.lot_size, position.margin, volatility)

        total_risk += position_value * position_risk
        total_value += position_value

    return safe_divide(total_risk, total_value)


def calculate_max_drawdown(equity: Sequence[float]) -> float:
    """Largest peak-to-trough decline of an equity curve, as a fraction of the peak"""
    equity = np.asarray(equity, dtype=float)
    if equity.size == 0:
        return 0.0

    peak = np.maximum.accumulate(equity)
    drawdown = np.divide(peak - equity, peak, out=np.zeros_like(equity), where=peak > 0)
    return max(float(drawdown.max()), 0.0)


def calculate_sharpe_ratio(returns: Sequence[float], risk_free_rate: float = RISK_FREE_RATE) -> float:
    """(mean - risk free) / population standard deviation"""
    returns = np.asarray(returns, dtype=float)
    if returns.size < 2:
        return 0.0

    return safe_divide(float(returns.mean()) - risk_free_rate, float(returns.std()))


def calculate_correlation(returns1: Sequence[float], returns2: Sequence[float]) -> float:
    """Pearson correlation; 0 for mismatched, short or constant series"""
    a = np.asarray(returns1, dtype=float)
    b = np.asarray(returns2, dtype=float)
    if a.size != b.size or a.size < 2:
        return 0.0

    diff1 = a - a.mean()
    diff2 = b - b.mean()
    denominator = math.sqrt(float((diff1 ** 2).sum() * (diff2 ** 2).sum()))
    return safe_divide(float((diff1 * diff2).sum()), denominator)


def calculate_correlation_matrix(portfolio: Portfolio, source: ReturnSource) -> CorrelationMatrix:
    """
    Pairwise correlation of held symbols

    Args:
        portfolio: Portfolio snapshot
        source: Supplier of per-symbol return series

    Returns:
        Nested mapping symbol -> symbol -> coefficient, diagonal exactly 1
    """
    symbols = portfolio.symbols
    if not symbols:
        return {}

    returns = pd.DataFrame({symbol: source.symbol_returns(symbol) for symbol in symbols})
    correlation = returns.corr().fillna(0.0)

    matrix = {}
    for symbol1 in symbols:
        matrix[symbol1] = {}
        for symbol2 in symbols:
            if symbol1 == symbol2:
                matrix[symbol1][symbol2] = 1.0
            else:
                matrix[symbol1][symbol2] = float(correlation.at[symbol1, symbol2])

    return matrix


def assess_correlation_risk(correlation_matrix: CorrelationMatrix,
                            threshold: float = HIGH_CORRELATION_THRESHOLD) -> float:
    """Share of off-diagonal entries strictly between the threshold and 1"""
    off_diagonal = [
        value
        for symbol1, row in correlation_matrix.items()
        for symbol2, value in row.items()
        if symbol1 != symbol2
    ]
    high_correlations = sum(1 for value in off_diagonal if threshold < value < 1)
    return safe_divide(high_correlations, len(off_diagonal))


def calculate_concentration_risk(portfolio: Portfolio, limits: RiskLimits) -> float:
    """Sum of each position's notional share in excess of max_concentration"""
    total_value = portfolio.total_notional

    concentration_risk = 0.0
    for position in portfolio.positions:
        concentration = safe_divide(position.notional_value, total_value)
        if concentration > limits.max_concentration:
            concentration_risk += concentration - limits.max_concentration

    return concentration_risk


def calculate_leverage(portfolio: Portfolio) -> float:
    return safe_divide(portfolio.total_notional, portfolio.balance)


def calculate_leverage_risk(portfolio: Portfolio, limits: RiskLimits) -> float:
    """Leverage above max_leverage"""
    return max(0.0, calculate_leverage(portfolio) - limits.max_leverage)


def calculate_margin_risk(portfolio: Portfolio, limits: RiskLimits) -> float:
    """Margin utilization above (1 - min_margin)"""
    return max(0.0, portfolio.margin_utilization - (1 - limits.min_margin))
