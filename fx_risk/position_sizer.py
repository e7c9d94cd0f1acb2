"""
Position Sizing
Risk-per-trade lot sizing capped by the max position size limit
"""

import math
import logging
from typing import Any, Optional

from .config import RiskLimits
from .exceptions import InvalidInput, InvalidStopLoss
from .portfolio import STANDARD_LOT, _to_float

logger = logging.getLogger(__name__)

DEFAULT_RISK_PER_TRADE = 0.02  # 2% of balance per trade
MIN_LOT_SIZE = 0.01
PIP_VALUE = 10  # $10 per pip for a standard lot


def _balance_of(portfolio: Any) -> float:
    if isinstance(portfolio, dict):
        balance = portfolio.get('balance')
    else:
        balance = getattr(portfolio, 'balance', None)
    return _to_float(balance, 'balance')


class PositionSizer:
    """
    Fixed-fractional lot sizing for forex positions
    """

    def __init__(self, risk_limits: Optional[RiskLimits] = None):
        """
        Initialize Position Sizer

        Args:
            risk_limits: Limits providing max_position_size
        """
        self.risk_limits = risk_limits or RiskLimits()

    def calculate_pip_value(self, symbol: str, price: float) -> float:
        """Value of one pip per standard lot (fixed simplification)"""
        return PIP_VALUE

    def calculate_optimal_position_size(self,
                                        portfolio: Any,
                                        symbol: str,
                                        price: float,
                                        stop_loss: float,
                                        risk_per_trade: float = DEFAULT_RISK_PER_TRADE) -> float:
        """
        Calculate the lot size that risks risk_per_trade of the balance

        Args:
            portfolio: Portfolio, mapping or object exposing a balance
            symbol: Instrument symbol
            price: Entry price
            stop_loss: Stop loss price
            risk_per_trade: Fraction of balance to risk

        Returns:
            min(optimal lots, max lots allowed by max_position_size)

        Raises:
            InvalidStopLoss: stop_loss equals price
            InvalidInput: missing balance, non-numeric inputs or non-positive price
        """
        balance = _balance_of(portfolio)
        price = _to_float(price, 'price')
        stop_loss = _to_float(stop_loss, 'stop_loss')
        risk_per_trade = _to_float(risk_per_trade, 'risk_per_trade')
        if price <= 0:
            raise InvalidInput(f"Price must be positive, got {price}")

        price_risk = abs(price - stop_loss)
        if price_risk == 0:
            raise InvalidStopLoss(price, stop_loss)

        try:
            account_risk = balance * risk_per_trade
            pip_value = self.calculate_pip_value(symbol, price)

            optimal_lots = account_risk / (price_risk * pip_value)
            max_lots = balance * self.risk_limits.max_position_size / (price * STANDARD_LOT)
            lots = min(optimal_lots, max_lots)
        except (ArithmeticError, TypeError) as e:
            logger.error(f"Position sizing calculation failed for {symbol}: {e}")
            return MIN_LOT_SIZE

        if not math.isfinite(lots):
            logger.error(f"Position sizing produced a non-finite size for {symbol}")
            return MIN_LOT_SIZE

        logger.debug(
            f"Sized {symbol}: optimal {optimal_lots:.4f} lots, cap {max_lots:.4f} lots"
        )
        return lots
