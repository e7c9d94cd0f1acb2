"""
Portfolio Snapshot Model
Positions, notional values and the division guard used by every risk formula
"""

import math
import logging
from typing import Dict, List, Optional, Any
from dataclasses import dataclass, field

from .exceptions import InvalidInput

logger = logging.getLogger(__name__)

# 1 standard lot = 100,000 units of base currency
STANDARD_LOT = 100000


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Divide, falling back to a default for degenerate denominators

    Args:
        numerator: Dividend
        denominator: Divisor
        default: Value returned when the divisor is zero or the result is not finite

    Returns:
        numerator / denominator, or default
    """
    try:
        if denominator == 0 or not math.isfinite(denominator):
            return default
        result = numerator / denominator
    except (TypeError, ZeroDivisionError, OverflowError):
        return default

    if not math.isfinite(result):
        return default
    return result


def _to_float(value: Any, name: str, required: bool = True) -> Optional[float]:
    if value is None:
        if required:
            raise InvalidInput(f"Missing required field: {name}")
        return None
    if isinstance(value, bool):
        raise InvalidInput(f"Field {name} must be numeric, got bool")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"Field {name} must be numeric, got {value!r}")
    if not math.isfinite(number):
        raise InvalidInput(f"Field {name} must be finite, got {value!r}")
    return number


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


@dataclass
class Position:
    """Open forex exposure"""
    symbol: str
    lot_size: float
    price: float
    margin: float = 0.0
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None

    def __post_init__(self):
        self.lot_size = _to_float(self.lot_size, 'lot_size')
        self.price = _to_float(self.price, 'price')
        self.margin = _to_float(self.margin, 'margin', required=False) or 0.0
        self.stop_loss = _to_float(self.stop_loss, 'stop_loss', required=False)
        self.take_profit = _to_float(self.take_profit, 'take_profit', required=False)

    @property
    def notional_value(self) -> float:
        """Full exposure: lot size * price * standard lot"""
        return self.lot_size * self.price * STANDARD_LOT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        """Build a position from camelCase or snake_case keys"""
        if not isinstance(data, dict):
            raise InvalidInput(f"Position must be a mapping, got {type(data).__name__}")

        symbol = data.get('symbol')
        if not symbol or not isinstance(symbol, str):
            raise InvalidInput("Position is missing a symbol")

        return cls(
            symbol=symbol,
            lot_size=_pick(data, 'lot_size', 'lotSize'),
            price=data.get('price'),
            margin=data.get('margin'),
            stop_loss=_pick(data, 'stop_loss', 'stopLoss'),
            take_profit=_pick(data, 'take_profit', 'takeProfit'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'lot_size': self.lot_size,
            'price': self.price,
            'margin': self.margin,
            'stop_loss': self.stop_loss,
            'take_profit': self.take_profit,
        }


@dataclass
class Portfolio:
    """Snapshot of account state at analysis time"""
    balance: float
    margin_available: float = 0.0
    margin_used: float = 0.0
    positions: List[Position] = field(default_factory=list)

    def __post_init__(self):
        self.balance = _to_float(self.balance, 'balance')
        self.margin_available = _to_float(self.margin_available, 'margin_available', required=False) or 0.0
        self.margin_used = _to_float(self.margin_used, 'margin_used', required=False) or 0.0

    @property
    def total_notional(self) -> float:
        return sum(position.notional_value for position in self.positions)

    @property
    def total_value(self) -> float:
        """Balance plus the notional of every open position"""
        return self.balance + self.total_notional

    @property
    def symbols(self) -> List[str]:
        """Distinct symbols in first-seen order"""
        return list(dict.fromkeys(position.symbol for position in self.positions))

    @property
    def margin_utilization(self) -> float:
        return safe_divide(self.margin_used, self.margin_available)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Portfolio":
        """
        Build a portfolio from a plain mapping

        Args:
            data: {balance, marginAvailable, marginUsed, positions: [...]}
                (snake_case keys are accepted as well)

        Returns:
            Portfolio snapshot
        """
        if not isinstance(data, dict):
            raise InvalidInput(f"Portfolio must be a mapping, got {type(data).__name__}")

        raw_positions = data.get('positions') or []
        if not isinstance(raw_positions, (list, tuple)):
            raise InvalidInput("Portfolio positions must be a list")

        return cls(
            balance=data.get('balance'),
            margin_available=_pick(data, 'margin_available', 'marginAvailable'),
            margin_used=_pick(data, 'margin_used', 'marginUsed'),
            positions=[
                p if isinstance(p, Position) else Position.from_dict(p)
                for p in raw_positions
            ],
        )

    @classmethod
    def coerce(cls, portfolio: Any) -> "Portfolio":
        """Accept either a Portfolio or a mapping"""
        if isinstance(portfolio, cls):
            return portfolio
        return cls.from_dict(portfolio)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'balance': self.balance,
            'margin_available': self.margin_available,
            'margin_used': self.margin_used,
            'positions': [position.to_dict() for position in self.positions],
        }
