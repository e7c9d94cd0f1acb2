"""
Risk Engine Exceptions
Error taxonomy shared by the risk calculators, sizing and configuration layers
"""


class RiskError(Exception):
    """Base class for all risk engine errors"""


class InvalidInput(RiskError, ValueError):
    """Malformed or missing portfolio / position fields"""


class DegenerateCalculation(RiskError, ArithmeticError):
    """Division by zero or another degenerate numeric condition"""


class ConfigurationError(RiskError, ValueError):
    """Risk limit or engine configuration with out-of-range values"""


class InvalidStopLoss(InvalidInput, DegenerateCalculation):
    """Stop loss equal to the entry price (zero stop distance)"""

    def __init__(self, price: float, stop_loss: float):
        self.price = price
        self.stop_loss = stop_loss
        super().__init__(
            f"Stop loss {stop_loss} equals entry price {price}: stop distance is zero"
        )
