"""
Return and Volatility Estimation
Synthetic return series standing in for historical market data
"""

import logging
from typing import Optional, Protocol, runtime_checkable

import numpy as np

from .portfolio import Portfolio, safe_divide

logger = logging.getLogger(__name__)

DEFAULT_SAMPLES = 100

# Uniform bounds of the simulated market
DAILY_RETURN_BOUND = 0.01  # +/-1% per symbol per period
EQUITY_STEP_BOUND = 0.005  # +/-0.5% per equity curve step
VOLATILITY_RANGE = (0.015, 0.025)  # 1.5% - 2.5% daily volatility


@runtime_checkable
class ReturnSource(Protocol):
    """Supplier of return series and volatility estimates"""

    def portfolio_returns(self, portfolio: Portfolio) -> np.ndarray: ...
    def symbol_returns(self, symbol: str) -> np.ndarray: ...
    def estimate_volatility(self, symbol: str) -> float: ...
    def equity_curve(self, balance: float) -> np.ndarray: ...


class SyntheticReturnSource:
    """
    Uniform-noise market simulator

    Nothing here is derived from real prices: every call draws fresh samples,
    so repeated calls for the same symbol give different "historical" values.
    Pass a seed for reproducible runs.
    """

    def __init__(self,
                 n_samples: int = DEFAULT_SAMPLES,
                 seed: Optional[int] = None):
        """
        Initialize synthetic source

        Args:
            n_samples: Length of every generated series
            seed: Seed for numpy's default generator
        """
        if n_samples < 1:
            raise ValueError("n_samples must be at least 1")

        self.n_samples = n_samples
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def portfolio_returns(self, portfolio: Portfolio) -> np.ndarray:
        """
        Per-period portfolio returns as a fraction of balance

        Each sample sums, over positions, a uniform [-1%, +1%] symbol return
        weighted by the position's notional share of the balance.
        """
        if not portfolio.positions:
            return np.array([], dtype=float)

        weights = np.array([
            safe_divide(position.notional_value, portfolio.balance)
            for position in portfolio.positions
        ])
        symbol_returns = self.rng.uniform(
            -DAILY_RETURN_BOUND, DAILY_RETURN_BOUND,
            size=(self.n_samples, len(weights))
        )
        return symbol_returns @ weights

    def symbol_returns(self, symbol: str) -> np.ndarray:
        """Independent uniform [-1%, +1%] series for one symbol"""
        return self.rng.uniform(-DAILY_RETURN_BOUND, DAILY_RETURN_BOUND, self.n_samples)

    def estimate_volatility(self, symbol: str) -> float:
        """One uniform draw in [1.5%, 2.5%]; not cached between calls"""
        return float(self.rng.uniform(*VOLATILITY_RANGE))

    def equity_curve(self, balance: float) -> np.ndarray:
        """Random-walk equity curve starting at the balance"""
        steps = 1 + self.rng.uniform(-EQUITY_STEP_BOUND, EQUITY_STEP_BOUND, self.n_samples - 1)
        return balance * np.concatenate(([1.0], np.cumprod(steps)))
