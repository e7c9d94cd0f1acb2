"""
Global pytest configuration and fixtures for risk engine tests
"""

import logging

import pytest

from fx_risk import (
    Portfolio,
    RiskConfig,
    RiskLimits,
    RiskManager,
    SyntheticReturnSource,
)

from .test_utils import FixedReturnSource, eurusd_portfolio, two_pair_portfolio


# Configure logging for tests
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@pytest.fixture
def test_config():
    """Seeded, in-memory configuration"""
    return RiskConfig(
        return_samples=100,
        history_size=50,
        random_seed=42,
        data_path=None,
        log_level='INFO',
        risk_free_rate=0.02,
        confidence_level=0.95
    )


@pytest.fixture
def synthetic_source():
    return SyntheticReturnSource(n_samples=100, seed=42)


@pytest.fixture
def fixed_source():
    return FixedReturnSource()


@pytest.fixture
def risk_limits():
    return RiskLimits()


@pytest.fixture
def risk_manager(test_config):
    """Manager on the seeded synthetic source"""
    return RiskManager(config=test_config)


@pytest.fixture
def sample_portfolio():
    return eurusd_portfolio()


@pytest.fixture
def multi_portfolio():
    return two_pair_portfolio()


@pytest.fixture
def empty_portfolio():
    return Portfolio(balance=10000, margin_available=8000, margin_used=0, positions=[])
