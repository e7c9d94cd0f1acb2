"""
Forex Portfolio Risk Engine
VaR / CVaR, risk scoring, stress testing, position sizing and risk alerts
"""

from .exceptions import (
    RiskError,
    InvalidInput,
    DegenerateCalculation,
    ConfigurationError,
    InvalidStopLoss
)

from .config import (
    RiskConfig,
    RiskLimits,
    get_risk_config
)

from .portfolio import (
    Portfolio,
    Position,
    STANDARD_LOT,
    safe_divide
)

from .returns import (
    ReturnSource,
    SyntheticReturnSource
)

from .portfolio_risk import (
    RiskAnalysis,
    RiskLevel
)

from .risk_manager import (
    RiskManager,
    RISK_SCORE_WEIGHTS
)

from .stress_testing import (
    StressTester,
    StressScenario,
    StressTestResult,
    DEFAULT_SCENARIOS
)

from .position_sizer import (
    PositionSizer,
    MIN_LOT_SIZE
)

from .risk_monitor import (
    RiskAlertGenerator,
    RiskAlert,
    AlertType
)

from .persistence import RiskDataStore

__all__ = [
    # Errors
    'RiskError',
    'InvalidInput',
    'DegenerateCalculation',
    'ConfigurationError',
    'InvalidStopLoss',

    # Configuration
    'RiskConfig',
    'RiskLimits',
    'get_risk_config',

    # Portfolio
    'Portfolio',
    'Position',
    'STANDARD_LOT',
    'safe_divide',

    # Returns
    'ReturnSource',
    'SyntheticReturnSource',

    # Risk Analysis
    'RiskManager',
    'RiskAnalysis',
    'RiskLevel',
    'RISK_SCORE_WEIGHTS',

    # Stress Testing
    'StressTester',
    'StressScenario',
    'StressTestResult',
    'DEFAULT_SCENARIOS',

    # Position Sizing
    'PositionSizer',
    'MIN_LOT_SIZE',

    # Risk Alerts
    'RiskAlertGenerator',
    'RiskAlert',
    'AlertType',

    # Persistence
    'RiskDataStore'
]

__version__ = '1.0.0'
