"""
Risk Engine Configuration
Risk limits and environment-driven engine settings
"""

import os
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, fields, replace

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Limits that are fractions of balance / exposure and must lie in (0, 1]
_FRACTION_LIMITS = (
    'max_position_size',
    'max_daily_loss',
    'max_drawdown_limit',
    'max_correlation',
    'max_concentration',
    'min_margin',
)


@dataclass(frozen=True)
class RiskLimits:
    """Named risk thresholds used for scoring and position sizing"""
    max_position_size: float = 0.05  # 5% of portfolio per position
    max_daily_loss: float = 0.02  # 2% daily loss limit
    max_drawdown_limit: float = 0.15  # 15% max drawdown
    max_leverage: float = 3.0  # 3x leverage limit
    max_correlation: float = 0.7  # 70% correlation limit
    max_concentration: float = 0.25  # 25% concentration limit
    min_margin: float = 0.3  # 30% minimum free margin

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigurationError listing every out-of-range limit"""
        errors = []

        for name in _FRACTION_LIMITS:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                errors.append(f"{name} must be a number, got {value!r}")
            elif not 0 < value <= 1:
                errors.append(f"{name} must be in (0, 1], got {value}")

        if not isinstance(self.max_leverage, (int, float)) or isinstance(self.max_leverage, bool):
            errors.append(f"max_leverage must be a number, got {self.max_leverage!r}")
        elif self.max_leverage <= 0:
            errors.append(f"max_leverage must be positive, got {self.max_leverage}")

        if errors:
            raise ConfigurationError(
                "Risk limit validation errors:\n" + "\n".join(f"- {e}" for e in errors)
            )

    def merged(self, updates: Dict[str, Any]) -> "RiskLimits":
        """
        Shallow overwrite of named fields

        Args:
            updates: Partial mapping of limit name to new value
                (camelCase names from the UI are accepted)

        Returns:
            New validated RiskLimits
        """
        known = {f.name for f in fields(self)}
        normalized = {}
        unknown = []

        for key, value in (updates or {}).items():
            name = _snake_case(key)
            if name not in known:
                unknown.append(key)
            else:
                normalized[name] = value

        if unknown:
            raise ConfigurationError(f"Unknown risk limits: {', '.join(sorted(unknown))}")

        return replace(self, **normalized)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RiskLimits":
        return cls().merged(data or {})


def _snake_case(name: str) -> str:
    chars = []
    for char in name:
        if char.isupper():
            chars.append('_')
            chars.append(char.lower())
        else:
            chars.append(char)
    return ''.join(chars)


def _optional_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value else None


@dataclass
class RiskConfig:
    """Engine settings, overridable through FX_RISK_* environment variables"""
    return_samples: int = int(os.getenv('FX_RISK_RETURN_SAMPLES', '100'))
    history_size: int = int(os.getenv('FX_RISK_HISTORY_SIZE', '500'))
    random_seed: Optional[int] = _optional_int('FX_RISK_RANDOM_SEED')
    data_path: Optional[str] = os.getenv('FX_RISK_DATA_PATH') or None
    log_level: str = os.getenv('FX_RISK_LOG_LEVEL', 'INFO')
    risk_free_rate: float = float(os.getenv('FX_RISK_RISK_FREE_RATE', '0.02'))
    confidence_level: float = float(os.getenv('FX_RISK_CONFIDENCE_LEVEL', '0.95'))

    def __post_init__(self):
        """Validate configuration after initialization"""
        self._validate_config()

    def _validate_config(self):
        """Validate configuration values"""
        errors = []

        if self.return_samples < 2:
            errors.append("Return samples must be at least 2")

        if self.history_size < 1:
            errors.append("History size must be at least 1")

        if not 0 < self.confidence_level < 1:
            errors.append(f"Confidence level must be in (0, 1), got {self.confidence_level}")

        if logging.getLevelName(self.log_level.upper()) not in (
            logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
        ):
            errors.append(f"Unknown log level: {self.log_level}")

        if errors:
            error_msg = "Risk configuration validation errors:\n" + "\n".join(f"- {e}" for e in errors)
            raise ConfigurationError(error_msg)

    def configure_logging(self):
        """Apply log_level to the package logger"""
        logging.getLogger('fx_risk').setLevel(self.log_level.upper())

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return asdict(self)


def get_risk_config() -> RiskConfig:
    """Get risk configuration instance"""
    return RiskConfig()
