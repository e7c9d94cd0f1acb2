"""
Risk Data Persistence
JSON snapshot of limits, alerts, stress results and historical reports
"""

import os
import json
import logging
import tempfile
from pathlib import Path
from typing import Dict, Any, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_FILENAME = "risk_data.json"


class RiskDataStore:
    """
    File-backed store for risk engine state

    Failures are logged and never raised: the engine keeps running on its
    in-memory state.
    """

    def __init__(self, path: Union[str, Path]):
        """
        Initialize store

        Args:
            path: JSON file, or a directory in which risk_data.json is used
        """
        path = Path(path)
        if path.is_dir():
            path = path / DEFAULT_FILENAME
        self.path = path

    def save(self, data: Dict[str, Any]) -> bool:
        """Write the snapshot atomically; returns False on failure"""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, 'w') as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save risk data to {self.path}: {e}")
            return False

        logger.debug(f"Saved risk data to {self.path}")
        return True

    def load(self) -> Optional[Dict[str, Any]]:
        """Read the snapshot; None when absent or unreadable"""
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.info("No existing risk data found, using defaults")
            return None
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load risk data from {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning(f"Ignoring risk data in {self.path}: expected an object")
            return None

        return data
