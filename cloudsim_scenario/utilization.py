"""
Stock utilization models (``UtilizationModel<alias>``).
"""

from typing import Dict, Optional

import numpy as np

from .capabilities import UtilizationModel


class UtilizationModelFull(UtilizationModel):
    """Always uses 100% of the requested resource."""

    def utilization(self, time: float = 0.0) -> float:
        return 1.0


class UtilizationModelNull(UtilizationModel):
    """Never uses the resource."""

    def utilization(self, time: float = 0.0) -> float:
        return 0.0


class UtilizationModelStochastic(UtilizationModel):
    """
    Uniformly random utilization, fixed once drawn for a given time.

    Args:
        seed: Optional seed for reproducible draws
    """

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)
        self._history: Dict[float, float] = {}

    def utilization(self, time: float = 0.0) -> float:
        if time not in self._history:
            self._history[time] = float(self._rng.uniform(0.0, 1.0))
        return self._history[time]
