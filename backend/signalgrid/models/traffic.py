"""
Traffic Telemetry Models

Congestion levels and the observation payload consumed by adaptive timing.
"""

from enum import Enum
from typing import Dict, Optional

from pydantic import Field

from .base import EngineModel


class CongestionLevel(str, Enum):
    """Discretized congestion classification"""
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _LEVEL_ORDER.index(self)


_LEVEL_ORDER = [
    CongestionLevel.LOW,
    CongestionLevel.MODERATE,
    CongestionLevel.HIGH,
    CongestionLevel.CRITICAL,
]


def max_level(a: CongestionLevel, b: CongestionLevel) -> CongestionLevel:
    """Return the more severe of two congestion levels"""
    return a if a.rank >= b.rank else b


class TrafficObservation(EngineModel):
    """
    Already-parsed telemetry for one intersection

    Every field is optional; the adaptation confidence reflects
    which of them were supplied.
    """
    vehicle_count: Optional[float] = Field(default=None, ge=0)
    congestion_level: Optional[CongestionLevel] = None
    timestamp: Optional[int] = None                  # epoch ms
    sensors: Optional[Dict[str, int]] = None         # per-approach counts
    wait_time: Optional[float] = Field(default=None, ge=0)  # seconds
