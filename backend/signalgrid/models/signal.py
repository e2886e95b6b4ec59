"""
Signal and Cycle Models

Signal states, coordination modes and cycle timing for intersections.
"""

from enum import Enum
from typing import Any

from pydantic import Field

from signalgrid.exceptions import InvalidStateError
from .base import EngineModel


class SignalState(str, Enum):
    """Traffic signal states"""
    RED = "RED"
    YELLOW = "YELLOW"
    GREEN = "GREEN"


class IntersectionPriority(str, Enum):
    """Intersection priority"""
    NORMAL = "normal"
    EMERGENCY = "emergency"


class CoordinationMode(str, Enum):
    """Multi-intersection coordination patterns"""
    GREEN_WAVE = "green_wave"            # Offset greens for a moving platoon
    SYNCHRONIZED = "synchronized"        # Simultaneous green
    ADAPTIVE_NETWORK = "adaptive_network"  # Delay by observed wait


class CycleTiming(EngineModel):
    """
    Durations (seconds) for one full signal rotation
    """
    green: int = Field(default=30, gt=0)
    yellow: int = Field(default=5, gt=0)
    red: int = Field(default=25, gt=0)

    def duration_for(self, state: SignalState) -> int:
        return {
            SignalState.GREEN: self.green,
            SignalState.YELLOW: self.yellow,
            SignalState.RED: self.red,
        }[state]

    @property
    def total(self) -> int:
        return self.green + self.yellow + self.red


def parse_signal_state(value: Any) -> SignalState:
    """
    Parse a signal state from an enum member or case-insensitive name

    Raises:
        InvalidStateError: If value is not Red, Yellow or Green
    """
    if isinstance(value, SignalState):
        return value
    if isinstance(value, str):
        try:
            return SignalState(value.strip().upper())
        except ValueError:
            pass
    raise InvalidStateError(f"Invalid traffic light state: {value!r}", value=value)


def parse_coordination_mode(value: Any) -> CoordinationMode:
    """
    Parse a coordination mode ('green_wave', 'GreenWave', 'synchronized', ...)

    Raises:
        InvalidStateError: If value is not a known coordination mode
    """
    if isinstance(value, CoordinationMode):
        return value
    if isinstance(value, str):
        normalized = value.strip()
        # Accept CamelCase names as well as snake_case values
        if "_" not in normalized and not normalized.isupper() and not normalized.islower():
            normalized = "".join(
                ("_" + ch.lower()) if ch.isupper() and i else ch.lower()
                for i, ch in enumerate(normalized)
            )
        try:
            return CoordinationMode(normalized.lower())
        except ValueError:
            pass
    raise InvalidStateError(f"Invalid coordination type: {value!r}", value=value)
