"""
Forecast and Context Models

Congestion forecasts plus the weather/event modifier records that feed them.
"""

from typing import Dict, List, Optional

from pydantic import Field

from .base import EngineModel


class IntervalPrediction(EngineModel):
    """Prediction for one forecast interval"""
    timestamp: int                     # epoch ms, start of interval
    congestion_level: float = Field(ge=0, le=1)
    vehicle_density: int
    average_speed: int                 # km/h


class CongestionForecast(EngineModel):
    """Multi-interval congestion forecast for a location"""
    location: str
    time_horizon: int                  # ms
    timestamp: int                     # when the forecast was produced
    predictions: List[IntervalPrediction] = Field(default_factory=list)
    confidence: float = Field(ge=0, le=1)
    factors: Dict[str, float] = Field(default_factory=dict)


class WeatherReport(EngineModel):
    """Caller-supplied weather observation"""
    conditions: str = "clear"
    temperature: float = 20
    precipitation: float = 0
    visibility: float = 10


class EventReport(EngineModel):
    """Caller-supplied scheduled event"""
    type: str = "unknown"
    start_time: Optional[int] = None   # epoch ms
    end_time: Optional[int] = None     # epoch ms
    expected_attendance: int = Field(default=0, ge=0)


class WeatherImpact(EngineModel):
    """Latest weather modifier for a location"""
    location: str
    conditions: str
    temperature: float
    precipitation: float
    visibility: float
    traffic_impact: float = Field(ge=0, le=1)
    timestamp: int


class EventImpact(EngineModel):
    """Latest event modifier for a location"""
    location: str
    type: str
    start_time: int
    end_time: int
    expected_attendance: int
    traffic_impact: float = Field(ge=0, le=1)
    timestamp: int

    def is_active(self, at_ms: int) -> bool:
        return self.start_time <= at_ms <= self.end_time


class RiskConditions(EngineModel):
    """Current conditions for a real-time risk assessment"""
    traffic_flow: float = Field(default=0, ge=0)
    weather: Optional[WeatherReport] = None
    time: Optional[int] = None         # epoch ms, defaults to now
