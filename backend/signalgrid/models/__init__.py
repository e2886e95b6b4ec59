"""
Boundary Models Package

Value models and enums shared by the engine components.
Import from here for convenience.
"""

from .base import EngineModel, parse_model

from .signal import (
    SignalState,
    IntersectionPriority,
    CoordinationMode,
    CycleTiming,
    parse_signal_state,
    parse_coordination_mode,
)

from .traffic import (
    CongestionLevel,
    TrafficObservation,
    max_level,
)

from .emergency import (
    VehicleClass,
    Urgency,
    EmergencyStatus,
    VehicleProfile,
    VEHICLE_CATALOG,
    URGENCY_MULTIPLIERS,
    RouteEstimate,
    LiveConditions,
    ResponseHistoryEntry,
)

from .forecast import (
    IntervalPrediction,
    CongestionForecast,
    WeatherReport,
    EventReport,
    WeatherImpact,
    EventImpact,
    RiskConditions,
)


__all__ = [
    "EngineModel",
    "parse_model",

    # Signal models
    "SignalState",
    "IntersectionPriority",
    "CoordinationMode",
    "CycleTiming",
    "parse_signal_state",
    "parse_coordination_mode",

    # Traffic models
    "CongestionLevel",
    "TrafficObservation",
    "max_level",

    # Emergency models
    "VehicleClass",
    "Urgency",
    "EmergencyStatus",
    "VehicleProfile",
    "VEHICLE_CATALOG",
    "URGENCY_MULTIPLIERS",
    "RouteEstimate",
    "LiveConditions",
    "ResponseHistoryEntry",

    # Forecast models
    "IntervalPrediction",
    "CongestionForecast",
    "WeatherReport",
    "EventReport",
    "WeatherImpact",
    "EventImpact",
    "RiskConditions",
]
