"""
Emergency Vehicle Models

Vehicle catalog, urgency levels, routes and response history records.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field

from .base import EngineModel


class VehicleClass(str, Enum):
    """Emergency vehicle classes"""
    AMBULANCE = "ambulance"
    FIRE_TRUCK = "fire_truck"
    POLICE = "police"
    EMERGENCY_SERVICES = "emergency_services"


class Urgency(str, Enum):
    """Call urgency"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class EmergencyStatus(str, Enum):
    """Emergency record status"""
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(frozen=True)
class VehicleProfile:
    """Base priority and nominal clearance time (seconds) of a vehicle class"""
    base_priority: float
    clearance_time: int


VEHICLE_CATALOG = {
    VehicleClass.AMBULANCE: VehicleProfile(base_priority=1, clearance_time=45),
    VehicleClass.FIRE_TRUCK: VehicleProfile(base_priority=1, clearance_time=60),
    VehicleClass.POLICE: VehicleProfile(base_priority=2, clearance_time=30),
    VehicleClass.EMERGENCY_SERVICES: VehicleProfile(base_priority=1, clearance_time=45),
}

URGENCY_MULTIPLIERS = {
    Urgency.LOW: 0.8,
    Urgency.MEDIUM: 1.0,
    Urgency.HIGH: 1.2,
    Urgency.CRITICAL: 1.5,
}


class RouteEstimate(EngineModel):
    """Route as returned by the routing collaborator"""
    distance: float = Field(ge=0)                  # km
    estimated_time: float = Field(ge=0)            # ms
    waypoints: List[str] = Field(default_factory=list)
    intersections: int = Field(default=0, ge=0)
    optimization_applied: bool = False


class LiveConditions(EngineModel):
    """Real-time conditions used to re-optimize an emergency route"""
    traffic_density: float = Field(default=0.0, ge=0)
    weather_conditions: Optional[str] = None

    @property
    def adverse_weather(self) -> bool:
        return (self.weather_conditions or "").lower() == "adverse"


class ResponseHistoryEntry(EngineModel):
    """
    Immutable record of a finished emergency response
    """
    model_config = ConfigDict(frozen=True)

    vehicle_id: str
    vehicle_class: VehicleClass
    registered_at: int                 # epoch ms
    completed_at: int                  # epoch ms
    response_time: int                 # ms
    success: bool
    completion_status: str
    intersections_touched: int
