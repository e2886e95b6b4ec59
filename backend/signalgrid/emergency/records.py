"""
Active emergency records

EmergencyRecord lives only while the vehicle is active; on deregistration
it is converted into an immutable ResponseHistoryEntry.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from signalgrid.models import (
    EmergencyStatus,
    ResponseHistoryEntry,
    RouteEstimate,
    Urgency,
    VehicleClass,
)


@dataclass
class PreemptionEntry:
    """Signal preemption applied (or scheduled) for an emergency vehicle"""
    intersection_id: str
    vehicle_id: str
    mode: str
    timestamp: int
    estimated_clearance: int        # seconds
    delay: int = 0                  # ms before the green is applied
    applied: bool = False
    task_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'intersectionId': self.intersection_id,
            'vehicleId': self.vehicle_id,
            'preemptionType': self.mode,
            'timestamp': self.timestamp,
            'estimatedClearance': self.estimated_clearance,
            'delay': self.delay,
            'applied': self.applied,
            'taskId': self.task_id,
            'success': True
        }


@dataclass
class EmergencyRecord:
    """Active emergency vehicle"""
    vehicle_id: str
    vehicle_class: VehicleClass
    origin: str
    destination: str
    urgency: Urgency
    priority: float
    route: RouteEstimate
    registered_at: int
    status: EmergencyStatus = EmergencyStatus.ACTIVE
    preemptions: List[PreemptionEntry] = field(default_factory=list)
    optimized_at: Optional[int] = None

    def preempted_intersections(self) -> List[str]:
        """Distinct preempted intersection ids in first-preempted order"""
        seen = []
        for entry in self.preemptions:
            if entry.intersection_id not in seen:
                seen.append(entry.intersection_id)
        return seen

    def to_history(self, completed_at: int, completion_status: str) -> ResponseHistoryEntry:
        return ResponseHistoryEntry(
            vehicle_id=self.vehicle_id,
            vehicle_class=self.vehicle_class,
            registered_at=self.registered_at,
            completed_at=completed_at,
            response_time=completed_at - self.registered_at,
            success=completion_status == 'completed',
            completion_status=completion_status,
            intersections_touched=len(self.preempted_intersections())
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vehicleId': self.vehicle_id,
            'type': self.vehicle_class.value,
            'origin': self.origin,
            'destination': self.destination,
            'urgency': self.urgency.value,
            'priority': self.priority,
            'status': self.status.value,
            'registeredAt': self.registered_at,
            'estimatedRoute': self.route.to_dict(),
            'affectedIntersections': [p.to_dict() for p in self.preemptions],
            'optimizedAt': self.optimized_at
        }
