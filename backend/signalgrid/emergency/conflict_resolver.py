"""
Multi-Emergency Conflict Resolution

Pairwise route conflict detection and priority-ordered resolution plans.
"""

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from signalgrid.exceptions import ConflictError

from .records import EmergencyRecord

logger = logging.getLogger(__name__)

DEFAULT_SEVERITY_DELAYS = {'high': 45, 'medium': 20}


@dataclass
class RouteConflict:
    """Conflict between two emergency vehicles"""
    vehicles: List[str]
    conflict_type: str              # intersection_overlap | simulated_overlap
    severity: str                   # high | medium
    intersections: List[str] = field(default_factory=list)

    @property
    def is_hard(self) -> bool:
        """Observed (not simulated) high-severity overlap"""
        return self.conflict_type == 'intersection_overlap' and self.severity == 'high'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vehicles': list(self.vehicles),
            'conflictType': self.conflict_type,
            'severity': self.severity,
            'intersections': list(self.intersections)
        }


def find_route_conflict(first: EmergencyRecord,
                        second: EmergencyRecord,
                        rng: np.random.Generator,
                        conflict_window: int = 60_000) -> Optional[RouteConflict]:
    """
    Check two emergencies for a route conflict

    With preemptions on both sides the check is exact: shared intersections
    conflict, high severity when the two preemptions there fall within
    conflict_window ms of each other. Otherwise the check is simulated
    (30% conflict, even odds of high severity).
    """
    vehicles = [first.vehicle_id, second.vehicle_id]

    if not first.preemptions or not second.preemptions:
        if rng.random() <= 0.7:
            return None
        severity = 'high' if rng.random() > 0.5 else 'medium'
        return RouteConflict(vehicles=vehicles, conflict_type='simulated_overlap', severity=severity)

    shared = [iid for iid in first.preempted_intersections() if iid in set(second.preempted_intersections())]
    if not shared:
        return None

    severity = 'medium'
    for entry in first.preemptions:
        if entry.intersection_id not in shared:
            continue
        for other in second.preemptions:
            if (other.intersection_id == entry.intersection_id
                    and abs(other.timestamp - entry.timestamp) <= conflict_window):
                severity = 'high'

    return RouteConflict(vehicles=vehicles, conflict_type='intersection_overlap',
                         severity=severity, intersections=shared)


def identify_conflicts(records: Sequence[EmergencyRecord],
                       rng: np.random.Generator,
                       conflict_window: int = 60_000) -> List[RouteConflict]:
    """Check every pair of emergencies"""
    conflicts = []
    for first, second in combinations(records, 2):
        conflict = find_route_conflict(first, second, rng, conflict_window)
        if conflict is not None:
            conflicts.append(conflict)
    return conflicts


def priority_order(records: Sequence[EmergencyRecord],
                   conflicts: Sequence[RouteConflict]) -> List[EmergencyRecord]:
    """
    Order emergencies by dynamic priority (highest first)

    Equal priority falls back to earlier registration.

    Raises:
        ConflictError: If a hard conflict joins two vehicles with equal
            priority and registration time
    """
    by_id = {r.vehicle_id: r for r in records}
    for conflict in conflicts:
        if not conflict.is_hard:
            continue
        first, second = (by_id[v] for v in conflict.vehicles)
        if first.priority == second.priority and first.registered_at == second.registered_at:
            raise ConflictError(
                f"No resolvable ordering between {first.vehicle_id} and {second.vehicle_id}",
                vehicle_ids=list(conflict.vehicles)
            )

    return sorted(records, key=lambda r: (-r.priority, r.registered_at))


def resolve(records: Sequence[EmergencyRecord],
            conflicts: Sequence[RouteConflict],
            severity_delays: Optional[Dict[str, int]] = None) -> List[Dict[str, Any]]:
    """
    Build the resolution plan

    The top vehicle proceeds with zero delay; every other vehicle yields
    for the sum of its conflicts' severity delays (seconds).
    """
    delays = severity_delays or DEFAULT_SEVERITY_DELAYS
    ordered = priority_order(records, conflicts)

    plan = []
    for index, record in enumerate(ordered):
        if index == 0:
            delay = 0
        else:
            delay = sum(delays.get(c.severity, 0) for c in conflicts if record.vehicle_id in c.vehicles)
        plan.append({
            'vehicleId': record.vehicle_id,
            'priority': record.priority,
            'action': 'proceed' if delay == 0 else 'yield_temporarily',
            'delay': delay
        })

    return plan
