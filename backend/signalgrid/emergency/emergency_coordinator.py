"""
Emergency Coordinator

Registers emergency vehicles, computes routes and dynamic priority,
preempts intersections through the Intersection Controller and resolves
conflicts between simultaneous emergencies.

Preemption:
- immediate: GREEN applied now at every target intersection
- staged: GREEN at target i after i x stagger ms, as generation-guarded
  deferred actions owned by the vehicle (cancelled on deregistration)
"""

import logging
import threading
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Sequence

import numpy as np

from signalgrid.clock import Clock, now_ms
from signalgrid.exceptions import (
    DuplicateError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from signalgrid.models import (
    URGENCY_MULTIPLIERS,
    VEHICLE_CATALOG,
    LiveConditions,
    ResponseHistoryEntry,
    Urgency,
    VehicleClass,
    parse_model,
)

from .conflict_resolver import DEFAULT_SEVERITY_DELAYS, identify_conflicts, resolve
from .records import EmergencyRecord, PreemptionEntry
from .route_planner import RoutePlanner, SimulatedRoutePlanner

logger = logging.getLogger(__name__)

PATH_CLEARANCE_ACTIONS = [
    'Signal traffic management system',
    'Alert nearby intersections',
    'Calculate optimal timing',
    'Prepare preemption sequences',
]

PREEMPTION_MODES = ('immediate', 'staged')


class EmergencyCoordinator:
    """
    Coordinate emergency vehicles across the network

    Usage:
        coordinator = EmergencyCoordinator(controller=controller, rng=np.random.default_rng(7))
        coordinator.register("amb-1", "ambulance", "depot", "hospital", urgency="critical")
        coordinator.preempt_intersections("amb-1", ["I-1", "I-2"], mode="staged")
        coordinator.deregister("amb-1")
    """

    def __init__(self,
                 config: dict = None,
                 controller=None,
                 route_planner: Optional[RoutePlanner] = None,
                 rng: Optional[np.random.Generator] = None,
                 clock: Optional[Clock] = None):
        """
        Initialize emergency coordinator

        Args:
            config: Configuration dict with options:
                - seed: Seed for the default generator
                - stagger: Delay between staged preemptions, ms (default: 5000)
                - conflictWindow: Preemptions closer than this conflict hard, ms (default: 60000)
                - historyCapacity: Response history entries kept (default: 1000)
                - severityDelays: Yield seconds per conflict severity (default: high 45, medium 20)
                - slowResponseThreshold: Slow response, ms (default: 120000)
                - complexRouteIntersections: Intersections for a complex response (default: 5)
            controller: IntersectionController applying preemptions (optional)
            route_planner: Routing collaborator (default: simulated)
            rng: Random generator for simulated values
            clock: Millisecond clock
        """
        self.config = config or {}
        self.clock = clock or now_ms
        self.rng = rng if rng is not None else np.random.default_rng(self.config.get('seed'))
        self.controller = controller
        self.route_planner = route_planner or SimulatedRoutePlanner(self.rng)

        self.stagger = self.config.get('stagger', 5000)
        self.conflict_window = self.config.get('conflictWindow', 60_000)
        self.severity_delays = self.config.get('severityDelays', DEFAULT_SEVERITY_DELAYS)
        self.slow_response_threshold = self.config.get('slowResponseThreshold', 120_000)
        self.complex_route_intersections = self.config.get('complexRouteIntersections', 5)

        # Active emergencies and finished responses
        self.active: Dict[str, EmergencyRecord] = {}
        self.history: Deque[ResponseHistoryEntry] = deque(maxlen=self.config.get('historyCapacity', 1000))

        self._lock = threading.RLock()

        # Statistics
        self.total_registered = 0
        self.total_preemptions = 0
        self.total_coordinations = 0

        logger.info("[EMERGENCY] Emergency Coordinator initialized")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self,
                 vehicle_id: str,
                 vehicle_class: Any,
                 origin: str,
                 destination: str,
                 urgency: Any = 'high') -> Dict[str, Any]:
        """
        Register an active emergency vehicle

        Raises:
            ValidationError: If the id, class, urgency or endpoints are invalid
            DuplicateError: If the vehicle is already active
        """
        if not vehicle_id or not isinstance(vehicle_id, str):
            raise ValidationError("Vehicle ID must be a valid string", field='vehicleId', value=vehicle_id)
        kind = _parse_enum(VehicleClass, vehicle_class, 'type', "Invalid emergency vehicle type")
        level = _parse_enum(Urgency, urgency, 'urgency', "Invalid urgency level")
        for name, value in (('origin', origin), ('destination', destination)):
            if not value or not isinstance(value, str):
                raise ValidationError(f"{name.capitalize()} must be a valid string", field=name, value=value)

        with self._lock:
            if vehicle_id in self.active:
                raise DuplicateError(f"Emergency vehicle {vehicle_id} is already active", entity_id=vehicle_id)

            profile = VEHICLE_CATALOG[kind]
            record = EmergencyRecord(
                vehicle_id=vehicle_id,
                vehicle_class=kind,
                origin=origin,
                destination=destination,
                urgency=level,
                priority=round(profile.base_priority * URGENCY_MULTIPLIERS[level], 1),
                route=self.route_planner.plan_route(origin, destination),
                registered_at=self.clock()
            )
            self.active[vehicle_id] = record
            self.total_registered += 1

        logger.info("[EMERGENCY] Registered %s (%s, %s, priority %.1f)",
                    vehicle_id, kind.value, level.value, record.priority)

        return {
            'vehicleId': vehicle_id,
            'registrationStatus': record.status.value,
            'priority': record.priority,
            'estimatedRoute': record.route.to_dict(),
            'pathClearance': {
                'actions': list(PATH_CLEARANCE_ACTIONS),
                'estimatedClearanceTime': profile.clearance_time,
                'status': 'initiated'
            }
        }

    def optimize_path(self, vehicle_id: str, live_conditions: Any) -> Dict[str, Any]:
        """
        Re-optimize a vehicle's route for live conditions

        - Traffic density > 0.7: duration x0.8, two fewer intersections
        - Adverse weather: duration x1.1

        Raises:
            ValidationError: If live_conditions is malformed
            NotFoundError: If the vehicle is not active
        """
        conditions = parse_model(LiveConditions, live_conditions, field='liveConditions')

        with self._lock:
            record = self._get(vehicle_id)
            original = record.route

            estimated_time = original.estimated_time
            intersections = original.intersections
            congestion_aware = conditions.traffic_density > 0.7
            if congestion_aware:
                estimated_time *= 0.8
                intersections = max(0, intersections - 2)
            if conditions.adverse_weather:
                estimated_time *= 1.1

            optimized = original.model_copy(update={
                'estimated_time': estimated_time,
                'intersections': intersections,
                'optimization_applied': True
            })

            risk_reduction = 0
            if optimized.intersections < original.intersections:
                risk_reduction += 20
            if optimized.estimated_time < original.estimated_time:
                risk_reduction += 30
            if congestion_aware:
                risk_reduction += 10

            record.route = optimized
            record.optimized_at = self.clock()

        logger.info("[EMERGENCY] Optimized route for %s (risk reduction %d)", vehicle_id, risk_reduction)

        return {
            'vehicleId': vehicle_id,
            'originalRoute': original.to_dict(),
            'optimizedRoute': optimized.to_dict(),
            'timeSaved': max(0.0, original.estimated_time - optimized.estimated_time),
            'intersectionsAvoided': max(0, original.intersections - optimized.intersections),
            'riskReduction': risk_reduction
        }

    # ------------------------------------------------------------------
    # Preemption
    # ------------------------------------------------------------------

    def preempt_intersections(self,
                              vehicle_id: str,
                              intersection_ids: Sequence[str],
                              mode: str = 'immediate') -> Dict[str, Any]:
        """
        Preempt signals along a vehicle's path

        Each target gets a clearance estimate of the class clearance time
        scaled by an intersection complexity in [0.75, 1.25]; the path is
        clear only once every target has cleared, so the aggregate is the
        maximum estimate.

        Raises:
            ValidationError: If intersection_ids is not a non-empty list of ids
            InvalidStateError: If mode is not immediate or staged
            NotFoundError: If the vehicle is not active or a target
                intersection does not exist on the wired controller
        """
        if (not isinstance(intersection_ids, (list, tuple)) or not intersection_ids
                or not all(isinstance(i, str) and i for i in intersection_ids)):
            raise ValidationError("Valid intersection IDs array required",
                                  field='intersectionIds', value=intersection_ids)
        if mode not in PREEMPTION_MODES:
            raise InvalidStateError(f"Invalid preemption type: {mode!r}", value=mode)

        with self._lock:
            record = self._get(vehicle_id)
            if self.controller is not None:
                for iid in intersection_ids:
                    if not self.controller.has_intersection(iid):
                        raise NotFoundError(f"Intersection {iid} not found", entity_id=iid)

            base_clearance = VEHICLE_CATALOG[record.vehicle_class].clearance_time
            timestamp = self.clock()
            entries = []

            for index, iid in enumerate(intersection_ids):
                complexity = self.rng.uniform(0.75, 1.25)
                entry = PreemptionEntry(
                    intersection_id=iid,
                    vehicle_id=vehicle_id,
                    mode=mode,
                    timestamp=timestamp,
                    estimated_clearance=int(round(base_clearance * complexity)),
                    delay=index * self.stagger if mode == 'staged' else 0
                )

                if self.controller is not None:
                    outcome = self.controller.preempt(iid, vehicle_id, delay=entry.delay)
                    entry.applied = outcome['applied']
                    entry.task_id = outcome['taskId']

                entries.append(entry)

            record.preemptions.extend(entries)
            self.total_preemptions += len(entries)

        logger.info("[EMERGENCY] %s preempted %d intersection(s) (%s)", vehicle_id, len(entries), mode)

        return {
            'vehicleId': vehicle_id,
            'totalIntersections': len(entries),
            'preemptionType': mode,
            'results': [e.to_dict() for e in entries],
            'estimatedPathClearance': max(e.estimated_clearance for e in entries)
        }

    # ------------------------------------------------------------------
    # Multi-emergency coordination
    # ------------------------------------------------------------------

    def coordinate_multiple(self, vehicle_ids: Sequence[str]) -> Dict[str, Any]:
        """
        Resolve route conflicts between simultaneous emergencies

        Raises:
            ValidationError: If fewer than 2 distinct vehicle ids are given
            NotFoundError: If any vehicle is not active
            ConflictError: If a hard conflict has no resolvable ordering
        """
        if (not isinstance(vehicle_ids, (list, tuple)) or len(vehicle_ids) < 2
                or len(set(vehicle_ids)) != len(vehicle_ids)):
            raise ValidationError("At least 2 emergency vehicles required for coordination",
                                  field='vehicleIds', value=vehicle_ids)

        with self._lock:
            records = [self._get(vid) for vid in vehicle_ids]
            conflicts = identify_conflicts(records, self.rng, self.conflict_window)
            plan = resolve(records, conflicts, self.severity_delays)
            self.total_coordinations += 1

        total_delay = sum(step['delay'] for step in plan)
        logger.info("[EMERGENCY] Coordinated %d vehicles, %d conflict(s), total delay %ds",
                    len(records), len(conflicts), total_delay)

        return {
            'planExecuted': True,
            'coordinatedVehicles': len(records),
            'conflictsResolved': len(conflicts),
            'conflicts': [c.to_dict() for c in conflicts],
            'priorityOrder': [step['vehicleId'] for step in plan],
            'resolutionPlan': plan,
            'totalDelay': total_delay
        }

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------

    def deregister(self, vehicle_id: str, completion_status: str = 'completed') -> Dict[str, Any]:
        """
        Complete an emergency and move it to the response history

        Pending deferred preemptions owned by the vehicle are cancelled and
        its emergency priority is released on the controller.

        Raises:
            NotFoundError: If the vehicle is not active
        """
        with self._lock:
            record = self._get(vehicle_id)

            entry = record.to_history(self.clock(), completion_status)
            self.history.append(entry)

            cancelled = 0
            released = []
            if self.controller is not None:
                cancelled = self.controller.cancel_deferred(vehicle_id)
                released = self.controller.release_vehicle(vehicle_id)

            cleared = len(record.preemptions)
            record.preemptions.clear()
            del self.active[vehicle_id]

        logger.info("[EMERGENCY] Deregistered %s (%s, %d ms)",
                    vehicle_id, completion_status, entry.response_time)

        return {
            'vehicleId': vehicle_id,
            'deregistrationStatus': 'completed',
            'responseTime': entry.response_time,
            'intersectionsCleared': cleared,
            'releasedIntersections': released,
            'cancelledActions': cancelled,
            'finalStatus': completion_status
        }

    def analyze_performance(self, window: int = 86_400_000) -> Dict[str, Any]:
        """
        Analyze responses completed within the last window ms

        Bottlenecks:
        - More than 20% of responses slower than the slow-response threshold
        - Any response touching more than the complex-route intersection count
        """
        cutoff = self.clock() - window
        with self._lock:
            responses = [r for r in self.history if r.completed_at >= cutoff]

        if not responses:
            return {
                'message': 'No emergency responses in specified time range',
                'totalResponses': 0
            }

        average = sum(r.response_time for r in responses) / len(responses)
        success_rate = sum(1 for r in responses if r.success) / len(responses) * 100

        by_class = {}
        for kind in VehicleClass:
            matching = [r for r in responses if r.vehicle_class == kind]
            if matching:
                by_class[kind.value] = {
                    'count': len(matching),
                    'averageResponseTime': sum(r.response_time for r in matching) / len(matching),
                    'successRate': sum(1 for r in matching if r.success) / len(matching) * 100
                }

        bottlenecks = []
        slow = [r for r in responses if r.response_time > self.slow_response_threshold]
        if len(slow) > len(responses) * 0.2:
            bottlenecks.append('High response time detected')
        if any(r.intersections_touched > self.complex_route_intersections for r in responses):
            bottlenecks.append('Complex intersection navigation')

        recommendations = []
        if average > 90_000:
            recommendations.append('Optimize traffic preemption algorithms')
        if success_rate < 95:
            recommendations.append('Review emergency vehicle routing protocols')
        if bottlenecks:
            recommendations.append('Address identified system bottlenecks')

        return {
            'totalResponses': len(responses),
            'averageResponseTime': average,
            'successRate': success_rate,
            'performanceByType': by_class,
            'bottlenecks': bottlenecks,
            'recommendations': recommendations
        }

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_record(self, vehicle_id: str) -> EmergencyRecord:
        """Get an active record (raises NotFoundError)"""
        with self._lock:
            return self._get(vehicle_id)

    def is_active(self, vehicle_id: str) -> bool:
        with self._lock:
            return vehicle_id in self.active

    def get_history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Most recent response history entries, newest last"""
        with self._lock:
            entries = list(self.history)
        if limit is not None:
            entries = entries[-limit:] if limit > 0 else []
        return [e.to_dict() for e in entries]

    def get_statistics(self) -> Dict[str, Any]:
        """Get coordinator statistics"""
        with self._lock:
            return {
                'activeEmergencies': len(self.active),
                'activeVehicles': list(self.active.keys()),
                'totalRegistered': self.total_registered,
                'totalPreemptions': self.total_preemptions,
                'totalCoordinations': self.total_coordinations,
                'historySize': len(self.history)
            }

    def _get(self, vehicle_id: str) -> EmergencyRecord:
        record = self.active.get(vehicle_id)
        if record is None:
            raise NotFoundError(f"Emergency vehicle {vehicle_id} not found or not active", entity_id=vehicle_id)
        return record


def _parse_enum(enum_cls, value, field: str, message: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        raise ValidationError(message, field=field, value=value)


# Global coordinator instance
_emergency_coordinator: Optional[EmergencyCoordinator] = None


def get_emergency_coordinator() -> Optional[EmergencyCoordinator]:
    """Get global emergency coordinator instance"""
    return _emergency_coordinator


def init_emergency_coordinator(config: dict = None,
                               controller=None,
                               route_planner: Optional[RoutePlanner] = None,
                               rng: Optional[np.random.Generator] = None,
                               clock: Optional[Clock] = None) -> EmergencyCoordinator:
    """Initialize global emergency coordinator"""
    global _emergency_coordinator
    _emergency_coordinator = EmergencyCoordinator(
        config=config,
        controller=controller,
        route_planner=route_planner,
        rng=rng,
        clock=clock
    )
    return _emergency_coordinator
