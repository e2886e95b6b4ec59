"""
Intersection Controller

Owns every intersection's signal state machine and cycle timing.
This is the single point that applies externally visible state changes:
manual transitions, adaptive timing, emergency arrivals, emergency
preemption and multi-intersection coordination plans all go through it.

State machine:
- States: RED, YELLOW, GREEN (always exactly one)
- transition() is the only path that mutates the state; every
  transition increments the intersection's generation counter
- Deferred greens (coordination plans, staged preemption) carry the
  generation captured at planning time and are dropped if it advanced
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Deque, Dict, List, Optional, Sequence, Set

from signalgrid.clock import Clock, now_ms
from signalgrid.exceptions import DuplicateError, NotFoundError, ValidationError
from signalgrid.models import (
    CongestionLevel,
    CycleTiming,
    IntersectionPriority,
    SignalState,
    TrafficObservation,
    parse_coordination_mode,
    parse_model,
    parse_signal_state,
)

from .coordination import build_plan
from .scheduler import DeferredAction, DeferredScheduler

logger = logging.getLogger(__name__)

CONGESTION_ADJUSTMENT = {
    CongestionLevel.LOW: 0.8,
    CongestionLevel.MODERATE: 1.0,
    CongestionLevel.HIGH: 1.3,
    CongestionLevel.CRITICAL: 1.6,
}

DEFAULT_SENSORS = ('north', 'south', 'east', 'west')


@dataclass
class TransitionRecord:
    """Result of a signal state transition"""
    intersection_id: str
    previous_state: SignalState
    current_state: SignalState
    timestamp: int
    scheduled_duration: float
    generation: int
    source: str = 'manual'      # manual | deferred | priority | preemption

    def to_dict(self) -> Dict[str, Any]:
        return {
            'intersectionId': self.intersection_id,
            'previousState': self.previous_state.value,
            'currentState': self.current_state.value,
            'timestamp': self.timestamp,
            'scheduledDuration': self.scheduled_duration,
            'generation': self.generation,
            'source': self.source
        }


@dataclass
class PriorityIntent:
    """Emergency arrival too far out for an immediate green"""
    intersection_id: str
    vehicle_id: str
    approach: str
    eta: int                    # ms until arrival
    created_at: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'intersectionId': self.intersection_id,
            'vehicleId': self.vehicle_id,
            'approach': self.approach,
            'eta': self.eta,
            'createdAt': self.created_at
        }


@dataclass
class Intersection:
    """
    Signalized intersection owned by the controller

    Mutated only through IntersectionController operations.
    """
    intersection_id: str
    cycle: CycleTiming
    base_cycle: CycleTiming
    last_state_change: int
    state: SignalState = SignalState.RED
    sensors: Dict[str, int] = field(default_factory=lambda: {d: 0 for d in DEFAULT_SENSORS})
    adaptive_mode: bool = True
    priority: IntersectionPriority = IntersectionPriority.NORMAL
    generation: int = 0

    # Lifecycle counters
    total_cycles: int = 0
    average_wait: float = 0.0           # seconds, rolling
    throughput: float = 0.0             # vehicles observed

    wait_samples: Deque[float] = field(default_factory=lambda: deque(maxlen=20))
    transition_log: Deque[TransitionRecord] = field(default_factory=lambda: deque(maxlen=50))
    emergency_holders: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'intersectionId': self.intersection_id,
            'state': self.state.value,
            'cycle': self.cycle.to_dict(),
            'sensors': dict(self.sensors),
            'adaptiveMode': self.adaptive_mode,
            'priority': self.priority.value,
            'generation': self.generation,
            'lastStateChange': self.last_state_change,
            'metadata': {
                'totalCycles': self.total_cycles,
                'averageWaitTime': round(self.average_wait, 2),
                'throughput': self.throughput
            }
        }


class IntersectionController:
    """
    Manage intersection signal state machines

    Responsibilities:
    - Create intersections and apply validated state transitions
    - Adapt cycle timing to observed load and congestion
    - Give emergency arrivals an immediate green or record an intent
    - Schedule coordination plans (green wave, synchronized, adaptive network)
    - Report efficiency and health

    Usage:
        controller = IntersectionController()
        controller.initialize("I-1")
        controller.transition("I-1", "GREEN")
        controller.coordinate(["I-1", "I-2"], "green_wave")
        controller.tick()
    """

    def __init__(self, config: dict = None, clock: Optional[Clock] = None,
                 scheduler_config: dict = None):
        """
        Initialize intersection controller

        Args:
            config: Configuration dict with options:
                - defaultCycle: {green, yellow, red} seconds (default: 30/5/25)
                - redFloor: Minimum red seconds (default: 15)
                - greenWaveOffset: Delay between consecutive greens, ms (default: 5000)
                - immediateArrivalWindow: ETA for an immediate green, ms (default: 10000)
                - clearanceAfterArrival: Clearance estimate after arrival, ms (default: 15000)
                - highWaitThreshold: Rolling wait that lengthens greens, s (default: 45)
                - transitionLogSize: Transitions kept per intersection (default: 50)
                - waitWindow: Wait observations in the rolling average (default: 20)
            clock: Millisecond clock
            scheduler_config: Configuration for the deferred scheduler
        """
        self.config = config or {}
        self.clock = clock or now_ms

        self.default_cycle = CycleTiming(**self.config.get('defaultCycle', {}))
        self.red_floor = self.config.get('redFloor', 15)
        self.green_wave_offset = self.config.get('greenWaveOffset', 5000)
        self.immediate_window = self.config.get('immediateArrivalWindow', 10_000)
        self.clearance_after_arrival = self.config.get('clearanceAfterArrival', 15_000)
        self.high_wait_threshold = self.config.get('highWaitThreshold', 45)
        self.transition_log_size = self.config.get('transitionLogSize', 50)
        self.wait_window = self.config.get('waitWindow', 20)

        # Intersection arena
        self.intersections: Dict[str, Intersection] = {}
        self.priority_intents: List[PriorityIntent] = []

        self._lock = threading.RLock()
        self.scheduler = DeferredScheduler(
            generation_of=self.generation_of,
            clock=self.clock,
            guard=self._lock,
            config=scheduler_config
        )

        # Statistics
        self.plan_counter = 0
        self.total_transitions = 0
        self.total_adaptations = 0

        logger.info("[CONTROL] Intersection Controller initialized")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, intersection_id: str, config: Optional[Dict[str, Any]] = None) -> Intersection:
        """
        Create an intersection

        Args:
            intersection_id: Unique intersection ID
            config: Optional overrides:
                - cycle: {green, yellow, red} seconds, merged over the default
                - sensors: per-approach counts
                - adaptive_mode: adaptive timing on/off (default: on)
                - priority: 'normal' or 'emergency'

        Raises:
            ValidationError: If id or config is malformed
            DuplicateError: If the id already exists
        """
        if not intersection_id or not isinstance(intersection_id, str):
            raise ValidationError("Intersection ID must be a valid string",
                                  field='intersectionId', value=intersection_id)
        config = config or {}
        if not isinstance(config, dict):
            raise ValidationError("Intersection config must be a mapping", field='config', value=config)

        cycle_overrides = config.get('cycle') or {}
        if not isinstance(cycle_overrides, dict):
            raise ValidationError("Cycle must be a mapping", field='cycle', value=cycle_overrides)
        cycle = parse_model(CycleTiming, {**self.default_cycle.model_dump(), **cycle_overrides}, field='cycle')
        if cycle.red < self.red_floor:
            raise ValidationError(f"Red duration must be at least {self.red_floor}s",
                                  field='cycle.red', value=cycle.red)

        sensors = config.get('sensors')
        if sensors is not None and not isinstance(sensors, dict):
            raise ValidationError("Sensors must be a mapping", field='sensors', value=sensors)

        try:
            priority = IntersectionPriority(config.get('priority', IntersectionPriority.NORMAL))
        except ValueError:
            raise ValidationError("Priority must be 'normal' or 'emergency'",
                                  field='priority', value=config.get('priority'))

        adaptive = config.get('adaptive_mode', config.get('adaptiveMode', True))

        with self._lock:
            if intersection_id in self.intersections:
                raise DuplicateError(f"Intersection {intersection_id} already exists",
                                     entity_id=intersection_id)

            intersection = Intersection(
                intersection_id=intersection_id,
                cycle=cycle,
                base_cycle=cycle.model_copy(),
                last_state_change=self.clock(),
                adaptive_mode=bool(adaptive),
                priority=priority,
                wait_samples=deque(maxlen=self.wait_window),
                transition_log=deque(maxlen=self.transition_log_size)
            )
            if sensors is not None:
                intersection.sensors = dict(sensors)

            self.intersections[intersection_id] = intersection

        logger.info("[CONTROL] Intersection %s initialized (%d/%d/%d)",
                    intersection_id, cycle.green, cycle.yellow, cycle.red)
        return intersection

    def transition(self,
                   intersection_id: str,
                   new_state: Any,
                   duration: Optional[float] = None,
                   source: str = 'manual') -> TransitionRecord:
        """
        Change an intersection's signal state

        Args:
            intersection_id: Intersection ID
            new_state: RED, YELLOW or GREEN (enum or case-insensitive name)
            duration: Scheduled duration in seconds (default: cycle duration)

        Raises:
            InvalidStateError: If new_state is not a signal state
            ValidationError: If duration is not a positive number
            NotFoundError: If the intersection does not exist
        """
        state = parse_signal_state(new_state)
        if duration is not None and (isinstance(duration, bool) or not isinstance(duration, Real)
                                     or duration <= 0):
            raise ValidationError("Duration must be a positive number", field='duration', value=duration)

        with self._lock:
            intersection = self._get(intersection_id)

            previous = intersection.state
            intersection.state = state
            intersection.last_state_change = self.clock()
            intersection.generation += 1
            if state == SignalState.GREEN:
                intersection.total_cycles += 1

            record = TransitionRecord(
                intersection_id=intersection_id,
                previous_state=previous,
                current_state=state,
                timestamp=intersection.last_state_change,
                scheduled_duration=duration if duration is not None else intersection.cycle.duration_for(state),
                generation=intersection.generation,
                source=source
            )
            intersection.transition_log.append(record)
            self.total_transitions += 1

        logger.debug("[CONTROL] %s: %s -> %s (gen %d, %s)",
                     intersection_id, previous.value, state.value, record.generation, source)
        return record

    # ------------------------------------------------------------------
    # Adaptive timing
    # ------------------------------------------------------------------

    def adapt_timing(self, intersection_id: str, sample: Any) -> Dict[str, Any]:
        """
        Adapt an intersection's cycle to observed traffic

        Two passes over the base cycle:
        1. Load and congestion: green x clamp(count/20, 0.5, 2.0) x adj,
           red / adj (never below the red floor), yellow unchanged
        2. Historical feedback: rolling wait > threshold lengthens green
           (x1.1, red /1.1), otherwise shortens it (x0.95, red /0.95)

        Args:
            intersection_id: Intersection ID
            sample: Mapping with vehicleCount, congestionLevel, timestamp,
                and optionally sensors and waitTime

        Returns:
            New timing, improvement percentage and confidence

        Raises:
            ValidationError: If the sample is malformed
            NotFoundError: If the intersection does not exist
        """
        observation = parse_model(TrafficObservation, sample, field='trafficData')

        with self._lock:
            intersection = self._get(intersection_id)

            if observation.wait_time is not None:
                intersection.wait_samples.append(observation.wait_time)
                intersection.average_wait = sum(intersection.wait_samples) / len(intersection.wait_samples)
            if observation.sensors is not None:
                intersection.sensors.update(observation.sensors)
            intersection.throughput += observation.vehicle_count or 0

            previous = intersection.cycle
            confidence = self._adaptation_confidence(observation)

            if not intersection.adaptive_mode:
                return {
                    'intersectionId': intersection_id,
                    'applied': False,
                    'newTiming': previous.to_dict(),
                    'improvementFactor': 0.0,
                    'confidence': confidence
                }

            adapted = self._optimize_timing(intersection, self._load_timing(intersection, observation))
            intersection.cycle = adapted
            intersection.total_cycles += 1
            self.total_adaptations += 1

        improvement = self._improvement(previous, adapted)
        logger.info("[CONTROL] %s timing adapted to %d/%d/%d (%+.2f%%)",
                    intersection_id, adapted.green, adapted.yellow, adapted.red, improvement)

        return {
            'intersectionId': intersection_id,
            'applied': True,
            'previousTiming': previous.to_dict(),
            'newTiming': adapted.to_dict(),
            'improvementFactor': improvement,
            'confidence': confidence
        }

    def _load_timing(self, intersection: Intersection, observation: TrafficObservation) -> CycleTiming:
        base = intersection.base_cycle
        load_multiplier = max(0.5, min(2.0, (observation.vehicle_count or 0) / 20))
        adjustment = CONGESTION_ADJUSTMENT[observation.congestion_level or CongestionLevel.LOW]

        return CycleTiming(
            green=max(1, round(base.green * load_multiplier * adjustment)),
            yellow=base.yellow,
            red=max(self.red_floor, round(base.red / adjustment))
        )

    def _optimize_timing(self, intersection: Intersection, timing: CycleTiming) -> CycleTiming:
        historical_wait = intersection.average_wait or 30
        factor = 1.1 if historical_wait > self.high_wait_threshold else 0.95

        return CycleTiming(
            green=max(1, round(timing.green * factor)),
            yellow=timing.yellow,
            red=max(self.red_floor, round(timing.red / factor))
        )

    def _improvement(self, old: CycleTiming, new: CycleTiming) -> float:
        old_ratio = old.green / (old.green + old.red)
        new_ratio = new.green / (new.green + new.red)
        return round((new_ratio - old_ratio) / old_ratio * 100, 2)

    def _adaptation_confidence(self, observation: TrafficObservation) -> float:
        confidence = 0.0
        if observation.vehicle_count:
            confidence += 0.4
        if observation.congestion_level is not None:
            confidence += 0.3
        if observation.timestamp is not None:
            confidence += 0.3
        return round(confidence, 2)

    # ------------------------------------------------------------------
    # Emergency handling
    # ------------------------------------------------------------------

    def handle_priority_arrival(self,
                                intersection_id: str,
                                vehicle_id: str,
                                approach: str,
                                eta: int) -> Dict[str, Any]:
        """
        React to an emergency vehicle approaching an intersection

        ETA within the immediate window forces GREEN and emergency
        priority; otherwise a scheduled-priority intent is recorded for
        the emergency coordinator.

        Raises:
            ValidationError: If eta is not a non-negative number
            NotFoundError: If the intersection does not exist
        """
        if isinstance(eta, bool) or not isinstance(eta, Real) or eta < 0:
            raise ValidationError("Estimated arrival must be a positive number", field='eta', value=eta)
        if not vehicle_id or not isinstance(vehicle_id, str):
            raise ValidationError("Vehicle ID must be a valid string", field='vehicleId', value=vehicle_id)

        with self._lock:
            intersection = self._get(intersection_id)

            if eta <= self.immediate_window:
                record = self.transition(intersection_id, SignalState.GREEN, source='priority')
                intersection.priority = IntersectionPriority.EMERGENCY
                intersection.emergency_holders.add(vehicle_id)
                action = 'immediate_green'
                logger.info("[CONTROL] %s: immediate green for %s (%s)", intersection_id, vehicle_id, approach)
            else:
                record = None
                self.priority_intents.append(PriorityIntent(
                    intersection_id=intersection_id,
                    vehicle_id=vehicle_id,
                    approach=approach,
                    eta=int(eta),
                    created_at=self.clock()
                ))
                action = 'scheduled_priority'
                logger.info("[CONTROL] %s: priority scheduled for %s in %d ms",
                            intersection_id, vehicle_id, eta)

        return {
            'emergencyId': vehicle_id,
            'intersectionId': intersection_id,
            'actionTaken': action,
            'estimatedClearance': int(eta) + self.clearance_after_arrival,
            'transition': record.to_dict() if record else None
        }

    def pending_priority_intents(self, vehicle_id: Optional[str] = None) -> List[PriorityIntent]:
        """Scheduled-priority intents, optionally for one vehicle"""
        with self._lock:
            return [i for i in self.priority_intents if vehicle_id is None or i.vehicle_id == vehicle_id]

    def preempt(self,
                intersection_id: str,
                vehicle_id: str,
                delay: int = 0) -> Dict[str, Any]:
        """
        Give an emergency vehicle GREEN at an intersection

        delay == 0 applies the green now; otherwise a generation-guarded
        deferred green owned by the vehicle is scheduled.

        Raises:
            NotFoundError: If the intersection does not exist
        """
        with self._lock:
            intersection = self._get(intersection_id)

            if delay <= 0:
                record = self.transition(intersection_id, SignalState.GREEN, source='preemption')
                intersection.priority = IntersectionPriority.EMERGENCY
                intersection.emergency_holders.add(vehicle_id)
                return {'applied': True, 'transition': record.to_dict(), 'taskId': None}

            task = self.scheduler.schedule(
                entity_id=intersection_id,
                delay_ms=delay,
                generation=intersection.generation,
                action=lambda: self._apply_preemption(intersection_id, vehicle_id),
                owner=vehicle_id,
                description=f"preemption green for {vehicle_id}"
            )
            return {'applied': False, 'transition': None, 'taskId': task.task_id}

    def _apply_preemption(self, intersection_id: str, vehicle_id: str) -> TransitionRecord:
        record = self.transition(intersection_id, SignalState.GREEN, source='preemption')
        intersection = self.intersections[intersection_id]
        intersection.priority = IntersectionPriority.EMERGENCY
        intersection.emergency_holders.add(vehicle_id)
        return record

    def release_priority(self, intersection_id: str, vehicle_id: str) -> bool:
        """
        Release a vehicle's emergency hold and intents at an intersection

        Priority returns to normal once no vehicle holds it.

        Returns:
            True if the vehicle held priority or had an intent there

        Raises:
            NotFoundError: If the intersection does not exist
        """
        with self._lock:
            intersection = self._get(intersection_id)

            held = vehicle_id in intersection.emergency_holders
            intersection.emergency_holders.discard(vehicle_id)

            before = len(self.priority_intents)
            self.priority_intents = [
                i for i in self.priority_intents
                if not (i.intersection_id == intersection_id and i.vehicle_id == vehicle_id)
            ]

            if not intersection.emergency_holders:
                intersection.priority = IntersectionPriority.NORMAL

        return held or len(self.priority_intents) != before

    def release_vehicle(self, vehicle_id: str) -> List[str]:
        """
        Release every emergency hold and scheduled intent of a vehicle

        Returns:
            Intersection IDs the vehicle held or had an intent at
        """
        with self._lock:
            released = [
                iid for iid, intersection in self.intersections.items()
                if vehicle_id in intersection.emergency_holders
            ]
            for iid in released:
                intersection = self.intersections[iid]
                intersection.emergency_holders.discard(vehicle_id)
                if not intersection.emergency_holders:
                    intersection.priority = IntersectionPriority.NORMAL

            kept = []
            for intent in self.priority_intents:
                if intent.vehicle_id != vehicle_id:
                    kept.append(intent)
                elif intent.intersection_id not in released:
                    released.append(intent.intersection_id)
            self.priority_intents = kept

        if released:
            logger.info("[CONTROL] Released %s at %d intersections", vehicle_id, len(released))
        return released

    def cancel_deferred(self, owner: str) -> int:
        """Cancel every pending deferred action owned by owner"""
        with self._lock:
            return self.scheduler.cancel_owner(owner)

    # ------------------------------------------------------------------
    # Coordination
    # ------------------------------------------------------------------

    def coordinate(self, intersection_ids: Sequence[str], mode: Any = 'green_wave') -> Dict[str, Any]:
        """
        Schedule a multi-intersection coordination plan

        Modes:
        - green_wave: intersection i turns green after i x offset ms
        - synchronized: every intersection turns green together
        - adaptive_network: delay equals the intersection's rolling average wait

        Every step is a deferred GREEN guarded by the generation captured now.

        Raises:
            ValidationError: If fewer than 2 intersections are given
            InvalidStateError: If mode is unknown
            NotFoundError: If any intersection does not exist
        """
        if (not isinstance(intersection_ids, (list, tuple)) or len(intersection_ids) < 2
                or not all(isinstance(i, str) and i for i in intersection_ids)):
            raise ValidationError("At least 2 intersections required for coordination",
                                  field='intersectionIds', value=intersection_ids)
        coordination_mode = parse_coordination_mode(mode)

        with self._lock:
            intersections = [self._get(iid) for iid in intersection_ids]

            plan = build_plan(
                coordination_mode,
                intersection_ids,
                [i.average_wait for i in intersections],
                self.green_wave_offset
            )

            self.plan_counter += 1
            plan_id = f"PLAN-{self.plan_counter:05d}"

            results = []
            for step, intersection in zip(plan, intersections):
                task = self.scheduler.schedule(
                    entity_id=step.intersection_id,
                    delay_ms=step.delay,
                    generation=intersection.generation,
                    action=self._deferred_green(step.intersection_id),
                    owner=plan_id,
                    description=step.action
                )
                results.append({
                    'intersectionId': step.intersection_id,
                    'scheduled': True,
                    'delay': step.delay,
                    'action': step.action,
                    'taskId': task.task_id
                })

        logger.info("[CONTROL] %s: %s across %d intersections",
                    plan_id, coordination_mode.value, len(results))

        return {
            'planId': plan_id,
            'mode': coordination_mode.value,
            'planExecuted': True,
            'coordinatedIntersections': len(results),
            'results': results
        }

    def _deferred_green(self, intersection_id: str):
        return lambda: self.transition(intersection_id, SignalState.GREEN, source='deferred')

    def tick(self, now: Optional[int] = None) -> List[DeferredAction]:
        """Fire deferred actions that are due"""
        return self.scheduler.run_pending(now)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def status(self, intersection_id: str) -> Dict[str, Any]:
        """
        Get intersection status and analytics

        Raises:
            NotFoundError: If the intersection does not exist
        """
        with self._lock:
            intersection = self._get(intersection_id)
            cycle = intersection.cycle

            return {
                'intersectionId': intersection_id,
                'currentState': intersection.state.value,
                'runtime': self.clock() - intersection.last_state_change,
                'cycle': cycle.to_dict(),
                'priority': intersection.priority.value,
                'sensors': dict(intersection.sensors),
                'generation': intersection.generation,
                'metadata': {
                    'totalCycles': intersection.total_cycles,
                    'averageWaitTime': round(intersection.average_wait, 2),
                    'throughput': intersection.throughput
                },
                'efficiency': round(cycle.green / cycle.total * 100),
                'health': self._health(intersection)
            }

    def _health(self, intersection: Intersection) -> str:
        cycle_balance = intersection.cycle.green / intersection.cycle.red
        if cycle_balance > 0.5 and intersection.total_cycles > 10:
            return 'excellent'
        if cycle_balance > 0.3:
            return 'good'
        return 'needs_attention'

    def get_intersection(self, intersection_id: str) -> Intersection:
        """Get an intersection (raises NotFoundError)"""
        with self._lock:
            return self._get(intersection_id)

    def has_intersection(self, intersection_id: str) -> bool:
        with self._lock:
            return intersection_id in self.intersections

    def generation_of(self, intersection_id: str) -> Optional[int]:
        """Current generation, or None if the intersection does not exist"""
        with self._lock:
            intersection = self.intersections.get(intersection_id)
            return intersection.generation if intersection else None

    def transition_log(self, intersection_id: str) -> List[TransitionRecord]:
        with self._lock:
            return list(self._get(intersection_id).transition_log)

    def get_statistics(self) -> Dict[str, Any]:
        """Get controller statistics"""
        with self._lock:
            emergency = [i.intersection_id for i in self.intersections.values()
                         if i.priority == IntersectionPriority.EMERGENCY]
            return {
                'intersections': len(self.intersections),
                'emergencyIntersections': emergency,
                'pendingPriorityIntents': len(self.priority_intents),
                'totalTransitions': self.total_transitions,
                'totalAdaptations': self.total_adaptations,
                'plansScheduled': self.plan_counter,
                'scheduler': self.scheduler.get_statistics()
            }

    def _get(self, intersection_id: str) -> Intersection:
        intersection = self.intersections.get(intersection_id)
        if intersection is None:
            raise NotFoundError(f"Intersection {intersection_id} not found", entity_id=intersection_id)
        return intersection


# Global controller instance
_intersection_controller: Optional[IntersectionController] = None


def get_intersection_controller() -> Optional[IntersectionController]:
    """Get global intersection controller instance"""
    return _intersection_controller


def init_intersection_controller(config: dict = None,
                                 clock: Optional[Clock] = None,
                                 scheduler_config: dict = None) -> IntersectionController:
    """Initialize global intersection controller"""
    global _intersection_controller
    _intersection_controller = IntersectionController(
        config=config,
        clock=clock,
        scheduler_config=scheduler_config
    )
    return _intersection_controller
