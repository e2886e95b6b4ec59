"""
Intersection Control

Signal state machines, adaptive cycle timing and multi-intersection
coordination, plus the generation-guarded deferred action scheduler.

Components:
- IntersectionController: Owns intersections and applies every state change
- DeferredScheduler: Bounded-delay actions validated on fire
- coordination: Green wave / synchronized / adaptive network plan builders
"""

from .scheduler import (
    DeferredScheduler,
    DeferredAction,
    ActionStatus,
)

from .coordination import (
    PlanStep,
    build_plan,
)

from .intersection_controller import (
    IntersectionController,
    Intersection,
    TransitionRecord,
    PriorityIntent,
    get_intersection_controller,
    init_intersection_controller,
)


__all__ = [
    # Scheduler
    "DeferredScheduler",
    "DeferredAction",
    "ActionStatus",

    # Coordination
    "PlanStep",
    "build_plan",

    # Controller
    "IntersectionController",
    "Intersection",
    "TransitionRecord",
    "PriorityIntent",
    "get_intersection_controller",
    "init_intersection_controller",
]
