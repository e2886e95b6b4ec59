"""
Emergency Coordination

Emergency vehicle registration, routing, signal preemption and
multi-vehicle conflict resolution.

Components:
- EmergencyCoordinator: Active emergencies, preemption, response analytics
- RoutePlanner / SimulatedRoutePlanner: Routing collaborator
- conflict_resolver: Pairwise conflict detection and resolution plans
"""

from .records import (
    EmergencyRecord,
    PreemptionEntry,
)

from .route_planner import (
    RoutePlanner,
    SimulatedRoutePlanner,
)

from .conflict_resolver import (
    RouteConflict,
    find_route_conflict,
    identify_conflicts,
    priority_order,
    resolve,
)

from .emergency_coordinator import (
    EmergencyCoordinator,
    get_emergency_coordinator,
    init_emergency_coordinator,
)


__all__ = [
    # Records
    "EmergencyRecord",
    "PreemptionEntry",

    # Routing
    "RoutePlanner",
    "SimulatedRoutePlanner",

    # Conflicts
    "RouteConflict",
    "find_route_conflict",
    "identify_conflicts",
    "priority_order",
    "resolve",

    # Coordinator
    "EmergencyCoordinator",
    "get_emergency_coordinator",
    "init_emergency_coordinator",
]
