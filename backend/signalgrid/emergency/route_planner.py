"""
Emergency Route Planning

The routing collaborator is an extension point: anything with a
plan_route(origin, destination) method returning a RouteEstimate can
be wired into the coordinator. SimulatedRoutePlanner stands in when no
real router is available.
"""

import math
from typing import Optional, Protocol

import numpy as np

from signalgrid.models import RouteEstimate


class RoutePlanner(Protocol):
    """Routing collaborator interface"""

    def plan_route(self, origin: str, destination: str) -> RouteEstimate:
        ...


class SimulatedRoutePlanner:
    """
    Route generator drawing from an injected random generator

    - Distance: uniform 2-12 km
    - Duration: 2 minutes per km at emergency speed
    - Waypoints: 2-4 named waypoints
    - Intersections: one per 500 m
    """

    MIN_DISTANCE = 2.0          # km
    DISTANCE_SPAN = 10.0        # km
    MINUTES_PER_KM = 2
    KM_PER_INTERSECTION = 0.5

    def __init__(self, rng: Optional[np.random.Generator] = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def plan_route(self, origin: str, destination: str) -> RouteEstimate:
        distance = float(self.rng.uniform(self.MIN_DISTANCE, self.MIN_DISTANCE + self.DISTANCE_SPAN))
        waypoint_count = int(self.rng.integers(2, 5))

        return RouteEstimate(
            distance=round(distance, 3),
            estimated_time=distance * self.MINUTES_PER_KM * 60 * 1000,
            waypoints=[f"waypoint_{i + 1}_{origin}_to_{destination}" for i in range(waypoint_count)],
            intersections=math.ceil(distance / self.KM_PER_INTERSECTION)
        )
