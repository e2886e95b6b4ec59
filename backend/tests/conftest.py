"""
Shared test fixtures

Every component gets a seeded generator and a manual clock so runs
are reproducible.
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from signalgrid.clock import ManualClock
from signalgrid.control import IntersectionController
from signalgrid.emergency import EmergencyCoordinator
from signalgrid.models import RouteEstimate


# 2024-01-10 (a Wednesday) 03:00 UTC, outside the peak bands
START_MS = int(datetime(2024, 1, 10, 3, 0, tzinfo=timezone.utc).timestamp() * 1000)


class FixedRoutePlanner:
    """Route planner returning the same route every time"""

    def __init__(self, distance=5.0, estimated_time=600_000, intersections=10):
        self.distance = distance
        self.estimated_time = estimated_time
        self.intersections = intersections
        self.calls = []

    def plan_route(self, origin, destination):
        self.calls.append((origin, destination))
        return RouteEstimate(
            distance=self.distance,
            estimated_time=self.estimated_time,
            waypoints=[f"waypoint_1_{origin}_to_{destination}", f"waypoint_2_{origin}_to_{destination}"],
            intersections=self.intersections
        )


@pytest.fixture
def clock():
    return ManualClock(START_MS)


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def controller(clock):
    return IntersectionController(clock=clock)


@pytest.fixture
def route_planner():
    return FixedRoutePlanner()


@pytest.fixture
def coordinator(controller, route_planner, rng, clock):
    return EmergencyCoordinator(
        controller=controller,
        route_planner=route_planner,
        rng=rng,
        clock=clock
    )
