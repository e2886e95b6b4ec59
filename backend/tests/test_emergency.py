"""
Emergency Coordinator Tests

Tests for vehicle registration, route optimization, signal preemption,
multi-vehicle conflict resolution and response analytics.
"""

import numpy as np
import pytest

from signalgrid.emergency import (
    EmergencyCoordinator,
    SimulatedRoutePlanner,
    find_route_conflict,
    get_emergency_coordinator,
    init_emergency_coordinator,
)
from signalgrid.exceptions import (
    ConflictError,
    DuplicateError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from signalgrid.models import IntersectionPriority, SignalState


@pytest.fixture
def advisory(route_planner, rng, clock):
    """Coordinator with no controller wired in"""
    return EmergencyCoordinator(route_planner=route_planner, rng=rng, clock=clock)


@pytest.fixture
def network(controller):
    for iid in ("I-1", "I-2", "I-3"):
        controller.initialize(iid)
    return controller


# ============================================
# Registration Tests
# ============================================

class TestRegister:
    """Test emergency registration"""

    @pytest.mark.parametrize("vehicle_class,urgency,priority", [
        ("ambulance", "critical", 1.5),
        ("fire_truck", "high", 1.2),
        ("police", "high", 2.4),
        ("emergency_services", "low", 0.8),
        ("police", "medium", 2.0),
    ])
    def test_dynamic_priority(self, advisory, vehicle_class, urgency, priority):
        """Test priority is base priority x urgency multiplier"""
        result = advisory.register("v-1", vehicle_class, "depot", "hospital", urgency)

        assert result['priority'] == priority
        assert result['registrationStatus'] == 'active'

    def test_registration_result(self, advisory, route_planner):
        """Test route and path clearance plan are returned"""
        result = advisory.register("amb-1", "ambulance", "depot", "hospital")

        assert result['priority'] == 1.2
        assert result['estimatedRoute']['intersections'] == 10
        assert result['pathClearance']['status'] == 'initiated'
        assert result['pathClearance']['estimatedClearanceTime'] == 45
        assert len(result['pathClearance']['actions']) == 4
        assert route_planner.calls == [("depot", "hospital")]

    def test_duplicate_then_reregister(self, advisory):
        """Test duplicates fail until the vehicle is deregistered"""
        advisory.register("amb-1", "ambulance", "depot", "hospital")

        with pytest.raises(DuplicateError):
            advisory.register("amb-1", "ambulance", "depot", "hospital")

        advisory.deregister("amb-1")
        result = advisory.register("amb-1", "ambulance", "depot", "clinic")

        assert result['registrationStatus'] == 'active'
        assert advisory.get_record("amb-1").destination == "clinic"

    @pytest.mark.parametrize("kwargs", [
        {'vehicle_class': 'tank'},
        {'urgency': 'whenever'},
        {'vehicle_id': ''},
        {'origin': None},
    ])
    def test_invalid_registration(self, advisory, kwargs):
        """Test malformed registrations are rejected without side effects"""
        args = {
            'vehicle_id': 'amb-1',
            'vehicle_class': 'ambulance',
            'origin': 'depot',
            'destination': 'hospital',
            'urgency': 'high'
        }
        args.update(kwargs)

        with pytest.raises(ValidationError):
            advisory.register(**args)

        assert advisory.get_statistics()['activeEmergencies'] == 0


class TestSimulatedRoutes:
    """Test the simulated routing collaborator"""

    def test_route_bounds(self):
        """Test simulated routes stay within their ranges"""
        planner = SimulatedRoutePlanner(np.random.default_rng(11))

        for _ in range(50):
            route = planner.plan_route("a", "b")
            assert 2 <= route.distance <= 12
            assert 2 <= len(route.waypoints) <= 4
            assert 4 <= route.intersections <= 24
            assert route.waypoints[0] == "waypoint_1_a_to_b"

    def test_seeded_routes_repeat(self):
        """Test identical seeds give identical routes"""
        first = SimulatedRoutePlanner(np.random.default_rng(5)).plan_route("a", "b")
        second = SimulatedRoutePlanner(np.random.default_rng(5)).plan_route("a", "b")

        assert first == second


# ============================================
# Route Optimization Tests
# ============================================

class TestOptimizePath:
    """Test live route re-optimization"""

    def test_congested_adverse(self, advisory):
        """Test dense traffic and adverse weather adjustments"""
        advisory.register("amb-1", "ambulance", "depot", "hospital")

        result = advisory.optimize_path("amb-1", {'trafficDensity': 0.9, 'weatherConditions': 'adverse'})

        assert result['optimizedRoute']['estimatedTime'] == pytest.approx(528_000)
        assert result['intersectionsAvoided'] == 2
        assert result['timeSaved'] == pytest.approx(72_000)
        assert result['riskReduction'] == 60
        assert advisory.get_record("amb-1").route.intersections == 8

    def test_light_traffic(self, advisory):
        """Test no adjustment and no risk reduction in light traffic"""
        advisory.register("amb-1", "ambulance", "depot", "hospital")

        result = advisory.optimize_path("amb-1", {'trafficDensity': 0.2})

        assert result['timeSaved'] == 0
        assert result['riskReduction'] == 0
        assert result['optimizedRoute']['optimizationApplied'] is True

    def test_intersections_floor_at_zero(self, route_planner, rng, clock):
        """Test intersection count never goes negative"""
        route_planner.intersections = 1
        coordinator = EmergencyCoordinator(route_planner=route_planner, rng=rng, clock=clock)
        coordinator.register("amb-1", "ambulance", "depot", "hospital")

        result = coordinator.optimize_path("amb-1", {'trafficDensity': 0.95})

        assert result['optimizedRoute']['intersections'] == 0
        assert result['intersectionsAvoided'] == 1

    def test_unknown_vehicle(self, advisory):
        """Test optimizing an inactive vehicle fails"""
        with pytest.raises(NotFoundError):
            advisory.optimize_path("ghost", {'trafficDensity': 0.5})

    def test_invalid_conditions(self, advisory):
        """Test malformed live conditions are rejected"""
        advisory.register("amb-1", "ambulance", "depot", "hospital")

        with pytest.raises(ValidationError):
            advisory.optimize_path("amb-1", None)


# ============================================
# Preemption Tests
# ============================================

class TestPreempt:
    """Test signal preemption"""

    def test_aggregate_is_max(self, advisory):
        """Test path clearance is the maximum estimate, never the sum"""
        advisory.register("amb-1", "ambulance", "depot", "hospital")

        result = advisory.preempt_intersections("amb-1", ["i1", "i2"])

        estimates = [r['estimatedClearance'] for r in result['results']]
        assert result['estimatedPathClearance'] == max(estimates)
        assert all(34 <= e <= 56 for e in estimates)
        assert result['totalIntersections'] == 2
        assert len(advisory.get_record("amb-1").preemptions) == 2

    def test_immediate_applies_green(self, coordinator, network):
        """Test immediate preemption turns every target green"""
        coordinator.register("amb-1", "ambulance", "depot", "hospital")

        result = coordinator.preempt_intersections("amb-1", ["I-1", "I-2"])

        assert all(r['applied'] for r in result['results'])
        for iid in ("I-1", "I-2"):
            intersection = network.get_intersection(iid)
            assert intersection.state == SignalState.GREEN
            assert intersection.priority == IntersectionPriority.EMERGENCY
        assert network.get_intersection("I-3").state == SignalState.RED

    def test_staged_defers_greens(self, coordinator, network, clock):
        """Test staged preemption schedules greens 5s apart"""
        coordinator.register("amb-1", "ambulance", "depot", "hospital")

        result = coordinator.preempt_intersections("amb-1", ["I-1", "I-2", "I-3"], mode="staged")

        assert [r['delay'] for r in result['results']] == [0, 5000, 10000]
        assert network.get_intersection("I-1").state == SignalState.GREEN
        assert network.get_intersection("I-2").state == SignalState.RED

        clock.advance(5000)
        network.tick()
        assert network.get_intersection("I-2").state == SignalState.GREEN
        assert network.get_intersection("I-3").state == SignalState.RED

    def test_unknown_intersection_is_atomic(self, coordinator, network):
        """Test a missing target aborts the whole request"""
        coordinator.register("amb-1", "ambulance", "depot", "hospital")

        with pytest.raises(NotFoundError):
            coordinator.preempt_intersections("amb-1", ["I-1", "I-404"])

        assert coordinator.get_record("amb-1").preemptions == []
        assert network.get_intersection("I-1").state == SignalState.RED

    def test_invalid_mode(self, advisory):
        """Test unknown preemption modes are rejected"""
        advisory.register("amb-1", "ambulance", "depot", "hospital")

        with pytest.raises(InvalidStateError):
            advisory.preempt_intersections("amb-1", ["i1"], mode="eventually")

    def test_empty_targets(self, advisory):
        """Test an empty target list is rejected"""
        advisory.register("amb-1", "ambulance", "depot", "hospital")

        with pytest.raises(ValidationError):
            advisory.preempt_intersections("amb-1", [])

    def test_unknown_vehicle(self, advisory):
        """Test preempting for an inactive vehicle fails"""
        with pytest.raises(NotFoundError):
            advisory.preempt_intersections("ghost", ["i1"])


# ============================================
# Multi-Emergency Coordination Tests
# ============================================

class TestCoordinateMultiple:
    """Test conflict detection and resolution"""

    def test_higher_priority_proceeds(self, advisory):
        """Test the highest priority vehicle goes first with zero delay"""
        advisory.register("fire1", "fire_truck", "station", "blaze", "high")
        advisory.register("amb1", "ambulance", "depot", "hospital", "critical")

        result = advisory.coordinate_multiple(["amb1", "fire1"])

        assert result['priorityOrder'][0] == "amb1"
        assert result['resolutionPlan'][0] == {
            'vehicleId': 'amb1', 'priority': 1.5, 'action': 'proceed', 'delay': 0
        }
        assert result['planExecuted'] is True

    def test_order_independent_of_input(self, advisory):
        """Test input order does not change the ranking"""
        advisory.register("amb1", "ambulance", "depot", "hospital", "critical")
        advisory.register("fire1", "fire_truck", "station", "blaze", "high")

        result = advisory.coordinate_multiple(["fire1", "amb1"])

        assert result['priorityOrder'] == ["amb1", "fire1"]

    def test_overlap_within_window_is_high(self, advisory):
        """Test shared intersections preempted together conflict hard"""
        advisory.register("amb1", "ambulance", "depot", "hospital", "critical")
        advisory.register("fire1", "fire_truck", "station", "blaze", "high")
        advisory.preempt_intersections("amb1", ["I-1", "I-2"])
        advisory.preempt_intersections("fire1", ["I-2", "I-3"])

        result = advisory.coordinate_multiple(["amb1", "fire1"])

        assert result['conflictsResolved'] == 1
        assert result['conflicts'][0]['severity'] == 'high'
        assert result['conflicts'][0]['intersections'] == ["I-2"]
        assert result['resolutionPlan'][1]['action'] == 'yield_temporarily'
        assert result['totalDelay'] == 45

    def test_overlap_outside_window_is_medium(self, advisory, clock):
        """Test shared intersections preempted far apart conflict softly"""
        advisory.register("amb1", "ambulance", "depot", "hospital", "critical")
        advisory.register("fire1", "fire_truck", "station", "blaze", "high")
        advisory.preempt_intersections("amb1", ["I-1"])
        clock.advance(120_000)
        advisory.preempt_intersections("fire1", ["I-1"])

        result = advisory.coordinate_multiple(["amb1", "fire1"])

        assert result['conflicts'][0]['severity'] == 'medium'
        assert result['totalDelay'] == 20

    def test_disjoint_routes_do_not_conflict(self, advisory):
        """Test vehicles with disjoint preemptions need no delay"""
        advisory.register("amb1", "ambulance", "depot", "hospital", "critical")
        advisory.register("fire1", "fire_truck", "station", "blaze", "high")
        advisory.preempt_intersections("amb1", ["I-1"])
        advisory.preempt_intersections("fire1", ["I-2"])

        result = advisory.coordinate_multiple(["amb1", "fire1"])

        assert result['conflictsResolved'] == 0
        assert result['totalDelay'] == 0

    def test_delays_sum_over_conflicts(self, advisory):
        """Test a vehicle's delay sums every conflict it is part of"""
        advisory.register("amb1", "ambulance", "a", "b", "critical")
        advisory.register("amb2", "ambulance", "c", "d", "high")
        advisory.register("pol1", "police", "e", "f", "low")
        advisory.preempt_intersections("amb1", ["I-1"])
        advisory.preempt_intersections("amb2", ["I-1"])
        advisory.preempt_intersections("pol1", ["I-1"])

        result = advisory.coordinate_multiple(["amb1", "amb2", "pol1"])

        # police low = 1.6, ambulance critical = 1.5, ambulance high = 1.2
        assert result['priorityOrder'] == ["pol1", "amb1", "amb2"]
        assert [step['delay'] for step in result['resolutionPlan']] == [0, 90, 90]
        assert result['totalDelay'] == 180

    def test_equal_priority_earlier_registration_first(self, advisory, clock):
        """Test ties in priority go to the earlier registration"""
        advisory.register("amb-b", "ambulance", "a", "b", "high")
        clock.advance(1000)
        advisory.register("amb-a", "ambulance", "c", "d", "high")
        advisory.preempt_intersections("amb-b", ["I-1"])
        advisory.preempt_intersections("amb-a", ["I-1"])

        result = advisory.coordinate_multiple(["amb-a", "amb-b"])

        assert result['priorityOrder'] == ["amb-b", "amb-a"]

    def test_unresolvable_conflict(self, advisory):
        """Test identical priority and registration on a hard conflict"""
        advisory.register("amb-1", "ambulance", "a", "b", "high")
        advisory.register("amb-2", "ambulance", "c", "d", "high")
        advisory.preempt_intersections("amb-1", ["I-1"])
        advisory.preempt_intersections("amb-2", ["I-1"])

        with pytest.raises(ConflictError) as excinfo:
            advisory.coordinate_multiple(["amb-1", "amb-2"])

        assert set(excinfo.value.vehicle_ids) == {"amb-1", "amb-2"}

    def test_simulated_check_is_seeded(self, route_planner, clock):
        """Test conflict simulation repeats with the same seed"""
        outcomes = []
        for _ in range(2):
            coordinator = EmergencyCoordinator(route_planner=route_planner,
                                               rng=np.random.default_rng(21), clock=clock)
            coordinator.register("amb1", "ambulance", "a", "b", "critical")
            coordinator.register("fire1", "fire_truck", "c", "d", "high")
            outcomes.append(coordinator.coordinate_multiple(["amb1", "fire1"]))

        assert outcomes[0] == outcomes[1]

    def test_simulated_conflict_shape(self, advisory):
        """Test simulated conflicts carry a severity"""
        advisory.register("amb1", "ambulance", "a", "b", "critical")
        advisory.register("fire1", "fire_truck", "c", "d", "high")
        first = advisory.get_record("amb1")
        second = advisory.get_record("fire1")

        rng = np.random.default_rng(0)
        conflicts = [find_route_conflict(first, second, rng) for _ in range(200)]
        found = [c for c in conflicts if c is not None]

        assert 0 < len(found) < 200
        assert {c.severity for c in found} <= {'high', 'medium'}
        assert all(c.conflict_type == 'simulated_overlap' for c in found)

    def test_validation(self, advisory):
        """Test coordination input checks"""
        advisory.register("amb1", "ambulance", "a", "b")

        with pytest.raises(ValidationError):
            advisory.coordinate_multiple(["amb1"])
        with pytest.raises(ValidationError):
            advisory.coordinate_multiple(["amb1", "amb1"])
        with pytest.raises(NotFoundError):
            advisory.coordinate_multiple(["amb1", "ghost"])


# ============================================
# Deregistration and Analytics Tests
# ============================================

class TestDeregister:
    """Test completion and response history"""

    def test_clears_preemptions_and_records_history(self, coordinator, network, clock):
        """Test deregistration releases everything tied to the vehicle"""
        coordinator.register("amb-1", "ambulance", "depot", "hospital")
        coordinator.preempt_intersections("amb-1", ["I-1", "I-2", "I-3"], mode="staged")
        record = coordinator.get_record("amb-1")
        pending_ids = [p.task_id for p in record.preemptions if p.task_id]
        clock.advance(3000)

        result = coordinator.deregister("amb-1")

        assert result['responseTime'] == 3000
        assert result['intersectionsCleared'] == 3
        assert result['cancelledActions'] == 2
        assert result['finalStatus'] == 'completed'
        assert record.preemptions == []
        assert not coordinator.is_active("amb-1")
        assert network.get_intersection("I-1").priority == IntersectionPriority.NORMAL
        assert network.scheduler.pending(owner="amb-1") == []

        clock.advance(20_000)
        processed = network.tick()
        assert processed == []
        assert network.get_intersection("I-3").state == SignalState.RED
        assert len(pending_ids) == 2

        history = coordinator.get_history()
        assert len(history) == 1
        assert history[0]['success'] is True
        assert history[0]['intersectionsTouched'] == 3

    def test_releases_priority_from_arrivals(self, coordinator, network):
        """Test holds and intents from priority arrivals are released on deregistration"""
        coordinator.register("amb-1", "ambulance", "depot", "hospital")
        network.handle_priority_arrival("I-1", "amb-1", "north", 1000)
        network.handle_priority_arrival("I-2", "amb-1", "east", 60000)

        result = coordinator.deregister("amb-1")

        assert sorted(result['releasedIntersections']) == ["I-1", "I-2"]
        assert network.get_intersection("I-1").priority == IntersectionPriority.NORMAL
        assert network.pending_priority_intents() == []

    def test_repeated_preemption_counts_one_intersection(self, coordinator, network):
        """Test preempting one intersection repeatedly touches it once"""
        coordinator.register("amb-1", "ambulance", "depot", "hospital")
        for _ in range(6):
            coordinator.preempt_intersections("amb-1", ["I-1"])

        coordinator.deregister("amb-1")

        assert coordinator.get_history()[0]['intersectionsTouched'] == 1
        assert 'Complex intersection navigation' not in coordinator.analyze_performance()['bottlenecks']

    def test_analytics_reflect_one_more_entry(self, advisory, clock):
        """Test analyzePerformance sees exactly one new entry per deregistration"""
        advisory.register("amb-1", "ambulance", "a", "b")
        advisory.deregister("amb-1")
        before = advisory.analyze_performance()['totalResponses']

        advisory.register("amb-2", "ambulance", "a", "b")
        advisory.deregister("amb-2", completion_status="aborted")
        after = advisory.analyze_performance()

        assert after['totalResponses'] == before + 1
        assert after['successRate'] == 50
        assert 'Review emergency vehicle routing protocols' in after['recommendations']
        assert advisory.get_history(limit=1)[0]['success'] is False

    def test_unknown_vehicle(self, advisory):
        """Test deregistering an inactive vehicle fails"""
        with pytest.raises(NotFoundError):
            advisory.deregister("ghost")


class TestAnalyzePerformance:
    """Test response analytics"""

    def test_empty_window(self, advisory, clock):
        """Test no responses in the window"""
        advisory.register("amb-1", "ambulance", "a", "b")
        advisory.deregister("amb-1")
        clock.advance(2 * 86_400_000)

        result = advisory.analyze_performance()

        assert result['totalResponses'] == 0
        assert 'message' in result

    def test_bottlenecks(self, advisory, clock):
        """Test slow and complex responses are flagged"""
        advisory.register("amb-1", "ambulance", "a", "b")
        advisory.preempt_intersections("amb-1", [f"I-{i}" for i in range(6)])
        clock.advance(200_000)
        advisory.deregister("amb-1")

        result = advisory.analyze_performance()

        assert result['averageResponseTime'] == 200_000
        assert result['bottlenecks'] == ['High response time detected', 'Complex intersection navigation']
        assert result['recommendations'] == [
            'Optimize traffic preemption algorithms',
            'Address identified system bottlenecks'
        ]
        assert result['performanceByType']['ambulance']['count'] == 1

    def test_history_is_bounded(self, route_planner, rng, clock):
        """Test the response history keeps the latest entries"""
        coordinator = EmergencyCoordinator({'historyCapacity': 3}, route_planner=route_planner,
                                           rng=rng, clock=clock)
        for i in range(5):
            coordinator.register(f"v-{i}", "police", "a", "b")
            coordinator.deregister(f"v-{i}")

        assert [h['vehicleId'] for h in coordinator.get_history()] == ["v-2", "v-3", "v-4"]

    def test_statistics(self, advisory):
        """Test coordinator statistics"""
        advisory.register("amb-1", "ambulance", "a", "b")
        advisory.preempt_intersections("amb-1", ["I-1"])

        stats = advisory.get_statistics()

        assert stats['activeEmergencies'] == 1
        assert stats['totalPreemptions'] == 1


class TestGlobalCoordinator:
    """Test global instance helpers"""

    def test_init_and_get(self, rng):
        """Test init replaces the global instance"""
        coordinator = init_emergency_coordinator({'stagger': 2000}, rng=rng)

        assert get_emergency_coordinator() is coordinator
        assert coordinator.stagger == 2000
