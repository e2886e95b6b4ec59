"""
Traffic Engine Tests

Tests for the telemetry pipeline, deferred action driving and snapshots.
"""

import asyncio

import numpy as np
import pytest

from signalgrid.config import ConfigManager
from signalgrid.engine import TrafficEngine
from signalgrid.exceptions import ValidationError
from signalgrid.models import SignalState


@pytest.fixture
def engine(tmp_path, clock, route_planner):
    (tmp_path / "engine.yaml").write_text(
        "controller:\n"
        "  greenWaveOffset: 2000\n"
        "emergency:\n"
        "  stagger: 1000\n"
    )
    return TrafficEngine(
        config=ConfigManager(str(tmp_path)),
        clock=clock,
        rng=np.random.default_rng(42),
        route_planner=route_planner
    )


class TestIngest:
    """Test the telemetry pipeline"""

    def test_unknown_intersection_is_analyzed_only(self, engine):
        """Test samples for uncontrolled locations skip adaptation"""
        result = engine.ingest("corridor-7", 12)

        assert result['insight']['congestionLevel'] == 'moderate'
        assert result['risk']['location'] == 'corridor-7'
        assert result['adaptation'] is None
        assert engine.forecaster.get_statistics()['observations'] == 1

    def test_controlled_intersection_adapts(self, engine):
        """Test samples adapt the cycle of a known intersection"""
        engine.controller.initialize("I-1")

        result = engine.ingest("I-1", 60, weather="snow", wait_time=50, sensors={'north': 20})

        adaptation = result['adaptation']
        assert adaptation['applied'] is True
        assert adaptation['newTiming']['red'] >= 15
        assert result['risk']['factors']['weather']['score'] == 0.9

        intersection = engine.controller.get_intersection("I-1")
        assert intersection.average_wait == 50
        assert intersection.sensors['north'] == 20

    def test_congestion_is_worst_of_flow_and_risk(self, engine):
        """Test the adaptation uses the more severe congestion level"""
        engine.controller.initialize("I-1")
        engine.controller.initialize("I-2")

        critical = engine.ingest("I-1", 55)['adaptation']['newTiming']
        light = engine.ingest("I-2", 5)['adaptation']['newTiming']

        assert critical['green'] > light['green']

    def test_invalid_sample(self, engine):
        """Test malformed counts are rejected before anything is stored"""
        with pytest.raises(ValidationError):
            engine.ingest("I-1", -4)

        assert engine.flow.sample_count("I-1") == 0


class TestDeferredActions:
    """Test engine-level driving of deferred actions"""

    def test_config_drives_offsets(self, engine, clock):
        """Test configured green wave offset and preemption stagger"""
        for iid in ("I-1", "I-2"):
            engine.controller.initialize(iid)

        plan = engine.controller.coordinate(["I-1", "I-2"], "green_wave")
        assert [r['delay'] for r in plan['results']] == [0, 2000]

        engine.emergency.register("amb-1", "ambulance", "depot", "hospital")
        result = engine.emergency.preempt_intersections("amb-1", ["I-1", "I-2"], mode="staged")
        assert [r['delay'] for r in result['results']] == [0, 1000]

    def test_tick(self, engine, clock):
        """Test tick fires due coordination steps"""
        for iid in ("I-1", "I-2"):
            engine.controller.initialize(iid)
        engine.controller.coordinate(["I-1", "I-2"], "green_wave")

        clock.advance(2000)
        processed = engine.tick()

        assert len(processed) == 2
        assert engine.controller.get_intersection("I-2").state == SignalState.GREEN

    @pytest.mark.asyncio
    async def test_start_and_stop(self, engine):
        """Test the background loop runs and stops cleanly"""
        for iid in ("I-1", "I-2"):
            engine.controller.initialize(iid)
        engine.controller.coordinate(["I-1", "I-2"], "synchronized")

        engine.start(interval=0.01)
        await asyncio.sleep(0.05)
        await engine.stop()

        assert engine.controller.get_intersection("I-1").state == SignalState.GREEN
        assert not engine.controller.scheduler.is_running


class TestSnapshot:
    """Test engine snapshots"""

    def test_snapshot_sizes(self, engine):
        """Test snapshot reports every process-lifetime table"""
        engine.controller.initialize("I-1")
        engine.ingest("I-1", 20)
        engine.ingest("I-2", 20)
        engine.forecaster.integrate_weather("I-1", {'conditions': 'rain'})
        engine.emergency.register("amb-1", "ambulance", "depot", "hospital")

        snapshot = engine.snapshot()

        assert snapshot['intersections'] == 1
        assert snapshot['activeEmergencies'] == 1
        assert snapshot['responseHistory'] == 0
        assert snapshot['flowSamples'] == 2
        assert snapshot['weatherRecords'] == 1
        assert snapshot['eventRecords'] == 0

    def test_from_config(self, tmp_path):
        """Test building an engine from a config directory"""
        (tmp_path / "engine.yaml").write_text("flow:\n  historyCapacity: 7\n")

        engine = TrafficEngine.from_config(str(tmp_path))

        assert engine.flow.history.capacity == 7
