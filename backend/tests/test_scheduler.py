"""
Deferred Scheduler Tests

Tests for generation-guarded deferred actions, cancellation and the
async tick loop.
"""

import asyncio

import pytest

from signalgrid.control import ActionStatus, DeferredScheduler
from signalgrid.exceptions import ValidationError


class Entities:
    """Minimal generation registry standing in for the controller"""

    def __init__(self):
        self.generations = {}

    def generation_of(self, entity_id):
        return self.generations.get(entity_id)


@pytest.fixture
def entities():
    registry = Entities()
    registry.generations = {"I-1": 0, "I-2": 0}
    return registry


@pytest.fixture
def scheduler(entities, clock):
    return DeferredScheduler(generation_of=entities.generation_of, clock=clock)


class TestDeferredScheduler:
    """Test scheduling and firing"""

    def test_fires_when_due(self, scheduler, clock):
        """Test an action only runs once its delay has elapsed"""
        calls = []
        task = scheduler.schedule("I-1", 5000, generation=0, action=lambda: calls.append("go") or "done")

        assert task.task_id == "TASK-000001"
        assert task.due_at == clock() + 5000
        assert scheduler.run_pending() == []

        clock.advance(5000)
        processed = scheduler.run_pending()

        assert processed == [task]
        assert task.status == ActionStatus.FIRED
        assert task.result == "done"
        assert calls == ["go"]
        assert scheduler.pending() == []

    def test_stale_generation_dropped(self, scheduler, entities, clock):
        """Test an action planned against an old generation is discarded"""
        calls = []
        task = scheduler.schedule("I-1", 1000, generation=0, action=lambda: calls.append(1))

        entities.generations["I-1"] = 1
        clock.advance(1000)
        scheduler.run_pending()

        assert task.status == ActionStatus.DROPPED
        assert calls == []
        assert scheduler.get_statistics()['dropped'] == 1

    def test_missing_entity_dropped(self, scheduler, entities, clock):
        """Test an action against a removed entity is discarded"""
        task = scheduler.schedule("I-1", 0, generation=0, action=lambda: None)
        del entities.generations["I-1"]

        scheduler.run_pending()

        assert task.status == ActionStatus.DROPPED

    def test_due_order(self, scheduler, clock):
        """Test due actions run by due time, then submission order"""
        order = []
        scheduler.schedule("I-1", 3000, 0, lambda: order.append("late"))
        scheduler.schedule("I-2", 1000, 0, lambda: order.append("first"))
        scheduler.schedule("I-1", 1000, 0, lambda: order.append("second"))

        clock.advance(3000)
        scheduler.run_pending()

        assert order == ["first", "second", "late"]

    def test_explicit_now(self, scheduler, clock):
        """Test run_pending accepts an explicit time"""
        task = scheduler.schedule("I-1", 2000, 0, lambda: None)

        scheduler.run_pending(now=clock() + 2000)

        assert task.status == ActionStatus.FIRED

    def test_cancel(self, scheduler, clock):
        """Test cancelled actions never run"""
        calls = []
        task = scheduler.schedule("I-1", 1000, 0, lambda: calls.append(1))

        assert scheduler.cancel(task.task_id) is True
        assert scheduler.cancel(task.task_id) is False

        clock.advance(1000)
        assert scheduler.run_pending() == []
        assert task.status == ActionStatus.CANCELLED
        assert calls == []

    def test_cancel_owner(self, scheduler):
        """Test cancelling every action owned by one vehicle"""
        scheduler.schedule("I-1", 1000, 0, lambda: None, owner="amb-1")
        scheduler.schedule("I-2", 2000, 0, lambda: None, owner="amb-1")
        kept = scheduler.schedule("I-2", 2000, 0, lambda: None, owner="PLAN-00001")

        assert scheduler.cancel_owner("amb-1") == 2
        assert scheduler.pending() == [kept]
        assert scheduler.pending(owner="amb-1") == []
        assert scheduler.get_statistics()['cancelled'] == 2

    def test_failing_action_is_contained(self, scheduler):
        """Test an exception in an action marks it failed without propagating"""
        def boom():
            raise RuntimeError("sensor offline")

        task = scheduler.schedule("I-1", 0, 0, boom)
        scheduler.run_pending()

        assert task.status == ActionStatus.FAILED
        assert scheduler.get_statistics()['failed'] == 1

    def test_negative_delay(self, scheduler):
        """Test negative delays are rejected"""
        with pytest.raises(ValidationError):
            scheduler.schedule("I-1", -1, 0, lambda: None)

    def test_to_dict(self, scheduler):
        """Test serialization"""
        task = scheduler.schedule("I-1", 10, 0, lambda: None, owner="amb-1", description="green")
        data = task.to_dict()

        assert data['entityId'] == "I-1"
        assert data['owner'] == "amb-1"
        assert data['status'] == "PENDING"


class TestRunForever:
    """Test the async tick loop"""

    @pytest.mark.asyncio
    async def test_loop_fires_and_stops(self, scheduler):
        """Test the loop fires due actions until stopped"""
        calls = []
        scheduler.schedule("I-1", 0, 0, lambda: calls.append(1))

        task = asyncio.create_task(scheduler.run_forever(interval=0.01))
        await asyncio.sleep(0.05)

        assert scheduler.is_running
        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

        assert calls == [1]
        assert not scheduler.is_running

    @pytest.mark.asyncio
    async def test_loop_cancellation(self, scheduler):
        """Test cancelling the loop task propagates CancelledError"""
        task = asyncio.create_task(scheduler.run_forever(interval=0.01))
        await asyncio.sleep(0.02)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert not scheduler.is_running
