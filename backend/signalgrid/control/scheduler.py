"""
Deferred Action Scheduler

Timer-free scheduling of bounded-delay actions against engine entities.

Each action captures the target entity's generation counter when it is
scheduled. When the action comes due the generation is read again; if
it has advanced (a newer transition was applied in the meantime) or the
entity is gone, the action is dropped and logged instead of overriding
newer state.

The scheduler is driven either explicitly (run_pending, for tests and
replays) or by the async run_forever loop.
"""

import asyncio
import heapq
import itertools
import logging
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from signalgrid.clock import Clock, now_ms
from signalgrid.exceptions import ValidationError

logger = logging.getLogger(__name__)


class ActionStatus(str, Enum):
    """Lifecycle of a deferred action"""
    PENDING = "PENDING"
    FIRED = "FIRED"
    DROPPED = "DROPPED"        # stale generation or missing entity
    CANCELLED = "CANCELLED"
    FAILED = "FAILED"          # callback raised


@dataclass
class DeferredAction:
    """A scheduled action and the generation it was planned against"""
    task_id: str
    entity_id: str
    due_at: int                         # epoch ms
    generation: int
    action: Callable[[], Any]
    owner: Optional[str] = None         # plan id or emergency vehicle id
    description: str = ""
    created_at: int = 0
    status: ActionStatus = ActionStatus.PENDING
    result: Any = field(default=None, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'taskId': self.task_id,
            'entityId': self.entity_id,
            'dueAt': self.due_at,
            'generation': self.generation,
            'owner': self.owner,
            'description': self.description,
            'createdAt': self.created_at,
            'status': self.status.value
        }


class DeferredScheduler:
    """
    Schedule generation-guarded deferred actions

    Usage:
        scheduler = DeferredScheduler(generation_of=controller.generation_of)
        task = scheduler.schedule("I-1", 5000, generation=3, action=apply_green)
        scheduler.run_pending()          # fires due actions
        scheduler.cancel_owner("amb-1")  # cancels everything owned by amb-1
    """

    def __init__(self,
                 generation_of: Callable[[str], Optional[int]],
                 clock: Optional[Clock] = None,
                 guard: Optional[threading.RLock] = None,
                 config: dict = None):
        """
        Initialize scheduler

        Args:
            generation_of: Returns the entity's current generation, or None
                if the entity does not exist
            clock: Millisecond clock
            guard: Lock held while validating and executing an action
                (the owning component's lock)
            config: Configuration dict with options:
                - tickInterval: Seconds between run_forever ticks (default: 0.25)
        """
        self.config = config or {}
        self.generation_of = generation_of
        self.clock = clock or now_ms
        self.guard = guard or threading.RLock()
        self.tick_interval = self.config.get('tickInterval', 0.25)

        self._heap: List[tuple] = []
        self._tasks: Dict[str, DeferredAction] = {}
        self._sequence = itertools.count()
        self._counter = 0
        self._lock = threading.Lock()
        self._running = False

        # Statistics
        self.fired = 0
        self.dropped = 0
        self.cancelled = 0
        self.failed = 0

    def schedule(self,
                 entity_id: str,
                 delay_ms: int,
                 generation: int,
                 action: Callable[[], Any],
                 owner: Optional[str] = None,
                 description: str = "") -> DeferredAction:
        """
        Schedule an action to run after delay_ms

        Raises:
            ValidationError: If delay is negative
        """
        if delay_ms < 0:
            raise ValidationError("Delay must be non-negative", field='delay', value=delay_ms)

        now = self.clock()
        with self._lock:
            self._counter += 1
            task = DeferredAction(
                task_id=f"TASK-{self._counter:06d}",
                entity_id=entity_id,
                due_at=now + int(delay_ms),
                generation=generation,
                action=action,
                owner=owner,
                description=description,
                created_at=now
            )
            self._tasks[task.task_id] = task
            heapq.heappush(self._heap, (task.due_at, next(self._sequence), task))

        logger.debug("[SCHEDULER] %s scheduled for %s in %d ms (gen %d)",
                     task.task_id, entity_id, delay_ms, generation)
        return task

    def cancel(self, task_id: str) -> bool:
        """Cancel a pending action"""
        with self._lock:
            task = self._tasks.pop(task_id, None)
            if task is None or task.status != ActionStatus.PENDING:
                return False
            task.status = ActionStatus.CANCELLED
            self.cancelled += 1
        return True

    def cancel_owner(self, owner: str) -> int:
        """Cancel every pending action owned by owner; returns the count"""
        with self._lock:
            owned = [t for t in self._tasks.values() if t.owner == owner]
            for task in owned:
                task.status = ActionStatus.CANCELLED
                del self._tasks[task.task_id]
            self.cancelled += len(owned)

        if owned:
            logger.info("[SCHEDULER] Cancelled %d pending action(s) for %s", len(owned), owner)
        return len(owned)

    def pending(self, owner: Optional[str] = None) -> List[DeferredAction]:
        """Pending actions ordered by due time"""
        with self._lock:
            tasks = [t for t in self._tasks.values() if owner is None or t.owner == owner]
        return sorted(tasks, key=lambda t: (t.due_at, t.task_id))

    def run_pending(self, now: Optional[int] = None) -> List[DeferredAction]:
        """
        Execute every action due at or before now

        Due actions run in due-time order, then submission order.

        Returns:
            The processed actions with their final status
        """
        now = self.clock() if now is None else now

        due = []
        with self._lock:
            while self._heap and self._heap[0][0] <= now:
                _, _, task = heapq.heappop(self._heap)
                if task.status == ActionStatus.PENDING:
                    due.append(task)

        processed = []
        for task in due:
            with self.guard:
                # May have been cancelled after it was popped
                with self._lock:
                    if task.status != ActionStatus.PENDING:
                        continue
                    self._tasks.pop(task.task_id, None)
                self._execute(task)
            processed.append(task)

        return processed

    def _execute(self, task: DeferredAction):
        current = self.generation_of(task.entity_id)

        if current is None:
            task.status = ActionStatus.DROPPED
            self.dropped += 1
            logger.warning("[SCHEDULER] Dropped %s: %s no longer exists", task.task_id, task.entity_id)
            return

        if current != task.generation:
            task.status = ActionStatus.DROPPED
            self.dropped += 1
            logger.warning("[SCHEDULER] Dropped stale %s for %s (planned gen %d, now %d)",
                           task.task_id, task.entity_id, task.generation, current)
            return

        try:
            task.result = task.action()
            task.status = ActionStatus.FIRED
            self.fired += 1
        except Exception:
            task.status = ActionStatus.FAILED
            self.failed += 1
            logger.exception("[SCHEDULER] Action %s for %s failed", task.task_id, task.entity_id)

    async def run_forever(self, interval: Optional[float] = None):
        """
        Background loop firing due actions

        Runs until stop() is called or the task is cancelled.
        """
        interval = self.tick_interval if interval is None else interval
        self._running = True
        logger.info("[SCHEDULER] Loop started (tick %.2fs)", interval)

        try:
            while self._running:
                self.run_pending()
                await asyncio.sleep(interval)
        except asyncio.CancelledError:
            logger.info("[SCHEDULER] Loop cancelled")
            raise
        finally:
            self._running = False
            logger.info("[SCHEDULER] Loop stopped")

    def stop(self):
        """Stop the background loop after its current tick"""
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def get_statistics(self) -> Dict[str, Any]:
        """Get scheduler statistics"""
        with self._lock:
            pending = len(self._tasks)
        return {
            'pending': pending,
            'fired': self.fired,
            'dropped': self.dropped,
            'cancelled': self.cancelled,
            'failed': self.failed
        }
