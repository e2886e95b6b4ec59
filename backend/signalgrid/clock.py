"""Millisecond clock helpers shared by all components."""

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Current epoch time in milliseconds"""
    return int(time.time() * 1000)


class ManualClock:
    """
    Clock that only moves when told to

    Used by tests and offline replays to drive deferred actions
    deterministically.
    """

    def __init__(self, start_ms: int = 0):
        self.current = int(start_ms)

    def __call__(self) -> int:
        return self.current

    def advance(self, delta_ms: int) -> int:
        self.current += int(delta_ms)
        return self.current

    def set(self, value_ms: int) -> int:
        self.current = int(value_ms)
        return self.current
