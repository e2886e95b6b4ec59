"""
Coordination Plans

Builders for multi-intersection plans. Each plan step is a deferred
transition to GREEN after a per-intersection delay (ms).
"""

from dataclasses import dataclass
from typing import List, Sequence

from signalgrid.models import CoordinationMode


@dataclass
class PlanStep:
    """One deferred GREEN in a coordination plan"""
    intersection_id: str
    delay: int          # ms
    action: str


def green_wave(intersection_ids: Sequence[str], offset: int) -> List[PlanStep]:
    """Offset greens so a platoon at constant speed meets green at each intersection"""
    return [
        PlanStep(intersection_id=iid, delay=index * offset, action='green_on_schedule')
        for index, iid in enumerate(intersection_ids)
    ]


def synchronized(intersection_ids: Sequence[str]) -> List[PlanStep]:
    """Simultaneous green everywhere"""
    return [
        PlanStep(intersection_id=iid, delay=0, action='synchronized_green')
        for iid in intersection_ids
    ]


def adaptive_network(intersection_ids: Sequence[str], average_waits: Sequence[float]) -> List[PlanStep]:
    """Delay each green by the intersection's rolling average wait (seconds)"""
    return [
        PlanStep(intersection_id=iid, delay=int(round(wait * 1000)), action='adaptive_timing')
        for iid, wait in zip(intersection_ids, average_waits)
    ]


def build_plan(mode: CoordinationMode,
               intersection_ids: Sequence[str],
               average_waits: Sequence[float],
               offset: int) -> List[PlanStep]:
    if mode == CoordinationMode.GREEN_WAVE:
        return green_wave(intersection_ids, offset)
    if mode == CoordinationMode.SYNCHRONIZED:
        return synchronized(intersection_ids)
    return adaptive_network(intersection_ids, average_waits)
