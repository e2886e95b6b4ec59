"""
Flow History Module

Bounded per-intersection storage of traffic samples.

Features:
- Circular buffer per intersection (oldest sample evicted first)
- Window queries by timestamp
"""

from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

from signalgrid.models import CongestionLevel


@dataclass
class TrafficSample:
    """Single vehicle-count observation at an intersection"""
    intersection_id: str
    vehicle_count: float
    timestamp: int                      # epoch ms
    flow_rate: float                    # vehicles per hour
    congestion_level: CongestionLevel

    def to_dict(self) -> dict:
        """Convert to dictionary for callers"""
        return {
            'intersectionId': self.intersection_id,
            'vehicleCount': self.vehicle_count,
            'timestamp': self.timestamp,
            'flowRate': round(self.flow_rate, 2),
            'congestionLevel': self.congestion_level.value
        }


class FlowHistory:
    """
    Store recent traffic samples per intersection

    Uses deques with maxlen so a history never exceeds its capacity.

    Usage:
        history = FlowHistory(capacity=100)
        history.add(sample)
        recent = history.since("I-1", cutoff_ms)
    """

    def __init__(self, capacity: int = 100):
        if capacity <= 0:
            raise ValueError("History capacity must be positive")
        self.capacity = capacity
        self._samples: Dict[str, Deque[TrafficSample]] = {}

    def add(self, sample: TrafficSample):
        """Append a sample, evicting the oldest when full"""
        buffer = self._samples.get(sample.intersection_id)
        if buffer is None:
            buffer = deque(maxlen=self.capacity)
            self._samples[sample.intersection_id] = buffer
        buffer.append(sample)

    def all(self, intersection_id: str) -> List[TrafficSample]:
        """All retained samples for an intersection, oldest first"""
        return list(self._samples.get(intersection_id, ()))

    def since(self, intersection_id: str, cutoff_ms: int) -> List[TrafficSample]:
        """Samples with timestamp >= cutoff_ms, oldest first"""
        return [
            s for s in self._samples.get(intersection_id, ())
            if s.timestamp >= cutoff_ms
        ]

    def latest(self, intersection_id: str) -> Optional[TrafficSample]:
        buffer = self._samples.get(intersection_id)
        return buffer[-1] if buffer else None

    def recent(self, intersection_id: str, count: int) -> List[TrafficSample]:
        """Last `count` samples, oldest first"""
        buffer = self._samples.get(intersection_id, ())
        return list(buffer)[-count:] if count > 0 else []

    def size(self, intersection_id: str) -> int:
        return len(self._samples.get(intersection_id, ()))

    def intersections(self) -> List[str]:
        return list(self._samples.keys())

    def total_samples(self) -> int:
        return sum(len(b) for b in self._samples.values())
