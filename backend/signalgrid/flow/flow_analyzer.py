"""
Flow Analyzer

Ingests per-intersection vehicle counts, classifies congestion and
detects short-term flow patterns.

Outputs (insight snapshots, dominant patterns, timing suggestions)
feed the forecaster and the intersection controller.
"""

import logging
import threading
from numbers import Real
from typing import Any, Dict, List, Optional

import numpy as np

from signalgrid.clock import Clock, now_ms
from signalgrid.exceptions import NotFoundError, ValidationError
from signalgrid.models import CongestionLevel

from .congestion_classifier import classify_congestion
from .flow_history import FlowHistory, TrafficSample

logger = logging.getLogger(__name__)

MS_PER_HOUR = 3_600_000


class FlowAnalyzer:
    """
    Analyze real-time traffic flow per intersection

    Responsibilities:
    - Store samples in a bounded history (oldest evicted first)
    - Classify congestion and short-term trend
    - Detect the dominant flow pattern within a time window
    - Suggest cycle timings from the latest sample

    Usage:
        analyzer = FlowAnalyzer()
        insight = analyzer.record("I-1", 32)
        patterns = analyzer.detect_patterns("I-1", window=3_600_000)
    """

    OPTIMAL_VEHICLES = 30       # vehicles per cycle with best efficiency
    BASELINE_GREEN = 30         # seconds
    TREND_DELTA = 5             # vehicles across the last three samples
    HIGH_DENSITY_ALERT = 40     # vehicles

    def __init__(self, config: dict = None, clock: Optional[Clock] = None):
        """
        Initialize flow analyzer

        Args:
            config: Configuration dict with options:
                - historyCapacity: Samples kept per intersection (default: 100)
                - defaultWindow: Pattern window in ms (default: 1 hour)
            clock: Millisecond clock (default: wall clock)
        """
        self.config = config or {}
        self.clock = clock or now_ms

        self.history = FlowHistory(capacity=self.config.get('historyCapacity', 100))
        self.default_window = self.config.get('defaultWindow', MS_PER_HOUR)

        self._lock = threading.RLock()

        # Statistics
        self.total_samples = 0
        self.total_alerts = 0

        logger.info("[FLOW] Flow Analyzer initialized (capacity %d)", self.history.capacity)

    def record(self,
               intersection_id: str,
               vehicle_count: float,
               timestamp: Optional[int] = None) -> Dict[str, Any]:
        """
        Record a vehicle count and return an insight snapshot

        Args:
            intersection_id: Intersection ID
            vehicle_count: Non-negative vehicle count
            timestamp: Observation time in ms (default: now)

        Returns:
            Insight with current flow, congestion level, trend,
            efficiency and alerts

        Raises:
            ValidationError: If id or count is malformed
        """
        if not intersection_id or not isinstance(intersection_id, str):
            raise ValidationError("Intersection ID must be a valid string",
                                  field='intersectionId', value=intersection_id)
        if (isinstance(vehicle_count, bool) or not isinstance(vehicle_count, Real)
                or vehicle_count < 0):
            raise ValidationError("Vehicle count must be a non-negative number",
                                  field='vehicleCount', value=vehicle_count)
        if timestamp is not None and (isinstance(timestamp, bool) or not isinstance(timestamp, Real)):
            raise ValidationError("Timestamp must be epoch milliseconds",
                                  field='timestamp', value=timestamp)

        timestamp = int(timestamp) if timestamp is not None else self.clock()

        with self._lock:
            previous = self.history.latest(intersection_id)
            sample = TrafficSample(
                intersection_id=intersection_id,
                vehicle_count=vehicle_count,
                timestamp=timestamp,
                flow_rate=self._flow_rate(vehicle_count, timestamp, previous),
                congestion_level=classify_congestion(vehicle_count)
            )
            self.history.add(sample)
            self.total_samples += 1

            insight = self._insight(intersection_id, sample)
            self.total_alerts += len(insight['alerts'])

        logger.debug("[FLOW] %s: %s vehicles (%s)",
                     intersection_id, vehicle_count, sample.congestion_level.value)
        return insight

    def detect_patterns(self,
                        intersection_id: str,
                        window: Optional[int] = None) -> Dict[str, Any]:
        """
        Detect the dominant flow pattern within a time window

        Scores four hypotheses (increasing, decreasing, cyclical, stable)
        and selects the highest.

        Args:
            intersection_id: Intersection ID
            window: Look-back window in ms (default: 1 hour)

        Returns:
            Pattern, confidence, next-interval prediction and recommendations
        """
        window = self.default_window if window is None else window
        if isinstance(window, bool) or not isinstance(window, Real) or window < 0:
            raise ValidationError("Time window must be a non-negative number",
                                  field='window', value=window)

        with self._lock:
            data = self.history.since(intersection_id, self.clock() - int(window))

        if len(data) < 3:
            return {
                'intersectionId': intersection_id,
                'pattern': 'insufficient_data',
                'confidence': 0,
                'sampleCount': len(data)
            }

        counts = np.array([s.vehicle_count for s in data], dtype=float)
        scores = self._score_patterns(counts)

        pattern, confidence = 'unknown', 0.0
        for name, score in scores.items():
            if score > confidence:
                pattern, confidence = name, score

        return {
            'intersectionId': intersection_id,
            'pattern': pattern,
            'confidence': round(confidence, 2),
            'scores': {name: round(score, 2) for name, score in scores.items()},
            'sampleCount': len(data),
            'prediction': self._predict_next_flow(counts, pattern, confidence),
            'recommendations': self._recommendations(pattern, confidence)
        }

    def optimize(self, intersection_id: str) -> Dict[str, Any]:
        """
        Suggest timings for an intersection from its latest sample

        Raises:
            NotFoundError: If no samples exist for the intersection
        """
        with self._lock:
            latest = self.history.latest(intersection_id)

        if latest is None:
            raise NotFoundError(
                f"No traffic data available for {intersection_id}",
                entity_id=intersection_id
            )

        timings = self._optimal_timings(latest.vehicle_count)

        return {
            'intersectionId': intersection_id,
            'currentEfficiency': self._efficiency(latest.vehicle_count),
            'suggestedTimings': timings,
            'expectedImprovement': min(30, timings['greenTime'] - self.BASELINE_GREEN),
            'priority': self._priority(latest.congestion_level)
        }

    def samples(self, intersection_id: str) -> List[TrafficSample]:
        """Retained samples for an intersection, oldest first"""
        with self._lock:
            return self.history.all(intersection_id)

    def sample_count(self, intersection_id: str) -> int:
        with self._lock:
            return self.history.size(intersection_id)

    def intersections(self) -> List[str]:
        with self._lock:
            return self.history.intersections()

    def get_statistics(self) -> Dict[str, Any]:
        """Get analyzer statistics"""
        with self._lock:
            return {
                'totalSamples': self.total_samples,
                'retainedSamples': self.history.total_samples(),
                'trackedIntersections': len(self.history.intersections()),
                'historyCapacity': self.history.capacity,
                'totalAlerts': self.total_alerts
            }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _flow_rate(self, vehicle_count: float, timestamp: int,
                   previous: Optional[TrafficSample]) -> float:
        """Vehicles per hour over the gap since the previous sample"""
        if previous is None or timestamp <= previous.timestamp:
            return float(vehicle_count)
        return vehicle_count / ((timestamp - previous.timestamp) / MS_PER_HOUR)

    def _insight(self, intersection_id: str, latest: TrafficSample) -> Dict[str, Any]:
        return {
            'intersectionId': intersection_id,
            'currentFlow': latest.vehicle_count,
            'flowRate': round(latest.flow_rate, 2),
            'congestionLevel': latest.congestion_level.value,
            'trend': self._trend(intersection_id),
            'efficiency': self._efficiency(latest.vehicle_count),
            'alerts': self._alerts(latest),
            'timestamp': latest.timestamp
        }

    def _trend(self, intersection_id: str) -> str:
        recent = self.history.recent(intersection_id, 3)
        if len(recent) < 3:
            return 'stable'
        delta = recent[2].vehicle_count - recent[0].vehicle_count
        if delta > self.TREND_DELTA:
            return 'rising'
        if delta < -self.TREND_DELTA:
            return 'falling'
        return 'stable'

    def _alerts(self, sample: TrafficSample) -> List[str]:
        alerts = []
        if sample.congestion_level == CongestionLevel.CRITICAL:
            alerts.append('CRITICAL: Severe congestion detected')
        if sample.vehicle_count > self.HIGH_DENSITY_ALERT:
            alerts.append('WARNING: High vehicle density')
        return alerts

    def _efficiency(self, vehicle_count: float) -> float:
        return max(0, 100 - abs(vehicle_count - self.OPTIMAL_VEHICLES) * 2)

    def _score_patterns(self, counts: np.ndarray) -> Dict[str, float]:
        steps = np.diff(counts)
        variance = float(np.var(counts))
        return {
            'increasing': float(np.count_nonzero(steps > 0)) / len(steps),
            'decreasing': float(np.count_nonzero(steps < 0)) / len(steps),
            'cyclical': 0.8 if 50 < variance < 200 else 0.2,
            'stable': 0.9 if variance < 25 else 0.1
        }

    def _predict_next_flow(self, counts: np.ndarray, pattern: str, confidence: float) -> float:
        direction = {'increasing': 10, 'decreasing': -10}.get(pattern, 0)
        return round(max(0.0, float(np.mean(counts)) + confidence * direction), 1)

    def _recommendations(self, pattern: str, confidence: float) -> List[str]:
        if confidence <= 0.7:
            return []
        if pattern == 'increasing':
            return ['Increase green light duration', 'Activate alternate routes']
        if pattern == 'decreasing':
            return ['Reduce green light duration', 'Divert resources to busier intersections']
        return []

    def _optimal_timings(self, vehicle_count: float) -> Dict[str, int]:
        adjustment = int(vehicle_count // 10) * 5
        return {
            'greenTime': min(60, max(15, self.BASELINE_GREEN + adjustment)),
            'redTime': max(15, 45 - adjustment)
        }

    def _priority(self, level: CongestionLevel) -> str:
        if level == CongestionLevel.CRITICAL:
            return 'high'
        if level == CongestionLevel.HIGH:
            return 'medium'
        return 'low'


# Global analyzer instance
_flow_analyzer: Optional[FlowAnalyzer] = None


def get_flow_analyzer() -> Optional[FlowAnalyzer]:
    """Get global flow analyzer instance"""
    return _flow_analyzer


def init_flow_analyzer(config: dict = None, clock: Optional[Clock] = None) -> FlowAnalyzer:
    """Initialize global flow analyzer"""
    global _flow_analyzer
    _flow_analyzer = FlowAnalyzer(config=config, clock=clock)
    return _flow_analyzer
