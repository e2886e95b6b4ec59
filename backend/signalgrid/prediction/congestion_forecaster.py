"""
Congestion Forecaster

Produces multi-interval congestion, density and speed forecasts with
a confidence score, analyzes historical patterns, assesses real-time
risk and ranks candidate routes.

Forecast computations are read-mostly: they never mutate intersection
or emergency state, so they may run concurrently across locations.
"""

import logging
import math
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from numbers import Real
from typing import Any, Deque, Dict, List, Optional, Tuple

import numpy as np

from signalgrid.clock import Clock, now_ms
from signalgrid.exceptions import ValidationError
from signalgrid.flow import TrafficSample
from signalgrid.models import (
    CongestionForecast,
    EventImpact,
    IntervalPrediction,
    WeatherImpact,
)

from .context_store import ContextStore
from .risk_assessor import RiskAssessor

logger = logging.getLogger(__name__)

DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']
MODEL_FEATURES = ['traffic_flow', 'time_of_day', 'day_of_week', 'weather']


class CongestionForecaster:
    """
    Forecast congestion per location

    Interval model:
    - Diurnal base: 0.8 during the 07-09h and 17-19h peak bands, 0.3 otherwise
    - Bounded perturbation in [-0.1, 0.1] from the injected generator
    - Weather modifier (0.3 x impact) and active-event modifier (0.2 x impact)
    - Clamped to [0, 1]

    Usage:
        forecaster = CongestionForecaster(rng=np.random.default_rng(42))
        forecast = forecaster.predict("downtown", 3_600_000)
        len(forecast.predictions)   # 4
    """

    PEAK_LEVEL = 0.8
    BASE_LEVEL = 0.3
    PERTURBATION = 0.1
    WEATHER_WEIGHT = 0.3
    EVENT_WEIGHT = 0.2
    MAX_DENSITY = 50            # vehicles per area at full congestion
    MAX_SPEED = 60              # km/h at free flow
    ROUTE_HORIZON = 1_800_000   # ms

    def __init__(self,
                 config: dict = None,
                 context: Optional[ContextStore] = None,
                 rng: Optional[np.random.Generator] = None,
                 clock: Optional[Clock] = None):
        """
        Initialize forecaster

        Args:
            config: Configuration dict with options:
                - interval: Forecast interval in ms (default: 900000)
                - historyCapacity: Observations kept per location (default: 500)
                - maxIntervals: Largest number of intervals per forecast (default: 96)
                - riskWeights: Per-factor risk weights
                - utcOffsetHours: Offset applied to timestamps for peak bands (default: 0)
                - seed: Seed for the default generator
            context: Shared weather/event store
            rng: Random generator for simulated values
            clock: Millisecond clock
        """
        self.config = config or {}
        self.clock = clock or now_ms
        self.rng = rng if rng is not None else np.random.default_rng(self.config.get('seed'))

        self.interval = self.config.get('interval', 900_000)
        self.history_capacity = self.config.get('historyCapacity', 500)
        self.max_intervals = self.config.get('maxIntervals', 96)
        self.tz = timezone(timedelta(hours=self.config.get('utcOffsetHours', 0)))

        self.context = context or ContextStore(clock=self.clock)
        self.risk = RiskAssessor(
            self.context,
            rng=self.rng,
            weights=self.config.get('riskWeights'),
            clock=self.clock
        )

        # location -> deque of (timestamp, congestion level)
        self.observations: Dict[str, Deque[Tuple[int, float]]] = {}
        self._lock = threading.Lock()

        # Statistics
        self.total_forecasts = 0

        logger.info("[FORECAST] Congestion Forecaster initialized (interval %d ms)", self.interval)

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def observe(self, location: str, congestion_level: float, timestamp: Optional[int] = None):
        """
        Record an observed congestion level in [0, 1] for a location
        """
        level = min(1.0, max(0.0, float(congestion_level)))
        ts = timestamp if timestamp is not None else self.clock()
        with self._lock:
            buffer = self.observations.get(location)
            if buffer is None:
                buffer = deque(maxlen=self.history_capacity)
                self.observations[location] = buffer
            buffer.append((ts, level))

    def integrate_weather(self, location: str, weather_info: Any) -> WeatherImpact:
        """Upsert weather modifier for a location"""
        return self.context.integrate_weather(location, weather_info)

    def integrate_event(self, location: str, event_info: Any) -> EventImpact:
        """Upsert event modifier for a location"""
        return self.context.integrate_event(location, event_info)

    # ------------------------------------------------------------------
    # Forecasts
    # ------------------------------------------------------------------

    def predict(self, location: str, horizon: int = 3_600_000) -> CongestionForecast:
        """
        Forecast congestion for a location

        Args:
            location: Location ID
            horizon: Forecast horizon in ms, split into fixed intervals

        Returns:
            CongestionForecast with one prediction per interval

        Raises:
            ValidationError: If location or horizon is malformed
        """
        if not location or not isinstance(location, str):
            raise ValidationError("Location must be a valid string", field='location', value=location)
        if isinstance(horizon, bool) or not isinstance(horizon, Real) or horizon <= 0:
            raise ValidationError("Time horizon must be a positive number", field='horizon', value=horizon)
        intervals = math.ceil(horizon / self.interval)
        if intervals > self.max_intervals:
            raise ValidationError(
                f"Time horizon exceeds {self.max_intervals} forecast intervals",
                field='horizon', value=horizon)

        now = self.clock()
        weather = self.context.weather_for(location)
        event = self.context.event_for(location)

        predictions = []
        for i in range(intervals):
            ts = now + i * self.interval
            level = self._interval_level(ts, weather, event)
            predictions.append(IntervalPrediction(
                timestamp=ts,
                congestion_level=round(level, 3),
                vehicle_density=round(level * self.MAX_DENSITY),
                average_speed=round(self.MAX_SPEED * (1 - level))
            ))

        factors = self._factors(location, now)
        forecast = CongestionForecast(
            location=location,
            time_horizon=int(horizon),
            timestamp=now,
            predictions=predictions,
            confidence=self._confidence(factors, len(predictions)),
            factors=factors
        )

        with self._lock:
            self.total_forecasts += 1
        logger.debug("[FORECAST] %s: %d intervals, confidence %.2f",
                     location, len(predictions), forecast.confidence)
        return forecast

    def analyze_patterns(self, samples: List[Any], mode: str = 'supervised') -> Dict[str, Any]:
        """
        Analyze historical samples for daily, weekly and seasonal patterns

        Args:
            samples: Mappings with a timestamp (ms) and a congestionLevel
                (or value / vehicleCount), or TrafficSample objects
            mode: Learning mode label reported with the model descriptor

        Raises:
            ValidationError: If samples is empty or not a list
        """
        if not isinstance(samples, (list, tuple)) or len(samples) == 0:
            raise ValidationError("Traffic data must be a non-empty array", field='samples', value=samples)
        if not isinstance(mode, str):
            raise ValidationError("Learning mode must be a string", field='mode', value=mode)

        points = [self._sample_point(s) for s in samples]
        values = np.array([v for _, v in points], dtype=float)

        patterns = {
            'daily': self._bucket_average(points, 24, lambda dt: dt.hour),
            'weekly': self._bucket_average(points, 7, lambda dt: (dt.weekday() + 1) % 7),
            'seasonal': self._bucket_average(points, 12, lambda dt: dt.month - 1),
            'anomalies': self._anomalies(points, values)
        }

        accuracy = min(0.95, 0.6 + (len(points) / 1000) * 0.3)

        return {
            'patterns': patterns,
            'model': {
                'accuracy': round(accuracy, 2),
                'type': mode,
                'trainingSize': len(points),
                'features': list(MODEL_FEATURES)
            },
            'insights': self._pattern_insights(patterns)
        }

    def assess_risk(self, location: str, conditions: Any) -> Dict[str, Any]:
        """Assess real-time congestion risk (see RiskAssessor)"""
        return self.risk.assess(location, conditions)

    def optimize_routes(self,
                        origin: str,
                        destinations: List[str],
                        constraints: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Rank destinations by estimated travel time

        Returns:
            All routes ordered by time, the optimal route, up to two
            alternatives and the best-vs-worst optimization percentage
        """
        if not origin or not isinstance(origin, str):
            raise ValidationError("Valid origin required", field='origin', value=origin)
        if not isinstance(destinations, (list, tuple)) or len(destinations) == 0:
            raise ValidationError("Valid destinations array required",
                                  field='destinations', value=destinations)
        constraints = constraints or {}
        if not isinstance(constraints, dict):
            raise ValidationError("Constraints must be a mapping", field='constraints', value=constraints)

        routes = []
        for destination in destinations:
            forecast = self.predict(destination, self.ROUTE_HORIZON)
            routes.append({
                'destination': destination,
                'estimatedTime': self._estimate_travel_time(forecast, constraints),
                'predictedCongestion': forecast.to_dict(),
                'riskAssessment': self.assess_risk(destination, {'trafficFlow': 20, 'time': self.clock()})
            })

        routes.sort(key=lambda r: r['estimatedTime'])

        return {
            'origin': origin,
            'routes': routes,
            'optimalRoute': routes[0],
            'alternativeRoutes': routes[1:3],
            'totalOptimization': self._route_optimization(routes)
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Get forecaster statistics"""
        with self._lock:
            observed = {loc: len(buf) for loc, buf in self.observations.items()}
            total = self.total_forecasts
        return {
            'totalForecasts': total,
            'observedLocations': len(observed),
            'observations': sum(observed.values()),
            'context': self.context.counts()
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _local_time(self, ts: int) -> datetime:
        return datetime.fromtimestamp(ts / 1000, tz=self.tz)

    def _interval_level(self,
                        ts: int,
                        weather: Optional[WeatherImpact],
                        event: Optional[EventImpact]) -> float:
        hour = self._local_time(ts).hour
        base = self.PEAK_LEVEL if (7 <= hour <= 9 or 17 <= hour <= 19) else self.BASE_LEVEL
        level = base + float(self.rng.uniform(-self.PERTURBATION, self.PERTURBATION))

        if weather is not None:
            level += self.WEATHER_WEIGHT * weather.traffic_impact
        if event is not None and event.is_active(ts):
            level += self.EVENT_WEIGHT * event.traffic_impact

        return max(0.0, min(1.0, level))

    def _factors(self, location: str, now: int) -> Dict[str, float]:
        with self._lock:
            history_size = len(self.observations.get(location, ()))
        local = self._local_time(now)
        return {
            'historical': 0.8 if history_size > 10 else 0.3,
            'weather': 0.7 if self.context.weather_for(location) is not None else 0.2,
            'events': 0.6 if self.context.event_for(location) is not None else 0.1,
            'timeOfDay': 0.8 if 6 <= local.hour <= 22 else 0.4,
            'dayOfWeek': 0.9 if local.weekday() < 5 else 0.6
        }

    def _confidence(self, factors: Dict[str, float], intervals: int) -> float:
        confidence = 0.5
        if factors['historical'] > 0.7:
            confidence += 0.2
        if factors['weather'] > 0.5:
            confidence += 0.1
        if factors['events'] > 0.3:
            confidence += 0.1
        if intervals > 2:
            confidence += 0.1
        return round(min(1.0, confidence), 2)

    def _sample_point(self, sample: Any) -> Tuple[Optional[int], float]:
        if isinstance(sample, TrafficSample):
            return sample.timestamp, float(sample.vehicle_count)
        if not isinstance(sample, dict):
            raise ValidationError("Each sample must be a mapping", field='samples', value=sample)

        value = 0.0
        for key in ('congestionLevel', 'congestion_level', 'value', 'vehicleCount', 'vehicle_count'):
            candidate = sample.get(key)
            if isinstance(candidate, Real) and not isinstance(candidate, bool):
                value = float(candidate)
                break
        timestamp = sample.get('timestamp')
        return (timestamp if isinstance(timestamp, Real) else None), value

    def _bucket_average(self, points, buckets: int, key) -> List[float]:
        sums = np.zeros(buckets)
        counts = np.zeros(buckets)
        for ts, value in points:
            if ts is None:
                continue
            idx = key(self._local_time(ts))
            sums[idx] += value
            counts[idx] += 1
        averages = np.divide(sums, counts, out=np.zeros(buckets), where=counts > 0)
        return [round(float(v), 3) for v in averages]

    def _anomalies(self, points, values: np.ndarray) -> List[Dict[str, Any]]:
        if len(values) < 10:
            return []
        threshold = float(np.mean(values) + 2 * np.std(values))
        return [
            {'index': i, 'timestamp': points[i][0], 'value': float(values[i])}
            for i in range(len(values))
            if values[i] > threshold
        ]

    def _pattern_insights(self, patterns: Dict[str, Any]) -> List[str]:
        daily = patterns['daily']
        weekly = patterns['weekly']
        return [
            f"Peak congestion typically occurs at {daily.index(max(daily))}:00",
            f"{DAY_NAMES[weekly.index(max(weekly))]} is typically the busiest day"
        ]

    def _estimate_travel_time(self, forecast: CongestionForecast, constraints: Dict[str, Any]) -> int:
        base = float(self.rng.uniform(15, 45))     # minutes
        levels = [p.congestion_level for p in forecast.predictions]
        congestion_multiplier = 1 + 0.5 * (float(np.mean(levels)) if levels else 0.0)
        weather_multiplier = 1.2 if constraints.get('weather') else 1.0
        return round(base * congestion_multiplier * weather_multiplier)

    def _route_optimization(self, routes: List[Dict[str, Any]]) -> int:
        if len(routes) < 2:
            return 0
        best = routes[0]['estimatedTime']
        worst = routes[-1]['estimatedTime']
        if worst <= 0:
            return 0
        return round(((worst - best) / worst) * 100)


# Global forecaster instance
_forecaster: Optional[CongestionForecaster] = None


def get_forecaster() -> Optional[CongestionForecaster]:
    """Get the global CongestionForecaster instance"""
    return _forecaster


def init_forecaster(config: dict = None,
                    rng: Optional[np.random.Generator] = None,
                    clock: Optional[Clock] = None) -> CongestionForecaster:
    """Initialize the global CongestionForecaster with config"""
    global _forecaster
    _forecaster = CongestionForecaster(config=config, rng=rng, clock=clock)
    return _forecaster
