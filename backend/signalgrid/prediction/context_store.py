"""
Weather and Event Context

Per-location modifier records used as forecast and risk inputs.
Upsert semantics: the latest record per location wins.
"""

import logging
import threading
from typing import Any, Dict, Optional

from signalgrid.clock import Clock, now_ms
from signalgrid.exceptions import ValidationError
from signalgrid.models import (
    EventImpact,
    EventReport,
    WeatherImpact,
    WeatherReport,
    parse_model,
)

logger = logging.getLogger(__name__)

# Traffic impact coefficient per weather condition
WEATHER_IMPACT = {
    'clear': 0.1,
    'cloudy': 0.2,
    'rain': 0.4,
    'heavy_rain': 0.7,
    'snow': 0.8,
    'fog': 0.6,
}
UNKNOWN_WEATHER_IMPACT = 0.3
MAX_IMPACT = 0.9
DEFAULT_EVENT_DURATION = 3_600_000  # ms


def weather_impact(conditions: str) -> float:
    """Traffic impact coefficient for a weather condition"""
    return min(MAX_IMPACT, WEATHER_IMPACT.get(conditions, UNKNOWN_WEATHER_IMPACT))


def event_impact(expected_attendance: int, start_ms: int, end_ms: int) -> float:
    """Traffic impact coefficient from attendance and duration"""
    hours = (end_ms - start_ms) / 3_600_000
    return min(MAX_IMPACT, (expected_attendance / 10000) * (hours / 4) * 0.5)


class ContextStore:
    """
    Latest weather and event modifiers per location

    Usage:
        store = ContextStore()
        store.integrate_weather("downtown", {"conditions": "rain"})
        store.weather_for("downtown").traffic_impact   # 0.4
    """

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or now_ms
        self._weather: Dict[str, WeatherImpact] = {}
        self._events: Dict[str, EventImpact] = {}
        self._lock = threading.Lock()

    def integrate_weather(self, location: str, weather_info: Any) -> WeatherImpact:
        """
        Upsert the weather modifier for a location

        Raises:
            ValidationError: If location or payload is malformed
        """
        _require_location(location)
        report = parse_model(WeatherReport, weather_info, field='weatherInfo')

        record = WeatherImpact(
            location=location,
            conditions=report.conditions,
            temperature=report.temperature,
            precipitation=report.precipitation,
            visibility=report.visibility,
            traffic_impact=weather_impact(report.conditions),
            timestamp=self.clock()
        )

        with self._lock:
            self._weather[location] = record

        logger.info("[FORECAST] Weather for %s: %s (impact %.2f)",
                    location, record.conditions, record.traffic_impact)
        return record

    def integrate_event(self, location: str, event_info: Any) -> EventImpact:
        """
        Upsert the event modifier for a location

        Raises:
            ValidationError: If location or payload is malformed,
                or the event ends before it starts
        """
        _require_location(location)
        report = parse_model(EventReport, event_info, field='eventInfo')

        now = self.clock()
        start = report.start_time if report.start_time is not None else now
        end = report.end_time if report.end_time is not None else start + DEFAULT_EVENT_DURATION
        if end < start:
            raise ValidationError("Event end time must not precede start time",
                                  field='endTime', value=end)

        record = EventImpact(
            location=location,
            type=report.type,
            start_time=start,
            end_time=end,
            expected_attendance=report.expected_attendance,
            traffic_impact=event_impact(report.expected_attendance, start, end),
            timestamp=now
        )

        with self._lock:
            self._events[location] = record

        logger.info("[FORECAST] Event at %s: %s (impact %.2f)",
                    location, record.type, record.traffic_impact)
        return record

    def weather_for(self, location: str) -> Optional[WeatherImpact]:
        with self._lock:
            return self._weather.get(location)

    def event_for(self, location: str) -> Optional[EventImpact]:
        with self._lock:
            return self._events.get(location)

    def counts(self) -> Dict[str, int]:
        with self._lock:
            return {'weather': len(self._weather), 'events': len(self._events)}


def _require_location(location: Any):
    if not location or not isinstance(location, str):
        raise ValidationError("Location must be a valid string", field='location', value=location)
