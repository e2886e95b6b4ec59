"""
Real-time Congestion Risk Assessment

Combines four per-factor scores into one weighted risk score:

    overall = 0.4 * traffic + 0.3 * weather + 0.2 * events + 0.1 * infrastructure

The weights are configurable and normalized to sum to 1.
"""

from typing import Any, Dict, List, Optional

import numpy as np

from signalgrid.clock import Clock, now_ms
from signalgrid.flow import score_to_level, traffic_risk_score
from signalgrid.models import RiskConditions, parse_model

from .context_store import ContextStore

DEFAULT_RISK_WEIGHTS = {
    'traffic': 0.4,
    'weather': 0.3,
    'events': 0.2,
    'infrastructure': 0.1,
}

WEATHER_RISK = {
    'clear': 0.1,
    'cloudy': 0.2,
    'rain': 0.6,
    'heavy_rain': 0.8,
    'snow': 0.9,
    'fog': 0.7,
}
UNKNOWN_WEATHER_RISK = 0.3
BASELINE_RISK = 0.1


class RiskAssessor:
    """
    Assess real-time congestion risk for a location

    Usage:
        assessor = RiskAssessor(context_store, rng=np.random.default_rng(7))
        result = assessor.assess("downtown", {"trafficFlow": 42, "weather": {"conditions": "fog"}})
        result['riskLevel']   # 'moderate'
    """

    def __init__(self,
                 context: ContextStore,
                 rng: Optional[np.random.Generator] = None,
                 weights: Optional[Dict[str, float]] = None,
                 clock: Optional[Clock] = None):
        self.context = context
        self.rng = rng if rng is not None else np.random.default_rng()
        self.clock = clock or now_ms

        raw = dict(DEFAULT_RISK_WEIGHTS)
        raw.update(weights or {})
        total = sum(raw[k] for k in DEFAULT_RISK_WEIGHTS)
        self.weights = {k: raw[k] / total for k in DEFAULT_RISK_WEIGHTS}

    def assess(self, location: str, conditions: Any) -> Dict[str, Any]:
        """
        Assess risk from current conditions

        Args:
            location: Location ID
            conditions: Mapping with trafficFlow, weather (mapping or
                condition name) and time (epoch ms)

        Raises:
            ValidationError: If conditions are malformed
        """
        if isinstance(conditions, dict) and isinstance(conditions.get('weather'), str):
            conditions = {**conditions, 'weather': {'conditions': conditions['weather']}}
        parsed = parse_model(RiskConditions, conditions, field='conditions')
        at = parsed.time if parsed.time is not None else self.clock()

        factors = {
            'traffic': self._traffic_risk(parsed.traffic_flow),
            'weather': self._weather_risk(location, parsed),
            'events': self._event_risk(location, at),
            'infrastructure': self._infrastructure_risk()
        }

        overall = round(sum(self.weights[name] * f['score'] for name, f in factors.items()), 3)

        return {
            'location': location,
            'timestamp': self.clock(),
            'riskLevel': score_to_level(overall).value,
            'riskScore': overall,
            'factors': factors,
            'recommendations': self._recommendations(factors, overall)
        }

    def _traffic_risk(self, traffic_flow: float) -> Dict[str, Any]:
        score = traffic_risk_score(traffic_flow)
        return {'level': score_to_level(score).value, 'score': score}

    def _weather_risk(self, location: str, conditions: RiskConditions) -> Dict[str, Any]:
        if conditions.weather is not None:
            name = conditions.weather.conditions
        else:
            record = self.context.weather_for(location)
            if record is None:
                return {'level': score_to_level(BASELINE_RISK).value, 'score': BASELINE_RISK}
            name = record.conditions
        score = WEATHER_RISK.get(name, UNKNOWN_WEATHER_RISK)
        return {'level': score_to_level(score).value, 'score': score}

    def _event_risk(self, location: str, at: int) -> Dict[str, Any]:
        event = self.context.event_for(location)
        score = event.traffic_impact if event is not None and event.is_active(at) else BASELINE_RISK
        return {'level': score_to_level(score).value, 'score': round(score, 3)}

    def _infrastructure_risk(self) -> Dict[str, Any]:
        # Simulated infrastructure quality in [0.1, 0.5)
        score = round(float(self.rng.uniform(0.1, 0.5)), 3)
        return {'level': score_to_level(score).value, 'score': score}

    def _recommendations(self, factors: Dict[str, Dict[str, Any]], overall: float) -> List[str]:
        recommendations = []

        if factors['traffic']['score'] > 0.7:
            recommendations.append('Consider alternative routes')
            recommendations.append('Delay non-essential travel')

        if factors['weather']['score'] > 0.6:
            recommendations.append('Reduce speed and increase following distance')
            recommendations.append('Allow extra travel time')

        if overall > 0.8:
            recommendations.append('HIGH PRIORITY: Activate traffic management protocols')
            recommendations.append('Deploy additional traffic control resources')

        return recommendations
