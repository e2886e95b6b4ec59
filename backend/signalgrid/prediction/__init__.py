"""
Congestion Prediction Module

Multi-interval congestion forecasting with weather and event context,
pattern analysis, real-time risk assessment and route ranking.

Components:
- CongestionForecaster: Forecasts, pattern analysis, route ranking
- RiskAssessor: Weighted per-factor risk scoring
- ContextStore: Latest weather/event modifiers per location
"""

from .context_store import (
    ContextStore,
    weather_impact,
    event_impact,
)

from .risk_assessor import (
    RiskAssessor,
    DEFAULT_RISK_WEIGHTS,
)

from .congestion_forecaster import (
    CongestionForecaster,
    get_forecaster,
    init_forecaster,
)


__all__ = [
    # Context
    'ContextStore',
    'weather_impact',
    'event_impact',

    # Risk
    'RiskAssessor',
    'DEFAULT_RISK_WEIGHTS',

    # Forecaster
    'CongestionForecaster',
    'get_forecaster',
    'init_forecaster',
]
