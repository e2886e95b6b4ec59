"""
Traffic Flow Analysis

Per-intersection vehicle-count ingestion, congestion classification
and short-term pattern detection.

Components:
- FlowAnalyzer: Record samples, detect patterns, suggest timings
- FlowHistory: Bounded per-intersection sample buffers
- classify_congestion / score_to_level: Fixed congestion thresholds
"""

from .congestion_classifier import (
    classify_congestion,
    score_to_level,
    traffic_risk_score,
)

from .flow_history import (
    FlowHistory,
    TrafficSample,
)

from .flow_analyzer import (
    FlowAnalyzer,
    get_flow_analyzer,
    init_flow_analyzer,
)


__all__ = [
    # Classification
    "classify_congestion",
    "score_to_level",
    "traffic_risk_score",

    # History
    "FlowHistory",
    "TrafficSample",

    # Analyzer
    "FlowAnalyzer",
    "get_flow_analyzer",
    "init_flow_analyzer",
]
