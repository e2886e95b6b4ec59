"""
Congestion Classifier

Fixed thresholds shared by the flow analyzer, the forecaster and the
risk assessment.

Vehicle-count bands:
- LOW: < 10 vehicles
- MODERATE: < 25 vehicles
- HIGH: < 50 vehicles
- CRITICAL: >= 50 vehicles

Score bands ([0, 1] risk or congestion scores):
- LOW: < 0.3, MODERATE: < 0.6, HIGH: < 0.8, CRITICAL: >= 0.8
"""

from typing import List, Tuple

from signalgrid.models import CongestionLevel


COUNT_THRESHOLDS: List[Tuple[float, CongestionLevel]] = [
    (10, CongestionLevel.LOW),
    (25, CongestionLevel.MODERATE),
    (50, CongestionLevel.HIGH),
]

SCORE_THRESHOLDS: List[Tuple[float, CongestionLevel]] = [
    (0.3, CongestionLevel.LOW),
    (0.6, CongestionLevel.MODERATE),
    (0.8, CongestionLevel.HIGH),
]

# Risk score assigned to each vehicle-count band
TRAFFIC_RISK_SCORES = {
    CongestionLevel.LOW: 0.2,
    CongestionLevel.MODERATE: 0.5,
    CongestionLevel.HIGH: 0.7,
    CongestionLevel.CRITICAL: 0.9,
}


def classify_congestion(vehicle_count: float) -> CongestionLevel:
    """
    Classify a vehicle count into a congestion level

    Examples:
        classify_congestion(5)   # LOW
        classify_congestion(60)  # CRITICAL
    """
    for upper, level in COUNT_THRESHOLDS:
        if vehicle_count < upper:
            return level
    return CongestionLevel.CRITICAL


def score_to_level(score: float) -> CongestionLevel:
    """Classify a [0, 1] score into a congestion/risk level"""
    for upper, level in SCORE_THRESHOLDS:
        if score < upper:
            return level
    return CongestionLevel.CRITICAL


def traffic_risk_score(vehicle_count: float) -> float:
    """Risk contribution of the observed traffic flow"""
    return TRAFFIC_RISK_SCORES[classify_congestion(vehicle_count)]
