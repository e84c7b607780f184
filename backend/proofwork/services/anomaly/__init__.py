"""
Anomaly Detection

- scoring: additive per-claim score computed at submission time
- detectors / scanner: batch scan over a point-in-time ledger snapshot
"""
from .scoring import AnomalyScorer, ScoreBreakdown, SIGNALS
from .detectors import ALL_DETECTORS, DETECTORS
from .scanner import AnomalyScanner

__all__ = [
    "AnomalyScorer", "ScoreBreakdown", "SIGNALS",
    "ALL_DETECTORS", "DETECTORS",
    "AnomalyScanner",
]
