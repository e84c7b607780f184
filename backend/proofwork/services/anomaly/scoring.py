"""
Per-Submission Anomaly Scoring

Additive heuristic computed before a claim is written. Each signal maps to
one named failure mode and carries a fixed weight:

    physiological_limit   +0.40  hours > 14.0
    beyond_ceiling        +0.35  hours > 16.0 (only reachable when the claim
                                 ceiling is configured above 16.0)
    sudden_deviation      +0.25  hours > 1.8x the mean of the participant's
                                 last 10 claims in the trailing 7 days,
                                 with at least 3 such claims
    repeated_value        +0.20  same hours value 5+ times in the trailing
                                 14 days

The result is the capped sum, rounded to 4 places. Scoring only reads, and
reads nothing but the participant's own history, so equal history always
yields an equal score.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import TYPE_CHECKING, Dict, List, Tuple

if TYPE_CHECKING:
    # The trust package imports this module at load time
    from ..trust.store import LedgerStore


# =============================================================================
# SIGNAL WEIGHTS AND THRESHOLDS
# =============================================================================

SIGNALS: Dict[str, Dict[str, float]] = {
    "physiological_limit": {"weight": 0.40, "hours_above": 14.0},
    "beyond_ceiling": {"weight": 0.35, "hours_above": 16.0},
    "sudden_deviation": {"weight": 0.25, "multiplier": 1.8, "window_days": 7, "max_history": 10, "min_history": 3},
    "repeated_value": {"weight": 0.20, "window_days": 14, "min_repeats": 5},
}

MAX_SCORE = 1.0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Score plus the names of the signals that fired."""
    score: float
    signals: Tuple[str, ...]


class AnomalyScorer:
    """Computes the anomaly score of a prospective claim from the participant's history."""

    def __init__(self, store: "LedgerStore"):
        self.store = store

    def score(self, participant_id: str, hours: float, claim_date: date) -> float:
        return self.explain(participant_id, hours, claim_date).score

    def explain(self, participant_id: str, hours: float, claim_date: date) -> ScoreBreakdown:
        fired: List[str] = []

        if hours > SIGNALS["physiological_limit"]["hours_above"]:
            fired.append("physiological_limit")
        if hours > SIGNALS["beyond_ceiling"]["hours_above"]:
            fired.append("beyond_ceiling")

        with self.store.unit_of_work(commit=False):
            if self._is_sudden_deviation(participant_id, hours, claim_date):
                fired.append("sudden_deviation")
            if self._is_repeated_value(participant_id, hours, claim_date):
                fired.append("repeated_value")

        # Each weight is already a per-signal cap
        total = sum(min(SIGNALS[name]["weight"], MAX_SCORE) for name in fired)
        return ScoreBreakdown(score=round(min(total, MAX_SCORE), 4), signals=tuple(fired))

    def _is_sudden_deviation(self, participant_id: str, hours: float, claim_date: date) -> bool:
        rule = SIGNALS["sudden_deviation"]
        recent = self.store.hours_in_window(
            participant_id,
            start=claim_date - timedelta(days=int(rule["window_days"])),
            end=claim_date,
            limit=int(rule["max_history"]),
        )
        if len(recent) < rule["min_history"]:
            return False
        mean_hours = sum(recent) / len(recent)
        return hours > mean_hours * rule["multiplier"]

    def _is_repeated_value(self, participant_id: str, hours: float, claim_date: date) -> bool:
        rule = SIGNALS["repeated_value"]
        repeats = self.store.count_same_hours(
            participant_id,
            hours,
            start=claim_date - timedelta(days=int(rule["window_days"])),
            end=claim_date,
        )
        return repeats >= rule["min_repeats"]
