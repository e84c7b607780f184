"""
Credit Scoring

Derives a bounded credit score and tier from a participant's sealed claims.

    tenure_months  = max(1, round(total_verified_days / 22))
    weekly_hours   = mean(hours over verified claims) * 5
    avg_peers      = mean(valid attestations per verified claim)
    score          = min(850, round(tenure*4.5 + min(avg_peers, 10)*15
                                    + min(weekly_hours, 40)*2.5 + 300))
    tier           = PRIME > 720, STANDARD > 580, else EMERGING
    credit_ceiling = round(score * tenure * 2.8)

build_credit_report() is a pure function of ledger rows. The service
appends every generated report to the participant's report history and
never touches claims, attestations or reputation.
"""
import logging
import math
from dataclasses import dataclass
from typing import List
from uuid import uuid4

from ...errors import NoVerifiedHistory, ParticipantNotFound
from ...models.db_models import (
    ParticipantDB, WorkClaimDB, CreditReportDB, ClaimStatus, CreditTier,
)
from .store import LedgerStore

logger = logging.getLogger(__name__)


WORKING_DAYS_PER_MONTH = 22
WORKING_DAYS_PER_WEEK = 5
MAX_SCORE = 850
BASE_SCORE = 300
PEER_CAP = 10
WEEKLY_HOURS_CAP = 40
TIER_THRESHOLDS = [
    (720, CreditTier.PRIME),
    (580, CreditTier.STANDARD),
]
CEILING_MULTIPLIER = 2.8


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def tier_for(score: int) -> CreditTier:
    for threshold, tier in TIER_THRESHOLDS:
        if score > threshold:
            return tier
    return CreditTier.EMERGING


def credit_score(tenure_months: int, avg_peers: float, weekly_hours: float) -> int:
    raw = (
        tenure_months * 4.5
        + min(avg_peers, PEER_CAP) * 15
        + min(weekly_hours, WEEKLY_HOURS_CAP) * 2.5
        + BASE_SCORE
    )
    return min(MAX_SCORE, round_half_up(raw))


@dataclass(frozen=True)
class CreditInputs:
    tenure_months: int
    avg_peers: float
    avg_weekly_hours: float
    verified_claims: int


def build_credit_inputs(
    participant: ParticipantDB,
    verified_claims: List[WorkClaimDB],
    valid_attestation_counts: List[int],
) -> CreditInputs:
    if not verified_claims:
        raise NoVerifiedHistory(participant.id)
    tenure = max(1, round_half_up((participant.total_verified_days or 0) / WORKING_DAYS_PER_MONTH))
    mean_hours = sum(c.hours for c in verified_claims) / len(verified_claims)
    avg_peers = sum(valid_attestation_counts) / len(valid_attestation_counts)
    return CreditInputs(
        tenure_months=tenure,
        avg_peers=avg_peers,
        avg_weekly_hours=mean_hours * WORKING_DAYS_PER_WEEK,
        verified_claims=len(verified_claims),
    )


def build_credit_report(
    participant: ParticipantDB,
    verified_claims: List[WorkClaimDB],
    valid_attestation_counts: List[int],
) -> CreditReportDB:
    """Unsaved CreditReportDB computed from the given rows."""
    inputs = build_credit_inputs(participant, verified_claims, valid_attestation_counts)
    score = credit_score(inputs.tenure_months, inputs.avg_peers, inputs.avg_weekly_hours)
    return CreditReportDB(
        id=str(uuid4()),
        participant_id=participant.id,
        score=score,
        tier=tier_for(score),
        credit_ceiling=round_half_up(score * inputs.tenure_months * CEILING_MULTIPLIER),
        tenure_months=inputs.tenure_months,
        avg_peers=round(inputs.avg_peers, 2),
        avg_weekly_hours=round(inputs.avg_weekly_hours, 2),
        verified_claims=inputs.verified_claims,
    )


class CreditScoringService:
    """Generates and lists credit report snapshots."""

    def __init__(self, store: LedgerStore):
        self.store = store

    def credit_report(self, participant_id: str) -> CreditReportDB:
        with self.store.unit_of_work():
            participant = self.store.get_participant(participant_id)
            if participant is None:
                raise ParticipantNotFound(participant_id)

            verified = self.store.claims_for_participant(participant_id, status=ClaimStatus.VERIFIED)
            counts = [self.store.count_valid_attestations(claim.id) for claim in verified]
            report = build_credit_report(participant, verified, counts)
            self.store.add(report)

        logger.info(f"Credit report for {participant_id}: {report.score} ({report.tier.value})")
        return report

    def report_history(self, participant_id: str) -> List[CreditReportDB]:
        with self.store.unit_of_work(commit=False):
            if self.store.get_participant(participant_id) is None:
                raise ParticipantNotFound(participant_id)
            return self.store.credit_reports_for(participant_id)
