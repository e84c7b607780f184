"""
Claim Ledger

Holds work claims and their status. Enforces one claim per participant per
calendar date, both with a pre-insert check and with the
(participant_id, claim_date) unique constraint for submissions that race
past the check.

A claim is never deleted. After submission only the verification engine
changes it, and only its status and settlement columns.
"""
import logging
import math
from datetime import date
from typing import List, Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from ...config import EngineConfig
from ...errors import ClaimNotFound, DuplicateClaim, InvalidHours, ParticipantNotFound, ValidationError
from ...models.db_models import (
    WorkClaimDB, AnomalyFlagDB, ClaimStatus, EntityKind, AnomalyKind,
)
from ..anomaly.scoring import AnomalyScorer
from .store import LedgerStore

logger = logging.getLogger(__name__)


class ClaimLedger:
    """Submission and lookup of work claims."""

    DEFAULT_LIST_LIMIT = 20

    def __init__(self, store: LedgerStore, config: EngineConfig = None, scorer: AnomalyScorer = None):
        self.store = store
        self.config = config if config is not None else EngineConfig()
        self.scorer = scorer if scorer is not None else AnomalyScorer(store)

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def submit(
        self,
        participant_id: str,
        claim_date: date,
        hours: float,
        task: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> WorkClaimDB:
        """
        Record a participant's claim for one day.

        Raises:
            InvalidHours: hours not finite, <= 0 or above the configured ceiling
            ValidationError: empty task
            ParticipantNotFound: unknown participant
            DuplicateClaim: a claim already exists for (participant, date)

        Side effect: a score above auto_flag_threshold persists a
        suspicious_hours AnomalyFlag in the same transaction as the claim.
        """
        if hours is None or not math.isfinite(hours) or hours <= 0 or hours > self.config.max_claim_hours:
            raise InvalidHours(hours, self.config.max_claim_hours)
        if not task or not task.strip():
            raise ValidationError("Missing fields: task", fields=["task"])

        with self.store.unit_of_work():
            if self.store.get_participant(participant_id) is None:
                raise ParticipantNotFound(participant_id)
            if self.store.find_claim_for_date(participant_id, claim_date) is not None:
                raise DuplicateClaim(participant_id, claim_date)

            anomaly_score = self.scorer.score(participant_id, hours, claim_date)

            claim = WorkClaimDB(
                id=str(uuid4()),
                participant_id=participant_id,
                claim_date=claim_date,
                hours=hours,
                task=task.strip(),
                latitude=latitude,
                longitude=longitude,
                anomaly_score=anomaly_score,
                status=ClaimStatus.PENDING,
            )
            self.store.add(claim)
            try:
                self.store.flush()
            except IntegrityError as exc:
                raise DuplicateClaim(participant_id, claim_date) from exc

            if anomaly_score > self.config.auto_flag_threshold:
                self.store.add(AnomalyFlagDB(
                    id=str(uuid4()),
                    flagged_entity=claim.id,
                    entity_kind=EntityKind.CLAIM,
                    anomaly_kind=AnomalyKind.SUSPICIOUS_HOURS,
                    risk_score=anomaly_score,
                    description=f"Participant claimed {hours}h - anomaly score {anomaly_score:.2f}",
                ))
                logger.warning(f"Claim {claim.id} flagged: {hours}h, anomaly score {anomaly_score:.2f}")

        logger.info(f"Claim {claim.id} submitted by {participant_id} for {claim_date}: {hours}h")
        return claim

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def get(self, claim_id: str) -> WorkClaimDB:
        with self.store.unit_of_work(commit=False):
            claim = self.store.get_claim(claim_id)
        if claim is None:
            raise ClaimNotFound(claim_id)
        return claim

    def list_by_participant(self, participant_id: str, limit: int = DEFAULT_LIST_LIMIT) -> List[WorkClaimDB]:
        """Most recent claim date first. Every call re-reads the ledger."""
        if limit < 1:
            raise ValidationError(f"limit must be at least 1, got {limit}", fields=["limit"])
        with self.store.unit_of_work(commit=False):
            return self.store.claims_for_participant(participant_id, limit=limit)
