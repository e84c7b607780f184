"""
Identity & Reputation Store

Holds each participant's reputation score and counters. Registration is
the only way a participant comes into existence; after that, only the
verification engine mutates reputation and counters, always while holding
the participant's key in KeyedLocks.

Reputation is clamped to [REPUTATION_FLOOR, REPUTATION_CEILING] on every
adjustment, so no sequence of rewards or slashes can leave the range.
"""
import logging
from typing import Any, Dict, List, Tuple
from uuid import uuid4

from ...config import EngineConfig, REPUTATION_FLOOR, REPUTATION_CEILING
from ...errors import ParticipantNotFound, ValidationError
from ...models.db_models import ParticipantDB, ParticipantRole
from .store import LedgerStore

logger = logging.getLogger(__name__)


def clamp_reputation(score: float) -> float:
    return max(REPUTATION_FLOOR, min(REPUTATION_CEILING, score))


class IdentityService:
    """Registration, lookup and the two reputation mutations."""

    PROFILE_DEPTH = 20

    def __init__(self, store: LedgerStore, config: EngineConfig = None):
        self.store = store
        self.config = config if config is not None else EngineConfig()

    # =========================================================================
    # REGISTRATION & LOOKUP
    # =========================================================================

    def register(
        self,
        name: str,
        location: str,
        sector: str,
        role: ParticipantRole = ParticipantRole.PARTICIPANT,
    ) -> ParticipantDB:
        """Create a participant with the initial reputation and zeroed counters."""
        missing = [
            field_name for field_name, value in
            (("name", name), ("location", location), ("sector", sector))
            if not value or not value.strip()
        ]
        if missing:
            raise ValidationError(f"Missing fields: {', '.join(missing)}", fields=missing)

        participant = ParticipantDB(
            id=str(uuid4()),
            name=name.strip(),
            location=location.strip(),
            sector=sector.strip(),
            role=role,
            reputation_score=clamp_reputation(self.config.initial_reputation),
            verification_depth=0,
            total_verified_days=0,
        )
        with self.store.unit_of_work():
            self.store.add(participant)

        logger.info(f"Registered participant {participant.id} ({participant.location})")
        return participant

    def get(self, participant_id: str) -> ParticipantDB:
        with self.store.unit_of_work(commit=False):
            participant = self.store.get_participant(participant_id)
        if participant is None:
            raise ParticipantNotFound(participant_id)
        return participant

    def list(self, page: int = 1, limit: int = 20) -> Tuple[List[ParticipantDB], int]:
        """One page of participants plus the total count."""
        page = max(1, page)
        limit = max(1, limit)
        with self.store.unit_of_work(commit=False):
            participants = self.store.list_participants(offset=(page - 1) * limit, limit=limit)
            total = self.store.count_participants()
        return participants, total

    def profile(self, participant_id: str) -> Dict[str, Any]:
        """Participant with recent claims and the attestations those claims received."""
        participant = self.get(participant_id)
        with self.store.unit_of_work(commit=False):
            claims = self.store.claims_for_participant(participant_id, limit=self.PROFILE_DEPTH)
            received = self.store.attestations_received(participant_id, limit=self.PROFILE_DEPTH)
        return {
            "participant": participant,
            "claims": claims,
            "attestations_received": received,
        }

    # =========================================================================
    # MUTATIONS (caller holds the participant lock and the unit of work)
    # =========================================================================

    @staticmethod
    def adjust_reputation(participant: ParticipantDB, delta: float) -> float:
        """Apply delta, clamped to the reputation bounds. Returns the new score."""
        before = participant.reputation_score
        participant.reputation_score = clamp_reputation(before + delta)
        if delta < 0:
            logger.warning(
                f"Reputation of {participant.id} reduced {before:.2f} -> {participant.reputation_score:.2f}"
            )
        return participant.reputation_score

    @staticmethod
    def record_attestation(participant: ParticipantDB) -> None:
        participant.verification_depth = (participant.verification_depth or 0) + 1

    @staticmethod
    def record_verified_day(participant: ParticipantDB) -> None:
        participant.total_verified_days = (participant.total_verified_days or 0) + 1
