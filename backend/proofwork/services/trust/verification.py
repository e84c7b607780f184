"""
Verification Engine

Validates and records peer attestations, enforces the quorum, seals claims
and applies the reputation side effects.

Core Principles:
1. A participant never attests their own claim.
2. A participant attests a given claim at most once.
3. A claim is sealed exactly once. Sealing is a compare-and-set on the
   stored status, so two attestations racing at the quorum boundary cannot
   both seal.
4. Every operation validates before it writes; any failure rolls the whole
   unit of work back.
5. A settlement gateway sees a seal only after the sealing transaction
   has committed.

LOCKING:
- attest / reject / slash hold the claim key for their whole duration.
- Participants touched by the operation (verifier, owner) are locked after
  the claim key, in sorted order, and re-read under the lock before any
  reputation change.

TRUST BOUNDARY:
slash() is an administrative override without a quorum of its own. A single
authority invokes it; the HTTP layer restricts it to admin participants.
"""
import hashlib
import json
import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy.exc import IntegrityError

from ...config import EngineConfig
from ...errors import (
    AlreadySealed,
    AlreadySlashed,
    ClaimNotFound,
    ClaimRejected,
    DuplicateAttestation,
    InvalidProximity,
    NotVerifiedByThisParticipant,
    ParticipantNotFound,
    ProximityTooFar,
    SelfVerification,
    StorageError,
    TrustEngineError,
)
from ...models.db_models import AttestationDB, ClaimStatus, WorkClaimDB, utcnow
from ...models.domain import AttestationResult, SettlementRecord
from .identity import IdentityService
from .locks import KeyedLocks, claim_key, default_locks, participant_key
from .settlement import SettlementGateway, SettlementService
from .state_machine import ClaimStateMachine
from .store import LedgerStore

logger = logging.getLogger(__name__)


def attestation_digest(
    claim_id: str,
    verifier_id: str,
    timestamp: datetime,
    material: Optional[str] = None,
) -> str:
    """
    sha256 binding claim, verifier and attestation time.

    Tamper-evident marker only: nothing here checks a public key, so the
    digest proves what was recorded, not who recorded it.
    """
    payload = {
        "claim_id": claim_id,
        "verifier_id": verifier_id,
        "timestamp": int(timestamp.replace(tzinfo=timezone.utc).timestamp() * 1000),
    }
    if material:
        payload["material"] = material
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class VerificationEngine:
    """Attestation, sealing, rejection and slashing of work claims."""

    def __init__(
        self,
        store: LedgerStore,
        config: EngineConfig = None,
        locks: KeyedLocks = None,
        gateway: Optional[SettlementGateway] = None,
    ):
        self.store = store
        self.config = config if config is not None else EngineConfig()
        self.locks = locks if locks is not None else default_locks
        self.settlement = SettlementService(store, gateway)
        self.state_machine = ClaimStateMachine()

    # =========================================================================
    # ATTEST
    # =========================================================================

    def attest(
        self,
        claim_id: str,
        verifier_id: str,
        signature: Optional[str] = None,
        proximity_m: Optional[float] = None,
    ) -> AttestationResult:
        """
        Record verifier_id's attestation of claim_id.

        Args:
            claim_id: Claim being attested
            verifier_id: Attesting participant
            signature: Optional caller-supplied signature material, folded
                into the stored digest
            proximity_m: Distance between verifier and the claimed work

        Returns:
            AttestationResult - sealed with a settlement record once the
            valid attestation count reaches the quorum

        Raises:
            InvalidProximity, ClaimNotFound, ParticipantNotFound, SelfVerification,
            AlreadySealed, ClaimRejected, DuplicateAttestation, ProximityTooFar
        """
        if proximity_m is not None and (not math.isfinite(proximity_m) or proximity_m < 0):
            raise InvalidProximity(proximity_m)

        with self.locks.hold(claim_key(claim_id)):
            owner_id = self._owner_of(claim_id)
            with self.locks.hold(participant_key(verifier_id), participant_key(owner_id)):
                with self.store.unit_of_work():
                    result = self._attest_locked(claim_id, verifier_id, signature, proximity_m)
            # The seal is committed; only now may it leave the process
            if result.sealed:
                result = self._mirror_settlement(result)
        return result

    def _attest_locked(
        self,
        claim_id: str,
        verifier_id: str,
        signature: Optional[str],
        proximity_m: Optional[float],
    ) -> AttestationResult:
        claim = self._load_claim(claim_id)
        verifier = self.store.get_participant(verifier_id, fresh=True)
        if verifier is None:
            raise ParticipantNotFound(verifier_id)
        if claim.participant_id == verifier_id:
            raise SelfVerification(verifier_id)
        self._ensure_accepts_attestations(claim)
        if self.store.get_attestation(claim.id, verifier_id) is not None:
            raise DuplicateAttestation(claim.id, verifier_id)
        if proximity_m is not None and proximity_m > self.config.max_proximity_m:
            raise ProximityTooFar(proximity_m, self.config.max_proximity_m)

        recorded_at = utcnow()
        attestation = AttestationDB(
            id=str(uuid4()),
            claim_id=claim.id,
            verifier_id=verifier_id,
            signature=attestation_digest(claim.id, verifier_id, recorded_at, signature),
            proximity_m=proximity_m,
            is_valid=True,
            created_at=recorded_at,
        )
        self.store.add(attestation)
        try:
            self.store.flush()
        except IntegrityError as exc:
            raise DuplicateAttestation(claim.id, verifier_id) from exc

        IdentityService.record_attestation(verifier)
        if self.config.reward_verifiers:
            IdentityService.adjust_reputation(verifier, self.config.verifier_reward)

        if claim.status == ClaimStatus.PENDING:
            self._transition(claim, ClaimStatus.PARTIALLY_VERIFIED)

        count = self.store.count_valid_attestations(claim.id)
        if count < self.config.quorum:
            logger.info(f"Attestation {attestation.id} on claim {claim.id}: {count}/{self.config.quorum}")
            return AttestationResult(
                attestation_id=attestation.id,
                claim_id=claim.id,
                sealed=False,
                count_so_far=count,
            )

        settlement = self._seal(claim)
        return AttestationResult(
            attestation_id=attestation.id,
            claim_id=claim.id,
            sealed=True,
            count_so_far=count,
            settlement=settlement,
        )

    def _seal(self, claim: WorkClaimDB) -> SettlementRecord:
        """Quorum reached: stamp the settlement record and credit the owner."""
        record = self.settlement.seal_record(claim, self.store.attestations_for(claim.id))
        self._transition(
            claim,
            ClaimStatus.VERIFIED,
            settlement_hash=record.content_hash,
            settlement_sequence=record.sequence_number,
            sealed_at=utcnow(),
        )

        owner = self.store.get_participant(claim.participant_id, fresh=True)
        IdentityService.record_verified_day(owner)
        IdentityService.adjust_reputation(owner, self.config.seal_reward)

        logger.info(
            f"Claim {claim.id} sealed: sequence {record.sequence_number}, hash {record.content_hash[:12]}"
        )
        return record

    def _mirror_settlement(self, result: AttestationResult) -> AttestationResult:
        """Mirror a committed seal to the gateway and attach its receipt."""
        record = self.settlement.mirror(result.claim_id, result.settlement)
        if not record.is_external:
            return result
        try:
            with self.store.unit_of_work():
                attached = self.store.attach_settlement_receipt(
                    result.claim_id, record.content_hash, record.tx_ref, record.block_number
                )
        except StorageError:
            logger.exception(f"Could not record settlement receipt {record.tx_ref} for claim {result.claim_id}")
            return result
        if not attached:
            logger.warning(f"Claim {result.claim_id} already carries a settlement receipt")
            return result
        logger.info(f"Claim {result.claim_id} mirrored to external ledger: {record.tx_ref}")
        return replace(result, settlement=record)

    # =========================================================================
    # REJECT
    # =========================================================================

    def reject(self, claim_id: str, reason: Optional[str] = None) -> WorkClaimDB:
        """Move a pending or partially verified claim to REJECTED."""
        with self.locks.hold(claim_key(claim_id)):
            with self.store.unit_of_work():
                claim = self._load_claim(claim_id)
                self._transition(claim, ClaimStatus.REJECTED, rejection_reason=reason)
        logger.warning(f"Claim {claim_id} rejected: {reason or 'no reason given'}")
        return claim

    # =========================================================================
    # SLASH
    # =========================================================================

    def slash(self, verifier_id: str, claim_id: str) -> AttestationDB:
        """
        Penalize verifier_id for its attestation of claim_id.

        Clears the attestation's validity flag and subtracts slash_penalty
        from the verifier's reputation, floored at zero. Sealed claims stay
        sealed.
        """
        with self.locks.hold(claim_key(claim_id)):
            with self.locks.hold(participant_key(verifier_id)):
                with self.store.unit_of_work():
                    claim = self._load_claim(claim_id)
                    attestation = self.store.get_attestation(claim.id, verifier_id)
                    if attestation is None:
                        raise NotVerifiedByThisParticipant(verifier_id, claim_id)
                    if not attestation.is_valid:
                        raise AlreadySlashed(claim_id, verifier_id)

                    verifier = self.store.get_participant(verifier_id, fresh=True)
                    attestation.is_valid = False
                    IdentityService.adjust_reputation(verifier, -self.config.slash_penalty)

        logger.warning(f"Verifier {verifier_id} slashed for claim {claim_id}")
        return attestation

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _owner_of(self, claim_id: str) -> str:
        with self.store.unit_of_work(commit=False):
            claim = self.store.get_claim(claim_id)
        if claim is None:
            raise ClaimNotFound(claim_id)
        return claim.participant_id

    def _load_claim(self, claim_id: str) -> WorkClaimDB:
        claim = self.store.get_claim(claim_id, fresh=True)
        if claim is None:
            raise ClaimNotFound(claim_id)
        return claim

    def _ensure_accepts_attestations(self, claim: WorkClaimDB) -> None:
        if not self.state_machine.accepts_attestations(claim.status):
            raise self._closed_error(claim)

    def _transition(self, claim: WorkClaimDB, to_state: ClaimStatus, **values) -> None:
        """Compare-and-set claim.status from any legal source state of to_state."""
        allowed, _ = self.state_machine.can_transition(claim.status, to_state)
        if not allowed or not self.store.compare_and_set_status(
            claim, self.state_machine.sources_of(to_state), to_state, **values
        ):
            self.store.db.refresh(claim)
            raise self._closed_error(claim)

    @staticmethod
    def _closed_error(claim: WorkClaimDB) -> TrustEngineError:
        if claim.status == ClaimStatus.REJECTED:
            return ClaimRejected(claim.id)
        return AlreadySealed(claim.id)
