"""
Settlement

Produces the settlement record stamped on a claim when it is sealed.

The seal is always computed locally: a sha256 content hash over the claim
and its valid attestation signatures, plus the next settlement sequence
number. It is written by the same transaction that moves the claim to
VERIFIED.

When a SettlementGateway (an external ledger) is wired in, the content hash
is submitted there only after that transaction has committed, so a seal that
rolls back never reaches the external ledger. The returned transaction
reference and block number are attached in a follow-up update. A missing or
failing gateway never prevents a seal.
"""
import hashlib
import json
import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Protocol

from ...models.db_models import WorkClaimDB, AttestationDB
from ...models.domain import SettlementRecord
from .store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SettlementReceipt:
    """What an external ledger hands back for a submitted content hash."""
    tx_ref: str
    block_number: Optional[int] = None


class SettlementGateway(Protocol):
    """Optional outbound collaborator mirroring seals to an external ledger."""

    def settle(self, content_hash: str) -> SettlementReceipt:
        ...


def claim_content_hash(claim: WorkClaimDB, attestations: List[AttestationDB]) -> str:
    """Deterministic sha256 over the sealed content of a claim."""
    payload = {
        "claim_id": claim.id,
        "participant_id": claim.participant_id,
        "claim_date": claim.claim_date.isoformat(),
        "hours": claim.hours,
        "task": claim.task,
        "attestations": sorted(
            (a.verifier_id, a.signature) for a in attestations if a.is_valid
        ),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class SettlementService:
    """Builds local settlement records and mirrors committed seals to a gateway."""

    def __init__(self, store: LedgerStore, gateway: Optional[SettlementGateway] = None):
        self.store = store
        self.gateway = gateway

    def seal_record(self, claim: WorkClaimDB, attestations: List[AttestationDB]) -> SettlementRecord:
        """Local seal: content hash plus the next sequence number, in the caller's transaction."""
        return SettlementRecord(
            content_hash=claim_content_hash(claim, attestations),
            sequence_number=self.store.next_settlement_sequence(),
        )

    def mirror(self, claim_id: str, record: SettlementRecord) -> SettlementRecord:
        """
        Submit a committed seal to the gateway.

        Call only after the sealing transaction has committed. Returns the
        record with the receipt attached, or unchanged when there is no
        gateway or the gateway fails.
        """
        if self.gateway is None:
            return record
        try:
            receipt = self.gateway.settle(record.content_hash)
        except Exception:
            logger.exception(f"Settlement gateway failed for claim {claim_id}; keeping local seal")
            return record
        return replace(record, tx_ref=receipt.tx_ref, block_number=receipt.block_number)
