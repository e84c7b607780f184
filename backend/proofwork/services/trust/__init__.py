"""
Trust Engine

Claim lifecycle, peer verification, reputation, credit scoring and
supply-chain certification, all persisted through one LedgerStore per session.
"""
from .store import LedgerStore
from .locks import KeyedLocks, default_locks, claim_key, participant_key
from .state_machine import ClaimStateMachine, STATE_CONFIG
from .identity import IdentityService, clamp_reputation
from .claim_ledger import ClaimLedger
from .settlement import SettlementGateway, SettlementReceipt, SettlementService, claim_content_hash
from .verification import VerificationEngine, attestation_digest
from .credit_scoring import CreditScoringService, build_credit_report, credit_score, tier_for
from .stats import ledger_stats
from .certification import CertificationService, certificate_hash

__all__ = [
    "LedgerStore",
    "KeyedLocks", "default_locks", "claim_key", "participant_key",
    "ClaimStateMachine", "STATE_CONFIG",
    "IdentityService", "clamp_reputation",
    "ClaimLedger",
    "SettlementGateway", "SettlementReceipt", "SettlementService", "claim_content_hash",
    "VerificationEngine", "attestation_digest",
    "CreditScoringService", "build_credit_report", "credit_score", "tier_for",
    "ledger_stats",
    "CertificationService", "certificate_hash",
]
