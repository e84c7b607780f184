"""ProofOfWork Trust Engine - Data Models"""
from .db_models import (
    # Enums
    ClaimStatus, ParticipantRole, EntityKind, AnomalyKind, CreditTier,
    # ORM rows
    ParticipantDB, WorkClaimDB, AttestationDB, AnomalyFlagDB, CreditReportDB, SettlementCounterDB,
    SupplyChainCertDB,
)
from .domain import (
    RiskLevel, SettlementRecord, AttestationResult,
    LedgerSnapshot, ClaimRow, AttestationEdge, PersistedFlagRow,
    ScanFlag, ScanSummary, ScanReport,
)

__all__ = [
    "ClaimStatus", "ParticipantRole", "EntityKind", "AnomalyKind", "CreditTier",
    "ParticipantDB", "WorkClaimDB", "AttestationDB", "AnomalyFlagDB", "CreditReportDB",
    "SettlementCounterDB", "SupplyChainCertDB",
    "RiskLevel", "SettlementRecord", "AttestationResult",
    "LedgerSnapshot", "ClaimRow", "AttestationEdge", "PersistedFlagRow",
    "ScanFlag", "ScanSummary", "ScanReport",
]
