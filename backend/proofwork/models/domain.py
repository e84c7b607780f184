"""
ProofOfWork Trust Engine - Result Models

Plain, immutable value objects returned by the trust engine. Unlike the ORM
rows in db_models, these never touch a session and are safe to hand to any
caller or serialize straight into an HTTP response.
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Any, Tuple


# =============================================================================
# ENUMS
# =============================================================================

class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# Score boundaries for RiskLevel buckets
HIGH_RISK_ABOVE = 0.7
MEDIUM_RISK_ABOVE = 0.4


def risk_level_for(score: float) -> RiskLevel:
    if score > HIGH_RISK_ABOVE:
        return RiskLevel.HIGH
    if score > MEDIUM_RISK_ABOVE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


# =============================================================================
# VERIFICATION ENGINE OUTPUT
# =============================================================================

@dataclass(frozen=True)
class SettlementRecord:
    """Seal stamped on a claim at quorum. tx_ref/block_number only with an external ledger."""
    content_hash: str
    sequence_number: int
    tx_ref: Optional[str] = None
    block_number: Optional[int] = None

    @property
    def is_external(self) -> bool:
        return self.tx_ref is not None


@dataclass(frozen=True)
class AttestationResult:
    """Outcome of one accepted attestation."""
    attestation_id: str
    claim_id: str
    sealed: bool
    count_so_far: int
    settlement: Optional[SettlementRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# =============================================================================
# BATCH SCAN
# =============================================================================

@dataclass(frozen=True)
class ClaimRow:
    """Read-only view of one claim inside a LedgerSnapshot."""
    claim_id: str
    participant_id: str
    participant_name: str
    location: str
    claim_date: date
    hours: float
    created_at: datetime


@dataclass(frozen=True)
class AttestationEdge:
    """verifier -> claim owner, one per recorded attestation."""
    verifier_id: str
    claim_id: str
    owner_id: str


@dataclass(frozen=True)
class PersistedFlagRow:
    flag_id: str
    flagged_entity: str
    anomaly_kind: str
    risk_score: float
    description: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Everything the batch scan reads, captured up-front.

    Detectors are pure functions of a snapshot, so a scan never holds locks
    on the live store and two scans of the same ledger state agree.
    """
    claims: Tuple[ClaimRow, ...]
    attestations: Tuple[AttestationEdge, ...]
    open_flags: Tuple[PersistedFlagRow, ...]
    taken_at: datetime
    region: Optional[str] = None


@dataclass(frozen=True)
class ScanFlag:
    """One finding of the batch scan."""
    kind: str
    score: float
    entity: str
    label: str
    detail: str
    evidence: Dict[str, Any] = field(default_factory=dict)

    @property
    def risk(self) -> RiskLevel:
        return risk_level_for(self.score)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["risk"] = self.risk.value
        return data


@dataclass(frozen=True)
class ScanSummary:
    total: int
    high: int
    medium: int
    low: int

    @classmethod
    def from_flags(cls, flags: List[ScanFlag]) -> "ScanSummary":
        levels = [flag.risk for flag in flags]
        return cls(
            total=len(flags),
            high=levels.count(RiskLevel.HIGH),
            medium=levels.count(RiskLevel.MEDIUM),
            low=levels.count(RiskLevel.LOW),
        )


@dataclass(frozen=True)
class ScanReport:
    flags: List[ScanFlag]
    summary: ScanSummary
    scanned_at: datetime
    region: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flags": [flag.to_dict() for flag in self.flags],
            "summary": asdict(self.summary),
            "region": self.region,
            "scanned_at": self.scanned_at.isoformat(),
        }
