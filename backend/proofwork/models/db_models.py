"""
ProofOfWork Trust Engine - SQLAlchemy ORM Models
Persistent storage for participants, work claims, attestations,
anomaly flags, credit report snapshots and supply-chain certificates
"""
from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text, ForeignKey, Enum as SQLEnum,
    Boolean, Date, UniqueConstraint, JSON,
)
from sqlalchemy.orm import relationship
from ..database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the storage convention for every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# ENUMS
# =============================================================================

class ClaimStatus(str, Enum):
    """Lifecycle of a work claim. Forward-only; REJECTED is terminal."""
    PENDING = "pending"
    PARTIALLY_VERIFIED = "partially_verified"
    VERIFIED = "verified"
    REJECTED = "rejected"


class ParticipantRole(str, Enum):
    PARTICIPANT = "participant"
    ADMIN = "admin"


class EntityKind(str, Enum):
    """What an anomaly flag points at."""
    CLAIM = "claim"
    PARTICIPANT = "participant"
    TIME_WINDOW = "time_window"


class AnomalyKind(str, Enum):
    SUSPICIOUS_HOURS = "suspicious_hours"
    IMPOSSIBLE_HOURS = "impossible_hours"
    CLIQUE = "clique"
    TIMESTAMP_CLUSTER = "timestamp_cluster"
    GPS_MISMATCH = "gps_mismatch"
    MANUAL = "manual"


class CreditTier(str, Enum):
    PRIME = "PRIME"
    STANDARD = "STANDARD"
    EMERGING = "EMERGING"


# =============================================================================
# IDENTITY & REPUTATION
# =============================================================================

class ParticipantDB(Base):
    """A worker who submits claims and attests the claims of peers."""
    __tablename__ = "participants"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(255), nullable=False)
    location = Column(String(255), nullable=False, index=True)
    sector = Column(String(255), nullable=False)
    role = Column(SQLEnum(ParticipantRole), default=ParticipantRole.PARTICIPANT, nullable=False)

    # Mutated only by the verification engine
    reputation_score = Column(Float, default=50.0, nullable=False)
    verification_depth = Column(Integer, default=0, nullable=False)  # Attestations made
    total_verified_days = Column(Integer, default=0, nullable=False)  # Own claims sealed

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    claims = relationship("WorkClaimDB", back_populates="participant")
    credit_reports = relationship("CreditReportDB", back_populates="participant")


# =============================================================================
# CLAIM LEDGER
# =============================================================================

class WorkClaimDB(Base):
    """One participant's declared labor for one calendar day."""
    __tablename__ = "work_claims"
    __table_args__ = (
        UniqueConstraint("participant_id", "claim_date", name="uq_work_claims_participant_date"),
    )

    id = Column(String(36), primary_key=True)  # UUID
    participant_id = Column(String(36), ForeignKey("participants.id"), nullable=False, index=True)

    claim_date = Column(Date, nullable=False, index=True)
    hours = Column(Float, nullable=False)
    task = Column(Text, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    anomaly_score = Column(Float, default=0.0, nullable=False)
    status = Column(SQLEnum(ClaimStatus), default=ClaimStatus.PENDING, nullable=False, index=True)
    rejection_reason = Column(Text, nullable=True)

    # Settlement record - stamped exactly once, at sealing
    settlement_hash = Column(String(64), nullable=True)
    settlement_sequence = Column(Integer, nullable=True, unique=True)
    settlement_tx_ref = Column(String(128), nullable=True)  # External ledger reference, if any
    settlement_block = Column(Integer, nullable=True)
    sealed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, index=True)

    # Relationships
    participant = relationship("ParticipantDB", back_populates="claims")
    attestations = relationship(
        "AttestationDB", back_populates="claim", order_by="AttestationDB.created_at"
    )


class AttestationDB(Base):
    """A peer's assertion that a claim is accurate. Immutable except is_valid."""
    __tablename__ = "attestations"
    __table_args__ = (
        UniqueConstraint("claim_id", "verifier_id", name="uq_attestations_claim_verifier"),
    )

    id = Column(String(36), primary_key=True)  # UUID
    claim_id = Column(String(36), ForeignKey("work_claims.id"), nullable=False, index=True)
    verifier_id = Column(String(36), ForeignKey("participants.id"), nullable=False, index=True)

    signature = Column(String(64), nullable=False)  # sha256 hex - tamper-evident marker only
    proximity_m = Column(Float, nullable=True)
    is_valid = Column(Boolean, default=True, nullable=False)  # Cleared by slashing

    created_at = Column(DateTime, default=utcnow)

    # Relationships
    claim = relationship("WorkClaimDB", back_populates="attestations")
    verifier = relationship("ParticipantDB")


class SettlementCounterDB(Base):
    """
    Monotonic counter for settlement sequence numbers.

    Incremented with a single UPDATE inside the sealing transaction, so the
    row lock serializes concurrent seals of different claims.
    """
    __tablename__ = "settlement_counters"

    name = Column(String(32), primary_key=True)
    value = Column(Integer, nullable=False, default=0)


# =============================================================================
# ANOMALY DETECTION
# =============================================================================

class AnomalyFlagDB(Base):
    """Persisted anomaly flag, raised at submission time or by an administrator."""
    __tablename__ = "anomaly_flags"

    id = Column(String(36), primary_key=True)  # UUID
    flagged_entity = Column(String(64), nullable=False, index=True)
    entity_kind = Column(SQLEnum(EntityKind), nullable=False)
    anomaly_kind = Column(SQLEnum(AnomalyKind), nullable=False)
    risk_score = Column(Float, nullable=False)
    description = Column(Text, nullable=True)
    resolved = Column(Boolean, default=False, nullable=False, index=True)

    created_at = Column(DateTime, default=utcnow)


# =============================================================================
# CREDIT SCORING
# =============================================================================

class CreditReportDB(Base):
    """Immutable credit report snapshot. Many per participant form a history."""
    __tablename__ = "credit_reports"

    id = Column(String(36), primary_key=True)  # UUID
    participant_id = Column(String(36), ForeignKey("participants.id"), nullable=False, index=True)

    score = Column(Integer, nullable=False)
    tier = Column(SQLEnum(CreditTier), nullable=False)
    credit_ceiling = Column(Integer, nullable=False)  # Estimated max loan, USD
    tenure_months = Column(Integer, nullable=False)
    avg_peers = Column(Float, nullable=False)
    avg_weekly_hours = Column(Float, nullable=False)
    verified_claims = Column(Integer, nullable=False)

    generated_at = Column(DateTime, default=utcnow)

    # Relationships
    participant = relationship("ParticipantDB", back_populates="credit_reports")


# =============================================================================
# SUPPLY CHAIN
# =============================================================================

class SupplyChainCertDB(Base):
    """Batch certificate attesting that a product was made with verified labor."""
    __tablename__ = "supply_chain_certs"

    id = Column(String(36), primary_key=True)  # UUID
    brand = Column(String(255), nullable=False)
    product = Column(String(255), nullable=False)
    batch_weight_kg = Column(Float, nullable=True)

    worker_count = Column(Integer, nullable=False)  # Eligible workers only
    worker_ids = Column(JSON, nullable=False)
    cert_hash = Column(String(64), nullable=False, unique=True, index=True)
    status = Column(String(32), default="certified", nullable=False)

    issued_by = Column(String(36), ForeignKey("participants.id"), nullable=True)
    issued_at = Column(DateTime, default=utcnow, index=True)
