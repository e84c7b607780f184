"""
Ledger Store

Persistence boundary of the trust engine. Every engine receives one
LedgerStore bound to a SQLAlchemy session; there is no process-wide
registry of participants or claims.

Provides:
- keyed reads for every entity
- participant/date-window range queries used by the anomaly scorer
- a compare-and-set on claim status (the only way status changes)
- unit_of_work(): commit on success, roll back on any failure, and
  re-raise SQLAlchemy failures as StorageError with the cause chained
"""
from contextlib import contextmanager
from datetime import date
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...errors import StorageError, TrustEngineError
from ...models.db_models import (
    ParticipantDB,
    WorkClaimDB,
    AttestationDB,
    AnomalyFlagDB,
    CreditReportDB,
    SettlementCounterDB,
    SupplyChainCertDB,
    ClaimStatus,
)


class LedgerStore:
    """SQLAlchemy-backed store for participants, claims, attestations and flags."""

    SETTLEMENT_COUNTER = "settlement"

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    @contextmanager
    def unit_of_work(self, commit: bool = True) -> Iterator["LedgerStore"]:
        """
        Run a block as one atomic unit.

        Typed engine errors roll back and propagate unchanged. Anything the
        storage layer raises rolls back and surfaces as StorageError.
        """
        try:
            yield self
            if commit:
                self.db.commit()
        except TrustEngineError:
            self.db.rollback()
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"Storage failure: {exc.__class__.__name__}") from exc

    def add(self, row) -> None:
        self.db.add(row)

    def flush(self) -> None:
        self.db.flush()

    # =========================================================================
    # PARTICIPANTS
    # =========================================================================

    def get_participant(self, participant_id: str, fresh: bool = False) -> Optional[ParticipantDB]:
        """fresh=True re-reads the row even if the session already holds it."""
        return self.db.get(ParticipantDB, participant_id, populate_existing=fresh)

    def list_participants(self, offset: int, limit: int) -> List[ParticipantDB]:
        return (
            self.db.query(ParticipantDB)
            .order_by(ParticipantDB.created_at, ParticipantDB.id)
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_participants(self) -> int:
        return self.db.query(func.count(ParticipantDB.id)).scalar() or 0

    # =========================================================================
    # CLAIMS
    # =========================================================================

    def get_claim(self, claim_id: str, fresh: bool = False) -> Optional[WorkClaimDB]:
        return self.db.get(WorkClaimDB, claim_id, populate_existing=fresh)

    def find_claim_for_date(self, participant_id: str, claim_date: date) -> Optional[WorkClaimDB]:
        return self.db.query(WorkClaimDB).filter(
            WorkClaimDB.participant_id == participant_id,
            WorkClaimDB.claim_date == claim_date,
        ).first()

    def claims_for_participant(
        self,
        participant_id: str,
        limit: Optional[int] = None,
        status: Optional[ClaimStatus] = None,
    ) -> List[WorkClaimDB]:
        """Claims of one participant, most recent claim date first."""
        query = self.db.query(WorkClaimDB).filter(WorkClaimDB.participant_id == participant_id)
        if status is not None:
            query = query.filter(WorkClaimDB.status == status)
        query = query.order_by(WorkClaimDB.claim_date.desc(), WorkClaimDB.created_at.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def hours_in_window(
        self,
        participant_id: str,
        start: date,
        end: date,
        limit: Optional[int] = None,
    ) -> List[float]:
        """Declared hours for claims dated within [start, end], most recent first."""
        query = (
            self.db.query(WorkClaimDB.hours)
            .filter(
                WorkClaimDB.participant_id == participant_id,
                WorkClaimDB.claim_date >= start,
                WorkClaimDB.claim_date <= end,
            )
            .order_by(WorkClaimDB.claim_date.desc())
        )
        if limit is not None:
            query = query.limit(limit)
        return [row.hours for row in query.all()]

    def count_same_hours(self, participant_id: str, hours: float, start: date, end: date) -> int:
        return self.db.query(func.count(WorkClaimDB.id)).filter(
            WorkClaimDB.participant_id == participant_id,
            WorkClaimDB.hours == hours,
            WorkClaimDB.claim_date >= start,
            WorkClaimDB.claim_date <= end,
        ).scalar() or 0

    def compare_and_set_status(
        self,
        claim: WorkClaimDB,
        expected: Iterable[ClaimStatus],
        new_status: ClaimStatus,
        **values,
    ) -> bool:
        """
        Atomically move a claim to new_status if its current status is in expected.

        Returns False when another writer changed the status first.
        """
        result = self.db.execute(
            update(WorkClaimDB)
            .where(WorkClaimDB.id == claim.id, WorkClaimDB.status.in_(list(expected)))
            .values(status=new_status, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        # Reload the written columns on next access
        self.db.expire(claim, ["status", *values.keys()])
        return True

    def next_settlement_sequence(self) -> int:
        """
        Allocate the next settlement sequence number.

        The counter row stays write-locked until the sealing transaction ends.
        """
        result = self.db.execute(
            update(SettlementCounterDB)
            .where(SettlementCounterDB.name == self.SETTLEMENT_COUNTER)
            .values(value=SettlementCounterDB.value + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.add(SettlementCounterDB(name=self.SETTLEMENT_COUNTER, value=1))
            self.db.flush()
            return 1
        return self.db.query(SettlementCounterDB.value).filter(
            SettlementCounterDB.name == self.SETTLEMENT_COUNTER
        ).scalar()

    def attach_settlement_receipt(
        self,
        claim_id: str,
        content_hash: str,
        tx_ref: str,
        block_number: Optional[int],
    ) -> bool:
        """Record an external receipt on a sealed claim that has none yet."""
        result = self.db.execute(
            update(WorkClaimDB)
            .where(
                WorkClaimDB.id == claim_id,
                WorkClaimDB.status == ClaimStatus.VERIFIED,
                WorkClaimDB.settlement_hash == content_hash,
                WorkClaimDB.settlement_tx_ref.is_(None),
            )
            .values(settlement_tx_ref=tx_ref, settlement_block=block_number)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def count_claims(self, status: Optional[ClaimStatus] = None) -> int:
        query = self.db.query(func.count(WorkClaimDB.id))
        if status is not None:
            query = query.filter(WorkClaimDB.status == status)
        return query.scalar() or 0

    # =========================================================================
    # ATTESTATIONS
    # =========================================================================

    def get_attestation(self, claim_id: str, verifier_id: str) -> Optional[AttestationDB]:
        return self.db.query(AttestationDB).filter(
            AttestationDB.claim_id == claim_id,
            AttestationDB.verifier_id == verifier_id,
        ).first()

    def attestations_for(self, claim_id: str) -> List[AttestationDB]:
        return (
            self.db.query(AttestationDB)
            .filter(AttestationDB.claim_id == claim_id)
            .order_by(AttestationDB.created_at, AttestationDB.id)
            .all()
        )

    def count_valid_attestations(self, claim_id: str) -> int:
        return self.db.query(func.count(AttestationDB.id)).filter(
            AttestationDB.claim_id == claim_id,
            AttestationDB.is_valid.is_(True),
        ).scalar() or 0

    def attestations_received(self, owner_id: str, limit: int) -> List[AttestationDB]:
        """Attestations made on the given participant's claims, newest first."""
        return (
            self.db.query(AttestationDB)
            .join(WorkClaimDB, AttestationDB.claim_id == WorkClaimDB.id)
            .filter(WorkClaimDB.participant_id == owner_id)
            .order_by(AttestationDB.created_at.desc())
            .limit(limit)
            .all()
        )

    def count_attestations(self) -> int:
        return self.db.query(func.count(AttestationDB.id)).scalar() or 0

    # =========================================================================
    # ANOMALY FLAGS
    # =========================================================================

    def get_flag(self, flag_id: str) -> Optional[AnomalyFlagDB]:
        return self.db.get(AnomalyFlagDB, flag_id)

    def open_flags(self, limit: int) -> List[AnomalyFlagDB]:
        return (
            self.db.query(AnomalyFlagDB)
            .filter(AnomalyFlagDB.resolved.is_(False))
            .order_by(AnomalyFlagDB.risk_score.desc(), AnomalyFlagDB.created_at, AnomalyFlagDB.id)
            .limit(limit)
            .all()
        )

    def count_open_flags(self) -> int:
        return self.db.query(func.count(AnomalyFlagDB.id)).filter(
            AnomalyFlagDB.resolved.is_(False)
        ).scalar() or 0

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    def snapshot_rows(self, flag_limit: int) -> Tuple[List[Any], List[Any], List[AnomalyFlagDB]]:
        """
        Raw rows for a LedgerSnapshot: claims with owner details,
        verifier -> owner attestation edges, and the top open flags.

        Edges are joined to claims in the same statement, so every edge
        names an owner even if claims were added between the reads.
        """
        claims = (
            self.db.query(
                WorkClaimDB.id,
                WorkClaimDB.participant_id,
                ParticipantDB.name,
                ParticipantDB.location,
                WorkClaimDB.claim_date,
                WorkClaimDB.hours,
                WorkClaimDB.created_at,
            )
            .join(ParticipantDB, WorkClaimDB.participant_id == ParticipantDB.id)
            .order_by(WorkClaimDB.created_at, WorkClaimDB.id)
            .all()
        )
        edges = (
            self.db.query(AttestationDB.verifier_id, AttestationDB.claim_id, WorkClaimDB.participant_id)
            .join(WorkClaimDB, AttestationDB.claim_id == WorkClaimDB.id)
            .order_by(AttestationDB.verifier_id, AttestationDB.claim_id)
            .all()
        )
        return claims, edges, self.open_flags(flag_limit)

    # =========================================================================
    # CREDIT REPORTS
    # =========================================================================

    def credit_reports_for(self, participant_id: str) -> List[CreditReportDB]:
        return (
            self.db.query(CreditReportDB)
            .filter(CreditReportDB.participant_id == participant_id)
            .order_by(CreditReportDB.generated_at.desc())
            .all()
        )

    # =========================================================================
    # SUPPLY CHAIN
    # =========================================================================

    def participants_by_ids(self, participant_ids: Iterable[str]) -> List[ParticipantDB]:
        ids = list(participant_ids)
        if not ids:
            return []
        return self.db.query(ParticipantDB).filter(ParticipantDB.id.in_(ids)).all()

    def get_certificate_by_hash(self, cert_hash: str) -> Optional[SupplyChainCertDB]:
        return self.db.query(SupplyChainCertDB).filter(SupplyChainCertDB.cert_hash == cert_hash).first()

    def list_certificates(self, limit: int) -> List[SupplyChainCertDB]:
        return (
            self.db.query(SupplyChainCertDB)
            .order_by(SupplyChainCertDB.issued_at.desc(), SupplyChainCertDB.id)
            .limit(limit)
            .all()
        )

    def count_certificates(self) -> int:
        return self.db.query(func.count(SupplyChainCertDB.id)).scalar() or 0
