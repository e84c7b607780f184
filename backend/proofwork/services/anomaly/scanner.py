"""
Batch Anomaly Scanner

Captures a LedgerSnapshot in one read-only unit of work, then runs every
detector over it. Findings are reported, not persisted: a scan leaves the
ledger exactly as it found it.

Flag order in a report:
1. impossible_hours  (by claim id)
2. clique            (by verifier id)
3. timestamp_cluster (by minute)
4. persisted open flags (risk desc, oldest first)
"""
import logging
from typing import List, Optional

from ...errors import FlagNotFound
from ...models.db_models import AnomalyFlagDB, utcnow
from ...models.domain import (
    AttestationEdge,
    ClaimRow,
    LedgerSnapshot,
    PersistedFlagRow,
    ScanFlag,
    ScanReport,
    ScanSummary,
)
from ..trust.store import LedgerStore
from .detectors import ALL_DETECTORS

logger = logging.getLogger(__name__)


class AnomalyScanner:
    """Runs the batch detectors over a point-in-time view of the ledger."""

    OPEN_FLAG_LIMIT = 10

    def __init__(self, store: LedgerStore, detectors=None):
        self.store = store
        self.detectors = list(detectors) if detectors is not None else list(ALL_DETECTORS)

    def take_snapshot(self, region: Optional[str] = None) -> LedgerSnapshot:
        with self.store.unit_of_work(commit=False):
            claims, edges, flags = self.store.snapshot_rows(self.OPEN_FLAG_LIMIT)

        return LedgerSnapshot(
            claims=tuple(
                ClaimRow(
                    claim_id=row.id,
                    participant_id=row.participant_id,
                    participant_name=row.name,
                    location=row.location,
                    claim_date=row.claim_date,
                    hours=row.hours,
                    created_at=row.created_at,
                )
                for row in claims
            ),
            attestations=tuple(
                AttestationEdge(verifier_id=row.verifier_id, claim_id=row.claim_id, owner_id=row.participant_id)
                for row in edges
            ),
            open_flags=tuple(
                PersistedFlagRow(
                    flag_id=flag.id,
                    flagged_entity=flag.flagged_entity,
                    anomaly_kind=flag.anomaly_kind.value,
                    risk_score=flag.risk_score,
                    description=flag.description,
                    created_at=flag.created_at,
                )
                for flag in flags
            ),
            taken_at=utcnow(),
            region=region,
        )

    def scan(self, region: Optional[str] = None) -> ScanReport:
        snapshot = self.take_snapshot(region)
        flags: List[ScanFlag] = []
        for detector in self.detectors:
            flags.extend(detector(snapshot))

        report = ScanReport(
            flags=flags,
            summary=ScanSummary.from_flags(flags),
            scanned_at=snapshot.taken_at,
            region=region,
        )
        logger.info(
            f"Anomaly scan complete: {report.summary.total} flags "
            f"({report.summary.high} high, {report.summary.medium} medium) region={region or 'all'}"
        )
        return report

    def resolve_flag(self, flag_id: str) -> AnomalyFlagDB:
        """Mark a persisted flag resolved. Resolving twice is a no-op."""
        with self.store.unit_of_work():
            flag = self.store.get_flag(flag_id)
            if flag is None:
                raise FlagNotFound(flag_id)
            if not flag.resolved:
                flag.resolved = True
                logger.info(f"Anomaly flag {flag_id} resolved")
        return flag
