"""
Batch Scan Detectors

Each detector is a pure function LedgerSnapshot -> List[ScanFlag]. Output
is sorted so the same snapshot always produces the same flags in the same
order.
"""
from __future__ import annotations
from collections import Counter, defaultdict
from typing import Dict, List, Optional, Set

from ...models.domain import LedgerSnapshot, ScanFlag


# =============================================================================
# DETECTOR CONFIGURATION
# =============================================================================

DETECTORS = {
    "impossible_hours": {
        "description": "Declared hours exceed the physiological daily maximum",
        "hours_above": 16.0,
        "score": 0.92,
    },
    "clique": {
        "description": "Verifier attests for exactly one beneficiary, repeatedly",
        "min_attestations": 5,
        "score": 0.87,
    },
    "timestamp_cluster": {
        "description": "Many claims created within the same minute",
        "min_claims": 4,
        "score": 0.71,
    },
}

MINUTE_FORMAT = "%Y-%m-%dT%H:%M"


def _in_region(location: str, region: Optional[str]) -> bool:
    """Case-insensitive substring match; no region means everywhere."""
    if not region:
        return True
    return region.lower() in (location or "").lower()


def detect_impossible_hours(snapshot: LedgerSnapshot) -> List[ScanFlag]:
    """
    Claims above the daily maximum.

    The claim ledger already rejects these; any found here entered the
    ledger through some other path.
    """
    config = DETECTORS["impossible_hours"]
    flags = [
        ScanFlag(
            kind="impossible_hours",
            score=config["score"],
            entity=claim.claim_id,
            label=f"{claim.participant_name} claimed {claim.hours}h on {claim.claim_date.isoformat()}",
            detail="Hours exceed physiological maximum",
            evidence={"participant_id": claim.participant_id, "hours": claim.hours},
        )
        for claim in snapshot.claims
        if claim.hours > config["hours_above"] and _in_region(claim.location, snapshot.region)
    ]
    return sorted(flags, key=lambda f: f.entity)


def detect_cliques(snapshot: LedgerSnapshot) -> List[ScanFlag]:
    """
    Verifiers whose every attestation goes to one and the same claim owner.

    Builds the bipartite verifier -> owner graph. A verifier with out-degree
    one whose edge carries at least min_attestations attestations is
    vouching for a single beneficiary rather than taking part broadly.
    """
    config = DETECTORS["clique"]
    owners_by_verifier: Dict[str, Set[str]] = defaultdict(set)
    claims_by_verifier: Dict[str, Set[str]] = defaultdict(set)

    for edge in snapshot.attestations:
        owners_by_verifier[edge.verifier_id].add(edge.owner_id)
        claims_by_verifier[edge.verifier_id].add(edge.claim_id)

    flags = []
    for verifier_id in sorted(owners_by_verifier):
        owners = owners_by_verifier[verifier_id]
        attested = len(claims_by_verifier[verifier_id])
        if len(owners) == 1 and attested >= config["min_attestations"]:
            (owner_id,) = owners
            flags.append(ScanFlag(
                kind="clique",
                score=config["score"],
                entity=verifier_id,
                label="Clique: verifier only signs 1 participant",
                detail=f"{attested} verifications - all for the same participant",
                evidence={"beneficiary_id": owner_id, "attestations": attested},
            ))
    return flags


def detect_timestamp_clusters(snapshot: LedgerSnapshot) -> List[ScanFlag]:
    """Minute buckets of claim creation time holding min_claims or more claims."""
    config = DETECTORS["timestamp_cluster"]
    buckets = Counter(claim.created_at.strftime(MINUTE_FORMAT) for claim in snapshot.claims)

    return [
        ScanFlag(
            kind="timestamp_cluster",
            score=config["score"],
            entity=minute,
            label=f"{count} claims in 1 minute window",
            detail=f"Suspicious simultaneous submissions at {minute}",
            evidence={"count": count},
        )
        for minute, count in sorted(buckets.items())
        if count >= config["min_claims"]
    ]


def persisted_flags(snapshot: LedgerSnapshot) -> List[ScanFlag]:
    """Unresolved flags already on record, in the order the snapshot captured them."""
    return [
        ScanFlag(
            kind=row.anomaly_kind,
            score=row.risk_score,
            entity=row.flagged_entity,
            label=row.description or row.anomaly_kind,
            detail=f"Flagged at {row.created_at.isoformat()}",
            evidence={"flag_id": row.flag_id},
        )
        for row in snapshot.open_flags
    ]


ALL_DETECTORS = [
    detect_impossible_hours,
    detect_cliques,
    detect_timestamp_clusters,
    persisted_flags,
]
