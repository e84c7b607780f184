"""
ProofOfWork Trust Engine - Response Serializers
ORM rows to JSON-ready dicts.
"""
from datetime import date, datetime
from typing import Any, Dict, Optional, Union

from ..models.db_models import (
    AnomalyFlagDB, AttestationDB, CreditReportDB, ParticipantDB, SupplyChainCertDB, WorkClaimDB,
)


def _iso(value: Optional[Union[date, datetime]]) -> Optional[str]:
    return value.isoformat() if value else None


def participant_to_dict(participant: ParticipantDB) -> Dict[str, Any]:
    return {
        "id": participant.id,
        "name": participant.name,
        "location": participant.location,
        "sector": participant.sector,
        "role": participant.role.value,
        "reputation_score": round(participant.reputation_score, 2),
        "verification_depth": participant.verification_depth,
        "total_verified_days": participant.total_verified_days,
        "created_at": _iso(participant.created_at),
    }


def claim_to_dict(claim: WorkClaimDB) -> Dict[str, Any]:
    data = {
        "id": claim.id,
        "participant_id": claim.participant_id,
        "claim_date": _iso(claim.claim_date),
        "hours": claim.hours,
        "task": claim.task,
        "latitude": claim.latitude,
        "longitude": claim.longitude,
        "anomaly_score": claim.anomaly_score,
        "status": claim.status.value,
        "created_at": _iso(claim.created_at),
        "settlement": None,
    }
    if claim.rejection_reason:
        data["rejection_reason"] = claim.rejection_reason
    if claim.settlement_hash:
        data["settlement"] = {
            "content_hash": claim.settlement_hash,
            "sequence_number": claim.settlement_sequence,
            "tx_ref": claim.settlement_tx_ref,
            "block_number": claim.settlement_block,
            "sealed_at": _iso(claim.sealed_at),
        }
    return data


def attestation_to_dict(attestation: AttestationDB) -> Dict[str, Any]:
    return {
        "id": attestation.id,
        "claim_id": attestation.claim_id,
        "verifier_id": attestation.verifier_id,
        "signature": attestation.signature,
        "proximity_m": attestation.proximity_m,
        "is_valid": attestation.is_valid,
        "created_at": _iso(attestation.created_at),
    }


def flag_to_dict(flag: AnomalyFlagDB) -> Dict[str, Any]:
    return {
        "id": flag.id,
        "flagged_entity": flag.flagged_entity,
        "entity_kind": flag.entity_kind.value,
        "anomaly_kind": flag.anomaly_kind.value,
        "risk_score": flag.risk_score,
        "description": flag.description,
        "resolved": flag.resolved,
        "created_at": _iso(flag.created_at),
    }


def credit_report_to_dict(report: CreditReportDB) -> Dict[str, Any]:
    return {
        "id": report.id,
        "participant_id": report.participant_id,
        "score": report.score,
        "tier": report.tier.value,
        "credit_ceiling": report.credit_ceiling,
        "tenure_months": report.tenure_months,
        "avg_peers": report.avg_peers,
        "avg_weekly_hours": report.avg_weekly_hours,
        "verified_claims": report.verified_claims,
        "generated_at": _iso(report.generated_at),
    }


def certificate_to_dict(cert: SupplyChainCertDB) -> Dict[str, Any]:
    return {
        "id": cert.id,
        "brand": cert.brand,
        "product": cert.product,
        "batch_weight_kg": cert.batch_weight_kg,
        "worker_count": cert.worker_count,
        "worker_ids": list(cert.worker_ids or []),
        "cert_hash": cert.cert_hash,
        "status": cert.status,
        "issued_by": cert.issued_by,
        "issued_at": _iso(cert.issued_at),
    }
