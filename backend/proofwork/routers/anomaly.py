"""
ProofOfWork Trust Engine - Anomaly Router
Per-claim score preview, batch scan and flag review.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..auth import get_current_participant, require_admin
from ..models.db_models import ParticipantDB
from ..models.domain import risk_level_for
from ..services.anomaly import AnomalyScanner, AnomalyScorer
from ..services.trust import LedgerStore
from .deps import get_store
from .serializers import flag_to_dict

router = APIRouter(prefix="/anomaly", tags=["anomaly"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class ScoreRequest(BaseModel):
    hours: float
    claim_date: date
    participant_id: Optional[str] = Field(None, description="Defaults to the caller")


class ScanRequest(BaseModel):
    region: Optional[str] = Field(None, description="Substring of participant location")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/score", response_model=dict)
async def score_claim(
    request: ScoreRequest,
    store: LedgerStore = Depends(get_store),
    current_participant: ParticipantDB = Depends(get_current_participant),
):
    """Score a prospective claim without writing anything."""
    participant_id = request.participant_id or current_participant.id
    breakdown = AnomalyScorer(store).explain(participant_id, request.hours, request.claim_date)
    return {
        "participant_id": participant_id,
        "score": breakdown.score,
        "risk": risk_level_for(breakdown.score).value,
        "signals": list(breakdown.signals),
    }


@router.post("/scan", response_model=dict)
async def scan_ledger(
    request: ScanRequest,
    store: LedgerStore = Depends(get_store),
    current_participant: ParticipantDB = Depends(get_current_participant),
):
    """Run every batch detector over a snapshot of the ledger."""
    return AnomalyScanner(store).scan(region=request.region).to_dict()


@router.post("/flags/{flag_id}/resolve", response_model=dict)
async def resolve_flag(
    flag_id: str,
    store: LedgerStore = Depends(get_store),
    admin: ParticipantDB = Depends(require_admin),
):
    return {"flag": flag_to_dict(AnomalyScanner(store).resolve_flag(flag_id))}
