"""
ProofOfWork Trust Engine - Claims Router
Submission, lookup and administrative rejection of work claims.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..auth import get_current_participant, require_admin
from ..config import EngineConfig
from ..models.db_models import ParticipantDB
from ..services.trust import ClaimLedger, LedgerStore, VerificationEngine
from .deps import get_config, get_gateway, get_store
from .serializers import claim_to_dict

router = APIRouter(prefix="/claims", tags=["claims"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class SubmitClaimRequest(BaseModel):
    """A day of declared work. Range checks on hours happen in the claim ledger."""
    claim_date: date = Field(..., description="Calendar day the work was done")
    hours: float = Field(..., description="Declared hours, 0 < hours <= ceiling")
    task: str = Field(..., description="What was done")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class RejectClaimRequest(BaseModel):
    reason: Optional[str] = Field(None, description="Shown to the claim owner")


# =============================================================================
# PARTICIPANT ENDPOINTS
# =============================================================================

@router.post("", response_model=dict, status_code=201)
async def submit_claim(
    request: SubmitClaimRequest,
    store: LedgerStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
    current_participant: ParticipantDB = Depends(get_current_participant),
):
    """Submit the authenticated participant's claim for one day."""
    claim = ClaimLedger(store, config).submit(
        participant_id=current_participant.id,
        claim_date=request.claim_date,
        hours=request.hours,
        task=request.task,
        latitude=request.latitude,
        longitude=request.longitude,
    )
    return {"claim": claim_to_dict(claim)}


@router.get("/{claim_id}", response_model=dict)
async def get_claim(
    claim_id: str,
    store: LedgerStore = Depends(get_store),
):
    return {"claim": claim_to_dict(ClaimLedger(store).get(claim_id))}


# =============================================================================
# ADMIN ENDPOINTS
# =============================================================================

@router.post("/{claim_id}/reject", response_model=dict)
async def reject_claim(
    claim_id: str,
    request: RejectClaimRequest,
    store: LedgerStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
    gateway=Depends(get_gateway),
    admin: ParticipantDB = Depends(require_admin),
):
    """Reject a claim that is not yet sealed."""
    claim = VerificationEngine(store, config, gateway=gateway).reject(claim_id, request.reason)
    return {"claim": claim_to_dict(claim)}
