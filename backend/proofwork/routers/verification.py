"""
ProofOfWork Trust Engine - Verification Router
Peer attestation and administrative slashing.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..auth import get_current_participant, require_admin
from ..config import EngineConfig
from ..models.db_models import ParticipantDB
from ..services.trust import LedgerStore, VerificationEngine
from .deps import get_config, get_gateway, get_store
from .serializers import attestation_to_dict

router = APIRouter(prefix="/verify", tags=["verification"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class AttestRequest(BaseModel):
    claim_id: str
    signature: Optional[str] = Field(None, description="Optional signature material folded into the digest")
    proximity_m: Optional[float] = Field(None, ge=0, description="Verifier's distance from the claimed work")


class SlashRequest(BaseModel):
    verifier_id: str
    claim_id: str


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=dict)
async def attest_claim(
    request: AttestRequest,
    store: LedgerStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
    gateway=Depends(get_gateway),
    current_participant: ParticipantDB = Depends(get_current_participant),
):
    """
    Attest a peer's claim as the authenticated participant.

    The claim is sealed by the attestation that brings its valid count to
    the quorum; the response then carries the settlement record.
    """
    result = VerificationEngine(store, config, gateway=gateway).attest(
        claim_id=request.claim_id,
        verifier_id=current_participant.id,
        signature=request.signature,
        proximity_m=request.proximity_m,
    )
    return result.to_dict()


@router.post("/slash", response_model=dict)
async def slash_verifier(
    request: SlashRequest,
    store: LedgerStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
    gateway=Depends(get_gateway),
    admin: ParticipantDB = Depends(require_admin),
):
    """Invalidate a verifier's attestation and apply the reputation penalty."""
    attestation = VerificationEngine(store, config, gateway=gateway).slash(
        verifier_id=request.verifier_id,
        claim_id=request.claim_id,
    )
    return {"attestation": attestation_to_dict(attestation), "slashed_by": admin.id}
