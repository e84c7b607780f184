"""
ProofOfWork Trust Engine - Participants Router
Registration, directory and participant profiles.
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..auth import create_access_token
from ..config import EngineConfig
from ..services.trust import ClaimLedger, IdentityService, LedgerStore
from .deps import get_config, get_store
from .serializers import attestation_to_dict, claim_to_dict, participant_to_dict

router = APIRouter(prefix="/participants", tags=["participants"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class RegisterRequest(BaseModel):
    name: str = Field(..., description="Display name")
    location: str = Field(..., description="Village, town or district")
    sector: str = Field(..., description="Kind of work, e.g. agriculture")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/register", response_model=dict, status_code=201)
async def register_participant(
    request: RegisterRequest,
    store: LedgerStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
):
    """
    Register a new participant.

    The returned bearer token is the participant's credential for every
    authenticated route.
    """
    participant = IdentityService(store, config).register(
        name=request.name,
        location=request.location,
        sector=request.sector,
    )
    return {
        "participant": participant_to_dict(participant),
        "access_token": create_access_token(participant.id, participant.role.value),
        "token_type": "bearer",
    }


@router.get("", response_model=dict)
async def list_participants(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    store: LedgerStore = Depends(get_store),
):
    """Paginated participant directory, oldest registration first."""
    participants, total = IdentityService(store).list(page=page, limit=limit)
    return {
        "participants": [participant_to_dict(p) for p in participants],
        "total": total,
        "page": page,
        "limit": limit,
    }


@router.get("/{participant_id}", response_model=dict)
async def get_participant_profile(
    participant_id: str,
    store: LedgerStore = Depends(get_store),
):
    """Participant with recent claims and the attestations those claims received."""
    profile = IdentityService(store).profile(participant_id)
    return {
        "participant": participant_to_dict(profile["participant"]),
        "claims": [claim_to_dict(c) for c in profile["claims"]],
        "attestations_received": [attestation_to_dict(a) for a in profile["attestations_received"]],
    }


@router.get("/{participant_id}/claims", response_model=dict)
async def list_participant_claims(
    participant_id: str,
    limit: int = Query(ClaimLedger.DEFAULT_LIST_LIMIT, ge=1, le=100),
    store: LedgerStore = Depends(get_store),
):
    """Most recent claims of one participant."""
    claims = ClaimLedger(store).list_by_participant(participant_id, limit=limit)
    return {"claims": [claim_to_dict(c) for c in claims]}
