"""
ProofOfWork Trust Engine - Supply Chain Router
Batch certificates backed by verified labor. Verification by hash is public.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from ..auth import get_current_participant
from ..config import EngineConfig
from ..models.db_models import ParticipantDB
from ..services.trust import CertificationService, LedgerStore
from .deps import get_config, get_store
from .serializers import certificate_to_dict

router = APIRouter(prefix="/supplychain", tags=["supply chain"])


# =============================================================================
# REQUEST MODELS
# =============================================================================

class CertifyBatchRequest(BaseModel):
    brand: str = Field(..., max_length=255)
    product: str = Field(..., max_length=255)
    worker_ids: List[str]
    batch_weight_kg: Optional[float] = None


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/certify", response_model=dict, status_code=201)
async def certify_batch(
    request: CertifyBatchRequest,
    store: LedgerStore = Depends(get_store),
    config: EngineConfig = Depends(get_config),
    current_participant: ParticipantDB = Depends(get_current_participant),
):
    """Certify a batch when enough of its workers have sealed claims."""
    cert = CertificationService(store, config).certify(
        brand=request.brand,
        product=request.product,
        worker_ids=request.worker_ids,
        batch_weight_kg=request.batch_weight_kg,
        issued_by=current_participant.id,
    )
    return {"certificate": certificate_to_dict(cert)}


@router.get("/certs", response_model=dict)
async def list_certificates(
    limit: int = Query(CertificationService.DEFAULT_LIST_LIMIT, ge=1, le=100),
    store: LedgerStore = Depends(get_store),
):
    certs = CertificationService(store).list(limit=limit)
    return {"certs": [certificate_to_dict(c) for c in certs]}


@router.get("/verify/{cert_hash}", response_model=dict)
async def verify_certificate(cert_hash: str, store: LedgerStore = Depends(get_store)):
    """Public lookup used by label scanners."""
    cert = CertificationService(store).verify(cert_hash)
    return {"valid": True, "cert": certificate_to_dict(cert)}
