"""
ProofOfWork Trust Engine - Finance Router
Credit reports built from the caller's sealed work history.
"""
from fastapi import APIRouter, Depends

from ..auth import get_current_participant
from ..models.db_models import ParticipantDB
from ..services.trust import CreditScoringService, LedgerStore
from .deps import get_store
from .serializers import credit_report_to_dict

router = APIRouter(prefix="/finance", tags=["finance"])


@router.post("/credit", response_model=dict)
async def generate_credit_report(
    store: LedgerStore = Depends(get_store),
    current_participant: ParticipantDB = Depends(get_current_participant),
):
    """Generate and store a new credit report snapshot."""
    report = CreditScoringService(store).credit_report(current_participant.id)
    return {"report": credit_report_to_dict(report)}


@router.get("/credit/history", response_model=dict)
async def credit_report_history(
    store: LedgerStore = Depends(get_store),
    current_participant: ParticipantDB = Depends(get_current_participant),
):
    reports = CreditScoringService(store).report_history(current_participant.id)
    return {"reports": [credit_report_to_dict(r) for r in reports]}
