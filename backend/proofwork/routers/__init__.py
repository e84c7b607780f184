"""ProofOfWork Trust Engine - API Routers"""
from .participants import router as participants_router
from .claims import router as claims_router
from .verification import router as verification_router
from .anomaly import router as anomaly_router
from .finance import router as finance_router
from .supplychain import router as supplychain_router

__all__ = [
    "participants_router",
    "claims_router",
    "verification_router",
    "anomaly_router",
    "finance_router",
    "supplychain_router",
]
