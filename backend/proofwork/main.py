"""
ProofOfWork Trust Engine - FastAPI Application

Main entry point for the ProofOfWork backend.

Architecture:
- Submission → AnomalyScorer → ClaimLedger (pending)
- Attestation → VerificationEngine → IdentityService (reputation)
- Quorum → compare-and-set seal → commit → SettlementService gateway mirror
- Sealed days → CertificationService (supply-chain batch certificates)
- Ledger snapshot → batch detectors → ScanReport (read-only)
"""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .database import init_db
from .errors import TrustEngineError
from .routers import (
    participants_router,
    claims_router,
    verification_router,
    anomaly_router,
    finance_router,
    supplychain_router,
)
from .routers.deps import get_store
from .services.trust import LedgerStore, ledger_stats

logger = logging.getLogger(__name__)

# HTTP status per error kind
ERROR_STATUS = {
    "validation": 400,
    "conflict": 409,
    "authorization": 403,
    "not_found": 404,
    "precondition": 412,
    "storage": 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize database on startup."""
    init_db()
    yield

# Create FastAPI app
app = FastAPI(
    lifespan=lifespan,
    title="ProofOfWork Trust Engine",
    description="""
    ProofOfWork - Peer-Verified Labor Ledger

    Participants declare a day of work; peers who were physically present
    attest it. A claim reaching the attestation quorum is sealed exactly
    once and counts toward the owner's verified history and credit score.

    ## Key Principles
    - One claim per participant per calendar day
    - Nobody attests their own claim
    - Sealing is a compare-and-set; a claim is never sealed twice
    - Reputation always stays within [0, 100]
    - Anomaly scoring is deterministic
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(participants_router)
app.include_router(claims_router)
app.include_router(verification_router)
app.include_router(anomaly_router)
app.include_router(finance_router)
app.include_router(supplychain_router)


@app.exception_handler(TrustEngineError)
async def trust_engine_error_handler(request: Request, exc: TrustEngineError):
    """Map typed engine errors to HTTP status codes."""
    status_code = ERROR_STATUS.get(exc.kind, 500)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content={"error": exc.kind, "detail": exc.message})


@app.get("/")
async def root():
    """Root endpoint - API information."""
    return {
        "name": "ProofOfWork Trust Engine",
        "version": __version__,
        "description": "Peer-verified labor ledger",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/stats")
async def stats(store: LedgerStore = Depends(get_store)):
    """Headline ledger counts."""
    return ledger_stats(store)


# For running with: python -m proofwork.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
