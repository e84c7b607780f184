"""
ProofOfWork Trust Engine - Router Dependencies

Per-request store plus the process-wide engine configuration and
settlement gateway. Tests override these with app.dependency_overrides.
"""
from typing import Optional

from fastapi import Depends
from sqlalchemy.orm import Session

from ..config import EngineConfig
from ..database import get_db
from ..services.trust.settlement import SettlementGateway
from ..services.trust.store import LedgerStore

ENGINE_CONFIG = EngineConfig.from_env()


def get_store(db: Session = Depends(get_db)) -> LedgerStore:
    return LedgerStore(db)


def get_config() -> EngineConfig:
    return ENGINE_CONFIG


def get_gateway() -> Optional[SettlementGateway]:
    """No external settlement ledger is wired in by default."""
    return None
