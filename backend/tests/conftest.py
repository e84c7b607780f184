"""
Shared fixtures: an in-memory SQLite ledger per test plus the engine services
bound to it.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import date, datetime
from typing import Optional
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from proofwork.config import EngineConfig
from proofwork.database import Base
from proofwork.models import db_models  # noqa: F401
from proofwork.models.db_models import (
    AnomalyFlagDB, AnomalyKind, ClaimStatus, EntityKind, ParticipantRole, WorkClaimDB,
)
from proofwork.services.anomaly import AnomalyScanner, AnomalyScorer
from proofwork.services.trust import (
    CertificationService, ClaimLedger, CreditScoringService, IdentityService, KeyedLocks, LedgerStore,
    VerificationEngine,
)

BASE_DATE = date(2026, 3, 2)


# =============================================================================
# DATABASE
# =============================================================================

@pytest.fixture
def db_engine():
    """Fresh in-memory database shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def store(db):
    return LedgerStore(db)


@pytest.fixture
def locks():
    return KeyedLocks()


@pytest.fixture
def identity(store, config):
    return IdentityService(store, config)


@pytest.fixture
def scorer(store):
    return AnomalyScorer(store)


@pytest.fixture
def ledger(store, config, scorer):
    return ClaimLedger(store, config, scorer)


@pytest.fixture
def verification(store, config, locks):
    return VerificationEngine(store, config, locks=locks)


@pytest.fixture
def scanner(store):
    return AnomalyScanner(store)


@pytest.fixture
def credit(store):
    return CreditScoringService(store)


@pytest.fixture
def certification(store, config):
    return CertificationService(store, config)


# =============================================================================
# DATA FACTORIES
# =============================================================================

@pytest.fixture
def register(identity):
    """Register a participant; names are made unique per call."""
    counter = {"n": 0}

    def _register(
        name: Optional[str] = None,
        location: str = "Kericho, KE",
        sector: str = "Agriculture - Tea",
        role: ParticipantRole = ParticipantRole.PARTICIPANT,
    ):
        counter["n"] += 1
        return identity.register(name or f"Worker {counter['n']}", location, sector, role=role)

    return _register


@pytest.fixture
def add_claim(db):
    """
    Insert a claim row directly, bypassing the claim ledger.

    Used to place claims the ledger would refuse (e.g. > 16h) or to pin
    created_at for timestamp tests.
    """
    def _add_claim(
        participant,
        claim_date: date = BASE_DATE,
        hours: float = 8.0,
        created_at: Optional[datetime] = None,
        status: ClaimStatus = ClaimStatus.PENDING,
    ) -> WorkClaimDB:
        claim = WorkClaimDB(
            id=str(uuid4()),
            participant_id=participant.id,
            claim_date=claim_date,
            hours=hours,
            task="Tea leaf harvesting",
            anomaly_score=0.0,
            status=status,
        )
        if created_at is not None:
            claim.created_at = created_at
        db.add(claim)
        db.commit()
        return claim

    return _add_claim


@pytest.fixture
def add_flag(db):
    def _add_flag(
        entity: str,
        risk: float,
        kind: AnomalyKind = AnomalyKind.MANUAL,
        resolved: bool = False,
        created_at: Optional[datetime] = None,
    ) -> AnomalyFlagDB:
        flag = AnomalyFlagDB(
            id=str(uuid4()),
            flagged_entity=entity,
            entity_kind=EntityKind.CLAIM,
            anomaly_kind=kind,
            risk_score=risk,
            description=f"Reviewer flag {risk}",
            resolved=resolved,
        )
        if created_at is not None:
            flag.created_at = created_at
        db.add(flag)
        db.commit()
        return flag

    return _add_flag
