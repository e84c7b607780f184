#!/usr/bin/env python3
"""
Demo Data Seed Script
Populates the ProofOfWork database with participants, a month of claims
attested through the verification engine, a few reviewer flags and one
supply-chain batch certificate.

Usage:
    python -m scripts.seed_demo [--days N] [--seed N]

Example:
    python -m scripts.seed_demo --days 30 --seed 7
"""
import argparse
import logging
import os
import random
import sys
from datetime import date, timedelta
from uuid import uuid4

# Add the parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import Session
from proofwork.auth import create_access_token
from proofwork.database import SessionLocal, init_db
from proofwork.errors import TrustEngineError
from proofwork.models.db_models import AnomalyFlagDB, AnomalyKind, EntityKind, ParticipantRole
from proofwork.services.trust import (
    CertificationService, ClaimLedger, IdentityService, KeyedLocks, LedgerStore, VerificationEngine,
    ledger_stats,
)

logger = logging.getLogger("seed_demo")

PARTICIPANTS = [
    ("Amina Korir", "Kericho, KE", "Agriculture - Tea"),
    ("Joseph Omondi", "Kericho, KE", "Agriculture - Tea"),
    ("Fatuma Wanjiku", "Kericho, KE", "Agriculture - Tea"),
    ("Kibeti Mwangi", "Nairobi, KE", "Construction"),
    ("Abebe Girma", "Oromia, ET", "Agriculture - Coffee"),
    ("Tigist Haile", "Oromia, ET", "Agriculture - Coffee"),
    ("Kofi Mensah", "Ashanti, GH", "Agriculture - Cocoa"),
    ("Ama Owusu", "Ashanti, GH", "Agriculture - Cocoa"),
    ("Nasrin Begum", "Dhaka, BD", "Textile Manufacturing"),
    ("Ratan Das", "Dhaka, BD", "Textile Manufacturing"),
]

TASKS = [
    "Tea leaf harvesting - Row 14-18",
    "Tea sorting and weighing",
    "Coffee cherry picking - Block C",
    "Cocoa pod harvesting",
    "Garment stitching - Order #447",
    "Construction - Foundation pour",
    "Quality inspection - Batch 22",
    "Loading and logistics",
    "Pruning and maintenance",
    "Post-harvest processing",
]


def seed(db: Session, days: int, rng: random.Random) -> dict:
    """Seed through the engine so every invariant holds for the demo data."""
    store = LedgerStore(db)
    identity = IdentityService(store)
    ledger = ClaimLedger(store)
    engine = VerificationEngine(store, locks=KeyedLocks())

    admin = identity.register("Ledger Admin", "Nairobi, KE", "Administration", role=ParticipantRole.ADMIN)
    participant_ids = [identity.register(*row).id for row in PARTICIPANTS]

    claim_ids = []
    today = date.today()
    for offset in range(days, 0, -1):
        claim_date = today - timedelta(days=offset)
        workers = rng.sample(participant_ids, rng.randint(6, 8))
        for worker_id in workers:
            claim = ledger.submit(
                participant_id=worker_id,
                claim_date=claim_date,
                hours=round(rng.uniform(5.0, 11.0), 1),
                task=rng.choice(TASKS),
            )
            claim_ids.append(claim.id)

            peers = rng.sample([p for p in participant_ids if p != worker_id], 3)
            for verifier_id in peers:
                try:
                    engine.attest(claim.id, verifier_id, proximity_m=float(rng.randint(0, 50)))
                except TrustEngineError as exc:
                    logger.warning(f"Skipped attestation on {claim.id}: {exc.message}")

    flags = [
        (claim_ids[0], EntityKind.CLAIM, AnomalyKind.GPS_MISMATCH, 0.73,
         "Claim submitted from Kericho but GPS coordinates indicate Nairobi (~280km away)"),
        (participant_ids[0], EntityKind.PARTICIPANT, AnomalyKind.MANUAL, 0.55,
         "Reviewer note: verification pattern worth a second look"),
    ]
    with store.unit_of_work():
        for entity, entity_kind, anomaly_kind, risk, description in flags:
            store.add(AnomalyFlagDB(
                id=str(uuid4()),
                flagged_entity=entity,
                entity_kind=entity_kind,
                anomaly_kind=anomaly_kind,
                risk_score=risk,
                description=description,
            ))

    # One tea batch from the Kericho workers
    tea_workers = [pid for pid, row in zip(participant_ids, PARTICIPANTS) if row[1] == "Kericho, KE"]
    try:
        CertificationService(store).certify(
            "Kericho Gold", "Black tea - Lot 2207", tea_workers, batch_weight_kg=450.0, issued_by=admin.id,
        )
    except TrustEngineError as exc:
        logger.warning(f"Skipped tea batch certificate: {exc.message}")

    stats = ledger_stats(store)
    stats["admin_id"] = admin.id
    stats["admin_token"] = create_access_token(admin.id, admin.role.value)
    return stats


def main():
    parser = argparse.ArgumentParser(description="Seed the ProofOfWork database with demo data")
    parser.add_argument("--days", type=int, default=30, help="Days of claims to generate")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    init_db()

    db: Session = SessionLocal()
    try:
        stats = seed(db, args.days, random.Random(args.seed))
    except TrustEngineError as exc:
        print(f"Error seeding database: {exc.message}")
        sys.exit(1)
    finally:
        db.close()

    print("Seed complete!")
    print(f"  Participants:  {stats['total_participants']}")
    print(f"  Work claims:   {stats['total_claims']}")
    print(f"  Verified:      {stats['verified_claims']}")
    print(f"  Attestations:  {stats['total_attestations']}")
    print(f"  Open flags:    {stats['open_flags']}")
    print(f"  Certificates:  {stats['total_certifications']}")
    print(f"  Admin id:      {stats['admin_id']}")
    print(f"  Admin token:   {stats['admin_token']}")


if __name__ == "__main__":
    main()
