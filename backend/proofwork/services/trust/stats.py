"""
Ledger Statistics

Headline counts over the whole ledger, for dashboards.
"""
from typing import Dict

from ...models.db_models import ClaimStatus
from .store import LedgerStore


def ledger_stats(store: LedgerStore) -> Dict[str, int]:
    with store.unit_of_work(commit=False):
        return {
            "total_participants": store.count_participants(),
            "total_claims": store.count_claims(),
            "verified_claims": store.count_claims(status=ClaimStatus.VERIFIED),
            "total_attestations": store.count_attestations(),
            "open_flags": store.count_open_flags(),
            "total_certifications": store.count_certificates(),
        }
