"""
Tests for supply-chain batch certification.

Key tests:
1. A batch is certified once at least 70% of its workers have a sealed day
2. Only eligible workers are listed on the certificate
3. Input validation happens before any write
4. Listing is newest first; verification is by certificate hash
"""
import pytest
from datetime import datetime

from proofwork.config import EngineConfig
from proofwork.errors import CertificateNotFound, InsufficientVerifiedLabor, ValidationError
from proofwork.models.db_models import SupplyChainCertDB
from proofwork.services.trust import CertificationService, certificate_hash

from conftest import BASE_DATE


@pytest.fixture
def workers(register, db):
    """Ten workers; the first `verified` of them have one sealed day each."""
    def _workers(count=10, verified=7):
        crew = [register() for _ in range(count)]
        for worker in crew[:verified]:
            worker.total_verified_days = 1
        db.commit()
        return [w.id for w in crew]
    return _workers


def count_certs(db):
    return db.query(SupplyChainCertDB).count()


# =============================================================================
# TEST: CERTIFY
# =============================================================================

class TestCertify:
    """Tests for CertificationService.certify()."""

    def test_seventy_percent_is_enough(self, certification, workers):
        worker_ids = workers(count=10, verified=7)

        cert = certification.certify("Kericho Gold", "Black tea", worker_ids, batch_weight_kg=250.0)

        assert cert.status == "certified"
        assert cert.worker_count == 7
        assert cert.worker_ids == worker_ids[:7]
        assert cert.batch_weight_kg == 250.0
        assert len(cert.cert_hash) == 64

    def test_below_seventy_percent_refused(self, certification, workers, db):
        worker_ids = workers(count=10, verified=6)

        with pytest.raises(InsufficientVerifiedLabor) as exc_info:
            certification.certify("Kericho Gold", "Black tea", worker_ids)

        assert exc_info.value.kind == "precondition"
        assert exc_info.value.context == {"eligible": 6, "requested": 10}
        assert count_certs(db) == 0

    def test_unknown_workers_are_not_eligible(self, certification, workers):
        worker_ids = workers(count=2, verified=2) + ["no-such-worker"]

        with pytest.raises(InsufficientVerifiedLabor):
            certification.certify("Brand", "Cocoa", worker_ids)

    def test_duplicate_worker_ids_count_once(self, certification, workers):
        """Repeating one verified worker cannot pad the eligible share."""
        verified_id, unverified_id = workers(count=2, verified=1)

        with pytest.raises(InsufficientVerifiedLabor) as exc_info:
            certification.certify("Brand", "Cocoa", [verified_id] * 5 + [unverified_id])

        assert exc_info.value.context == {"eligible": 1, "requested": 2}

    def test_sealed_claims_make_workers_eligible(self, certification, ledger, verification, register):
        owner = register()
        peers = [register() for _ in range(3)]
        claim = ledger.submit(owner.id, BASE_DATE, 8.0, "Harvest")
        for peer in peers:
            verification.attest(claim.id, peer.id)

        cert = certification.certify("Brand", "Tea", [owner.id])

        assert cert.worker_ids == [owner.id]

    def test_configured_share(self, store, workers):
        worker_ids = workers(count=10, verified=5)
        lenient = CertificationService(store, EngineConfig(certification_min_share=0.5))
        assert lenient.certify("Brand", "Tea", worker_ids).worker_count == 5

    def test_issuer_recorded(self, certification, workers, register):
        issuer = register("Cooperative Officer")
        cert = certification.certify("Brand", "Tea", workers(count=1, verified=1), issued_by=issuer.id)
        assert cert.issued_by == issuer.id

    @pytest.mark.parametrize("brand,product,worker_ids", [
        ("", "Tea", ["w1"]),
        ("Brand", "  ", ["w1"]),
        ("Brand", "Tea", []),
        ("Brand", "Tea", ["", "  "]),
    ])
    def test_missing_fields(self, certification, db, brand, product, worker_ids):
        with pytest.raises(ValidationError):
            certification.certify(brand, product, worker_ids)
        assert count_certs(db) == 0

    @pytest.mark.parametrize("weight", [0.0, -3.0, float("nan"), float("inf")])
    def test_batch_weight_must_be_positive_and_finite(self, certification, workers, weight):
        with pytest.raises(ValidationError) as exc_info:
            certification.certify("Brand", "Tea", workers(count=1, verified=1), batch_weight_kg=weight)
        assert exc_info.value.context["fields"] == ["batch_weight_kg"]

    def test_hashes_are_unique(self, certification, workers):
        worker_ids = workers(count=1, verified=1)
        first = certification.certify("Brand", "Tea", worker_ids)
        second = certification.certify("Brand", "Tea", worker_ids)
        assert first.cert_hash != second.cert_hash


# =============================================================================
# TEST: LOOKUP
# =============================================================================

class TestLookup:

    def test_verify_by_hash(self, certification, workers):
        cert = certification.certify("Brand", "Tea", workers(count=1, verified=1))
        assert certification.verify(cert.cert_hash).id == cert.id

    def test_verify_unknown_hash(self, certification):
        with pytest.raises(CertificateNotFound) as exc_info:
            certification.verify("0" * 64)
        assert exc_info.value.kind == "not_found"

    def test_list_newest_first(self, certification, workers, db):
        worker_ids = workers(count=1, verified=1)
        older = certification.certify("Brand", "Tea", worker_ids)
        newer = certification.certify("Brand", "Coffee", worker_ids)
        older.issued_at = datetime(2026, 3, 1, 8, 0)
        newer.issued_at = datetime(2026, 3, 2, 8, 0)
        db.commit()

        assert [c.id for c in certification.list()] == [newer.id, older.id]
        assert [c.id for c in certification.list(limit=1)] == [newer.id]

    def test_list_limit_must_be_positive(self, certification):
        with pytest.raises(ValidationError):
            certification.list(limit=0)


class TestCertificateHash:

    def test_deterministic(self):
        moment = datetime(2026, 3, 2, 9, 15, 0)
        assert certificate_hash("c1", "B", "P", ["w1"], moment) == certificate_hash("c1", "B", "P", ["w1"], moment)

    def test_binds_workers_and_time(self):
        moment = datetime(2026, 3, 2, 9, 15, 0)
        base = certificate_hash("c1", "B", "P", ["w1"], moment)
        assert certificate_hash("c1", "B", "P", ["w1", "w2"], moment) != base
        assert certificate_hash("c1", "B", "P", ["w1"], datetime(2026, 3, 2, 9, 15, 1)) != base
        assert certificate_hash("c2", "B", "P", ["w1"], moment) != base
