"""
Supply-Chain Certification

Issues batch certificates stating that a product was made with verified
labor. A listed worker is eligible once enough of their own claims have
been sealed; a batch is certified only when the eligible share of its
listed workers reaches the configured minimum.

Certificates are looked up by their sha256 hash, which is what a buyer
scanning a label holds. Rendering that hash as a QR image happens
elsewhere.
"""
import hashlib
import json
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import uuid4

from ...config import EngineConfig
from ...errors import CertificateNotFound, InsufficientVerifiedLabor, ValidationError
from ...models.db_models import SupplyChainCertDB, utcnow
from .store import LedgerStore

logger = logging.getLogger(__name__)


def certificate_hash(
    cert_id: str,
    brand: str,
    product: str,
    worker_ids: Sequence[str],
    issued_at: datetime,
) -> str:
    """sha256 over the canonical certificate content."""
    payload = {
        "cert_id": cert_id,
        "brand": brand,
        "product": product,
        "worker_ids": list(worker_ids),
        "issued_at": int(issued_at.replace(tzinfo=timezone.utc).timestamp() * 1000),
    }
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


class CertificationService:
    """Issue, list and verify supply-chain batch certificates."""

    DEFAULT_LIST_LIMIT = 50

    def __init__(self, store: LedgerStore, config: EngineConfig = None):
        self.store = store
        self.config = config if config is not None else EngineConfig()

    # =========================================================================
    # CERTIFY
    # =========================================================================

    def certify(
        self,
        brand: str,
        product: str,
        worker_ids: Sequence[str],
        batch_weight_kg: Optional[float] = None,
        issued_by: Optional[str] = None,
    ) -> SupplyChainCertDB:
        """
        Certify one batch.

        Args:
            brand: Brand the batch is sold under
            product: Product name
            worker_ids: Workers who produced the batch; duplicates count once
            batch_weight_kg: Optional batch weight, finite and positive
            issued_by: Participant issuing the certificate

        Returns:
            The stored certificate, listing only the eligible workers

        Raises:
            ValidationError: blank brand/product, no workers, bad weight
            InsufficientVerifiedLabor: eligible share below the minimum
        """
        requested = list(dict.fromkeys(w.strip() for w in (worker_ids or []) if w and w.strip()))
        missing = [
            field_name for field_name, value in
            (("brand", brand), ("product", product))
            if not value or not value.strip()
        ]
        if not requested:
            missing.append("worker_ids")
        if missing:
            raise ValidationError(f"Missing fields: {', '.join(missing)}", fields=missing)
        if batch_weight_kg is not None and (not math.isfinite(batch_weight_kg) or batch_weight_kg <= 0):
            raise ValidationError(
                f"Batch weight {batch_weight_kg}kg must be a finite, positive number",
                fields=["batch_weight_kg"],
            )

        with self.store.unit_of_work():
            verified_days = {
                p.id: p.total_verified_days for p in self.store.participants_by_ids(requested)
            }
            eligible = [
                worker_id for worker_id in requested
                if verified_days.get(worker_id, 0) >= self.config.certification_min_verified_days
            ]
            # Ratio, not len * share: 10 * 0.7 is 7.000000000000001
            if len(eligible) / len(requested) < self.config.certification_min_share:
                raise InsufficientVerifiedLabor(len(eligible), len(requested))

            cert_id = str(uuid4())
            issued_at = utcnow()
            cert = SupplyChainCertDB(
                id=cert_id,
                brand=brand.strip(),
                product=product.strip(),
                batch_weight_kg=batch_weight_kg,
                worker_count=len(eligible),
                worker_ids=eligible,
                cert_hash=certificate_hash(cert_id, brand.strip(), product.strip(), requested, issued_at),
                status="certified",
                issued_by=issued_by,
                issued_at=issued_at,
            )
            self.store.add(cert)

        logger.info(
            f"Certified {cert.brand} {cert.product}: {len(eligible)}/{len(requested)} workers eligible"
        )
        return cert

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def list(self, limit: int = DEFAULT_LIST_LIMIT) -> List[SupplyChainCertDB]:
        """Newest certificates first."""
        if limit < 1:
            raise ValidationError(f"limit must be at least 1, got {limit}", fields=["limit"])
        with self.store.unit_of_work(commit=False):
            return self.store.list_certificates(limit)

    def verify(self, cert_hash: str) -> SupplyChainCertDB:
        with self.store.unit_of_work(commit=False):
            cert = self.store.get_certificate_by_hash(cert_hash)
        if cert is None:
            raise CertificateNotFound(cert_hash)
        return cert
