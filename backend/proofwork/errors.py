"""
ProofOfWork Trust Engine - Error Taxonomy

Every failure of the trust engine is one of six kinds. Each kind is
recoverable and carries a stable `kind` string and a human-readable message.
A failed operation never leaves partial writes behind.

    validation    - bad input shape or range
    conflict      - duplicate claim/attestation, already sealed/rejected
    authorization - self-verification, insufficient standing
    not_found     - unknown claim, participant, flag or certificate
    precondition  - proximity too large, no verified history,
                    insufficient verified labor
    storage       - raised by the persistence layer, passed through as-is
"""
from typing import Any, Dict, Optional


class TrustEngineError(Exception):
    """Base class for all typed trust engine errors."""

    kind = "error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.kind, "code": type(self).__name__, "detail": self.message}
        if self.context:
            payload["context"] = self.context
        return payload


# =============================================================================
# KINDS
# =============================================================================

class ValidationError(TrustEngineError):
    kind = "validation"


class ConflictError(TrustEngineError):
    kind = "conflict"


class AuthorizationError(TrustEngineError):
    kind = "authorization"


class NotFoundError(TrustEngineError):
    kind = "not_found"


class PreconditionError(TrustEngineError):
    kind = "precondition"


class StorageError(TrustEngineError):
    """Failure surfaced by the storage layer. The original exception is chained."""
    kind = "storage"


# =============================================================================
# NAMED ERRORS
# =============================================================================

class InvalidHours(ValidationError):
    def __init__(self, hours: float, ceiling: float):
        super().__init__(
            f"Declared hours {hours} outside (0, {ceiling}]",
            hours=hours, ceiling=ceiling,
        )


class InvalidProximity(ValidationError):
    def __init__(self, distance_m: float):
        super().__init__(
            f"Proximity {distance_m}m must be a finite, non-negative distance",
            distance_m=distance_m,
        )


class DuplicateClaim(ConflictError):
    def __init__(self, participant_id: str, claim_date: Any):
        super().__init__(
            f"Claim already submitted for {claim_date}",
            participant_id=participant_id, claim_date=str(claim_date),
        )


class ClaimNotFound(NotFoundError):
    def __init__(self, claim_id: str):
        super().__init__(f"Claim {claim_id} not found", claim_id=claim_id)


class ParticipantNotFound(NotFoundError):
    def __init__(self, participant_id: str):
        super().__init__(f"Participant {participant_id} not found", participant_id=participant_id)


class FlagNotFound(NotFoundError):
    def __init__(self, flag_id: str):
        super().__init__(f"Anomaly flag {flag_id} not found", flag_id=flag_id)


class SelfVerification(AuthorizationError):
    def __init__(self, participant_id: str):
        super().__init__("Cannot verify own claim", participant_id=participant_id)


class InsufficientStanding(AuthorizationError):
    def __init__(self, participant_id: Optional[str] = None):
        super().__init__("Administrative standing required", participant_id=participant_id)


class NotVerifiedByThisParticipant(AuthorizationError):
    def __init__(self, verifier_id: str, claim_id: str):
        super().__init__(
            f"Participant {verifier_id} has no attestation on claim {claim_id}",
            verifier_id=verifier_id, claim_id=claim_id,
        )


class AlreadySealed(ConflictError):
    def __init__(self, claim_id: str):
        super().__init__("Claim already fully verified", claim_id=claim_id)


class ClaimRejected(ConflictError):
    def __init__(self, claim_id: str):
        super().__init__("Claim has been rejected", claim_id=claim_id)


class DuplicateAttestation(ConflictError):
    def __init__(self, claim_id: str, verifier_id: str):
        super().__init__(
            "Already verified this claim",
            claim_id=claim_id, verifier_id=verifier_id,
        )


class AlreadySlashed(ConflictError):
    def __init__(self, claim_id: str, verifier_id: str):
        super().__init__(
            "Attestation has already been slashed",
            claim_id=claim_id, verifier_id=verifier_id,
        )


class ProximityTooFar(PreconditionError):
    def __init__(self, distance_m: float, limit_m: float):
        super().__init__(
            f"Verifier was {distance_m}m away (limit {limit_m}m) - peer must be physically present",
            distance_m=distance_m, limit_m=limit_m,
        )


class NoVerifiedHistory(PreconditionError):
    def __init__(self, participant_id: str):
        super().__init__("No verified claims on record yet", participant_id=participant_id)


class InsufficientVerifiedLabor(PreconditionError):
    def __init__(self, eligible: int, requested: int):
        super().__init__(
            f"Insufficient verified labor for certification: {eligible} of {requested} workers eligible",
            eligible=eligible, requested=requested,
        )


class CertificateNotFound(NotFoundError):
    def __init__(self, cert_hash: str):
        super().__init__("Certificate not found", cert_hash=cert_hash)
