"""
Claim State Machine

Deterministic lifecycle for work claims. Status only moves forward:

    PENDING --(1st valid attestation)--> PARTIALLY_VERIFIED --(quorum)--> VERIFIED
    PENDING / PARTIALLY_VERIFIED --(explicit rejection)--> REJECTED

VERIFIED and REJECTED are terminal. The table below is the single source of
allowed transitions; the verification engine applies them with a
compare-and-set on the stored status, never with a read-then-write.
"""
from typing import Dict, Any, List, Tuple

from ...models.db_models import ClaimStatus


# =============================================================================
# STATE CONFIGURATION
# =============================================================================

STATE_CONFIG: Dict[ClaimStatus, Dict[str, Any]] = {
    ClaimStatus.PENDING: {
        "description": "Claim submitted, awaiting peer attestations",
        "allowed_transitions": [ClaimStatus.PARTIALLY_VERIFIED, ClaimStatus.REJECTED],
        "accepts_attestations": True,
    },
    ClaimStatus.PARTIALLY_VERIFIED: {
        "description": "At least one valid attestation, quorum not yet reached",
        "allowed_transitions": [ClaimStatus.VERIFIED, ClaimStatus.REJECTED],
        "accepts_attestations": True,
    },
    ClaimStatus.VERIFIED: {
        "description": "Quorum reached, claim sealed",
        "allowed_transitions": [],  # Terminal state
        "accepts_attestations": False,
    },
    ClaimStatus.REJECTED: {
        "description": "Claim rejected by an administrator",
        "allowed_transitions": [],  # Terminal state
        "accepts_attestations": False,
    },
}


class ClaimStateMachine:
    """Lookup helpers over STATE_CONFIG."""

    @staticmethod
    def can_transition(from_state: ClaimStatus, to_state: ClaimStatus) -> Tuple[bool, str]:
        """
        Check if a state transition is allowed.

        Returns (allowed, reason)
        """
        if to_state in STATE_CONFIG[from_state]["allowed_transitions"]:
            return True, "Transition allowed"
        return False, f"Cannot transition from {from_state.value} to {to_state.value}"

    @staticmethod
    def sources_of(to_state: ClaimStatus) -> List[ClaimStatus]:
        """Every state from which to_state is reachable in one step."""
        return [
            state for state, config in STATE_CONFIG.items()
            if to_state in config["allowed_transitions"]
        ]

    @staticmethod
    def is_terminal(state: ClaimStatus) -> bool:
        return not STATE_CONFIG[state]["allowed_transitions"]

    @staticmethod
    def accepts_attestations(state: ClaimStatus) -> bool:
        return STATE_CONFIG[state]["accepts_attestations"]
