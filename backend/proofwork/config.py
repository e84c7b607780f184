"""
ProofOfWork Trust Engine - Engine Configuration

Every tunable constant of the trust engine lives here. Defaults match the
production deployment; each can be overridden through a POW_* environment
variable.
"""
import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


@dataclass(frozen=True)
class EngineConfig:
    """
    Trust engine constants.

    quorum:              distinct valid attestations required to seal a claim
    reward_verifiers:    grant verifier_reward to the verifier on every attestation
    verifier_reward:     reputation gain per attestation (when reward_verifiers)
    seal_reward:         reputation gain for the claim owner on sealing
    slash_penalty:       reputation lost by a slashed verifier
    max_claim_hours:     hard ceiling on declared hours per claim
    max_proximity_m:     farthest a verifier may be from the claimed work
    auto_flag_threshold: anomaly score above which a submission is flagged
    initial_reputation:  reputation of a freshly registered participant
    certification_min_share:         share of listed workers that must be eligible
    certification_min_verified_days: sealed days a worker needs to count as eligible
    """
    quorum: int = 3
    reward_verifiers: bool = True
    verifier_reward: float = 0.5
    seal_reward: float = 0.5
    slash_penalty: float = 5.0
    max_claim_hours: float = 16.0
    max_proximity_m: float = 500.0
    auto_flag_threshold: float = 0.65
    initial_reputation: float = 50.0
    certification_min_share: float = 0.7
    certification_min_verified_days: int = 1

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from POW_* environment variables."""
        defaults = cls()
        return cls(
            quorum=_env_int("POW_QUORUM", defaults.quorum),
            reward_verifiers=_env_bool("POW_REWARD_VERIFIERS", defaults.reward_verifiers),
            verifier_reward=_env_float("POW_VERIFIER_REWARD", defaults.verifier_reward),
            seal_reward=_env_float("POW_SEAL_REWARD", defaults.seal_reward),
            slash_penalty=_env_float("POW_SLASH_PENALTY", defaults.slash_penalty),
            max_claim_hours=_env_float("POW_MAX_CLAIM_HOURS", defaults.max_claim_hours),
            max_proximity_m=_env_float("POW_MAX_PROXIMITY_M", defaults.max_proximity_m),
            auto_flag_threshold=_env_float("POW_AUTO_FLAG_THRESHOLD", defaults.auto_flag_threshold),
            initial_reputation=_env_float("POW_INITIAL_REPUTATION", defaults.initial_reputation),
            certification_min_share=_env_float(
                "POW_CERTIFICATION_MIN_SHARE", defaults.certification_min_share
            ),
            certification_min_verified_days=_env_int(
                "POW_CERTIFICATION_MIN_VERIFIED_DAYS", defaults.certification_min_verified_days
            ),
        )


# Reputation bounds are invariants, not configuration
REPUTATION_FLOOR = 0.0
REPUTATION_CEILING = 100.0
