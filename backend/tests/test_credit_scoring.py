"""
Tests for credit scoring.

score = min(850, round(tenure*4.5 + min(peers,10)*15 + min(weekly,40)*2.5 + 300))
"""
import pytest
from datetime import timedelta

from proofwork.errors import NoVerifiedHistory, ParticipantNotFound
from proofwork.models.db_models import CreditTier, ParticipantDB, WorkClaimDB
from proofwork.services.trust import build_credit_report, credit_score, tier_for
from proofwork.services.trust.credit_scoring import round_half_up

from conftest import BASE_DATE


def seal(ledger, verification, owner, peers, claim_date, hours=8.0):
    claim = ledger.submit(owner.id, claim_date, hours, "Harvest")
    for peer in peers[:3]:
        verification.attest(claim.id, peer.id)
    return claim


# =============================================================================
# TEST: PURE FUNCTIONS
# =============================================================================

class TestFormula:

    def test_round_half_up(self):
        assert round_half_up(2.5) == 3
        assert round_half_up(449.5) == 450
        assert round_half_up(2.49) == 2

    @pytest.mark.parametrize("score,tier", [
        (850, CreditTier.PRIME),
        (721, CreditTier.PRIME),
        (720, CreditTier.STANDARD),
        (581, CreditTier.STANDARD),
        (580, CreditTier.EMERGING),
        (300, CreditTier.EMERGING),
    ])
    def test_tiers(self, score, tier):
        assert tier_for(score) == tier

    def test_caps(self):
        """Peers cap at 10, weekly hours at 40, score at 850."""
        assert credit_score(1, 25.0, 80.0) == credit_score(1, 10.0, 40.0)
        assert credit_score(200, 10.0, 40.0) == 850

    def test_build_report(self):
        participant = ParticipantDB(id="p1", total_verified_days=44)
        claims = [WorkClaimDB(id=f"c{n}", hours=8.0) for n in range(4)]

        report = build_credit_report(participant, claims, [3, 3, 3, 3])

        # 2*4.5 + 3*15 + 40*2.5 + 300 = 454
        assert report.tenure_months == 2
        assert report.avg_weekly_hours == 40.0
        assert report.avg_peers == 3.0
        assert report.score == 454
        assert report.tier == CreditTier.EMERGING
        assert report.credit_ceiling == 2542
        assert report.verified_claims == 4

    def test_tenure_at_least_one_month(self):
        participant = ParticipantDB(id="p1", total_verified_days=3)
        report = build_credit_report(participant, [WorkClaimDB(id="c1", hours=8.0)], [3])
        assert report.tenure_months == 1

    def test_no_history(self):
        participant = ParticipantDB(id="p1", total_verified_days=0)
        with pytest.raises(NoVerifiedHistory) as exc_info:
            build_credit_report(participant, [], [])
        assert exc_info.value.kind == "precondition"


# =============================================================================
# TEST: SERVICE
# =============================================================================

class TestCreditScoringService:

    def test_report_from_sealed_claim(self, credit, ledger, verification, register):
        owner = register()
        peers = [register() for _ in range(3)]
        seal(ledger, verification, owner, peers, BASE_DATE)

        report = credit.credit_report(owner.id)

        # 1*4.5 + 3*15 + 40*2.5 + 300 = 449.5
        assert report.score == 450
        assert report.tier == CreditTier.EMERGING
        assert report.credit_ceiling == 1260
        assert report.verified_claims == 1

    def test_pending_claims_ignored(self, credit, ledger, verification, register):
        owner = register()
        peers = [register() for _ in range(3)]
        seal(ledger, verification, owner, peers, BASE_DATE)
        ledger.submit(owner.id, BASE_DATE + timedelta(days=1), 2.0, "Half day")

        assert credit.credit_report(owner.id).verified_claims == 1

    def test_slashed_attestations_lower_peers(self, credit, ledger, verification, register):
        owner = register()
        peers = [register() for _ in range(3)]
        claim = seal(ledger, verification, owner, peers, BASE_DATE)
        verification.slash(peers[0].id, claim.id)

        assert credit.credit_report(owner.id).avg_peers == 2.0

    def test_no_verified_history(self, credit, ledger, register, store):
        owner = register()
        ledger.submit(owner.id, BASE_DATE, 8.0, "Harvest")

        with pytest.raises(NoVerifiedHistory):
            credit.credit_report(owner.id)
        assert credit.report_history(owner.id) == []

    def test_unknown_participant(self, credit):
        with pytest.raises(ParticipantNotFound):
            credit.credit_report("nobody")
        with pytest.raises(ParticipantNotFound):
            credit.report_history("nobody")

    def test_history_accumulates(self, credit, ledger, verification, register, store):
        """Reports are snapshots; generating one never touches reputation."""
        owner = register()
        peers = [register() for _ in range(3)]
        seal(ledger, verification, owner, peers, BASE_DATE)
        reputation = store.get_participant(owner.id).reputation_score

        credit.credit_report(owner.id)
        credit.credit_report(owner.id)

        assert len(credit.report_history(owner.id)) == 2
        assert store.get_participant(owner.id).reputation_score == reputation
