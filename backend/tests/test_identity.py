"""
Tests for the Identity & Reputation Store.
"""
import pytest
from datetime import timedelta
from unittest.mock import MagicMock

from proofwork.config import EngineConfig, REPUTATION_CEILING, REPUTATION_FLOOR
from proofwork.errors import ParticipantNotFound, ValidationError
from proofwork.models.db_models import ParticipantRole
from proofwork.services.trust import IdentityService, clamp_reputation

from conftest import BASE_DATE


class TestRegister:

    def test_defaults(self, identity):
        participant = identity.register("Amina Korir", "Kericho, KE", "Agriculture - Tea")

        assert len(participant.id) == 36
        assert participant.role == ParticipantRole.PARTICIPANT
        assert participant.reputation_score == 50.0
        assert participant.verification_depth == 0
        assert participant.total_verified_days == 0
        assert participant.is_active is True

    def test_fields_trimmed(self, identity):
        participant = identity.register("  Kofi Mensah ", " Ashanti, GH", "Cocoa ")
        assert (participant.name, participant.location, participant.sector) == (
            "Kofi Mensah", "Ashanti, GH", "Cocoa",
        )

    def test_missing_fields(self, identity, store):
        with pytest.raises(ValidationError) as exc_info:
            identity.register("", "Kericho, KE", " ")

        assert exc_info.value.context["fields"] == ["name", "sector"]
        assert store.count_participants() == 0

    def test_configured_initial_reputation(self, store):
        participant = IdentityService(store, EngineConfig(initial_reputation=70.0)).register(
            "Tigist Haile", "Oromia, ET", "Coffee"
        )
        assert participant.reputation_score == 70.0

    def test_initial_reputation_clamped(self, store):
        participant = IdentityService(store, EngineConfig(initial_reputation=150.0)).register(
            "Ratan Das", "Dhaka, BD", "Textiles"
        )
        assert participant.reputation_score == REPUTATION_CEILING

    def test_admin_role(self, identity):
        admin = identity.register("Ledger Admin", "Nairobi, KE", "Administration", role=ParticipantRole.ADMIN)
        assert admin.role == ParticipantRole.ADMIN


class TestLookup:

    def test_get_unknown(self, identity):
        with pytest.raises(ParticipantNotFound):
            identity.get("nobody")

    def test_list_pages(self, identity, register):
        created = [register() for _ in range(5)]

        first_page, total = identity.list(page=1, limit=2)
        third_page, _ = identity.list(page=3, limit=2)

        assert total == 5
        assert len(first_page) == 2
        assert len(third_page) == 1
        listed = {p.id for p in first_page} | {p.id for p in identity.list(page=2, limit=2)[0]} | {third_page[0].id}
        assert listed == {p.id for p in created}

    def test_list_clamps_page(self, identity, register):
        register()
        participants, total = identity.list(page=0, limit=0)
        assert total == 1
        assert len(participants) == 1

    def test_profile(self, identity, register, ledger, verification):
        owner, peer = register(), register()
        for offset in range(2):
            claim = ledger.submit(owner.id, BASE_DATE + timedelta(days=offset), 8.0, "Harvest")
        verification.attest(claim.id, peer.id)

        profile = identity.profile(owner.id)

        assert profile["participant"].id == owner.id
        assert len(profile["claims"]) == 2
        assert [a.verifier_id for a in profile["attestations_received"]] == [peer.id]

    def test_profile_unknown(self, identity):
        with pytest.raises(ParticipantNotFound):
            identity.profile("nobody")


class TestReputationMutations:
    """adjust_reputation never leaves [0, 100]."""

    @pytest.mark.parametrize("start,delta,expected", [
        (50.0, 0.5, 50.5),
        (99.9, 0.5, 100.0),
        (100.0, 10.0, 100.0),
        (3.0, -5.0, 0.0),
        (0.0, -5.0, 0.0),
    ])
    def test_adjust_clamped(self, start, delta, expected):
        participant = MagicMock()
        participant.id = "p1"
        participant.reputation_score = start

        assert IdentityService.adjust_reputation(participant, delta) == expected
        assert participant.reputation_score == expected

    def test_clamp_reputation(self):
        assert clamp_reputation(-1.0) == REPUTATION_FLOOR
        assert clamp_reputation(101.0) == REPUTATION_CEILING
        assert clamp_reputation(42.0) == 42.0

    def test_counters(self):
        participant = MagicMock()
        participant.verification_depth = 2
        participant.total_verified_days = 0

        IdentityService.record_attestation(participant)
        IdentityService.record_verified_day(participant)

        assert participant.verification_depth == 3
        assert participant.total_verified_days == 1
