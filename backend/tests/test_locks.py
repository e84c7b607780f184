"""
Tests for KeyedLocks and the claim state machine.
"""
import threading
import time

from proofwork.models.db_models import ClaimStatus
from proofwork.services.trust import ClaimStateMachine, KeyedLocks, claim_key, participant_key


class TestKeyedLocks:

    def test_keys_acquired_sorted_and_distinct(self):
        locks = KeyedLocks()
        with locks.hold("participant:b", "claim:1", "participant:b", "participant:a") as held:
            assert held == ["claim:1", "participant:a", "participant:b"]
            assert len(locks) == 3
        assert len(locks) == 0

    def test_reentrant(self):
        locks = KeyedLocks()
        with locks.hold(claim_key("c1")):
            with locks.hold(claim_key("c1"), participant_key("p1")):
                assert len(locks) == 2
            assert len(locks) == 1
        assert len(locks) == 0

    def test_entry_kept_while_another_thread_waits(self):
        """A waiter keeps the key alive, so both threads share one lock."""
        locks = KeyedLocks()
        entered = threading.Event()

        def waiter():
            with locks.hold("claim:c1"):
                entered.set()

        with locks.hold("claim:c1"):
            thread = threading.Thread(target=waiter)
            thread.start()
            while locks._users.get("claim:c1", 0) < 2:
                time.sleep(0.001)
            assert not entered.is_set()
        thread.join(timeout=5)

        assert entered.is_set()
        assert len(locks) == 0

    def test_claim_key_sorts_before_participant_key(self):
        assert sorted([participant_key("0"), claim_key("z")]) == ["claim:z", "participant:0"]

    def test_same_key_is_exclusive(self):
        """Read-modify-write under one key never loses an update."""
        locks = KeyedLocks()
        state = {"value": 0}

        def bump():
            for _ in range(50):
                with locks.hold("participant:p1"):
                    current = state["value"]
                    time.sleep(0)
                    state["value"] = current + 1

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert state["value"] == 200

    def test_opposite_request_order_does_not_deadlock(self):
        locks = KeyedLocks()

        def worker(keys):
            for _ in range(200):
                with locks.hold(*keys):
                    pass

        first = threading.Thread(target=worker, args=(("participant:a", "participant:b"),))
        second = threading.Thread(target=worker, args=(("participant:b", "participant:a"),))
        first.start()
        second.start()
        first.join(timeout=10)
        second.join(timeout=10)

        assert not first.is_alive()
        assert not second.is_alive()

    def test_released_after_exception(self):
        locks = KeyedLocks()
        try:
            with locks.hold("claim:c1"):
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        acquired = threading.Event()

        def contender():
            with locks.hold("claim:c1"):
                acquired.set()

        thread = threading.Thread(target=contender)
        thread.start()
        thread.join(timeout=5)
        assert acquired.is_set()
        assert len(locks) == 0


class TestClaimStateMachine:

    def test_forward_transitions(self):
        assert ClaimStateMachine.can_transition(ClaimStatus.PENDING, ClaimStatus.PARTIALLY_VERIFIED)[0]
        assert ClaimStateMachine.can_transition(ClaimStatus.PARTIALLY_VERIFIED, ClaimStatus.VERIFIED)[0]

    def test_no_backward_or_skipping(self):
        allowed, reason = ClaimStateMachine.can_transition(ClaimStatus.VERIFIED, ClaimStatus.PENDING)
        assert not allowed
        assert "verified" in reason
        assert not ClaimStateMachine.can_transition(ClaimStatus.PENDING, ClaimStatus.VERIFIED)[0]

    def test_rejection_sources(self):
        assert set(ClaimStateMachine.sources_of(ClaimStatus.REJECTED)) == {
            ClaimStatus.PENDING, ClaimStatus.PARTIALLY_VERIFIED,
        }
        assert ClaimStateMachine.sources_of(ClaimStatus.VERIFIED) == [ClaimStatus.PARTIALLY_VERIFIED]

    def test_terminal_states(self):
        assert ClaimStateMachine.is_terminal(ClaimStatus.VERIFIED)
        assert ClaimStateMachine.is_terminal(ClaimStatus.REJECTED)
        assert not ClaimStateMachine.accepts_attestations(ClaimStatus.REJECTED)
        assert ClaimStateMachine.accepts_attestations(ClaimStatus.PARTIALLY_VERIFIED)
