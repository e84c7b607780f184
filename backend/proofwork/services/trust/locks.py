"""
Keyed Locks

One exclusive critical section per key. Claim mutations hold
"claim:<id>", reputation mutations hold "participant:<id>". Operations on
different keys run in parallel.

Lock ordering:
1. The claim key is always acquired before any participant key.
2. Several keys requested together are acquired in sorted order.
Together these rule out lock-order deadlocks between two attestations that
touch the same pair of participants.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Tuple


def claim_key(claim_id: str) -> str:
    return f"claim:{claim_id}"


def participant_key(participant_id: str) -> str:
    return f"participant:{participant_id}"


class KeyedLocks:
    """
    Registry of re-entrant locks, created lazily per key.

    Each entry is reference-counted by the holders and waiters of its key
    and dropped on the last release, so the registry only ever holds keys
    that are in use.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._users: Dict[str, int] = {}

    def _checkout(self, key: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            self._users[key] = self._users.get(key, 0) + 1
            return lock

    def _checkin(self, key: str) -> None:
        with self._guard:
            remaining = self._users[key] - 1
            if remaining:
                self._users[key] = remaining
            else:
                del self._users[key]
                del self._locks[key]

    @contextmanager
    def hold(self, *keys: str) -> Iterator[List[str]]:
        """Acquire every distinct key in sorted order; release in reverse."""
        ordered = sorted(set(keys))
        acquired: List[Tuple[str, threading.RLock]] = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append((key, lock))
            yield ordered
        finally:
            for key, lock in reversed(acquired):
                lock.release()
                self._checkin(key)

    def __len__(self) -> int:
        """Keys currently held or awaited."""
        with self._guard:
            return len(self._locks)


# Shared by every engine in the process
default_locks = KeyedLocks()
