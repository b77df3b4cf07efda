"""
Per-identity locking for gemrepo.

Mutations of one package are serialized while mutations of different
packages never wait on each other.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Hashable, List


class KeyedLock:
    """
    A mutex per key, created on demand and discarded when unused.

    Example:
        locks = KeyedLock()
        with locks.hold(identity):
            ...  # check-then-write for this identity only
    """

    def __init__(self):
        self._guard = threading.Lock()
        # key -> [lock, number of holders and waiters]
        self._locks: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Generator[None, None, None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[key] = entry
            entry[1] += 1

        lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        """Number of keys currently held or waited on."""
        with self._guard:
            return len(self._locks)
