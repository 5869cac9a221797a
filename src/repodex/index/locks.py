"""Per-repository mutual exclusion for rebuilds."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from repodex.index.schema import RepositoryIdentity


class RepositoryLocks:
    """Keyed lock map: one exclusive lease per repository identity.

    Rebuilds of the same repository are serialized; different repositories
    never wait on each other.  Entries are dropped once no thread holds or
    waits for them.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[RepositoryIdentity, threading.Lock] = {}
        self._users: dict[RepositoryIdentity, int] = {}

    @contextmanager
    def hold(self, repository: RepositoryIdentity) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(repository, threading.Lock())
            self._users[repository] = self._users.get(repository, 0) + 1
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                self._users[repository] -= 1
                if not self._users[repository]:
                    del self._users[repository]
                    del self._locks[repository]

    def is_held(self, repository: RepositoryIdentity) -> bool:
        with self._guard:
            lock = self._locks.get(repository)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
