from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Iterator, Protocol


@dataclass(frozen=True)
class Challenge:
    identifier: str
    code: str
    role: str
    expires_at: datetime
    last_sent_at: datetime
    attempts: int = 0


class ChallengeStore(Protocol):
    def get(self, identifier: str) -> Challenge | None:
        ...

    def put(self, identifier: str, challenge: Challenge) -> None:
        ...

    def delete(self, identifier: str) -> None:
        ...

    def locked(self, identifier: str) -> AbstractContextManager[None]:
        ...

    def purge_expired(self, now: datetime, cooldown: timedelta = timedelta(0)) -> int:
        ...


class _KeyLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = Lock()
        self.holders = 0


class InMemoryChallengeStore:
    """Process-local challenge map.

    ``get``/``put``/``delete`` are individually atomic. Callers that read a
    challenge and write it back (cooldown check then commit, attempt
    increment) wrap the sequence in ``locked(identifier)`` so that requests
    for the same identifier are serialized while other identifiers proceed.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Challenge] = {}
        self._entries_lock = Lock()
        self._key_locks: dict[str, _KeyLock] = {}
        self._key_locks_guard = Lock()

    def get(self, identifier: str) -> Challenge | None:
        with self._entries_lock:
            return self._entries.get(identifier)

    def put(self, identifier: str, challenge: Challenge) -> None:
        with self._entries_lock:
            self._entries[identifier] = challenge

    def delete(self, identifier: str) -> None:
        with self._entries_lock:
            self._entries.pop(identifier, None)

    def purge_expired(self, now: datetime, cooldown: timedelta = timedelta(0)) -> int:
        """Drop challenges past ``expires_at`` whose resend cooldown has also run out.

        Identifiers currently inside ``locked`` are left alone; their holder
        owns the entry until it leaves the critical section.
        """
        with self._key_locks_guard, self._entries_lock:
            stale = [
                identifier
                for identifier, challenge in self._entries.items()
                if identifier not in self._key_locks
                and now > challenge.expires_at
                and now - challenge.last_sent_at >= cooldown
            ]
            for identifier in stale:
                del self._entries[identifier]
        return len(stale)

    def __len__(self) -> int:
        with self._entries_lock:
            return len(self._entries)

    @contextmanager
    def locked(self, identifier: str) -> Iterator[None]:
        with self._key_locks_guard:
            key_lock = self._key_locks.get(identifier)
            if key_lock is None:
                key_lock = self._key_locks[identifier] = _KeyLock()
            key_lock.holders += 1
        try:
            with key_lock.lock:
                yield
        finally:
            with self._key_locks_guard:
                key_lock.holders -= 1
                if key_lock.holders == 0:
                    self._key_locks.pop(identifier, None)
