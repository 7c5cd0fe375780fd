"""Keyed asyncio locks with bounded-retry acquisition.

One lock per key (account id, market id, ...). All balance-mutating DB
transactions for an account run while holding that account's lock, so
operations on the same account serialize inside this process while
different accounts proceed in parallel. Cross-process safety comes from the
conditional UPDATEs in the repositories; the lock only removes in-process
contention on the same rows.

Acquisition never waits forever: each attempt is bounded by a timeout, the
number of attempts is fixed, and exhaustion raises LockContentionError.

A key's lock is dropped from the registry once no caller holds or awaits it.
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from config.settings import settings
from src.nb_common.errors import LockContentionError

logger = logging.getLogger(__name__)


class KeyedLocks:
    def __init__(
        self,
        name: str,
        timeout: float = settings.LOCK_TIMEOUT_SECONDS,
        max_attempts: int = settings.LOCK_MAX_ATTEMPTS,
        backoff: float = settings.LOCK_BACKOFF_SECONDS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._name = name
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff = backoff
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __contains__(self, key: object) -> bool:
        return key in self._locks

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            for attempt in range(1, self._max_attempts + 1):
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=self._timeout)
                    break
                except asyncio.TimeoutError:
                    logger.warning(
                        "Lock contention: %s[%s] attempt %d/%d",
                        self._name, key, attempt, self._max_attempts,
                    )
                    if attempt == self._max_attempts:
                        raise LockContentionError(f"{self._name}:{key}") from None
                    await asyncio.sleep(self._backoff * attempt)
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]


# Process-wide registries. Every service defaults to these so that, e.g., the
# Bet Registry and the Settlement Engine serialize on the same account lock.
account_locks = KeyedLocks("account")
target_locks = KeyedLocks("target")
