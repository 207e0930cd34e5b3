"""Per-key asyncio locks."""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict


class KeyedLock:
    """Hands out one asyncio.Lock per key so work on the same key runs one at a time.

    Must be used from a single event loop.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        # Holders plus waiters per key
        self._users: Dict[str, int] = {}

    def _get_lock(self, key: str) -> asyncio.Lock:
        """Get or create the lock for a key."""
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    @asynccontextmanager
    async def hold(self, key: str):
        lock = self._get_lock(key)
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]

    def is_locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def waiting(self, key: str) -> int:
        """Number of coroutines holding or queued for a key."""
        return self._users.get(key, 0)

    def discard(self, key: str) -> None:
        """Forget the lock of a key nobody holds or waits for."""
        if key not in self._users:
            self._locks.pop(key, None)
