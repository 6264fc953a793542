"""In-process keyed locks.

Serializes read-modify-write cycles on one habit, challenge, user or
leaderboard within a process. Row locks (SELECT ... FOR UPDATE) cover other processes on
PostgreSQL; SQLite ignores them, so this lock is what serializes tests.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLocks:
    """One asyncio.Lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


challenge_locks = KeyedLocks()
habit_locks = KeyedLocks()
leaderboard_locks = KeyedLocks()
user_locks = KeyedLocks()
