"""Per-key asyncio locks for serialising work on one identity or quota row.

Requests for different keys never contend. Locks are held in a
WeakValueDictionary: an entry exists only while some coroutine holds or
waits on it, so the table does not grow with every identity ever seen.

Usage:
    locks = KeyedLock()
    async with locks("u1"):
        ...  # exclusive for "u1"
"""

from __future__ import annotations

import asyncio
from collections.abc import Hashable
from weakref import WeakValueDictionary


class KeyedLock:
    """Hands out one asyncio.Lock per key."""

    def __init__(self) -> None:
        self._locks: WeakValueDictionary[Hashable, asyncio.Lock] = WeakValueDictionary()

    def __call__(self, key: Hashable) -> asyncio.Lock:
        """Returns the lock for ``key``, creating it if nobody holds one."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)
