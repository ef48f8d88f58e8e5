"""
Locks used to serialize mutations and keep the reconciliation job
single-flight.

* ``KeyedLocks`` -- in-process ``asyncio.Lock`` per key (vehicle or
  contract id).  Held across the conflict check, the write and the commit
  of one service operation.
* ``LocalLock`` -- non-blocking in-process lock with the same
  acquire / release interface as ``DistributedLock``.
* ``DistributedLock`` -- Redis ``SET NX EX`` on acquire and a Lua script for
  atomic check-and-delete on release.  Keeps reconciliation runs from
  overlapping across several API processes.
"""

from __future__ import annotations

import asyncio
import uuid
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Hashable, Iterable

import redis.asyncio as aioredis

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class KeyedLocks:
    """Entries live only while a key is held or awaited."""

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._holders: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, *keys: Hashable) -> AsyncIterator[None]:
        """Acquire every key in a stable order to avoid lock-order deadlocks."""
        async with AsyncExitStack() as stack:
            for key in _ordered(keys):
                await stack.enter_async_context(self._hold_one(key))
            yield

    @asynccontextmanager
    async def _hold_one(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def locked(self, key: Hashable) -> bool:
        return key in self._locks and self._locks[key].locked()


def _ordered(keys: Iterable[Hashable]) -> list[Hashable]:
    return sorted(set(keys), key=repr)


class LocalLock:
    def __init__(self):
        self._lock = asyncio.Lock()

    async def acquire(self) -> bool:
        """Try to acquire without waiting. Returns True on success."""
        if self._lock.locked():
            return False
        await self._lock.acquire()
        return True

    async def release(self) -> None:
        if self._lock.locked():
            self._lock.release()


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 300
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise RuntimeError(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()
