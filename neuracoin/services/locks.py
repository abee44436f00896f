import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class UserLockRegistry:
    """
    One asyncio.Lock per user.

    Every read-modify-write of a user's ledger runs under that user's lock,
    from loading the state to committing it, so two trades (or a trade and a
    revaluation) for the same user never interleave.

    Locks are held weakly: once no task holds or waits on a user's lock it
    is dropped from the registry.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        async with self.lock_for(user_id):
            yield
