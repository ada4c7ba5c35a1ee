"""Per-user serialization of progression operations"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

logger = logging.getLogger(__name__)


class UserLockRegistry:
    """
    One asyncio lock per user id.

    The lock is re-entrant for the task that already holds it, so an
    operation holding a user's lock can call other locked operations for the
    same user (evaluate -> unlock). Different users never contend.

    A user's lock lives only while some task holds or waits for it; the
    entry is dropped when the last one leaves.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}  # holders + waiters per user
        self._owners: Dict[str, Optional[asyncio.Task]] = {}

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        task = asyncio.current_task()
        if task is not None and self._owners.get(user_id) is task:
            yield
            return

        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._users[user_id] = self._users.get(user_id, 0) + 1
        try:
            async with lock:
                self._owners[user_id] = task
                try:
                    yield
                finally:
                    self._owners.pop(user_id, None)
        finally:
            self._users[user_id] -= 1
            if not self._users[user_id]:
                del self._users[user_id]
                del self._locks[user_id]

    def is_held(self, user_id: str) -> bool:
        lock = self._locks.get(user_id)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
