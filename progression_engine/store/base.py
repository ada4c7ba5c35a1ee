"""Collaborator contracts consumed by the progression engine"""
from abc import ABC, abstractmethod
from typing import Optional

from progression_engine.models.progression import UserProgressionRecord


class KeyValueStore(ABC):
    """Durable key-value persistence"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove(self, key: str) -> None:
        ...


class IdentityStore(ABC):
    """
    Owner of user progression records.

    Implementations must guarantee read-your-writes within one process.
    Records handed out are copies; callers write back through ``update_user``.
    """

    @abstractmethod
    async def get_current_user(self) -> Optional[UserProgressionRecord]:
        """Record of the signed-in user, or None"""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[UserProgressionRecord]:
        """Record for ``user_id``, or None"""

    @abstractmethod
    async def update_user(self, record: UserProgressionRecord) -> bool:
        """Persist the full record. Returns False when the write was rejected."""

    @abstractmethod
    async def increment_stat(self, user_id: str, name: str) -> int:
        """Increment a raw counter and return its persisted value"""
