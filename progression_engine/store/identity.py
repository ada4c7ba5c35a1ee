"""
Identity store backed by a key-value store

Records are serialized to JSON with pydantic and kept under
``user_progress_<user_id>``. Every backend call is bounded by
STORE_TIMEOUT_SECONDS.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError

from progression_engine.config import STORE_TIMEOUT_SECONDS
from progression_engine.exceptions import (
    PersistenceError,
    PreconditionError,
    wrap_external_exception,
)
from progression_engine.models.progression import UserProgressionRecord
from progression_engine.store.base import IdentityStore, KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar('T')

RECORD_KEY_PREFIX = "user_progress_"
CURRENT_USER_KEY = "current_user_id"


def record_key(user_id: str) -> str:
    return f"{RECORD_KEY_PREFIX}{user_id}"


class KeyValueIdentityStore(IdentityStore):
    """IdentityStore implementation over any KeyValueStore"""

    def __init__(self, kv_store: KeyValueStore, timeout: float = STORE_TIMEOUT_SECONDS):
        self.kv = kv_store
        self.timeout = timeout

    async def _call(self, awaitable: Awaitable[T], operation: str, user_id: Optional[str] = None) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except Exception as e:
            raise wrap_external_exception(
                e,
                operation=operation,
                user_id=user_id,
                context={"timeout": self.timeout},
            )

    async def create_user(self, user_id: str, created_at: Optional[datetime] = None) -> UserProgressionRecord:
        """
        Seed a progression record for a new account (level 1, 0 XP, no streak).

        Existing records are returned unchanged.
        """
        existing = await self.get_user(user_id)
        if existing is not None:
            logger.info(f"Progression record for user {user_id} already exists")
            return existing

        record = UserProgressionRecord(
            user_id=user_id,
            created_at=created_at or datetime.now(timezone.utc),
        )
        await self._write(record)
        logger.info(f"Created progression record for user {user_id}")
        return record

    async def sign_in(self, user_id: str) -> None:
        """Select the current user. The record must exist."""
        if await self.get_user(user_id) is None:
            raise PreconditionError(
                f"Cannot sign in unknown user {user_id}",
                user_id=user_id,
                operation="sign_in",
            )
        await self._call(self.kv.set(CURRENT_USER_KEY, user_id), "sign_in", user_id)

    async def sign_out(self) -> None:
        await self._call(self.kv.remove(CURRENT_USER_KEY), "sign_out")

    async def get_current_user(self) -> Optional[UserProgressionRecord]:
        user_id = await self._call(self.kv.get(CURRENT_USER_KEY), "get_current_user")
        if not user_id:
            return None
        return await self.get_user(user_id)

    async def get_user(self, user_id: str) -> Optional[UserProgressionRecord]:
        raw = await self._call(self.kv.get(record_key(user_id)), "get_user", user_id)
        if raw is None:
            return None
        try:
            return UserProgressionRecord.model_validate_json(raw)
        except PydanticValidationError as e:
            raise PersistenceError(
                f"Stored progression record for user {user_id} is corrupt",
                user_id=user_id,
                operation="get_user",
                cause=e,
            )

    async def update_user(self, record: UserProgressionRecord) -> bool:
        existing = await self._call(self.kv.get(record_key(record.user_id)), "update_user", record.user_id)
        if existing is None:
            logger.warning(f"Rejected update for unknown user {record.user_id}")
            return False
        await self._write(record)
        return True

    async def increment_stat(self, user_id: str, name: str) -> int:
        record = await self.get_user(user_id)
        if record is None:
            raise PreconditionError(
                f"Cannot increment {name} for unknown user {user_id}",
                user_id=user_id,
                operation="increment_stat",
            )
        record.stats[name] = record.stats.get(name, 0) + 1
        await self._write(record)
        return record.stats[name]

    async def _write(self, record: UserProgressionRecord) -> None:
        payload = record.model_dump_json()
        await self._call(self.kv.set(record_key(record.user_id), payload), "write_user", record.user_id)
