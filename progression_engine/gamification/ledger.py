"""
Progress Ledger

Per-user achievement state, stored inside the user's progression record and
written through the identity store with read-modify-write.
"""

from typing import Iterable, Optional
import logging

from progression_engine.exceptions import PersistenceError, PreconditionError
from progression_engine.models.achievement import AchievementState
from progression_engine.models.progression import UserProgressionRecord
from progression_engine.observability.error_reporting import report_error
from progression_engine.observability.metrics import record_persistence_failure
from progression_engine.resilience.retry import retry_with_backoff
from progression_engine.store.base import IdentityStore

logger = logging.getLogger(__name__)


def merge_state(existing: Optional[AchievementState], incoming: AchievementState) -> AchievementState:
    """
    Combine a stored state with a new one without breaking monotonicity.

    Progress never goes down; an unlock timestamp, once set, is kept as is.
    """
    if existing is None:
        return incoming
    if existing.unlocked_at is not None:
        return existing
    return AchievementState(
        id=existing.id,
        progress=max(existing.progress, incoming.progress),
        unlocked_at=incoming.unlocked_at,
    )


async def save_record(store: IdentityStore, record: UserProgressionRecord, operation: str) -> None:
    """
    Persist a full record with bounded retries.

    Raises:
        PersistenceError: if the store rejected or failed the write
    """
    try:
        accepted = await retry_with_backoff(store.update_user, record)
    except PersistenceError as e:
        record_persistence_failure(operation)
        report_error(e, context={"operation": operation})
        raise

    if not accepted:
        record_persistence_failure(operation)
        error = PersistenceError(
            f"Identity store rejected update for user {record.user_id}",
            user_id=record.user_id,
            operation=operation,
        )
        report_error(error)
        raise error


async def load_record(store: IdentityStore, user_id: str, operation: str) -> UserProgressionRecord:
    """Fetch a record that must exist"""
    record = await store.get_user(user_id)
    if record is None:
        raise PreconditionError(
            f"No progression record for user {user_id}",
            user_id=user_id,
            operation=operation,
        )
    return record


class ProgressLedger:
    """Read/write access to AchievementState through the identity store"""

    def __init__(self, store: IdentityStore):
        self.store = store

    async def get_achievement_state(self, user_id: str, achievement_id: str) -> AchievementState:
        """Stored state, or zero progress when the user or state is absent"""
        record = await self.store.get_user(user_id)
        if record is None:
            return AchievementState(id=achievement_id)
        return record.achievements.get(achievement_id) or AchievementState(id=achievement_id)

    async def set_achievement_state(self, user_id: str, state: AchievementState) -> AchievementState:
        merged = await self.set_achievement_states(user_id, [state])
        return merged[0]

    async def set_achievement_states(
        self,
        user_id: str,
        states: Iterable[AchievementState],
    ) -> list[AchievementState]:
        """Merge and persist several states in one write"""
        states = list(states)
        if not states:
            return []

        record = await load_record(self.store, user_id, "set_achievement_state")
        merged = []
        for state in states:
            result = merge_state(record.achievements.get(state.id), state)
            record.achievements[state.id] = result
            merged.append(result)

        await save_record(self.store, record, "set_achievement_state")
        logger.debug(f"Persisted {len(merged)} achievement state(s) for user {user_id}")
        return merged
