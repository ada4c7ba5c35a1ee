"""
Unlock Coordinator

Performs the side effects of an achievement crossing its threshold. The
terminal achievement state and the XP reward are written to the identity
store in a single update: either both are durable or neither is. Events and
celebration feedback only happen after that write succeeded.
"""

from datetime import datetime, timezone
from typing import Callable, Optional
import logging

from progression_engine.exceptions import ErrorCategory, ErrorSeverity
from progression_engine.gamification.events import EventNotifier
from progression_engine.gamification.feedback import CelebrationFeedback, intensity_for
from progression_engine.gamification.ledger import load_record, save_record
from progression_engine.gamification.locks import UserLockRegistry
from progression_engine.gamification.xp_system import LevelResult, apply_xp
from progression_engine.models.achievement import AchievementDefinition, AchievementState
from progression_engine.models.events import (
    AchievementUnlockedEvent,
    LevelUpEvent,
    XPGainedEvent,
)
from progression_engine.observability.error_reporting import report_error
from progression_engine.observability.metrics import (
    record_achievement_unlocked,
    record_level_ups,
    record_xp_awarded,
)
from progression_engine.store.base import IdentityStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UnlockCoordinator:
    """Unlocks achievements and awards XP with at-most-once semantics"""

    def __init__(
        self,
        store: IdentityStore,
        notifier: EventNotifier,
        locks: UserLockRegistry,
        feedback: Optional[CelebrationFeedback] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.notifier = notifier
        self.locks = locks
        self.feedback = feedback
        self.clock = clock

    async def unlock(self, user_id: str, definition: AchievementDefinition) -> bool:
        """
        Unlock ``definition`` for ``user_id`` and award its XP.

        Returns:
            True if this call unlocked the achievement, False if it was
            already unlocked

        Raises:
            PreconditionError: if the user has no progression record
            PersistenceError: if the write failed; nothing was awarded
        """
        async with self.locks.hold(user_id):
            record = await load_record(self.store, user_id, "unlock_achievement")

            existing = record.achievements.get(definition.id)
            if existing is not None and existing.unlocked:
                logger.debug(f"Achievement {definition.id} already unlocked for user {user_id}")
                return False

            unlocked_at = self.clock()
            record.achievements[definition.id] = AchievementState(
                id=definition.id,
                progress=definition.max_progress,
                unlocked_at=unlocked_at,
            )
            level_result = apply_xp(record.level, record.xp, definition.xp_reward)
            record.level = level_result.level
            record.xp = level_result.total_xp

            await save_record(self.store, record, "unlock_achievement")

        logger.info(
            f"User {user_id} unlocked achievement: {definition.id} "
            f"({definition.title}) +{definition.xp_reward} XP"
        )
        record_achievement_unlocked(definition.category.value, definition.rarity.value)

        self._publish_xp(user_id, definition.xp_reward, f"achievement:{definition.id}", level_result)
        self.notifier.publish(AchievementUnlockedEvent(
            user_id=user_id,
            achievement=definition,
            xp_awarded=definition.xp_reward,
            unlocked_at=unlocked_at,
        ))
        self._celebrate(user_id, definition)
        return True

    async def award_xp(self, user_id: str, amount: int, source: str) -> LevelResult:
        """
        Grant XP outside of an achievement unlock.

        Raises:
            InvalidXPError: if amount is negative
            PreconditionError: if the user has no progression record
            PersistenceError: if the write failed
        """
        async with self.locks.hold(user_id):
            record = await load_record(self.store, user_id, "award_xp")
            level_result = apply_xp(record.level, record.xp, amount)
            if amount == 0:
                return level_result

            record.level = level_result.level
            record.xp = level_result.total_xp
            await save_record(self.store, record, "award_xp")

        logger.info(
            f"Awarded {amount} XP to user {user_id} for {source}. "
            f"Total: {level_result.total_xp} XP, Level: {level_result.level}"
        )
        self._publish_xp(user_id, amount, source, level_result)
        return level_result

    def _publish_xp(self, user_id: str, amount: int, source: str, level_result: LevelResult) -> None:
        if amount <= 0:
            return

        record_xp_awarded(source.split(":", 1)[0], amount)
        self.notifier.publish(XPGainedEvent(
            user_id=user_id,
            amount=amount,
            source=source,
            total_xp=level_result.total_xp,
        ))

        if level_result.leveled_up:
            logger.info(f"User {user_id} leveled up to {level_result.level}!")
            record_level_ups(len(level_result.level_ups))

        for step in level_result.level_ups:
            self.notifier.publish(LevelUpEvent(
                user_id=user_id,
                new_level=step.level,
                total_xp=level_result.total_xp,
                xp_to_next_level=step.xp_to_next_level,
            ))

    def _celebrate(self, user_id: str, definition: AchievementDefinition) -> None:
        if self.feedback is None:
            return
        try:
            self.feedback(intensity_for(definition.rarity))
        except Exception as e:
            logger.warning(f"Celebration feedback failed for {definition.id}: {e}", exc_info=True)
            report_error(
                e,
                category=ErrorCategory.FEEDBACK,
                severity=ErrorSeverity.LOW,
                context={"user_id": user_id, "achievement_id": definition.id},
            )
