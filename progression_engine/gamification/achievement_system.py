"""
Achievement System

Advances achievement progress for a category and hands achievements that
cross their threshold to the UnlockCoordinator.

Features:
- Progress tracking for locked achievements
- Idempotent: unlocked achievements never progress or fire again
- Streak achievements track an absolute day count, never a running sum
"""

from typing import List, Optional, Tuple
import logging

from progression_engine.exceptions import InvalidDeltaError, PersistenceError
from progression_engine.gamification.catalog import AchievementCatalog
from progression_engine.gamification.events import EventNotifier
from progression_engine.gamification.ledger import ProgressLedger
from progression_engine.gamification.locks import UserLockRegistry
from progression_engine.gamification.unlock import UnlockCoordinator
from progression_engine.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    AchievementState,
)
from progression_engine.models.events import AchievementProgressEvent
from progression_engine.observability.metrics import record_achievement_progress

logger = logging.getLogger(__name__)


def _check_amount(value: int, allow_zero: bool) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDeltaError(value=value)
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidDeltaError(value=value)


def _absolute_step(value: int):
    return lambda current, maximum: max(current, min(value, maximum))


class AchievementEvaluator:
    """Applies progress deltas to every matching achievement of a category"""

    def __init__(
        self,
        catalog: AchievementCatalog,
        ledger: ProgressLedger,
        unlocker: UnlockCoordinator,
        notifier: EventNotifier,
        locks: UserLockRegistry,
    ):
        self.catalog = catalog
        self.ledger = ledger
        self.unlocker = unlocker
        self.notifier = notifier
        self.locks = locks

    async def evaluate(
        self,
        user_id: str,
        category: AchievementCategory,
        delta: int = 1,
        criterion: Optional[str] = None,
    ) -> List[AchievementDefinition]:
        """
        Add ``delta`` progress to each achievement of ``category``.

        STREAK is the exception: its achievements track the streak length, so
        ``delta`` is taken as the current length and applied like
        evaluate_absolute.

        Args:
            user_id: User whose progress advances
            category: Achievement category
            delta: Positive progress increment
            criterion: Only advance definitions registered with this criterion
                (None advances the definitions that have no criterion,
                ANY_CRITERION advances every definition of the category)

        Returns:
            Definitions newly unlocked by this call, in catalog order

        Raises:
            InvalidDeltaError: if delta is not a positive integer
            PersistenceError: if progress or an unlock could not be saved.
                Its ``committed`` lists definitions unlocked before the failure.
        """
        _check_amount(delta, allow_zero=False)
        category = AchievementCategory(category)
        if category == AchievementCategory.STREAK:
            # Streak achievements track the streak length, never a running count
            return await self._advance(user_id, category, criterion, _absolute_step(delta))
        return await self._advance(
            user_id,
            category,
            criterion,
            lambda current, maximum: min(current + delta, maximum),
        )

    async def evaluate_absolute(
        self,
        user_id: str,
        category: AchievementCategory,
        value: int,
        criterion: Optional[str] = None,
    ) -> List[AchievementDefinition]:
        """
        Set progress to ``min(value, max_progress)`` where that is an increase.

        Used for streak achievements, which track the current streak length
        rather than a running count. Progress never goes down, so a broken
        streak keeps the best progress reached so far.
        """
        _check_amount(value, allow_zero=True)
        category = AchievementCategory(category)
        return await self._advance(user_id, category, criterion, _absolute_step(value))

    async def _advance(self, user_id, category, criterion, step) -> List[AchievementDefinition]:
        async with self.locks.hold(user_id):
            staged: List[Tuple[AchievementDefinition, AchievementState]] = []
            to_unlock: List[AchievementDefinition] = []

            for definition in self.catalog.list_by_category(category, criterion):
                state = await self.ledger.get_achievement_state(user_id, definition.id)
                if state.unlocked:
                    continue

                new_progress = step(state.progress, definition.max_progress)
                if new_progress == state.progress:
                    continue

                if new_progress >= definition.max_progress:
                    to_unlock.append(definition)
                else:
                    staged.append((definition, AchievementState(id=definition.id, progress=new_progress)))

            if staged:
                saved = await self.ledger.set_achievement_states(user_id, [s for _, s in staged])
                for (definition, _), state in zip(staged, saved):
                    record_achievement_progress(category.value)
                    self.notifier.publish(AchievementProgressEvent(
                        user_id=user_id,
                        achievement=definition,
                        progress=state.progress,
                        max_progress=definition.max_progress,
                    ))

            newly_unlocked = []
            for definition in to_unlock:
                try:
                    if await self.unlocker.unlock(user_id, definition):
                        newly_unlocked.append(definition)
                except PersistenceError as e:
                    logger.error(
                        f"Unlock of {definition.id} failed for user {user_id} after "
                        f"{len(newly_unlocked)} committed unlock(s)"
                    )
                    e.committed.extend(newly_unlocked)
                    raise

        if staged or newly_unlocked:
            logger.info(
                f"Evaluated {category.value} achievements for user {user_id}: "
                f"{len(staged)} progressed, {len(newly_unlocked)} unlocked"
            )
        return newly_unlocked
