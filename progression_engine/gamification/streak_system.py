"""
Daily Streak Tracking System

Derives the current and longest daily-activity streak from the last activity
date. Calendar days are compared as dates; callers decide which timezone
"today" is in.

Rules:
- First activity starts a streak of 1
- Same day: already counted, nothing changes
- Next day: streak continues (+1)
- Gap of more than one day: streak restarts at 1
- A date before the last activity is rejected
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional
import logging

from progression_engine.exceptions import InvalidTimestampError
from progression_engine.gamification.achievement_system import AchievementEvaluator
from progression_engine.gamification.ledger import load_record, save_record
from progression_engine.gamification.locks import UserLockRegistry
from progression_engine.models.achievement import AchievementCategory, AchievementDefinition
from progression_engine.observability.metrics import record_streak_update
from progression_engine.store.base import IdentityStore

logger = logging.getLogger(__name__)

STARTED = "started"
CONTINUED = "continued"
RESET = "reset"
SAME_DAY = "same_day"


@dataclass
class StreakUpdate:
    current_streak: int
    longest_streak: int
    previous_streak: int
    outcome: str
    unlocked: List[AchievementDefinition] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.outcome != SAME_DAY


def next_streak(current: int, last_activity: Optional[date], today: date) -> tuple[int, str]:
    """
    Streak length after activity on ``today``.

    Raises:
        InvalidTimestampError: if today is before last_activity
    """
    if last_activity is None:
        return 1, STARTED
    if today < last_activity:
        raise InvalidTimestampError(
            f"Activity date {today.isoformat()} is before last activity {last_activity.isoformat()}",
            value=today.isoformat(),
            context={"last_activity_date": last_activity.isoformat()},
        )
    if today == last_activity:
        return current, SAME_DAY
    if today - last_activity == timedelta(days=1):
        return current + 1, CONTINUED
    return 1, RESET


class StreakTracker:
    """Maintains streak_days / longest_streak on the progression record"""

    def __init__(
        self,
        store: IdentityStore,
        evaluator: AchievementEvaluator,
        locks: UserLockRegistry,
    ):
        self.store = store
        self.evaluator = evaluator
        self.locks = locks

    async def record_activity(self, user_id: str, today: date) -> StreakUpdate:
        """
        Count activity on ``today`` toward the user's streak.

        Streak achievements are evaluated against the resulting streak length.

        Raises:
            InvalidTimestampError: today is earlier than the last activity date
            PreconditionError: the user has no progression record
            PersistenceError: the streak could not be saved
        """
        async with self.locks.hold(user_id):
            record = await load_record(self.store, user_id, "record_activity")
            previous = record.streak_days
            current, outcome = next_streak(previous, record.last_activity_date, today)

            if outcome != SAME_DAY:
                record.streak_days = current
                record.longest_streak = max(record.longest_streak, current)
                record.last_activity_date = today
                await save_record(self.store, record, "record_activity")

                if outcome == RESET:
                    logger.info(f"User {user_id} streak broken. Was {previous}, starting fresh on {today}")
                else:
                    logger.info(f"Updated streak for user {user_id}: {previous} → {current} days")

            record_streak_update(outcome)
            update = StreakUpdate(
                current_streak=record.streak_days,
                longest_streak=record.longest_streak,
                previous_streak=previous,
                outcome=outcome,
            )

            update.unlocked = await self.evaluator.evaluate_absolute(
                user_id, AchievementCategory.STREAK, update.current_streak
            )

        return update
