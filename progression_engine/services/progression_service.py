"""
ProgressionService - Progression Business Logic

Public surface of the engine. Turns user actions (lessons, artwork, shares,
challenges, skill trees) into counters, achievement progress, XP and streaks
for the signed-in user.
"""

import logging
import math
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

from progression_engine.config import (
    ACTIVITY_TIMEZONE,
    DAILY_XP_GOAL_MAX,
    DAILY_XP_GOAL_MIN,
    DAILY_XP_GOAL_MULTIPLIER,
    PERFECT_SCORE_THRESHOLD,
)
from progression_engine.exceptions import (
    ErrorSeverity,
    PersistenceError,
    PreconditionError,
    ProgressionError,
    ValidationError,
)
from progression_engine.gamification.achievement_system import AchievementEvaluator
from progression_engine.gamification.catalog import (
    ANY_CRITERION,
    ARTWORK_SHARED,
    CHALLENGE_PARTICIPATION,
    CHALLENGE_WON,
    LESSONS_COMPLETED,
    PERFECT_LESSON,
    SKILL_TREE_COMPLETED,
    AchievementCatalog,
    build_default_catalog,
)
from progression_engine.gamification.events import EventNotifier, ProgressCallback
from progression_engine.gamification.feedback import CelebrationFeedback
from progression_engine.gamification.ledger import ProgressLedger
from progression_engine.gamification.locks import UserLockRegistry
from progression_engine.gamification.streak_system import StreakTracker
from progression_engine.gamification.unlock import UnlockCoordinator
from progression_engine.gamification.xp_system import xp_to_next_level
from progression_engine.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    AchievementProgressView,
    AchievementState,
    AchievementSummary,
)
from progression_engine.models.progression import UserProgressionRecord
from progression_engine.observability.error_reporting import report_error
from progression_engine.store.base import IdentityStore

logger = logging.getLogger(__name__)

# Raw counters kept on the progression record
TOTAL_LESSONS_COMPLETED = "totalLessonsCompleted"
PERFECT_LESSONS = "perfectLessons"
ARTWORKS_CREATED = "artworksCreated"
ARTWORKS_SHARED = "artworksShared"
CHALLENGES_COMPLETED = "challengesCompleted"
CHALLENGES_WON = "challengesWon"
SKILL_TREES_COMPLETED = "skillTreesCompleted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressionService:
    """
    Service for progression features.

    Responsibilities:
    - Recording user actions and their raw counters
    - Achievement evaluation for each action
    - Daily streak updates
    - Achievement summaries and the adaptive daily XP goal
    - Progress event subscriptions
    """

    def __init__(
        self,
        store: IdentityStore,
        catalog: Optional[AchievementCatalog] = None,
        notifier: Optional[EventNotifier] = None,
        feedback: Optional[CelebrationFeedback] = None,
        clock: Callable[[], datetime] = _utcnow,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize ProgressionService.

        Args:
            store: Identity store owning the progression records
            catalog: Achievement definitions (defaults to the built-in set); sealed here
            notifier: Event notifier (a fresh one by default)
            feedback: Celebration feedback sink
            clock: Returns the current UTC time
            today: Returns the user's calendar day for streaks. Defaults to
                the clock's date in ACTIVITY_TIMEZONE.
        """
        self.store = store
        self.catalog = catalog if catalog is not None else build_default_catalog()
        self.catalog.seal()
        self.notifier = notifier or EventNotifier()
        self.clock = clock
        self.today = today or self._activity_day

        self.locks = UserLockRegistry()
        self.ledger = ProgressLedger(store)
        self.unlocker = UnlockCoordinator(store, self.notifier, self.locks, feedback=feedback, clock=clock)
        self.evaluator = AchievementEvaluator(self.catalog, self.ledger, self.unlocker, self.notifier, self.locks)
        self.streaks = StreakTracker(store, self.evaluator, self.locks)
        logger.debug(f"ProgressionService initialized with {len(self.catalog)} achievements")

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def record_lesson_completion(self, lesson_id: str, score: float) -> Dict[str, Any]:
        """
        Record a finished lesson.

        Args:
            lesson_id: Lesson identifier
            score: Fraction of the lesson answered correctly, 0.0 - 1.0

        Returns:
            {
                'unlocked': list[AchievementDefinition],
                'perfect': bool,
                'streak': StreakUpdate or None,
                'errors': list[dict]  # secondary failures that were reported
            }

        Raises:
            ValidationError: score outside [0, 1]
            PreconditionError: no signed-in user
        """
        if isinstance(score, bool) or not isinstance(score, (int, float)) or not 0 <= score <= 1:
            raise ValidationError("Score must be between 0 and 1", field="score", value=score)

        user = await self._require_current_user("record_lesson_completion")
        result = self._new_result()
        perfect = score >= PERFECT_SCORE_THRESHOLD
        result['perfect'] = perfect

        await self._increment_stat(user.user_id, TOTAL_LESSONS_COMPLETED, result)
        if perfect:
            await self._increment_stat(user.user_id, PERFECT_LESSONS, result)
            await self._check(user.user_id, AchievementCategory.SKILL, result, criterion=PERFECT_LESSON)

        await self._check(user.user_id, AchievementCategory.SKILL, result)
        await self._check(user.user_id, AchievementCategory.MILESTONE, result, criterion=LESSONS_COMPLETED)
        await self._record_streak(user.user_id, result)

        logger.info(
            f"Lesson {lesson_id} completed by user {user.user_id} (score={score:.2f}): "
            f"achievements={len(result['unlocked'])}, errors={len(result['errors'])}"
        )
        return result

    async def record_artwork_creation(self, artwork_id: str) -> Dict[str, Any]:
        """Record a newly created artwork"""
        user = await self._require_current_user("record_artwork_creation")
        result = self._new_result()

        await self._increment_stat(user.user_id, ARTWORKS_CREATED, result)
        await self._check(user.user_id, AchievementCategory.CREATIVITY, result)

        logger.info(f"Artwork {artwork_id} created by user {user.user_id}")
        return result

    async def record_artwork_shared(self, artwork_id: str) -> Dict[str, Any]:
        """Record an artwork share"""
        user = await self._require_current_user("record_artwork_shared")
        result = self._new_result()

        await self._increment_stat(user.user_id, ARTWORKS_SHARED, result)
        await self._check(user.user_id, AchievementCategory.SOCIAL, result, criterion=ARTWORK_SHARED)

        logger.info(f"Artwork {artwork_id} shared by user {user.user_id}")
        return result

    async def record_challenge_participation(self, challenge_id: str, won: bool) -> Dict[str, Any]:
        """Record taking part in (and possibly winning) a challenge"""
        user = await self._require_current_user("record_challenge_participation")
        result = self._new_result()

        await self._increment_stat(user.user_id, CHALLENGES_COMPLETED, result)
        await self._check(user.user_id, AchievementCategory.SOCIAL, result, criterion=CHALLENGE_PARTICIPATION)
        if won:
            await self._increment_stat(user.user_id, CHALLENGES_WON, result)
            await self._check(user.user_id, AchievementCategory.SOCIAL, result, criterion=CHALLENGE_WON)

        logger.info(f"Challenge {challenge_id} recorded for user {user.user_id} (won={won})")
        return result

    async def record_skill_tree_completion(self, tree_id: str) -> Dict[str, Any]:
        """Record completing every lesson of a skill tree"""
        user = await self._require_current_user("record_skill_tree_completion")
        result = self._new_result()

        await self._increment_stat(user.user_id, SKILL_TREES_COMPLETED, result)
        await self._check(user.user_id, AchievementCategory.MILESTONE, result, criterion=SKILL_TREE_COMPLETED)

        logger.info(f"Skill tree {tree_id} completed by user {user.user_id}")
        return result

    async def check_achievements(
        self,
        category: AchievementCategory,
        delta: int = 1,
        criterion: Any = ANY_CRITERION,
    ) -> List[AchievementDefinition]:
        """
        Advance the current user's achievements of ``category`` by ``delta``.

        Every definition of the category advances unless ``criterion`` narrows
        it. STREAK achievements take ``delta`` as the current streak length.
        Unlike the record_* actions, persistence failures propagate; the
        error's ``committed`` lists unlocks saved before the failure.

        Raises:
            InvalidDeltaError: delta is not a positive integer
            PreconditionError: no signed-in user
            PersistenceError: progress could not be saved
        """
        user = await self._require_current_user("check_achievements")
        return await self.evaluator.evaluate(user.user_id, category, delta, criterion=criterion)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_achievement_progress(self) -> AchievementSummary:
        """Totals across the catalog for the current user"""
        user = await self.store.get_current_user()
        definitions = self.catalog.all()
        if user is None:
            return AchievementSummary(total=len(definitions), unlocked=0, in_progress=[], locked=definitions)

        unlocked = 0
        in_progress: List[AchievementProgressView] = []
        locked: List[AchievementDefinition] = []
        for definition in definitions:
            state = user.achievements.get(definition.id)
            if state is not None and state.unlocked:
                unlocked += 1
            elif state is not None and state.progress > 0:
                in_progress.append(AchievementProgressView(definition=definition, progress=state.progress))
            else:
                locked.append(definition)

        return AchievementSummary(
            total=len(definitions),
            unlocked=unlocked,
            in_progress=in_progress,
            locked=locked,
        )

    async def calculate_daily_xp_goal(self) -> int:
        """
        Adaptive daily XP target.

        Average XP per day since account creation, scaled by 1.2 and clamped
        to [50, 500]. Users with no profile get the minimum.
        """
        user = await self.store.get_current_user()
        if user is None:
            return DAILY_XP_GOAL_MIN

        days = math.floor((self.clock() - user.created_at).total_seconds() / 86400)
        avg_xp_per_day = user.xp / max(1, days)

        # Set goal slightly above average to encourage growth
        goal = math.floor(avg_xp_per_day * DAILY_XP_GOAL_MULTIPLIER)
        return max(DAILY_XP_GOAL_MIN, min(DAILY_XP_GOAL_MAX, goal))

    async def get_user_progress(self) -> Optional[Dict[str, Any]]:
        """Level, XP and streak overview for the current user, or None"""
        user = await self.store.get_current_user()
        if user is None:
            return None

        return {
            'user_id': user.user_id,
            'level': user.level,
            'xp': user.xp,
            'xp_to_next_level': xp_to_next_level(user.level, user.xp),
            'streak_days': user.streak_days,
            'longest_streak': user.longest_streak,
            'last_activity_date': user.last_activity_date,
            'achievements_unlocked': sum(1 for s in user.achievements.values() if s.unlocked),
            'stats': dict(user.stats),
        }

    async def get_achievement(self, achievement_id: str) -> Optional[AchievementState]:
        """Current user's state for one achievement, or None if never progressed"""
        user = await self.store.get_current_user()
        if user is None:
            return None
        return user.achievements.get(achievement_id)

    def get_achievement_definition(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return self.catalog.get(achievement_id)

    def subscribe_to_progress(self, callback: ProgressCallback) -> Callable[[], None]:
        """Receive every progression event; returns the unsubscribe handle"""
        return self.notifier.subscribe(callback)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _new_result() -> Dict[str, Any]:
        return {
            'unlocked': [],
            'streak': None,
            'errors': [],
        }

    async def _require_current_user(self, operation: str) -> UserProgressionRecord:
        user = await self.store.get_current_user()
        if user is None:
            raise PreconditionError("No active profile", operation=operation)
        return user

    async def _increment_stat(self, user_id: str, name: str, result: Dict[str, Any]) -> None:
        try:
            async with self.locks.hold(user_id):
                await self.store.increment_stat(user_id, name)
        except ProgressionError as e:
            self._record_failure(e, ErrorSeverity.LOW, result, stat=name)

    async def _check(
        self,
        user_id: str,
        category: AchievementCategory,
        result: Dict[str, Any],
        criterion: Optional[str] = None,
    ) -> None:
        try:
            unlocked = await self.evaluator.evaluate(user_id, category, 1, criterion=criterion)
        except ProgressionError as e:
            self._keep_committed(e, result)
            self._record_failure(e, ErrorSeverity.MEDIUM, result, category=category.value, criterion=criterion)
            return
        result['unlocked'].extend(unlocked)

    async def _record_streak(self, user_id: str, result: Dict[str, Any]) -> None:
        try:
            update = await self.streaks.record_activity(user_id, self.today())
        except ProgressionError as e:
            self._keep_committed(e, result)
            self._record_failure(e, ErrorSeverity.MEDIUM, result, step="record_activity")
            return
        result['streak'] = update
        result['unlocked'].extend(update.unlocked)

    def _activity_day(self) -> date:
        return self.clock().astimezone(ZoneInfo(ACTIVITY_TIMEZONE)).date()

    @staticmethod
    def _keep_committed(error: ProgressionError, result: Dict[str, Any]) -> None:
        # Unlocks saved before the failing write stay in the result
        if isinstance(error, PersistenceError):
            result['unlocked'].extend(error.committed)

    @staticmethod
    def _record_failure(
        error: ProgressionError,
        severity: ErrorSeverity,
        result: Dict[str, Any],
        **context: Any,
    ) -> None:
        logger.warning(f"Secondary progression step failed ({severity.value}): {error.message}")
        report_error(error, severity=severity, context=context)
        result['errors'].append({**error.to_dict(), 'severity': severity.value})
