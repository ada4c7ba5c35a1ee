"""
Achievement Catalog

Static registry of achievement definitions. Populated once when the engine is
built, then sealed; iteration order is registration order.
"""

from typing import Dict, Iterable, Iterator, List, Optional
import logging

from progression_engine.exceptions import DuplicateDefinitionError, PreconditionError
from progression_engine.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    AchievementRarity,
)

logger = logging.getLogger(__name__)

# Sentinel for "every definition of the category, whatever its criterion"
ANY_CRITERION = object()

# Criteria used by the built-in achievements
LESSONS_COMPLETED = "lessons_completed"
PERFECT_LESSON = "perfect_lesson"
ARTWORK_SHARED = "artwork_shared"
CHALLENGE_PARTICIPATION = "challenge_participation"
CHALLENGE_WON = "challenge_won"
SKILL_TREE_COMPLETED = "skill_tree_completed"


class AchievementCatalog:
    """Registry of AchievementDefinition keyed by id"""

    def __init__(self, definitions: Optional[Iterable[AchievementDefinition]] = None):
        self._definitions: Dict[str, AchievementDefinition] = {}
        self._sealed = False
        for definition in definitions or ():
            self.register(definition)

    def register(self, definition: AchievementDefinition) -> None:
        if self._sealed:
            raise PreconditionError(
                f"Catalog is sealed; cannot register '{definition.id}'",
                operation="register_achievement",
                user_message="Achievements cannot be changed while the app is running.",
            )
        if definition.id in self._definitions:
            raise DuplicateDefinitionError(definition.id, operation="register_achievement")
        self._definitions[definition.id] = definition
        logger.debug(f"Registered achievement {definition.id} ({definition.category.value})")

    def seal(self) -> None:
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    def get(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return self._definitions.get(achievement_id)

    def list_by_category(
        self,
        category: AchievementCategory,
        criterion=ANY_CRITERION,
    ) -> Iterator[AchievementDefinition]:
        """
        Definitions of ``category`` in registration order.

        With ``criterion`` given (``None`` included), only definitions whose
        criterion equals it are produced.
        """
        for definition in self._definitions.values():
            if definition.category != category:
                continue
            if criterion is not ANY_CRITERION and definition.criterion != criterion:
                continue
            yield definition

    def all(self) -> List[AchievementDefinition]:
        return list(self._definitions.values())

    def __len__(self) -> int:
        return len(self._definitions)

    def __contains__(self, achievement_id: object) -> bool:
        return achievement_id in self._definitions

    def __iter__(self) -> Iterator[AchievementDefinition]:
        return iter(list(self._definitions.values()))


def _definition(
    id: str,
    category: AchievementCategory,
    title: str,
    description: str,
    max_progress: int,
    xp_reward: int,
    rarity: AchievementRarity,
    icon_ref: Optional[str] = None,
    criterion: Optional[str] = None,
) -> AchievementDefinition:
    return AchievementDefinition(
        id=id,
        category=category,
        title=title,
        description=description,
        icon_ref=icon_ref or f"achievement_{id}",
        max_progress=max_progress,
        xp_reward=xp_reward,
        rarity=rarity,
        criterion=criterion,
    )


DEFAULT_ACHIEVEMENTS: List[AchievementDefinition] = [
    # Lesson completion
    _definition("first_lesson", AchievementCategory.SKILL, "First Steps",
                "Complete your first lesson", 1, 50, AchievementRarity.COMMON),
    _definition("lesson_master_10", AchievementCategory.SKILL, "Dedicated Learner",
                "Complete 10 lessons", 10, 200, AchievementRarity.RARE,
                icon_ref="achievement_lessons_10"),
    _definition("lesson_master_50", AchievementCategory.SKILL, "Knowledge Seeker",
                "Complete 50 lessons", 50, 500, AchievementRarity.EPIC,
                icon_ref="achievement_lessons_50"),
    _definition("lesson_master_100", AchievementCategory.MILESTONE, "Master Scholar",
                "Complete 100 lessons", 100, 1000, AchievementRarity.LEGENDARY,
                icon_ref="achievement_lessons_100", criterion=LESSONS_COMPLETED),

    # Streaks (absolute day count)
    _definition("streak_7", AchievementCategory.STREAK, "Week Warrior",
                "Maintain a 7-day streak", 7, 100, AchievementRarity.COMMON),
    _definition("streak_30", AchievementCategory.STREAK, "Dedicated Artist",
                "Maintain a 30-day streak", 30, 300, AchievementRarity.RARE),
    _definition("streak_100", AchievementCategory.STREAK, "Centurion",
                "Maintain a 100-day streak", 100, 1000, AchievementRarity.LEGENDARY),

    # Artwork
    _definition("first_artwork", AchievementCategory.CREATIVITY, "Creative Debut",
                "Create your first artwork", 1, 50, AchievementRarity.COMMON),
    _definition("artwork_10", AchievementCategory.CREATIVITY, "Prolific Creator",
                "Create 10 artworks", 10, 150, AchievementRarity.RARE),
    _definition("artwork_shared", AchievementCategory.SOCIAL, "Sharing is Caring",
                "Share your first artwork", 1, 75, AchievementRarity.COMMON,
                icon_ref="achievement_share", criterion=ARTWORK_SHARED),

    # Skill mastery
    _definition("perfect_lesson", AchievementCategory.SKILL, "Perfectionist",
                "Complete a lesson with perfect score", 1, 100, AchievementRarity.COMMON,
                icon_ref="achievement_perfect", criterion=PERFECT_LESSON),
    _definition("skill_tree_complete", AchievementCategory.MILESTONE, "Tree Climber",
                "Complete an entire skill tree", 1, 500, AchievementRarity.EPIC,
                icon_ref="achievement_tree", criterion=SKILL_TREE_COMPLETED),

    # Challenges
    _definition("challenge_participant", AchievementCategory.SOCIAL, "Challenger",
                "Participate in your first challenge", 1, 50, AchievementRarity.COMMON,
                icon_ref="achievement_challenge", criterion=CHALLENGE_PARTICIPATION),
    _definition("challenge_winner", AchievementCategory.SOCIAL, "Champion",
                "Win a daily challenge", 1, 300, AchievementRarity.EPIC,
                icon_ref="achievement_winner", criterion=CHALLENGE_WON),
]


def build_default_catalog() -> AchievementCatalog:
    """Catalog with the built-in achievements, sealed"""
    catalog = AchievementCatalog(DEFAULT_ACHIEVEMENTS)
    catalog.seal()
    return catalog
