"""Celebration feedback keyed by achievement rarity"""
from enum import Enum
from typing import Callable
import logging

from progression_engine.models.achievement import AchievementRarity

logger = logging.getLogger(__name__)


class FeedbackIntensity(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"
    SUCCESS = "success"


RARITY_FEEDBACK = {
    AchievementRarity.COMMON: FeedbackIntensity.LIGHT,
    AchievementRarity.RARE: FeedbackIntensity.MEDIUM,
    AchievementRarity.EPIC: FeedbackIntensity.HEAVY,
    AchievementRarity.LEGENDARY: FeedbackIntensity.SUCCESS,
}

CelebrationFeedback = Callable[[FeedbackIntensity], None]


def intensity_for(rarity: AchievementRarity) -> FeedbackIntensity:
    return RARITY_FEEDBACK.get(rarity, FeedbackIntensity.LIGHT)


class LoggingFeedback:
    """Default feedback sink for headless runs"""

    def __call__(self, intensity: FeedbackIntensity) -> None:
        logger.info(f"Celebration feedback: {intensity.value}")
