"""Pydantic models for progression state and events"""
from progression_engine.models.achievement import (
    AchievementCategory,
    AchievementRarity,
    AchievementDefinition,
    AchievementState,
    AchievementProgressView,
    AchievementSummary,
)
from progression_engine.models.progression import UserProgressionRecord
from progression_engine.models.events import (
    AchievementUnlockedEvent,
    AchievementProgressEvent,
    LevelUpEvent,
    XPGainedEvent,
    ProgressionEvent,
)

__all__ = [
    "AchievementCategory",
    "AchievementRarity",
    "AchievementDefinition",
    "AchievementState",
    "AchievementProgressView",
    "AchievementSummary",
    "UserProgressionRecord",
    "AchievementUnlockedEvent",
    "AchievementProgressEvent",
    "LevelUpEvent",
    "XPGainedEvent",
    "ProgressionEvent",
]
