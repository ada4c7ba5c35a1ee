"""Progression events published to subscribers"""
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from progression_engine.models.achievement import AchievementDefinition


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str


class AchievementUnlockedEvent(_Event):
    type: Literal["achievement_unlocked"] = "achievement_unlocked"
    achievement: AchievementDefinition
    xp_awarded: int
    unlocked_at: datetime


class AchievementProgressEvent(_Event):
    type: Literal["achievement_progress"] = "achievement_progress"
    achievement: AchievementDefinition
    progress: int
    max_progress: int


class LevelUpEvent(_Event):
    type: Literal["level_up"] = "level_up"
    new_level: int
    total_xp: int
    xp_to_next_level: int


class XPGainedEvent(_Event):
    type: Literal["xp_gained"] = "xp_gained"
    amount: int
    source: str
    total_xp: int


ProgressionEvent = Annotated[
    Union[AchievementUnlockedEvent, AchievementProgressEvent, LevelUpEvent, XPGainedEvent],
    Field(discriminator="type"),
]
