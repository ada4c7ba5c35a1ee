"""Achievement models for gamification"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional
from datetime import datetime


class AchievementCategory(str, Enum):
    """Achievement categories"""
    SKILL = "skill"
    STREAK = "streak"
    CREATIVITY = "creativity"
    SOCIAL = "social"
    MILESTONE = "milestone"


class AchievementRarity(str, Enum):
    """Achievement rarity, drives celebration intensity only"""
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class AchievementDefinition(BaseModel):
    """Achievement definition (immutable once registered)"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    category: AchievementCategory
    title: str
    description: str
    icon_ref: str
    max_progress: int = Field(ge=1)
    xp_reward: int = Field(ge=0)
    rarity: AchievementRarity = AchievementRarity.COMMON
    # Narrows which evaluations of the category advance this achievement
    criterion: Optional[str] = None


class AchievementState(BaseModel):
    """Per-user progress toward one achievement"""
    id: str
    progress: int = Field(default=0, ge=0)
    unlocked_at: Optional[datetime] = None

    @property
    def unlocked(self) -> bool:
        return self.unlocked_at is not None


class AchievementProgressView(BaseModel):
    """An achievement with partial progress"""
    definition: AchievementDefinition
    progress: int

    @property
    def percentage(self) -> int:
        return min(100, int(self.progress / self.definition.max_progress * 100))


class AchievementSummary(BaseModel):
    """Totals for the achievements screen"""
    total: int
    unlocked: int
    in_progress: list[AchievementProgressView] = Field(default_factory=list)
    locked: list[AchievementDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_counts(self) -> "AchievementSummary":
        if self.unlocked + len(self.in_progress) + len(self.locked) != self.total:
            raise ValueError("unlocked, in-progress and locked must add up to total")
        return self
