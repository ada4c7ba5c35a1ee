"""User progression record owned by the identity store"""
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from progression_engine.models.achievement import AchievementState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserProgressionRecord(BaseModel):
    """
    Gamification state for one account.

    ``xp`` is lifetime total XP; ``level`` is derived from it and only grows.
    """
    user_id: str
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    streak_days: int = Field(default=0, ge=0)
    longest_streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[date] = None
    achievements: dict[str, AchievementState] = Field(default_factory=dict)
    stats: dict[str, int] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def check_streaks(self) -> "UserProgressionRecord":
        if self.longest_streak < self.streak_days:
            raise ValueError("longest_streak cannot be below streak_days")
        return self
