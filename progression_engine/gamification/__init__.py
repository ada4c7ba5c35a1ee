"""
Gamification core for the progression engine

This package implements:
- Achievement catalog and per-user progress ledger
- XP and leveling math
- Achievement evaluation and unlocking
- Daily streak tracking
- Progression event notification
"""

from progression_engine.gamification.catalog import AchievementCatalog, build_default_catalog
from progression_engine.gamification.xp_system import apply_xp, xp_required_for_level, level_for_xp
from progression_engine.gamification.ledger import ProgressLedger
from progression_engine.gamification.events import EventBus, EventNotifier
from progression_engine.gamification.locks import UserLockRegistry
from progression_engine.gamification.unlock import UnlockCoordinator
from progression_engine.gamification.achievement_system import AchievementEvaluator
from progression_engine.gamification.streak_system import StreakTracker, StreakUpdate

__all__ = [
    "AchievementCatalog",
    "build_default_catalog",
    "apply_xp",
    "xp_required_for_level",
    "level_for_xp",
    "ProgressLedger",
    "EventBus",
    "EventNotifier",
    "UserLockRegistry",
    "UnlockCoordinator",
    "AchievementEvaluator",
    "StreakTracker",
    "StreakUpdate",
]
