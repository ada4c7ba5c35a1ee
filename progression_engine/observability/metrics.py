"""
Prometheus metrics definitions for the progression engine.

Metrics are organized by category:
- Achievement metrics: unlocks, progress updates
- XP metrics: XP awarded, level-ups
- Streak metrics: streak outcomes
- Notification metrics: subscriber failures
- Persistence metrics: failed writes, retries
"""

import logging
from prometheus_client import Counter

logger = logging.getLogger(__name__)

# =============================================================================
# Achievement Metrics
# =============================================================================

achievements_unlocked_total = Counter(
    "progression_achievements_unlocked_total",
    "Total achievements unlocked",
    ["category", "rarity"],
)

achievement_progress_updates_total = Counter(
    "progression_achievement_progress_updates_total",
    "Total non-terminal achievement progress updates",
    ["category"],
)

# =============================================================================
# XP Metrics
# =============================================================================

xp_awarded_total = Counter(
    "progression_xp_awarded_total",
    "Total XP awarded",
    ["source"],  # source: achievement/bonus/...
)

level_ups_total = Counter(
    "progression_level_ups_total",
    "Total levels gained",
)

# =============================================================================
# Streak Metrics
# =============================================================================

streak_updates_total = Counter(
    "progression_streak_updates_total",
    "Total streak updates by outcome",
    ["outcome"],  # outcome: started/continued/reset/same_day
)

# =============================================================================
# Notification Metrics
# =============================================================================

subscriber_failures_total = Counter(
    "progression_subscriber_failures_total",
    "Subscriber callbacks that raised while handling an event",
    ["event_type"],
)

# =============================================================================
# Persistence Metrics
# =============================================================================

persistence_failures_total = Counter(
    "progression_persistence_failures_total",
    "Identity store writes that failed after retries",
    ["operation"],
)

persistence_retries_total = Counter(
    "progression_persistence_retries_total",
    "Retry attempts against the identity store",
    ["operation"],
)


# =============================================================================
# Helper Functions
# =============================================================================

def record_achievement_unlocked(category: str, rarity: str) -> None:
    achievements_unlocked_total.labels(category=category, rarity=rarity).inc()


def record_achievement_progress(category: str) -> None:
    achievement_progress_updates_total.labels(category=category).inc()


def record_xp_awarded(source: str, amount: int) -> None:
    if amount > 0:
        xp_awarded_total.labels(source=source).inc(amount)


def record_level_ups(count: int) -> None:
    if count > 0:
        level_ups_total.inc(count)


def record_streak_update(outcome: str) -> None:
    streak_updates_total.labels(outcome=outcome).inc()


def record_subscriber_failure(event_type: str) -> None:
    subscriber_failures_total.labels(event_type=event_type).inc()


def record_persistence_failure(operation: str) -> None:
    persistence_failures_total.labels(operation=operation).inc()


def record_persistence_retry(operation: str) -> None:
    persistence_retries_total.labels(operation=operation).inc()
