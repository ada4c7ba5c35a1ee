"""Configuration management"""
import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

load_dotenv()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Identity store / persistence
STORE_TIMEOUT_SECONDS: float = float(os.getenv("STORE_TIMEOUT_SECONDS", "5.0"))
PERSIST_MAX_RETRIES: int = int(os.getenv("PERSIST_MAX_RETRIES", "2"))
RETRY_BASE_DELAY: float = float(os.getenv("RETRY_BASE_DELAY", "0.05"))  # seconds
RETRY_MAX_DELAY: float = float(os.getenv("RETRY_MAX_DELAY", "1.0"))  # seconds

# Leveling
XP_PER_LEVEL: int = int(os.getenv("XP_PER_LEVEL", "1000"))

# Lessons
PERFECT_SCORE_THRESHOLD: float = float(os.getenv("PERFECT_SCORE_THRESHOLD", "0.95"))

# Streaks: IANA timezone whose calendar day counts as "today"
ACTIVITY_TIMEZONE: str = os.getenv("ACTIVITY_TIMEZONE", "UTC")

# Adaptive daily XP goal
DAILY_XP_GOAL_MIN: int = int(os.getenv("DAILY_XP_GOAL_MIN", "50"))
DAILY_XP_GOAL_MAX: int = int(os.getenv("DAILY_XP_GOAL_MAX", "500"))
DAILY_XP_GOAL_MULTIPLIER: float = float(os.getenv("DAILY_XP_GOAL_MULTIPLIER", "1.2"))

# Sentry error reporting
ENABLE_SENTRY: bool = os.getenv("ENABLE_SENTRY", "false").lower() == "true"
SENTRY_DSN: str = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT: str = os.getenv("SENTRY_ENVIRONMENT", "development")
SENTRY_TRACES_SAMPLE_RATE: float = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0"))


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    if STORE_TIMEOUT_SECONDS <= 0:
        raise ValueError("STORE_TIMEOUT_SECONDS must be positive")
    if PERSIST_MAX_RETRIES < 0:
        raise ValueError("PERSIST_MAX_RETRIES cannot be negative")
    if XP_PER_LEVEL < 1:
        raise ValueError("XP_PER_LEVEL must be at least 1")
    if not 0 < PERFECT_SCORE_THRESHOLD <= 1:
        raise ValueError("PERFECT_SCORE_THRESHOLD must be in (0, 1]")
    if DAILY_XP_GOAL_MIN > DAILY_XP_GOAL_MAX:
        raise ValueError("DAILY_XP_GOAL_MIN cannot exceed DAILY_XP_GOAL_MAX")
    try:
        ZoneInfo(ACTIVITY_TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"ACTIVITY_TIMEZONE is not a known timezone: {ACTIVITY_TIMEZONE}")
    if ENABLE_SENTRY and not SENTRY_DSN:
        raise ValueError("SENTRY_DSN is required when ENABLE_SENTRY is true")
