"""Tests for configuration validation"""
import pytest
from unittest.mock import patch

from progression_engine import config


def test_defaults_are_valid():
    config.validate_config()


def test_default_leveling_values():
    assert config.XP_PER_LEVEL == 1000
    assert config.DAILY_XP_GOAL_MIN == 50
    assert config.DAILY_XP_GOAL_MAX == 500


def test_invalid_goal_bounds_rejected():
    with patch.object(config, "DAILY_XP_GOAL_MIN", 600):
        with pytest.raises(ValueError, match="DAILY_XP_GOAL_MIN"):
            config.validate_config()


def test_sentry_requires_dsn():
    with patch.object(config, "ENABLE_SENTRY", True), patch.object(config, "SENTRY_DSN", ""):
        with pytest.raises(ValueError, match="SENTRY_DSN"):
            config.validate_config()


def test_non_positive_timeout_rejected():
    with patch.object(config, "STORE_TIMEOUT_SECONDS", 0):
        with pytest.raises(ValueError):
            config.validate_config()


def test_unknown_activity_timezone_rejected():
    with patch.object(config, "ACTIVITY_TIMEZONE", "Mars/Olympus_Mons"):
        with pytest.raises(ValueError, match="ACTIVITY_TIMEZONE"):
            config.validate_config()
