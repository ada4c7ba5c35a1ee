"""Progression & achievement engine: XP, levels, streaks and achievements"""

__version__ = "0.1.0"
