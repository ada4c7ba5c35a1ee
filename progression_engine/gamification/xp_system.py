"""
XP and Leveling System

Pure level math over lifetime XP.

Leveling Curve:
- Leaving level N requires N * XP_PER_LEVEL total XP (1000, 2000, 3000, ...)
- One XP award may cross several levels; every crossed level is reported

XP never decreases, so levels never decrease either.
"""

from dataclasses import dataclass, field
from typing import List
import logging

from progression_engine.config import XP_PER_LEVEL
from progression_engine.exceptions import InvalidXPError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LevelUpStep:
    """One level crossed during an XP award"""
    level: int
    xp_to_next_level: int


@dataclass(frozen=True)
class LevelResult:
    level: int
    total_xp: int
    xp_to_next_level: int
    level_ups: List[LevelUpStep] = field(default_factory=list)

    @property
    def leveled_up(self) -> bool:
        return bool(self.level_ups)


def xp_required_for_level(level: int) -> int:
    """Total lifetime XP needed to leave ``level``"""
    return level * XP_PER_LEVEL


def xp_to_next_level(level: int, total_xp: int) -> int:
    return max(0, xp_required_for_level(level) - total_xp)


def level_for_xp(total_xp: int) -> int:
    """Level a user with ``total_xp`` lifetime XP has reached"""
    if total_xp < 0:
        raise InvalidXPError(value=total_xp)
    return total_xp // XP_PER_LEVEL + 1


def apply_xp(current_level: int, current_xp: int, delta: int) -> LevelResult:
    """
    Add ``delta`` XP to a level/XP pair.

    Args:
        current_level: Level before the award (>= 1)
        current_xp: Lifetime XP before the award
        delta: XP to add (>= 0)

    Returns:
        LevelResult with the new level, new total and one LevelUpStep per
        level crossed, in ascending order

    Raises:
        InvalidXPError: if delta is negative

    Example:
        >>> apply_xp(1, 0, 2500).level
        3
    """
    if isinstance(delta, bool) or not isinstance(delta, int) or delta < 0:
        raise InvalidXPError(value=delta)

    level = max(1, current_level)
    total_xp = current_xp + delta
    level_ups: List[LevelUpStep] = []

    while total_xp >= xp_required_for_level(level):
        level += 1
        level_ups.append(LevelUpStep(level=level, xp_to_next_level=xp_to_next_level(level, total_xp)))

    if level_ups:
        logger.debug(f"XP {current_xp} -> {total_xp} crossed {len(level_ups)} level(s), now level {level}")

    return LevelResult(
        level=level,
        total_xp=total_xp,
        xp_to_next_level=xp_to_next_level(level, total_xp),
        level_ups=level_ups,
    )
