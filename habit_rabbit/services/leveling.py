"""
Leveling curve: geometric progression of total XP.

Level 1 -> 2 costs BASE_XP, every following level costs GROWTH_FACTOR times the
previous one. Total XP needed to reach level L:

    XP_total(L) = SCALE_FACTOR * (GROWTH_FACTOR ** (L - 1) - 1)

Thresholds are rounded half-up to whole points. level_for_points() starts from the
logarithmic inverse and then snaps to the rounded thresholds, so a total sitting
exactly on a threshold always lands on that level.
"""
from __future__ import annotations
import math

BASE_XP = 100
GROWTH_FACTOR = 1.1
SCALE_FACTOR = BASE_XP / (GROWTH_FACTOR - 1)  # 1000
_SCALE = round(SCALE_FACTOR)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def xp_for_level(level: int) -> int:
    """Total XP required to reach `level`."""
    if level <= 1:
        return 0
    return _round_half_up(SCALE_FACTOR * (GROWTH_FACTOR ** (level - 1) - 1))


def level_for_points(points: int) -> int:
    if points <= 0:
        return 1
    # log of the integer sum stays finite for totals beyond float range
    ratio = math.log(points + _SCALE) - math.log(_SCALE)
    level = max(1, math.floor(ratio / math.log(GROWTH_FACTOR) + 1))
    try:
        # float noise around exact thresholds
        while xp_for_level(level + 1) <= points:
            level += 1
        while level > 1 and xp_for_level(level) > points:
            level -= 1
    except OverflowError:
        # thresholds this high are not representable; the log estimate stands
        pass
    return level


def progress_to_next_level(points: int) -> float:
    """Fraction of the current level already earned, in [0, 1)."""
    level = level_for_points(points)
    current = xp_for_level(level)
    required = xp_for_level(level + 1) - current
    return max(0.0, (points - current) / required)


def points_to_next_level(points: int) -> int:
    return xp_for_level(level_for_points(points) + 1) - points
