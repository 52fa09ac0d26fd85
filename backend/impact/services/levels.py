# backend/impact/services/levels.py
"""Citizen levels.

A participant's tier is never stored. It is always recomputed from the
accumulated points against ``LEVELS``, an ordered table of contiguous ranges
starting at 0 whose last entry is open-ended. Achievements work the same way
over the completed-mission count.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class Level:
    rank: int
    name: str
    icon: str
    min_points: int
    max_points: float  # math.inf for the top tier

    def contains(self, points: int) -> bool:
        return self.min_points <= points <= self.max_points


@dataclass(frozen=True)
class LevelChange:
    previous: Level
    current: Level

    @property
    def leveled_up(self) -> bool:
        return self.previous != self.current


LEVELS: tuple[Level, ...] = (
    Level(0, "New Citizen", "🌱", 0, 9),
    Level(1, "Good Citizen", "🌿", 10, 19),
    Level(2, "Super Citizen", "⭐", 20, 49),
    Level(3, "Exemplary Citizen", "🏆", 50, 99),
    Level(4, "Local Hero", "🦸", 100, 199),
    Level(5, "Legend", "👑", 200, math.inf),
)


def validate_table(levels: Sequence[Level]) -> None:
    """Raise ValueError unless the ranges are contiguous over [0, inf)."""
    if not levels:
        raise ValueError("level table is empty")
    if levels[0].min_points != 0:
        raise ValueError("first level must start at 0 points")
    for lower, upper in zip(levels, levels[1:]):
        if lower.max_points < lower.min_points:
            raise ValueError(f"level {lower.name!r} has an empty range")
        if upper.min_points != lower.max_points + 1:
            raise ValueError(f"levels {lower.name!r} and {upper.name!r} are not contiguous")
    if levels[-1].max_points != math.inf:
        raise ValueError("last level must be open-ended")


validate_table(LEVELS)


def level_for(points: int, levels: Sequence[Level] = LEVELS) -> Level:
    if points < 0:
        raise ValueError("points cannot be negative")
    for level in levels:
        if level.contains(points):
            return level
    # unreachable for a validated table
    raise ValueError(f"no level matches {points} points")


def evaluate(before: int, after: int, levels: Sequence[Level] = LEVELS) -> LevelChange:
    return LevelChange(previous=level_for(before, levels), current=level_for(after, levels))


def next_level(points: int, levels: Sequence[Level] = LEVELS) -> Optional[Level]:
    current = level_for(points, levels)
    for level in levels:
        if level.min_points > current.min_points:
            return level
    return None


def points_to_next(points: int, levels: Sequence[Level] = LEVELS) -> Optional[int]:
    upcoming = next_level(points, levels)
    return None if upcoming is None else upcoming.min_points - points


# ----------------------------------------------------------------------
# Achievements
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Achievement:
    key: str
    name: str
    icon: str
    min_missions: int


# derived from the completed-mission count, never stored
ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("first_mission", "First Mission", "🎯", 1),
)


def achievements_for(completed_missions: int, achievements: Sequence[Achievement] = ACHIEVEMENTS) -> list[Achievement]:
    return [a for a in achievements if completed_missions >= a.min_missions]


def new_achievements(
    before: int, after: int, achievements: Sequence[Achievement] = ACHIEVEMENTS
) -> list[Achievement]:
    """Achievements unlocked by going from ``before`` to ``after`` completed missions."""
    return [a for a in achievements if before < a.min_missions <= after]
