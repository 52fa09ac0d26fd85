# backend/tests/test_levels.py
import math

import pytest

from impact.services import levels
from impact.services.levels import (
    LEVELS,
    Level,
    achievements_for,
    evaluate,
    level_for,
    new_achievements,
    next_level,
    points_to_next,
    validate_table,
)


def test_table_is_contiguous_from_zero():
    validate_table(LEVELS)
    assert LEVELS[0].min_points == 0
    assert LEVELS[-1].max_points == math.inf


@pytest.mark.parametrize(
    "points,name",
    [
        (0, "New Citizen"),
        (9, "New Citizen"),
        (10, "Good Citizen"),
        (19, "Good Citizen"),
        (20, "Super Citizen"),
        (99, "Exemplary Citizen"),
        (100, "Local Hero"),
        (200, "Legend"),
        (10_000, "Legend"),
    ],
)
def test_level_for_boundaries(points, name):
    assert level_for(points).name == name


def test_exactly_one_level_matches_every_point_value():
    for p in range(0, 400):
        assert sum(1 for lv in LEVELS if lv.contains(p)) == 1


def test_tiers_are_monotonic():
    ranks = [level_for(p).rank for p in range(0, 400)]
    assert ranks == sorted(ranks)


def test_negative_points_rejected():
    with pytest.raises(ValueError):
        level_for(-1)


def test_evaluate_same_points_never_levels_up():
    for p in (0, 9, 10, 57, 250):
        assert evaluate(p, p).leveled_up is False


def test_evaluate_crossing_boundary():
    change = evaluate(9, 10)
    assert change.previous.name == "New Citizen"
    assert change.current.name == "Good Citizen"
    assert change.leveled_up is True


def test_evaluate_within_band():
    change = evaluate(21, 48)
    assert change.previous == change.current
    assert not change.leveled_up


def test_next_level_and_distance():
    assert next_level(0).name == "Good Citizen"
    assert points_to_next(7) == 3
    assert next_level(250) is None
    assert points_to_next(250) is None


@pytest.mark.parametrize(
    "table",
    [
        (),
        (Level(0, "a", "", 1, 5), Level(1, "b", "", 6, math.inf)),
        (Level(0, "a", "", 0, 5), Level(1, "b", "", 7, math.inf)),
        (Level(0, "a", "", 0, 5), Level(1, "b", "", 6, 10)),
    ],
)
def test_validate_table_rejects_gaps(table):
    with pytest.raises(ValueError):
        validate_table(table)


def test_custom_table_is_used():
    table = (Level(0, "low", "", 0, 1), Level(1, "high", "", 2, math.inf))
    assert levels.evaluate(1, 2, table).leveled_up


def test_first_mission_achievement():
    assert [a.key for a in achievements_for(0)] == []
    assert [a.key for a in achievements_for(3)] == ["first_mission"]
    assert [a.name for a in new_achievements(0, 1)] == ["First Mission"]
    assert new_achievements(1, 2) == []
