import pytest
from pydantic import ValidationError

from triathlon_core import EXTENDED_POINTS, STANDARD_POINTS, PointsSchedule, points_for_place
from triathlon_core.points import assign_points


def test_standard_schedule_scores_top_three_only():
    assert [points_for_place(p, STANDARD_POINTS) for p in range(1, 7)] == [3, 2, 1, 0, 0, 0]


def test_extended_schedule_scores_fourth_and_fifth():
    assert [points_for_place(p, EXTENDED_POINTS) for p in range(1, 7)] == [3, 2, 1, 0.5, 0.25, 0]


def test_points_must_not_increase_for_worse_places():
    with pytest.raises(ValidationError):
        PointsSchedule(first=1, second=2, third=0)
    with pytest.raises(ValidationError):
        PointsSchedule(first=3, second=2, third=1, fourth=1.5)


def test_fifth_requires_fourth():
    with pytest.raises(ValidationError):
        PointsSchedule(first=3, second=2, third=1, fifth=0.5)


def test_schedule_is_immutable():
    with pytest.raises(ValidationError):
        STANDARD_POINTS.first = 10


def test_coerce_accepts_mapping_and_wraps_errors():
    assert PointsSchedule.coerce({"first": 5, "second": 3, "third": 1}).second == 3
    assert PointsSchedule.coerce(EXTENDED_POINTS) is EXTENDED_POINTS
    with pytest.raises(ValueError, match="Invalid points schedule"):
        PointsSchedule.coerce({"first": 5, "second": 3})
    with pytest.raises(ValueError, match="Invalid points schedule"):
        PointsSchedule.coerce({"first": 5, "second": 3, "third": 1, "sixth": 0})


def test_assign_points_withholds_shared_places():
    points, duplicates = assign_points("darts-2", {"a": 1, "b": 1, "c": 3, "d": None}, STANDARD_POINTS)
    assert points == {"a": None, "b": None, "c": 1, "d": None}
    assert [(d.place, d.member_ids) for d in duplicates] == [(1, ("a", "b"))]
