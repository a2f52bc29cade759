"""Place -> points mapping with a configurable, explicitly passed points schedule."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)


class PointsSchedule(BaseModel):
    """Points for places 1-3, with optional fractional points for 4th and 5th."""

    first: float = Field(..., ge=0, description="Points for 1st place")
    second: float = Field(..., ge=0, description="Points for 2nd place")
    third: float = Field(..., ge=0, description="Points for 3rd place")
    fourth: Optional[float] = Field(None, ge=0, description="Points for 4th place")
    fifth: Optional[float] = Field(None, ge=0, description="Points for 5th place (requires fourth)")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def validate_order(self) -> Self:
        """Better places never earn fewer points"""
        if self.fifth is not None and self.fourth is None:
            raise ValueError("fifth requires fourth")
        ladder = [p for p in (self.first, self.second, self.third, self.fourth, self.fifth) if p is not None]
        for better, worse in zip(ladder, ladder[1:]):
            if worse > better:
                raise ValueError("points must not increase for worse places")
        return self

    @classmethod
    def coerce(cls, value: "PointsSchedule | Mapping[str, Any]") -> "PointsSchedule":
        """Accept a schedule instance or a plain mapping (e.g. loaded from JSON config)."""
        if isinstance(value, cls):
            return value
        try:
            return cls.model_validate(dict(value))
        except (ValidationError, TypeError) as e:
            logger.warning(f"Points schedule rejected: {e}")
            raise ValueError(f"Invalid points schedule: {e}")


STANDARD_POINTS = PointsSchedule(first=3, second=2, third=1)
EXTENDED_POINTS = PointsSchedule(first=3, second=2, third=1, fourth=0.5, fifth=0.25)


@dataclass(frozen=True)
class DuplicatePlace:
    """More than one competitor holds the same place; none of them scores."""

    game_id: str
    place: int
    member_ids: tuple[str, ...]


def points_for_place(place: int, schedule: PointsSchedule) -> float:
    if place == 1:
        return schedule.first
    if place == 2:
        return schedule.second
    if place == 3:
        return schedule.third
    if place == 4 and schedule.fourth is not None:
        return schedule.fourth
    if place == 5 and schedule.fifth is not None:
        return schedule.fifth
    return 0


def find_duplicate_places(game_id: str, places: Mapping[str, int | None]) -> tuple[DuplicatePlace, ...]:
    holders: dict[int, list[str]] = {}
    for pid, place in places.items():
        if place is None:
            continue
        holders.setdefault(place, []).append(pid)
    return tuple(
        DuplicatePlace(game_id=game_id, place=place, member_ids=tuple(sorted(pids)))
        for place, pids in sorted(holders.items())
        if len(pids) > 1
    )


def assign_points(
    game_id: str,
    places: Mapping[str, int | None],
    schedule: PointsSchedule,
) -> tuple[dict[str, float | None], tuple[DuplicatePlace, ...]]:
    """
    Points per competitor for one game.

    Returns:
      (points by person id, duplicate-place warnings). A ``None`` place or a place
      shared with someone else yields ``None`` points.
    """
    duplicates = find_duplicate_places(game_id, places)
    shared = {pid for dup in duplicates for pid in dup.member_ids}
    for dup in duplicates:
        logger.warning(f"{game_id}: place {dup.place} entered for {list(dup.member_ids)}, no points awarded")
    points: dict[str, float | None] = {}
    for pid, place in places.items():
        if place is None or pid in shared:
            points[pid] = None
        else:
            points[pid] = points_for_place(place, schedule)
    return points, duplicates
