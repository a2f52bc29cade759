"""Round-robin pairing generator (circle method) for head-to-head pool play."""
from __future__ import annotations

from typing import Iterable, Sequence

from .types import Schedule, ScheduledMatch, ScheduleRound


_BYE = object()


def generate_schedule(competitor_order: Sequence[str], tables: Sequence[int] | None = None) -> Schedule:
    """
    Build a full round-robin schedule with the circle method.

    Args:
      competitor_order: play order of competitor ids (at least two, no duplicates).
      tables: table numbers assigned cyclically in match order; empty means ``[1]``.

    Returns:
      ``{"rounds": [...]}`` with n-1 rounds for even n, n rounds (one bye each) for odd n.

    Raises:
      ValueError: fewer than two competitors, or duplicate ids.
    """
    order = list(competitor_order)
    if len(set(order)) != len(order):
        raise ValueError("competitor_order must not contain duplicates")
    if len(order) < 2:
        raise ValueError("competitor_order needs at least two competitors")
    table_list = [int(t) for t in (tables or [])] or [1]

    seats: list = order + [_BYE] if len(order) % 2 == 1 else order
    n = len(seats)
    rounds: list[ScheduleRound] = []

    for round_no in range(1, n):
        matches: list[ScheduledMatch] = []
        bye: str | None = None
        for i in range(n // 2):
            a, b = seats[i], seats[n - 1 - i]
            if a is _BYE or b is _BYE:
                bye = b if a is _BYE else a
                continue
            table = table_list[len(matches) % len(table_list)]
            matches.append({"a": a, "b": b, "table": table})
        rounds.append({"round": round_no, "bye": bye, "matches": matches})

        # Keep seat 0 fixed, rotate the rest one step clockwise.
        seats = [seats[0], seats[-1]] + seats[1:-1]

    return {"rounds": rounds}


def _rounds(schedule: Schedule | None) -> Iterable[ScheduleRound]:
    if not isinstance(schedule, dict):
        return ()
    return schedule.get("rounds") or ()


def schedule_match_count(schedule: Schedule | None) -> int:
    return sum(len(r.get("matches") or []) for r in _rounds(schedule))


def scheduled_pairings(schedule: Schedule | None) -> set[tuple[int, frozenset[str]]]:
    """Set of ``(round, {a, b})`` keys for every scheduled match."""
    return {
        (int(r["round"]), frozenset((m["a"], m["b"])))
        for r in _rounds(schedule)
        for m in r.get("matches") or []
    }


def bye_counts(schedule: Schedule | None) -> dict[str, int]:
    counts: dict[str, int] = {}
    for r in _rounds(schedule):
        bye = r.get("bye")
        if bye:
            counts[bye] = counts.get(bye, 0) + 1
    return counts
