"""Placement resolver: raw scores -> competition places with per-game tie policies.

Single source of truth for places across API/UI/export:
- Standard competition ranking: higher raw first, a tied group consumes its full size
  (two tied at 2 => next place is 4).
- Ties are never guessed. A tie the policy cannot break is reported as a TieGroup:
  ``pending`` when data is still missing (unplayed matches), ``needs_manual`` when an
  external roll-off has to decide.
"""
from __future__ import annotations

from dataclasses import dataclass
from itertools import combinations
from typing import Callable, Literal, Mapping, Sequence

from .types import MatchOutcome


TieStatus = Literal["pending", "needs_manual"]


@dataclass(frozen=True)
class TieGroup:
    game_id: str
    place_start: int
    member_ids: tuple[str, ...]
    status: TieStatus
    detail: str | None = None

    @property
    def place_end(self) -> int:
        return self.place_start + len(self.member_ids) - 1


@dataclass(frozen=True)
class PlacementResult:
    places: dict[str, int | None]
    tie_groups: tuple[TieGroup, ...]

    @property
    def needs_manual_ids(self) -> frozenset[str]:
        return frozenset(
            pid for g in self.tie_groups if g.status == "needs_manual" for pid in g.member_ids
        )

    @property
    def pending_ids(self) -> frozenset[str]:
        return frozenset(pid for g in self.tie_groups if g.status == "pending" for pid in g.member_ids)

    @property
    def is_resolved(self) -> bool:
        return not self.tie_groups


@dataclass
class _Entry:
    person_id: str
    raw: float
    tiebreak: float | None = None


def _partition_desc(entries: Sequence[_Entry], key: Callable[[_Entry], float]) -> list[list[_Entry]]:
    ordered = sorted(entries, key=lambda e: (-key(e), e.person_id))
    partitions: list[list[_Entry]] = []
    i = 0
    while i < len(ordered):
        current = ordered[i]
        chunk = [current]
        j = i + 1
        while j < len(ordered) and key(ordered[j]) == key(current):
            chunk.append(ordered[j])
            j += 1
        partitions.append(chunk)
        i = j
    return partitions


def _ids(members: Sequence[_Entry]) -> tuple[str, ...]:
    return tuple(sorted(e.person_id for e in members))


def _entries_from_raw(raws: Mapping[str, float | None]) -> list[_Entry]:
    return [_Entry(person_id=pid, raw=raw) for pid, raw in raws.items() if raw is not None]


class _Placer:
    """Accumulates places and tie groups while walking groups from best to worst."""

    def __init__(self, game_id: str, person_ids: Sequence[str]):
        self.game_id = game_id
        self.places: dict[str, int | None] = {pid: None for pid in person_ids}
        self.tie_groups: list[TieGroup] = []
        self.next_place = 1

    def place(self, entry: _Entry) -> None:
        self.places[entry.person_id] = self.next_place
        self.next_place += 1

    def leave_tied(self, members: Sequence[_Entry], status: TieStatus, detail: str) -> None:
        self.tie_groups.append(
            TieGroup(
                game_id=self.game_id,
                place_start=self.next_place,
                member_ids=_ids(members),
                status=status,
                detail=detail,
            )
        )
        self.next_place += len(members)

    def result(self) -> PlacementResult:
        return PlacementResult(places=dict(self.places), tie_groups=tuple(self.tie_groups))


def rank_by_raw(game_id: str, raws: Mapping[str, float | None]) -> PlacementResult:
    """Generic raw ranking (bowling): every tie needs a manual roll-off."""
    placer = _Placer(game_id, list(raws))
    for chunk in _partition_desc(_entries_from_raw(raws), key=lambda e: e.raw):
        if len(chunk) == 1:
            placer.place(chunk[0])
        else:
            placer.leave_tied(chunk, "needs_manual", "raw_tie")
    return placer.result()


def rank_by_tiebreak_attempt(
    game_id: str,
    raws: Mapping[str, float | None],
    tiebreaks: Mapping[str, float | None],
) -> PlacementResult:
    """
    Attempt-based ranking (pool run).

    A tie-break attempt only orders members of an already-tied raw group, so it can
    never lift anyone above a strictly higher official raw.
    """
    placer = _Placer(game_id, list(raws))
    entries = [
        _Entry(person_id=pid, raw=raw, tiebreak=tiebreaks.get(pid))
        for pid, raw in raws.items()
        if raw is not None
    ]
    for chunk in _partition_desc(entries, key=lambda e: e.raw):
        if len(chunk) == 1:
            placer.place(chunk[0])
            continue
        if any(e.tiebreak is None for e in chunk):
            placer.leave_tied(chunk, "needs_manual", "tiebreak_attempt_missing")
            continue
        for part in _partition_desc(chunk, key=lambda e: float(e.tiebreak)):
            if len(part) == 1:
                placer.place(part[0])
            else:
                # Equal tie-break attempts are not resolved any further.
                placer.leave_tied(part, "needs_manual", "tiebreak_attempt_tie")
    return placer.result()


def _head_to_head_complete(members: Sequence[_Entry], played: set[frozenset[str]]) -> bool:
    return all(
        frozenset((x.person_id, y.person_id)) in played for x, y in combinations(members, 2)
    )


def rank_by_head_to_head(
    game_id: str,
    raws: Mapping[str, float | None],
    matches: Sequence[MatchOutcome],
    winner_key: str,
) -> PlacementResult:
    """
    Match-win ranking (pool 8-ball / 9-ball) with a mini round robin inside raw ties.

    Within a tied group only matches between its members count. If any pairing of
    the group has no recorded winner yet, the whole group stays pending.
    """
    placer = _Placer(game_id, list(raws))
    decided = [m for m in matches if m.get(winner_key) is not None]
    played = {frozenset((m["a"], m["b"])) for m in decided}

    for chunk in _partition_desc(_entries_from_raw(raws), key=lambda e: e.raw):
        if len(chunk) == 1:
            placer.place(chunk[0])
            continue
        if not _head_to_head_complete(chunk, played):
            placer.leave_tied(chunk, "pending", "head_to_head_incomplete")
            continue

        member_ids = {e.person_id for e in chunk}
        mini_wins = {pid: 0 for pid in member_ids}
        for m in decided:
            if m["a"] in member_ids and m["b"] in member_ids and m[winner_key] in mini_wins:
                mini_wins[m[winner_key]] += 1
        mini = [_Entry(person_id=e.person_id, raw=float(mini_wins[e.person_id])) for e in chunk]
        for part in _partition_desc(mini, key=lambda e: e.raw):
            if len(part) == 1:
                placer.place(part[0])
            else:
                placer.leave_tied(part, "needs_manual", "head_to_head_tie")
    return placer.result()


def all_pending(game_id: str, person_ids: Sequence[str], detail: str) -> PlacementResult:
    """Every place withheld, e.g. while scheduled matches are still being played."""
    ids = tuple(sorted(person_ids))
    groups = (
        (TieGroup(game_id=game_id, place_start=1, member_ids=ids, status="pending", detail=detail),)
        if ids
        else ()
    )
    return PlacementResult(places={pid: None for pid in person_ids}, tie_groups=groups)
