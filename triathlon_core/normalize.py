"""Derive comparable raw scores from heterogeneous game inputs.

- Attempt games: best of the first two attempts; the third attempt is only a tie-break.
- Match-win games: recorded wins for the game's winner key, plus one for a bye.
- Manual games: raw/place used as entered (nothing to derive).
"""
from __future__ import annotations

import math
from typing import Any, Iterable, Sequence

from .schedule import bye_counts, scheduled_pairings
from .types import Competitor, Game, GameResult, MatchOutcome, Schedule


def empty_game_result() -> GameResult:
    return {"raw": None, "attempts": None, "place": None, "points": None, "tieBreak": None}


def _attempt_value(attempts: Sequence[Any], index: int) -> float:
    if index >= len(attempts):
        return 0.0
    value = attempts[index]
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    if not math.isfinite(float(value)):
        return 0.0
    return value


def official_raw_from_attempts(attempts: Sequence[Any] | None) -> float | None:
    """
    Official score of an attempt-based game.

    Examples:
      - [4, 7] -> 7
      - [4, 7, 12] -> 7 (third attempt is a tie-break only)
      - [0, 0] -> None
      - None / [] -> None
    """
    if not attempts:
        return None
    best = max(_attempt_value(attempts, 0), _attempt_value(attempts, 1))
    return best if best > 0 else None


def tiebreak_from_attempts(attempts: Sequence[Any] | None) -> float | None:
    if not attempts or len(attempts) < 3:
        return None
    value = _attempt_value(attempts, 2)
    return value if value > 0 else None


def normalize_attempt_game(game: Game) -> Game:
    """Fill raw from attempts; a directly entered raw is kept when attempts give none."""
    results: dict[str, GameResult] = {}
    for person_id, prev in game["results"].items():
        computed = official_raw_from_attempts(prev.get("attempts"))
        raw = computed if computed is not None else prev.get("raw")
        results[person_id] = {**prev, "raw": raw}
    return {**game, "results": results}


def count_match_wins(
    competitor_ids: Iterable[str],
    matches: Sequence[MatchOutcome],
    schedule: Schedule | None,
    winner_key: str,
) -> dict[str, int]:
    """Recorded wins for ``winner_key`` plus one win for competitors that had a bye."""
    wins = {pid: 0 for pid in competitor_ids}
    for match in matches:
        winner = match.get(winner_key)
        if winner in wins:
            wins[winner] += 1
    for pid, byes in bye_counts(schedule).items():
        if pid in wins and byes > 0:
            wins[pid] += 1
    return wins


def normalize_match_win_game(
    game: Game,
    competitors: Sequence[Competitor],
    matches: Sequence[MatchOutcome],
    schedule: Schedule | None,
    winner_key: str,
) -> Game:
    """Overwrite raw with the win tally; every competitor gets a result entry."""
    wins = count_match_wins((c["personId"] for c in competitors), matches, schedule, winner_key)
    results: dict[str, GameResult] = dict(game["results"])
    for person_id, total in wins.items():
        prev = results.get(person_id) or empty_game_result()
        results[person_id] = {**prev, "raw": total}
    return {**game, "results": results}


def recorded_pairings(matches: Sequence[MatchOutcome], winner_key: str) -> set[tuple[int, frozenset[str]]]:
    return {
        (int(m["round"]), frozenset((m["a"], m["b"])))
        for m in matches
        if m.get(winner_key) is not None
    }


def schedule_in_progress(
    schedule: Schedule | None,
    matches: Sequence[MatchOutcome],
    winner_key: str,
) -> bool:
    """True while any scheduled pairing has no recorded winner for ``winner_key``."""
    scheduled = scheduled_pairings(schedule)
    if not scheduled:
        return False
    return bool(scheduled - recorded_pairings(matches, winner_key))
