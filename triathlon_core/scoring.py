"""Recomputation orchestrator (pure, idempotent).

recompute() is the only entry point external collaborators need: it takes a whole
competition document plus a points schedule and returns a fully derived copy.

Pipeline per game:
    inputs (raw / attempts / match outcomes / hand-entered places)
      -> normalized raw
      -> places (per-game tie policy; manual roll-off places kept for unresolved ties)
      -> points (duplicate-place guard)
      -> finalization gate (unfinalized games contribute no points)
then totals per competitor, per discipline and overall.

Nothing here raises on incomplete data: missing inputs and unresolved ties surface as
``None`` places/points and are reported on RecomputeOutcome.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from .catalog import GAME_KINDS, MATCH_WINNER_KEYS
from .document import empty_totals, iter_games, migrate_document
from .normalize import (
    normalize_attempt_game,
    normalize_match_win_game,
    schedule_in_progress,
    tiebreak_from_attempts,
)
from .placement import (
    PlacementResult,
    TieGroup,
    all_pending,
    rank_by_head_to_head,
    rank_by_raw,
    rank_by_tiebreak_attempt,
)
from .points import DuplicatePlace, PointsSchedule, assign_points
from .types import CompetitionDocument, Game, GameResult, Totals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecomputeOutcome:
    """Recomputed document plus the diagnostics an editor UI surfaces."""

    document: CompetitionDocument
    tie_groups: tuple[TieGroup, ...]
    duplicate_places: tuple[DuplicatePlace, ...]

    @property
    def is_resolved(self) -> bool:
        return not self.tie_groups and not self.duplicate_places


def is_game_finalized(doc: CompetitionDocument, game_id: str) -> bool:
    return bool((doc.get("finalizedGames") or {}).get(game_id, False))


def apply_finalization_gate(game: Game, finalized: bool) -> Game:
    """Withhold every point of a game that has not been marked complete."""
    if finalized:
        return game
    results = {pid: {**r, "points": None} for pid, r in game["results"].items()}
    return {**game, "results": results}


def _coerce_place(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float) and value.is_integer() and value > 0:
        return int(value)
    return None


def _raws(game: Game) -> dict[str, float | None]:
    return {pid: r.get("raw") for pid, r in game["results"].items()}


def _place_game(doc: CompetitionDocument, game: Game) -> tuple[Game, PlacementResult]:
    """Normalize raw scores and rank them with the policy of the game's kind."""
    game_id = game["gameId"]
    kind = GAME_KINDS.get(game_id, "raw")

    if kind == "attempts":
        game = normalize_attempt_game(game)
        tiebreaks = {pid: tiebreak_from_attempts(r.get("attempts")) for pid, r in game["results"].items()}
        return game, rank_by_tiebreak_attempt(game_id, _raws(game), tiebreaks)

    if kind == "match_wins":
        winner_key = MATCH_WINNER_KEYS[game_id]
        schedule = (doc.get("eventMeta") or {}).get("schedule")
        matches = doc.get("matches") or []
        game = normalize_match_win_game(game, doc.get("competitors") or [], matches, schedule, winner_key)
        if schedule_in_progress(schedule, matches, winner_key):
            return game, all_pending(game_id, list(game["results"]), "schedule_in_progress")
        return game, rank_by_head_to_head(game_id, _raws(game), matches, winner_key)

    return game, rank_by_raw(game_id, _raws(game))


def _resolved_places(game: Game, placement: PlacementResult) -> dict[str, int | None]:
    needs_manual = placement.needs_manual_ids
    places: dict[str, int | None] = {}
    for pid, result in game["results"].items():
        if result.get("raw") is None:
            places[pid] = None
        elif pid in needs_manual:
            # Place entered after an external roll-off stands in for the unresolved tie.
            places[pid] = _coerce_place(result.get("place"))
        else:
            places[pid] = placement.places.get(pid)
    return places


def score_game(
    doc: CompetitionDocument,
    game: Game,
    schedule: PointsSchedule,
) -> tuple[Game, tuple[TieGroup, ...], tuple[DuplicatePlace, ...]]:
    """Derive raw/place/points for one game of a migrated document."""
    game_id = game["gameId"]
    if GAME_KINDS.get(game_id) == "manual_place":
        places = {pid: _coerce_place(r.get("place")) for pid, r in game["results"].items()}
        tie_groups: tuple[TieGroup, ...] = ()
    else:
        game, placement = _place_game(doc, game)
        places = _resolved_places(game, placement)
        tie_groups = placement.tie_groups

    points, duplicates = assign_points(game_id, places, schedule)
    results: dict[str, GameResult] = {
        pid: {**r, "place": places[pid], "points": points[pid]} for pid, r in game["results"].items()
    }
    finalized = is_game_finalized(doc, game_id)
    scored = apply_finalization_gate({**game, "results": results}, finalized)
    logger.debug(
        f"{game_id}: places={places} finalized={finalized} "
        f"ties={[(g.status, g.member_ids) for g in tie_groups]}"
    )
    return scored, tie_groups, duplicates


def compute_totals(doc: CompetitionDocument) -> Totals:
    """Sum points per competitor and discipline from scratch; None counts as 0."""
    totals = empty_totals(doc.get("competitors") or [])
    by_competitor = totals["byCompetitor"]
    for discipline, game in iter_games(doc):
        discipline_id = discipline["disciplineId"]
        for pid, result in game["results"].items():
            pts = result.get("points")
            if pid not in by_competitor or pts is None or isinstance(pts, bool):
                continue
            by_discipline = by_competitor[pid]["byDiscipline"]
            by_discipline[discipline_id] = by_discipline.get(discipline_id, 0) + pts
    for entry in by_competitor.values():
        entry["overall"] = sum(entry["byDiscipline"].values())
    return totals


def recompute_document(
    document: CompetitionDocument,
    points_schedule: PointsSchedule | Mapping[str, Any],
) -> RecomputeOutcome:
    """
    Recompute every derived field of a competition document.

    Args:
      document: any supported schema version; never mutated.
      points_schedule: PointsSchedule or an equivalent mapping.

    Returns:
      RecomputeOutcome with the new document, unresolved tie groups and duplicate
      place warnings.
    """
    schedule = PointsSchedule.coerce(points_schedule)
    doc = migrate_document(document)

    tie_groups: list[TieGroup] = []
    duplicates: list[DuplicatePlace] = []
    for discipline in doc["disciplines"]:
        games = []
        for game in discipline["games"]:
            scored, game_ties, game_dups = score_game(doc, game, schedule)
            games.append(scored)
            tie_groups.extend(game_ties)
            duplicates.extend(game_dups)
        discipline["games"] = games

    doc["totals"] = compute_totals(doc)
    return RecomputeOutcome(document=doc, tie_groups=tuple(tie_groups), duplicate_places=tuple(duplicates))


def recompute(
    document: CompetitionDocument,
    points_schedule: PointsSchedule | Mapping[str, Any],
) -> CompetitionDocument:
    """Pure, idempotent: recompute(recompute(d, s), s) == recompute(d, s)."""
    return recompute_document(document, points_schedule).document
