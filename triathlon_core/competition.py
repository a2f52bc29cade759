"""Editor state transitions on a competition document (pure, no storage/HTTP).

This module implements the editing workflow of a triathlon scoring desk.
All functions are deterministic and side-effect free (no I/O, no database, no HTTP).

Architecture:
- The document is a plain dict (see types.CompetitionDocument)
- Commands are plain dicts with a 'type' field (ADD_COMPETITOR, RECORD_MATCH, SET_RAW, etc.)
- apply_command() validates the command, applies it to a deepcopy and always finishes
  with scoring.recompute(), so a document is never persisted half-derived
- Parent (API layer) receives CommandOutcome and persists the document as a whole;
  storage is last-writer-wins and nothing here locks, versions or merges

Destructive transitions:
- Changing the roster or play order, or regenerating the schedule, clears the pool
  schedule and/or every recorded match outcome
- preview_invalidation() reports what a command would clear, validate_confirmation()
  rejects it unless the command carries confirmed=True
- reorder_competitors() / regenerate_schedule() return the invalidation explicitly

Stale places:
- Editing a raw score clears the place of the edited competitor and of everyone who
  now shares that raw, so an old place is never mistaken for a roll-off result
- Recording or clearing a match clears all places of the head-to-head games
"""
from __future__ import annotations

import logging
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from .catalog import GAME_KINDS, MATCH_WINNER_KEYS, tie_break_type_for_game
from .document import competitor_ids, find_game, iter_games, migrate_document, play_order
from .normalize import empty_game_result, official_raw_from_attempts
from .points import PointsSchedule
from .schedule import generate_schedule, schedule_match_count
from .scoring import recompute
from .types import CompetitionDocument, EventMeta, MatchOutcome
from .validation import DESTRUCTIVE_COMMANDS, InputSanitizer, validate_tie_break

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Invalidation:
    """What a transition cleared: the generated schedule and/or recorded matches."""

    schedule: bool = False
    matches: int = 0

    @property
    def any(self) -> bool:
        return self.schedule or self.matches > 0


@dataclass
class CommandOutcome:
    """Result of applying an editor command."""

    document: Dict[str, Any]
    cmd_payload: Dict[str, Any]
    invalidated: Invalidation


@dataclass
class ValidationError:
    """Represents a non-transport validation failure (pure core)."""

    kind: str
    message: str | None = None
    status_code: int | None = None


def _has_schedule(doc: CompetitionDocument) -> bool:
    meta = doc.get("eventMeta") or {}
    return bool((meta.get("schedule") or {}).get("rounds"))


def _current_invalidation(doc: CompetitionDocument) -> Invalidation:
    return Invalidation(schedule=_has_schedule(doc), matches=len(doc.get("matches") or []))


def _tables(doc: CompetitionDocument) -> List[int]:
    meta = doc.get("eventMeta") or {}
    return list(meta.get("tables") or [1])


def _clear_places(doc: Dict[str, Any], game_ids: Iterable[str]) -> None:
    wanted = set(game_ids)
    for _, game in iter_games(doc):
        if game["gameId"] not in wanted:
            continue
        for result in game["results"].values():
            result["place"] = None


def _clear_head_to_head_places(doc: Dict[str, Any]) -> None:
    _clear_places(doc, MATCH_WINNER_KEYS)


def _reset_schedule(doc: Dict[str, Any], order: List[str]) -> Invalidation:
    """Install a new play order with an empty schedule and no recorded matches."""
    invalidated = _current_invalidation(doc)
    doc["eventMeta"] = {"competitorOrder": order, "tables": _tables(doc), "schedule": {"rounds": []}}
    doc["matches"] = []
    _clear_head_to_head_places(doc)
    if invalidated.any:
        logger.info(
            f"Play order changed for {doc.get('eventId')!r}: schedule cleared, "
            f"{invalidated.matches} recorded matches dropped"
        )
    return invalidated


def _match_key(round_no: int, a: str, b: str) -> Tuple[int, frozenset]:
    return (int(round_no), frozenset((a, b)))


def _scheduled_table(doc: CompetitionDocument, round_no: int, a: str, b: str) -> int | None:
    """Table of a scheduled pairing, or None when the pairing is not scheduled."""
    meta = doc.get("eventMeta") or {}
    for r in (meta.get("schedule") or {}).get("rounds") or []:
        if int(r["round"]) != int(round_no):
            continue
        for m in r.get("matches") or []:
            if {m["a"], m["b"]} == {a, b}:
                return int(m["table"])
    return None


def _require_competitor(doc: CompetitionDocument, person_id: str) -> None:
    if person_id not in competitor_ids(doc):
        raise ValueError(f"unknown competitor: {person_id}")


def _result_for(game: Dict[str, Any], person_id: str) -> Dict[str, Any]:
    result = game["results"].get(person_id)
    if result is None:
        result = empty_game_result()
        game["results"][person_id] = result
    return result


def _clear_tied_places(game: Dict[str, Any], person_id: str, new_raw: float | None) -> None:
    result = game["results"][person_id]
    result["place"] = None
    if new_raw is None:
        return
    for pid, other in game["results"].items():
        if pid == person_id:
            continue
        other_raw = other.get("raw")
        if GAME_KINDS.get(game["gameId"]) == "attempts":
            other_raw = official_raw_from_attempts(other.get("attempts")) or other_raw
        if other_raw == new_raw:
            other["place"] = None


def preview_invalidation(doc: CompetitionDocument, cmd: Mapping[str, Any]) -> Invalidation:
    """What applying ``cmd`` would clear, without applying it."""
    ctype = cmd.get("type")
    if ctype not in DESTRUCTIVE_COMMANDS:
        return Invalidation()
    current = _current_invalidation(doc)
    if ctype == "ADD_COMPETITOR" and doc.get("eventMeta") is None:
        return Invalidation()
    if ctype == "DELETE_COMPETITOR":
        return current
    if ctype == "REORDER_COMPETITORS":
        if list(cmd.get("competitorOrder") or []) == play_order(doc) and doc.get("eventMeta") is not None:
            return Invalidation()
    return current


def validate_confirmation(doc: CompetitionDocument, cmd: Mapping[str, Any]) -> ValidationError | None:
    """Reject destructive commands that were not explicitly confirmed.

    Returns:
        ValidationError(kind='confirmation_required', status_code=409) when the command
        would clear the schedule or recorded matches and cmd['confirmed'] is not True,
        otherwise None
    """
    invalidated = preview_invalidation(doc, cmd)
    if not invalidated.any or cmd.get("confirmed") is True:
        return None
    parts = []
    if invalidated.schedule:
        parts.append("the pool schedule")
    if invalidated.matches:
        parts.append(f"{invalidated.matches} recorded match result(s)")
    return ValidationError(
        kind="confirmation_required",
        message=f"{cmd.get('type')} clears {' and '.join(parts)}",
        status_code=409,
    )


def _apply_reorder(doc: Dict[str, Any], order: Sequence[str]) -> Invalidation:
    order = list(order)
    if sorted(order) != sorted(competitor_ids(doc)) or len(set(order)) != len(order):
        raise ValueError("competitorOrder must be a permutation of the competitor ids")
    if doc.get("eventMeta") is not None and order == play_order(doc):
        return Invalidation()
    return _reset_schedule(doc, order)


def _apply_regenerate(doc: Dict[str, Any], tables: Sequence[int] | None) -> Invalidation:
    order = play_order(doc)
    table_list = list(tables) if tables else _tables(doc)
    schedule = generate_schedule(order, table_list)
    invalidated = _current_invalidation(doc)
    meta: EventMeta = {"competitorOrder": order, "tables": table_list, "schedule": schedule}
    doc["eventMeta"] = meta
    doc["matches"] = []
    _clear_head_to_head_places(doc)
    logger.info(
        f"Schedule generated for {doc.get('eventId')!r}: {len(schedule['rounds'])} rounds, "
        f"{schedule_match_count(schedule)} matches, "
        f"{invalidated.matches} recorded matches dropped"
    )
    return invalidated


def reorder_competitors(
    doc: CompetitionDocument,
    competitor_order: Sequence[str],
    points_schedule: PointsSchedule | Mapping[str, Any],
) -> Tuple[CompetitionDocument, Invalidation]:
    """New play order; clears schedule and recorded matches unless the order is unchanged.

    Raises:
        ValueError: order is not a permutation of the competitor ids
    """
    new_doc: Dict[str, Any] = migrate_document(doc)
    invalidated = _apply_reorder(new_doc, competitor_order)
    return recompute(new_doc, points_schedule), invalidated


def regenerate_schedule(
    doc: CompetitionDocument,
    tables: Sequence[int] | None,
    points_schedule: PointsSchedule | Mapping[str, Any],
) -> Tuple[CompetitionDocument, Invalidation]:
    """Fresh round-robin schedule from the current play order; drops recorded matches.

    Raises:
        ValueError: fewer than two competitors in the play order
    """
    new_doc: Dict[str, Any] = migrate_document(doc)
    invalidated = _apply_regenerate(new_doc, tables)
    return recompute(new_doc, points_schedule), invalidated


def _apply_transition(doc: CompetitionDocument, cmd: Dict[str, Any]) -> Tuple[Dict[str, Any], Invalidation]:
    """Apply one validated command to a migrated copy of ``doc`` (derived fields not yet recomputed)."""
    new_doc: Dict[str, Any] = migrate_document(doc)
    ctype = cmd.get("type")
    invalidated = Invalidation()

    if ctype == "ADD_COMPETITOR":
        person_id = cmd["personId"]
        if not person_id:
            raise ValueError("ADD_COMPETITOR personId cannot be empty")
        if any(pid.lower() == person_id.lower() for pid in competitor_ids(new_doc)):
            raise ValueError(f"competitor already exists: {person_id}")
        new_doc["competitors"] = [
            *new_doc.get("competitors", []),
            {"personId": person_id, "displayName": cmd["displayName"]},
        ]
        if new_doc.get("eventMeta") is not None:
            invalidated = _reset_schedule(new_doc, play_order(new_doc))

    elif ctype == "RENAME_COMPETITOR":
        _require_competitor(new_doc, cmd["personId"])
        for comp in new_doc["competitors"]:
            if comp["personId"] == cmd["personId"]:
                comp["displayName"] = cmd["displayName"]

    elif ctype == "DELETE_COMPETITOR":
        person_id = cmd["personId"]
        _require_competitor(new_doc, person_id)
        new_doc["competitors"] = [c for c in new_doc["competitors"] if c["personId"] != person_id]
        for _, game in iter_games(new_doc):
            game["results"].pop(person_id, None)
        if new_doc.get("eventMeta") is not None:
            invalidated = _reset_schedule(new_doc, play_order(new_doc))
        else:
            invalidated = Invalidation(matches=len(new_doc.get("matches") or []))
            new_doc["matches"] = []
            _clear_head_to_head_places(new_doc)

    elif ctype == "REORDER_COMPETITORS":
        invalidated = _apply_reorder(new_doc, cmd["competitorOrder"])

    elif ctype == "GENERATE_SCHEDULE":
        invalidated = _apply_regenerate(new_doc, cmd.get("tables"))

    elif ctype == "RECORD_MATCH":
        round_no, a, b = cmd["round"], cmd["a"], cmd["b"]
        if a == b:
            raise ValueError("RECORD_MATCH a and b must differ")
        _require_competitor(new_doc, a)
        _require_competitor(new_doc, b)
        for key in MATCH_WINNER_KEYS.values():
            if cmd[key] not in (a, b):
                raise ValueError(f"RECORD_MATCH {key} must be {a} or {b}")
        table = _scheduled_table(new_doc, round_no, a, b)
        if table is None and _has_schedule(new_doc):
            raise ValueError(f"RECORD_MATCH round {round_no} has no scheduled match {a} vs {b}")
        match: MatchOutcome = {
            "round": round_no,
            "a": a,
            "b": b,
            "table": cmd.get("table") or table or 1,
            "winner8Ball": cmd["winner8Ball"],
            "winner9Ball": cmd["winner9Ball"],
        }
        key = _match_key(round_no, a, b)
        new_doc["matches"] = [
            m for m in new_doc.get("matches") or [] if _match_key(m["round"], m["a"], m["b"]) != key
        ] + [match]
        _clear_head_to_head_places(new_doc)

    elif ctype == "CLEAR_MATCH":
        key = _match_key(cmd["round"], cmd["a"], cmd["b"])
        new_doc["matches"] = [
            m for m in new_doc.get("matches") or [] if _match_key(m["round"], m["a"], m["b"]) != key
        ]
        _clear_head_to_head_places(new_doc)

    elif ctype == "SET_RAW":
        game_id, person_id = cmd["gameId"], cmd["personId"]
        if GAME_KINDS[game_id] not in {"raw", "attempts"}:
            raise ValueError(f"SET_RAW not allowed for {game_id}: raw is derived or unused")
        _require_competitor(new_doc, person_id)
        game = find_game(new_doc, game_id)
        _result_for(game, person_id)["raw"] = cmd["raw"]
        _clear_tied_places(game, person_id, cmd["raw"])

    elif ctype == "SET_ATTEMPTS":
        game_id, person_id = cmd["gameId"], cmd["personId"]
        if GAME_KINDS[game_id] != "attempts":
            raise ValueError(f"SET_ATTEMPTS not allowed for {game_id}")
        _require_competitor(new_doc, person_id)
        game = find_game(new_doc, game_id)
        result = _result_for(game, person_id)
        attempts = cmd["attempts"]
        result["attempts"] = list(attempts) if attempts is not None else None
        result["raw"] = None
        _clear_tied_places(game, person_id, official_raw_from_attempts(result["attempts"]))

    elif ctype == "SET_PLACE":
        _require_competitor(new_doc, cmd["personId"])
        game = find_game(new_doc, cmd["gameId"])
        _result_for(game, cmd["personId"])["place"] = cmd["place"]

    elif ctype == "SET_TIE_BREAK":
        game = find_game(new_doc, cmd["gameId"])
        tie_break = cmd.get("tieBreak")
        if tie_break is None:
            for result in game["results"].values():
                result["tieBreak"] = None
        else:
            tie_break = {
                "type": tie_break.get("type") or tie_break_type_for_game(cmd["gameId"]),
                "participants": list(tie_break.get("participants") or []),
                "winner": tie_break.get("winner"),
                "notes": tie_break.get("notes"),
            }
            problems = validate_tie_break(tie_break)
            if problems:
                raise ValueError("; ".join(problems))
            for pid in tie_break["participants"]:
                _require_competitor(new_doc, pid)
                _result_for(game, pid)["tieBreak"] = deepcopy(tie_break)

    elif ctype == "SET_GAME_FINALIZED":
        flags = dict(new_doc.get("finalizedGames") or {})
        flags[cmd["gameId"]] = bool(cmd["finalized"])
        new_doc["finalizedGames"] = flags

    return new_doc, invalidated


def apply_command(
    doc: CompetitionDocument,
    cmd: Dict[str, Any],
    points_schedule: PointsSchedule | Mapping[str, Any],
) -> CommandOutcome:
    """Apply an editor command and recompute the whole document.

    Args:
        doc: Current document (not mutated)
        cmd: Command dict with 'type' field and command-specific params
        points_schedule: Points schedule used for the recompute

    Returns:
        CommandOutcome with the recomputed document, the validated/sanitized command
        payload and what the command invalidated

    Raises:
        ValueError: invalid command shape, or a command that does not fit the document
        (unknown competitor, winner outside the pairing, duplicate competitor id, ...)
    """
    validated = InputSanitizer.validate_and_sanitize_cmd(cmd)
    payload = validated.model_dump(exclude_unset=True)
    try:
        new_doc, invalidated = _apply_transition(doc, payload)
    except ValueError as e:
        logger.warning(f"{payload.get('type')} rejected: {e}")
        raise
    return CommandOutcome(
        document=recompute(new_doc, points_schedule),
        cmd_payload=payload,
        invalidated=invalidated,
    )
