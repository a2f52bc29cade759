"""Competition document construction, lookup helpers and schema migration.

Schema versions:
- 1: legacy shape (``participants``, ``poolMatches``, ``subEvents``, ``poolTables``,
  ``poolSchedule``) where a missing ``finalizedGames`` field meant "all finalized".
- 2: current shape; ``finalizedGames`` always carries an explicit flag per game.
"""
from __future__ import annotations

import logging
from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Sequence, Tuple

from .catalog import ALL_GAME_IDS, DISCIPLINE_LABELS, DISCIPLINE_ORDER, GAME_IDS, GAME_LABELS, SCHEMA_VERSION
from .types import AdminIdentity, CompetitionDocument, Competitor, Discipline, EventMeta, Game, Totals

logger = logging.getLogger(__name__)


_LEGACY_TOP_LEVEL_KEYS = {
    "participants": "competitors",
    "poolMatches": "matches",
    "subEvents": "disciplines",
}
_LEGACY_EVENT_META_KEYS = {
    "poolTables": "tables",
    "poolSchedule": "schedule",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def empty_totals(competitors: Sequence[Competitor]) -> Totals:
    return {
        "byCompetitor": {
            c["personId"]: {"byDiscipline": {d: 0 for d in DISCIPLINE_ORDER}, "overall": 0}
            for c in competitors
        }
    }


def _empty_disciplines() -> List[Discipline]:
    return [
        {
            "disciplineId": d,
            "label": DISCIPLINE_LABELS[d],
            "games": [{"gameId": gid, "label": GAME_LABELS[gid], "results": {}} for gid in GAME_IDS[d]],
        }
        for d in DISCIPLINE_ORDER
    ]


def create_empty_document(
    event_id: str,
    year: int,
    competitors: Sequence[Competitor] = (),
    *,
    status: str = "draft",
    event_meta: EventMeta | None = None,
    updated_at: str | None = None,
    updated_by: AdminIdentity | None = None,
) -> CompetitionDocument:
    """Create a fresh document with the fixed game catalogue and nothing finalized.

    Args:
        event_id: Competition id, e.g. "triathlon-2026"
        year: Competition year
        competitors: Initial roster ({personId, displayName} dicts)
        status: "draft" or "published"
        event_meta: Optional play order / tables / schedule
        updated_at: ISO timestamp; current UTC time if not provided
        updated_by: Admin identity of the creator, if known

    Returns:
        Current-schema document; totals are zeroed (run recompute() to derive them)
    """
    updated_at = updated_at or utc_now_iso()
    roster = [dict(c) for c in competitors]
    published = status == "published"
    return {
        "schemaVersion": SCHEMA_VERSION,
        "eventId": event_id,
        "year": year,
        "status": status,
        "updatedAt": updated_at,
        "updatedBy": updated_by,
        "publishedAt": updated_at if published else None,
        "publishedBy": updated_by if published else None,
        "eventMeta": deepcopy(event_meta) if event_meta is not None else None,
        "competitors": roster,
        "matches": [],
        "disciplines": _empty_disciplines(),
        "finalizedGames": {gid: False for gid in ALL_GAME_IDS},
        "totals": empty_totals(roster),
    }


def _migrate_v1(doc: Dict[str, Any]) -> None:
    for old, new in _LEGACY_TOP_LEVEL_KEYS.items():
        if old in doc and new not in doc:
            doc[new] = doc.pop(old)
    for discipline in doc.get("disciplines") or []:
        if "subEventId" in discipline and "disciplineId" not in discipline:
            discipline["disciplineId"] = discipline.pop("subEventId")
    meta = doc.get("eventMeta")
    if isinstance(meta, dict):
        for old, new in _LEGACY_EVENT_META_KEYS.items():
            if old in meta and new not in meta:
                meta[new] = meta.pop(old)

    if "finalizedGames" not in doc:
        # Legacy documents without the field were scored as if every game was final.
        doc["finalizedGames"] = {gid: True for gid in ALL_GAME_IDS}
    doc.pop("totals", None)


def migrate_document(doc: CompetitionDocument) -> CompetitionDocument:
    """Bring any supported document up to the current schema (pure, idempotent)."""
    migrated: Dict[str, Any] = deepcopy(doc)
    version = migrated.get("schemaVersion") or 1
    if version < 2:
        logger.info(f"Migrating document {migrated.get('eventId')!r} from schema v{version}")
        _migrate_v1(migrated)

    flags = migrated.get("finalizedGames") or {}
    migrated["finalizedGames"] = {gid: bool(flags.get(gid, False)) for gid in ALL_GAME_IDS}
    migrated.setdefault("competitors", [])
    migrated.setdefault("matches", [])
    migrated.setdefault("eventMeta", None)
    if not migrated.get("disciplines"):
        migrated["disciplines"] = _empty_disciplines()
    if not isinstance(migrated.get("totals"), dict):
        migrated["totals"] = empty_totals(migrated["competitors"])
    migrated["schemaVersion"] = SCHEMA_VERSION
    return migrated


def iter_games(doc: CompetitionDocument) -> Iterator[Tuple[Discipline, Game]]:
    for discipline in doc.get("disciplines") or []:
        for game in discipline.get("games") or []:
            yield discipline, game


def find_game(doc: CompetitionDocument, game_id: str) -> Game:
    """Look up a game by id.

    Raises:
        ValueError: unknown game id
    """
    for _, game in iter_games(doc):
        if game.get("gameId") == game_id:
            return game
    raise ValueError(f"game not found: {game_id}")


def competitor_ids(doc: CompetitionDocument) -> List[str]:
    return [c["personId"] for c in doc.get("competitors") or []]


def play_order(doc: CompetitionDocument) -> List[str]:
    """Competitor order driving the pool schedule.

    The stored order is kept for competitors still on the roster; roster ids it lacks
    follow in roster order.
    """
    roster = competitor_ids(doc)
    meta = doc.get("eventMeta")
    stored = (meta or {}).get("competitorOrder") if isinstance(meta, dict) else None
    known = set(roster)
    order: List[str] = []
    for pid in stored or []:
        if pid in known and pid not in order:
            order.append(pid)
    return order + [pid for pid in roster if pid not in order]
