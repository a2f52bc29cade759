"""Fixed discipline / game catalogue of a triathlon.

Each discipline has exactly three games. Every game has a scoring kind that selects
how raw scores are derived and how ties are resolved:

- ``raw``: raw entered by hand (bowling pins), ranked descending, ties left for a
  manual roll-off.
- ``match_wins``: raw is the number of recorded pool match wins (+1 for a bye),
  ties broken by a head-to-head mini round robin.
- ``attempts``: raw is the best of two attempts, ties broken by a third attempt.
- ``manual_place``: places entered by hand (darts), no raw ranking.
"""
from __future__ import annotations

from typing import Literal

from .types import TieBreakType


GameKind = Literal["raw", "match_wins", "attempts", "manual_place"]

SCHEMA_VERSION = 2

DISCIPLINE_ORDER: tuple[str, ...] = ("bowling", "pool", "darts")

DISCIPLINE_LABELS: dict[str, str] = {
    "bowling": "Bowling",
    "pool": "Pool",
    "darts": "Darts",
}

GAME_IDS: dict[str, tuple[str, str, str]] = {
    "bowling": ("bowling-1", "bowling-2", "bowling-3"),
    "pool": ("pool-1", "pool-2", "pool-3"),
    "darts": ("darts-1", "darts-2", "darts-3"),
}

ALL_GAME_IDS: tuple[str, ...] = tuple(gid for d in DISCIPLINE_ORDER for gid in GAME_IDS[d])

GAME_LABELS: dict[str, str] = {
    "bowling-1": "Bowling Game #1",
    "bowling-2": "Bowling Game #2",
    "bowling-3": "Bowling Game #3",
    "pool-1": "8 Ball",
    "pool-2": "9 Ball",
    "pool-3": "Run",
    "darts-1": "Cricket",
    "darts-2": "401 Double Out",
    "darts-3": "301 Double In/Out",
}

GAME_KINDS: dict[str, GameKind] = {
    "bowling-1": "raw",
    "bowling-2": "raw",
    "bowling-3": "raw",
    "pool-1": "match_wins",
    "pool-2": "match_wins",
    "pool-3": "attempts",
    "darts-1": "manual_place",
    "darts-2": "manual_place",
    "darts-3": "manual_place",
}

# Which field of a recorded match outcome names the winner for a head-to-head game.
MATCH_WINNER_KEYS: dict[str, str] = {
    "pool-1": "winner8Ball",
    "pool-2": "winner9Ball",
}


def tie_break_type_for_game(game_id: str) -> TieBreakType:
    if game_id.startswith("bowling-"):
        return "BOWLING_ROLL_OFF"
    if game_id.startswith("darts-"):
        return "DARTS_BULL_SHOOTOUT"
    if game_id == "pool-3":
        return "POOL_RUN_REPEAT"
    return "OTHER"
