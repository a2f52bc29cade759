"""Type definitions for the competition document and editor commands."""
from __future__ import annotations

from typing import Dict, List, Literal, Optional, TypedDict


DisciplineId = Literal["bowling", "pool", "darts"]
DocumentStatus = Literal["draft", "published"]
TieBreakType = Literal["BOWLING_ROLL_OFF", "DARTS_BULL_SHOOTOUT", "POOL_RUN_REPEAT", "OTHER"]


class Competitor(TypedDict):
    """A competitor entry in the competitors list."""
    personId: str
    displayName: str


class AdminIdentity(TypedDict):
    userId: str
    displayName: Optional[str]


class TieBreak(TypedDict):
    """Record of an externally played roll-off / shoot-out."""
    type: TieBreakType
    participants: List[str]
    winner: str
    notes: Optional[str]


class GameResult(TypedDict):
    """
    Per-competitor result inside a game.

    raw and place are derived for most games; points is always derived.
    """
    raw: Optional[float]
    attempts: Optional[List[float]]
    place: Optional[int]
    points: Optional[float]
    tieBreak: Optional[TieBreak]


class Game(TypedDict):
    gameId: str
    label: str
    results: Dict[str, GameResult]


class Discipline(TypedDict):
    disciplineId: DisciplineId
    label: str
    games: List[Game]  # always exactly three


class ScheduledMatch(TypedDict):
    a: str
    b: str
    table: int


class ScheduleRound(TypedDict):
    round: int
    bye: Optional[str]
    matches: List[ScheduledMatch]


class Schedule(TypedDict):
    rounds: List[ScheduleRound]


class MatchOutcome(TypedDict):
    """Recorded result of one scheduled pool pairing (8-ball and 9-ball winner)."""
    round: int
    a: str
    b: str
    table: int
    winner8Ball: str
    winner9Ball: str


class EventMeta(TypedDict):
    competitorOrder: List[str]
    tables: List[int]
    schedule: Schedule


class CompetitorTotals(TypedDict):
    byDiscipline: Dict[str, float]
    overall: float


class Totals(TypedDict):
    byCompetitor: Dict[str, CompetitorTotals]


class CompetitionDocument(TypedDict, total=False):
    """
    Aggregate root: the sole unit of persistence and recomputation.

    All fields are optional (total=False) so legacy documents type-check before
    migrate_document() fills them in.
    """
    schemaVersion: int
    eventId: str
    year: int
    status: DocumentStatus

    updatedAt: Optional[str]
    updatedBy: Optional[AdminIdentity]
    publishedAt: Optional[str]
    publishedBy: Optional[AdminIdentity]

    eventMeta: Optional[EventMeta]
    competitors: List[Competitor]
    matches: List[MatchOutcome]
    disciplines: List[Discipline]
    # Explicit per-game flag; backfilled by migrate_document().
    finalizedGames: Dict[str, bool]
    totals: Totals


class CommandPayload(TypedDict, total=False):
    """
    TypedDict for command payloads sent to apply_command().

    Fields vary by command type.
    """
    type: str
    confirmed: Optional[bool]

    # ADD_COMPETITOR / RENAME_COMPETITOR / DELETE_COMPETITOR / SET_*
    personId: Optional[str]
    displayName: Optional[str]

    # REORDER_COMPETITORS
    competitorOrder: Optional[List[str]]

    # GENERATE_SCHEDULE
    tables: Optional[List[int]]

    # RECORD_MATCH / CLEAR_MATCH
    round: Optional[int]
    a: Optional[str]
    b: Optional[str]
    table: Optional[int]
    winner8Ball: Optional[str]
    winner9Ball: Optional[str]

    # SET_RAW / SET_PLACE / SET_ATTEMPTS / SET_TIE_BREAK / SET_GAME_FINALIZED
    gameId: Optional[str]
    raw: Optional[float]
    place: Optional[int]
    attempts: Optional[List[float]]
    tieBreak: Optional[TieBreak]
    finalized: Optional[bool]

