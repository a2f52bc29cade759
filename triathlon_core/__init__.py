from .catalog import (
    ALL_GAME_IDS,
    DISCIPLINE_ORDER,
    GAME_IDS,
    GAME_KINDS,
    MATCH_WINNER_KEYS,
    SCHEMA_VERSION,
)
from .competition import (
    CommandOutcome,
    Invalidation,
    ValidationError,
    apply_command,
    preview_invalidation,
    regenerate_schedule,
    reorder_competitors,
    validate_confirmation,
)
from .document import create_empty_document, find_game, migrate_document
from .docs import (
    DocumentSummary,
    list_stored_documents,
    parse_year_from_event_id,
    publish_snapshot,
    summarize_stored_document,
)
from .normalize import empty_game_result, official_raw_from_attempts
from .placement import (
    PlacementResult,
    TieGroup,
    rank_by_head_to_head,
    rank_by_raw,
    rank_by_tiebreak_attempt,
)
from .points import (
    EXTENDED_POINTS,
    STANDARD_POINTS,
    DuplicatePlace,
    PointsSchedule,
    points_for_place,
)
from .schedule import generate_schedule
from .scoring import RecomputeOutcome, compute_totals, recompute, recompute_document
from .types import CommandPayload, CompetitionDocument, Competitor, GameResult
from .validation import InputSanitizer, ValidatedCmd, validate_tie_break

__all__ = [
    "ALL_GAME_IDS",
    "DISCIPLINE_ORDER",
    "GAME_IDS",
    "GAME_KINDS",
    "MATCH_WINNER_KEYS",
    "SCHEMA_VERSION",
    "CommandOutcome",
    "Invalidation",
    "ValidationError",
    "apply_command",
    "preview_invalidation",
    "regenerate_schedule",
    "reorder_competitors",
    "validate_confirmation",
    "create_empty_document",
    "find_game",
    "migrate_document",
    "DocumentSummary",
    "list_stored_documents",
    "parse_year_from_event_id",
    "publish_snapshot",
    "summarize_stored_document",
    "empty_game_result",
    "official_raw_from_attempts",
    "PlacementResult",
    "TieGroup",
    "rank_by_head_to_head",
    "rank_by_raw",
    "rank_by_tiebreak_attempt",
    "EXTENDED_POINTS",
    "STANDARD_POINTS",
    "DuplicatePlace",
    "PointsSchedule",
    "points_for_place",
    "generate_schedule",
    "RecomputeOutcome",
    "compute_totals",
    "recompute",
    "recompute_document",
    "CommandPayload",
    "CompetitionDocument",
    "Competitor",
    "GameResult",
    "InputSanitizer",
    "ValidatedCmd",
    "validate_tie_break",
]
