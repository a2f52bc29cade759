"""
Input validation schemas using Pydantic v2
Validates editor commands and tie-break records
"""

import logging
import re
from typing import Any, Dict, List, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .catalog import ALL_GAME_IDS

logger = logging.getLogger(__name__)

COMMAND_TYPES = frozenset(
    {
        "ADD_COMPETITOR",
        "RENAME_COMPETITOR",
        "DELETE_COMPETITOR",
        "REORDER_COMPETITORS",
        "GENERATE_SCHEDULE",
        "RECORD_MATCH",
        "CLEAR_MATCH",
        "SET_RAW",
        "SET_PLACE",
        "SET_ATTEMPTS",
        "SET_TIE_BREAK",
        "SET_GAME_FINALIZED",
    }
)

TIE_BREAK_TYPES = frozenset({"BOWLING_ROLL_OFF", "DARTS_BULL_SHOOTOUT", "POOL_RUN_REPEAT", "OTHER"})

# Commands that may clear a generated schedule and/or recorded match outcomes.
DESTRUCTIVE_COMMANDS = frozenset(
    {"ADD_COMPETITOR", "DELETE_COMPETITOR", "REORDER_COMPETITORS", "GENERATE_SCHEDULE"}
)

# ==================== VALIDATOR FUNCTIONS ====================


class ValidatedCmd(BaseModel):
    """Editor command model with per-type required fields"""

    type: str = Field(..., min_length=1, max_length=50, description="Command type")
    confirmed: Optional[bool] = Field(
        None, description="Caller confirmed a schedule/match invalidation"
    )

    # Roster
    personId: Optional[str] = Field(None, min_length=1, max_length=64)
    displayName: Optional[str] = Field(None, max_length=255)
    competitorOrder: Optional[List[str]] = Field(None, max_length=500)

    # Schedule / matches
    tables: Optional[List[int]] = Field(None, max_length=50, description="Pool table numbers")
    round: Optional[int] = Field(None, ge=1, le=999, description="Round number (1-999)")
    a: Optional[str] = Field(None, min_length=1, max_length=64)
    b: Optional[str] = Field(None, min_length=1, max_length=64)
    table: Optional[int] = Field(None, ge=1, le=999)
    winner8Ball: Optional[str] = Field(None, min_length=1, max_length=64)
    winner9Ball: Optional[str] = Field(None, min_length=1, max_length=64)

    # Game entries
    gameId: Optional[str] = Field(None, description="Canonical game id, e.g. 'bowling-1'")
    raw: Optional[float] = Field(None, ge=0, le=100000, description="Raw score")
    place: Optional[int] = Field(None, ge=1, le=1000, description="Hand-entered place")
    attempts: Optional[List[float]] = Field(None, max_length=3, description="Up to 3 attempts")
    tieBreak: Optional[Dict[str, Any]] = None
    finalized: Optional[bool] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        """Validate command type is one of allowed types"""
        if v not in COMMAND_TYPES:
            raise ValueError(f"type must be one of {sorted(COMMAND_TYPES)}, got {v}")
        return v

    @field_validator("gameId")
    @classmethod
    def validate_game_id(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v not in ALL_GAME_IDS:
            raise ValueError(f"unknown gameId: {v}")
        return v

    @field_validator("displayName")
    @classmethod
    def validate_display_name(cls, v: Optional[str]) -> Optional[str]:
        """Validate display name is safe"""
        if v is None:
            return v
        v = v.strip()
        if len(v) == 0:
            raise ValueError("displayName cannot be empty")

        dangerous_patterns = ["<script", "</script", "javascript:", "onerror=", "onload=", "<iframe"]
        v_upper = v.upper()
        for pattern in dangerous_patterns:
            if pattern.upper() in v_upper:
                raise ValueError(f"displayName contains potentially dangerous pattern: {pattern}")

        # Block HTML tags
        if "<" in v and ">" in v:
            raise ValueError("displayName contains HTML tags")
        return v

    @field_validator("tables")
    @classmethod
    def validate_tables(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        for t in v:
            if t < 1 or t > 999:
                raise ValueError("table numbers must be 1-999")
        return v

    @field_validator("attempts")
    @classmethod
    def validate_attempts(cls, v: Optional[List[float]]) -> Optional[List[float]]:
        if v is None:
            return v
        for value in v:
            if value < 0:
                raise ValueError("attempts cannot be negative")
        return v

    @model_validator(mode="after")
    def validate_command_fields(self) -> Self:
        """Validate required fields based on command type"""
        cmd_type = self.type
        given = self.model_fields_set

        if cmd_type in {"ADD_COMPETITOR", "RENAME_COMPETITOR"}:
            if self.personId is None or self.displayName is None:
                raise ValueError(f"{cmd_type} requires personId and displayName")

        elif cmd_type == "DELETE_COMPETITOR":
            if self.personId is None:
                raise ValueError("DELETE_COMPETITOR requires personId")

        elif cmd_type == "REORDER_COMPETITORS":
            if self.competitorOrder is None:
                raise ValueError("REORDER_COMPETITORS requires competitorOrder")

        elif cmd_type == "RECORD_MATCH":
            if None in (self.round, self.a, self.b, self.winner8Ball, self.winner9Ball):
                raise ValueError("RECORD_MATCH requires round, a, b, winner8Ball and winner9Ball")

        elif cmd_type == "CLEAR_MATCH":
            if None in (self.round, self.a, self.b):
                raise ValueError("CLEAR_MATCH requires round, a and b")

        elif cmd_type in {"SET_RAW", "SET_PLACE", "SET_ATTEMPTS"}:
            # None is a legal value (clears the entry), but the field must be sent.
            value_field = {"SET_RAW": "raw", "SET_PLACE": "place", "SET_ATTEMPTS": "attempts"}[cmd_type]
            if self.gameId is None or self.personId is None or value_field not in given:
                raise ValueError(f"{cmd_type} requires gameId, personId and {value_field}")

        elif cmd_type == "SET_TIE_BREAK":
            if self.gameId is None or "tieBreak" not in given:
                raise ValueError("SET_TIE_BREAK requires gameId and tieBreak")

        elif cmd_type == "SET_GAME_FINALIZED":
            if self.gameId is None or self.finalized is None:
                raise ValueError("SET_GAME_FINALIZED requires gameId and finalized")

        return self

    model_config = ConfigDict(populate_by_name=True, extra="forbid")


def validate_tie_break(tie_break: Optional[Dict[str, Any]]) -> List[str]:
    """Return human-readable problems with a tie-break record (empty list when valid)."""
    if not tie_break:
        return []
    errors: List[str] = []
    if not tie_break.get("type"):
        errors.append("tieBreak.type is required")
    elif tie_break.get("type") not in TIE_BREAK_TYPES:
        errors.append(f"tieBreak.type must be one of {sorted(TIE_BREAK_TYPES)}")
    participants = tie_break.get("participants")
    if not isinstance(participants, list) or len(participants) < 2:
        errors.append("tieBreak.participants must include at least 2 participants")
    elif len(set(participants)) != len(participants):
        errors.append("tieBreak.participants must not repeat")
    winner = tie_break.get("winner")
    if not winner:
        errors.append("tieBreak.winner is required")
    elif isinstance(participants, list) and winner not in participants:
        errors.append("tieBreak.winner must be one of the participants")
    return errors


class InputSanitizer:
    """Utility class for input sanitization"""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        """Sanitize string input"""
        if not isinstance(value, str):
            return str(value)[:max_length]

        # Strip whitespace
        value = value.strip()

        # Limit length
        value = value[:max_length]

        # Remove null bytes
        value = value.replace("\0", "")

        return value

    @staticmethod
    def sanitize_display_name(name: str) -> str:
        """Sanitize competitor display name; keeps Unicode letters, digits, spaces, dashes, apostrophes"""
        name = InputSanitizer.sanitize_string(name, 255)
        dangerous_chars = r'[<>{}[\]\\|;&$`"\*\x00-\x1f\x7f]'
        name = re.sub(dangerous_chars, "", name)
        return name.strip()

    @staticmethod
    def sanitize_person_id(person_id: str) -> str:
        """Person ids are user-chosen keys: no whitespace or control characters"""
        person_id = InputSanitizer.sanitize_string(person_id, 64)
        return re.sub(r"[\s\x00-\x1f\x7f]", "", person_id)

    @staticmethod
    def validate_and_sanitize_cmd(cmd_dict: dict) -> ValidatedCmd:
        """
        Validate and sanitize command dictionary

        Returns:
            ValidatedCmd: Validated command object

        Raises:
            ValueError: If validation fails
        """
        try:
            cmd = ValidatedCmd(**cmd_dict)
        except Exception as e:
            logger.warning(f"Command validation failed: {e}")
            raise ValueError(f"Invalid command: {str(e)}")
        if cmd.personId is not None:
            cmd.personId = InputSanitizer.sanitize_person_id(cmd.personId)
        if cmd.displayName is not None:
            cmd.displayName = InputSanitizer.sanitize_display_name(cmd.displayName)
        return cmd


# ==================== EXPORT ====================

__all__ = [
    "COMMAND_TYPES",
    "DESTRUCTIVE_COMMANDS",
    "TIE_BREAK_TYPES",
    "ValidatedCmd",
    "InputSanitizer",
    "validate_tie_break",
]
