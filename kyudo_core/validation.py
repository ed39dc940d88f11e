"""
Input validation schemas using Pydantic v2
Validates all command types, settings updates and import rows
"""

import logging
import re
from typing import Dict, List, Optional, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .config import RoundConfig
from .errors import InvalidInputError

logger = logging.getLogger(__name__)

CALL_STATUSES = ("waiting", "called", "shooting", "finished")
PLAYOFF_TYPES = ("none", "izume", "enkin")
PHASES = ("preparing", "qualifying", "tallying", "final", "finished")

# Older boards wrote these phase values
PHASE_ALIASES = {
    "qualifier": "qualifying",
    "tally": "tallying",
}

COMMAND_TYPES = {
    "SUBMIT_SCORES",
    "UPDATE_ENTRY",
    "MARK_ABSENT",
    "SET_SQUAD_STATUS",
    "SET_PLAYOFF_TYPE",
    "ADJUST_PLAYOFF",
    "SET_FINAL_RANK",
    "UPDATE_SETTINGS",
    "IMPORT_ENTRIES",
}

# Entry columns an operator may change through UPDATE_ENTRY
EDITABLE_ENTRY_FIELDS = (
    {"player_name", "team_name", "final_ranking", "playoff_type", "playoff_score", "playoff_result"}
    | {spec.order_field for spec in RoundConfig.ROUNDS}
    | {spec.score_field for spec in RoundConfig.ROUNDS}
    | {spec.status_field for spec in RoundConfig.ROUNDS}
)


def normalize_phase(value: str) -> str:
    phase = value.strip().lower()
    phase = PHASE_ALIASES.get(phase, phase)
    if phase not in PHASES:
        raise ValueError(f"current_phase must be one of {PHASES}, got {value}")
    return phase


def _check_round(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    if value not in RoundConfig.BY_KEY:
        raise ValueError(f"round must be one of {list(RoundConfig.BY_KEY)}, got {value}")
    return value


class ValidatedCmd(BaseModel):
    """Command model with per-type field requirements"""

    type: str = Field(..., min_length=1, max_length=50, description="Command type")
    expectedVersion: Optional[int] = Field(
        None, ge=0, description="Store version the command was based on"
    )

    # Round-scoped commands
    round: Optional[str] = Field(None, description="Round key (am1, am2, pm1)")
    scores: Optional[Dict[str, int]] = Field(None, description="entry id -> hits")
    entryIds: Optional[List[str]] = Field(None, description="Squad member ids")
    status: Optional[str] = Field(None, description="Target call status")

    # Entry-scoped commands
    entryId: Optional[str] = Field(None, min_length=1, max_length=64)
    fields: Optional[dict] = None
    playoffType: Optional[str] = None
    counter: Optional[str] = None
    delta: Optional[int] = None
    finalRank: Optional[int] = Field(None, ge=1, le=9999)

    settings: Optional[dict] = None
    entries: Optional[List[dict]] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        """Validate command type is one of allowed types"""
        if v not in COMMAND_TYPES:
            raise ValueError(f"type must be one of {sorted(COMMAND_TYPES)}, got {v}")
        return v

    @field_validator("round")
    @classmethod
    def validate_round(cls, v: Optional[str]) -> Optional[str]:
        return _check_round(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v not in CALL_STATUSES:
            raise ValueError(f"status must be one of {CALL_STATUSES}, got {v}")
        return v

    @field_validator("playoffType")
    @classmethod
    def validate_playoff_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v not in PLAYOFF_TYPES:
            raise ValueError(f"playoffType must be one of {PLAYOFF_TYPES}, got {v}")
        return v

    @field_validator("counter")
    @classmethod
    def validate_counter(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v not in {"score", "result"}:
            raise ValueError("counter must be 'score' or 'result'")
        return v

    @field_validator("delta")
    @classmethod
    def validate_delta(cls, v: Optional[int]) -> Optional[int]:
        # Playoff counters only move by discrete single steps
        if v is None:
            return v
        if v not in (1, -1):
            raise ValueError("delta must be +1 or -1")
        return v

    @field_validator("entryIds")
    @classmethod
    def validate_entry_ids(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        if len(v) == 0:
            raise ValueError("entryIds cannot be empty")
        if len(set(v)) != len(v):
            raise ValueError("entryIds contains duplicates")
        return v

    @field_validator("fields")
    @classmethod
    def validate_fields(cls, v: Optional[dict]) -> Optional[dict]:
        if v is None:
            return v
        unknown = sorted(set(v) - EDITABLE_ENTRY_FIELDS)
        if unknown:
            raise ValueError(f"fields not editable: {unknown}")
        return v

    @model_validator(mode="after")
    def validate_command_fields(self) -> Self:
        """Validate required fields based on command type"""
        cmd_type = self.type

        if cmd_type == "SUBMIT_SCORES":
            if self.round is None:
                raise ValueError("SUBMIT_SCORES requires round")
            if not self.scores:
                raise ValueError("SUBMIT_SCORES requires scores")

        elif cmd_type == "SET_SQUAD_STATUS":
            if self.round is None:
                raise ValueError("SET_SQUAD_STATUS requires round")
            if self.entryIds is None:
                raise ValueError("SET_SQUAD_STATUS requires entryIds")
            if self.status is None:
                raise ValueError("SET_SQUAD_STATUS requires status")

        elif cmd_type in {"MARK_ABSENT", "SET_PLAYOFF_TYPE", "ADJUST_PLAYOFF", "SET_FINAL_RANK"}:
            if self.entryId is None:
                raise ValueError(f"{cmd_type} requires entryId")
            if cmd_type == "ADJUST_PLAYOFF" and (self.counter is None or self.delta is None):
                raise ValueError("ADJUST_PLAYOFF requires counter and delta")

        elif cmd_type == "UPDATE_ENTRY":
            if self.entryId is None or not self.fields:
                raise ValueError("UPDATE_ENTRY requires entryId and fields")

        elif cmd_type == "UPDATE_SETTINGS":
            if not self.settings:
                raise ValueError("UPDATE_SETTINGS requires settings")

        elif cmd_type == "IMPORT_ENTRIES":
            if self.entries is None:
                raise ValueError("IMPORT_ENTRIES requires entries")

        return self

    model_config = ConfigDict(extra="forbid")


class SettingsUpdate(BaseModel):
    """Fields an operator may change on the tournament settings"""

    current_phase: Optional[str] = None
    prize_slot_count: Optional[int] = Field(None, ge=1, le=999)
    announcement: Optional[str] = Field(None, max_length=2000)
    show_phase: Optional[bool] = None
    show_announcement: Optional[bool] = None

    @field_validator("current_phase")
    @classmethod
    def validate_phase(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        normalized = normalize_phase(v)
        if normalized != v:
            logger.debug(f"Normalized current_phase: {v} → {normalized}")
        return normalized

    @field_validator("announcement")
    @classmethod
    def validate_announcement(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = InputSanitizer.sanitize_string(v, 2000)
        # An emptied announcement clears the banner
        return v or None

    model_config = ConfigDict(extra="forbid")


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class ImportRow(BaseModel):
    """One row of a bulk import (roster or full backup)"""

    id: Optional[str] = Field(None, max_length=64)
    bib_number: int = Field(..., ge=1, le=99999)
    player_name: str = Field(..., min_length=1, max_length=255)
    team_name: str = Field(..., min_length=1, max_length=255)
    is_absent: bool = False

    order_am1: Optional[int] = Field(None, ge=1)
    order_am2: Optional[int] = Field(None, ge=1)
    order_pm1: Optional[int] = Field(None, ge=1)
    score_am1: Optional[int] = Field(None, ge=0)
    score_am2: Optional[int] = Field(None, ge=0)
    score_pm1: Optional[int] = Field(None, ge=0)
    status_am1: Optional[str] = None
    status_am2: Optional[str] = None
    status_pm1: Optional[str] = None

    final_ranking: Optional[int] = Field(None, ge=1)
    playoff_type: Optional[str] = None
    playoff_score: Optional[int] = Field(None, ge=0)
    playoff_result: Optional[int] = Field(None, ge=0)

    @field_validator("*", mode="before")
    @classmethod
    def blank_cells_are_missing(cls, v):
        return _blank_to_none(v)

    @field_validator("is_absent", mode="before")
    @classmethod
    def coerce_absent(cls, v):
        if v is None:
            return False
        if isinstance(v, str):
            lowered = v.strip().lower()
            if lowered in {"1", "true", "yes", "y", "on"}:
                return True
            if lowered in {"0", "false", "no", "n", "off", ""}:
                return False
            raise ValueError(f"is_absent must be a boolean, got {v}")
        return v

    @field_validator("player_name", "team_name")
    @classmethod
    def validate_names(cls, v: str) -> str:
        v = InputSanitizer.sanitize_competitor_name(v)
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @field_validator("status_am1", "status_am2", "status_pm1")
    @classmethod
    def validate_statuses(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v not in CALL_STATUSES:
            raise ValueError(f"status must be one of {CALL_STATUSES}, got {v}")
        return v

    @field_validator("playoff_type")
    @classmethod
    def validate_playoff_type(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if v not in PLAYOFF_TYPES:
            raise ValueError(f"playoff_type must be one of {PLAYOFF_TYPES}, got {v}")
        return v

    @model_validator(mode="after")
    def validate_scores_in_range(self) -> Self:
        for spec in RoundConfig.ROUNDS:
            value = getattr(self, spec.score_field)
            if value is not None and value > spec.max_score:
                raise ValueError(
                    f"{spec.score_field} must be between 0 and {spec.max_score}, got {value}"
                )
        return self

    model_config = ConfigDict(extra="ignore")


# Characters that break the signage markup or the CSV backup; kana and kanji pass
NAME_STRIP_CHARS = re.compile(r'[<>{}[\]\\|;`"\x00-\x1f\x7f]')


class InputSanitizer:
    """Cleans operator-typed text before it reaches an entry or the settings."""

    @staticmethod
    def sanitize_string(value: str, max_length: int = 255) -> str:
        if not isinstance(value, str):
            return str(value)[:max_length]
        return value.strip()[:max_length].replace("\0", "")

    @staticmethod
    def sanitize_competitor_name(name: str) -> str:
        """Archer or team name as shown on the boards and score sheets."""
        name = InputSanitizer.sanitize_string(name, 255)
        return NAME_STRIP_CHARS.sub("", name).strip()

    @staticmethod
    def validate_and_sanitize_cmd(cmd_dict: dict) -> ValidatedCmd:
        """
        Check a tournament command from an operator screen before it reaches the store

        Returns:
            ValidatedCmd: command with its per-type fields checked

        Raises:
            InvalidInputError: unknown type, missing or malformed fields
                (details lists each pydantic error)
        """
        try:
            return ValidatedCmd(**cmd_dict)
        except PydanticValidationError as e:
            problems = [
                f"{'.'.join(str(part) for part in err['loc']) or 'command'}: {err['msg']}"
                for err in e.errors()
            ]
            logger.warning(f"{cmd_dict.get('type')} rejected: {problems}")
            raise InvalidInputError(f"Invalid command: {problems}", details=problems) from e
        except TypeError as e:
            logger.warning(f"Command rejected: {e}")
            raise InvalidInputError(f"Invalid command: {e}") from e


__all__ = [
    "CALL_STATUSES",
    "PLAYOFF_TYPES",
    "PHASES",
    "EDITABLE_ENTRY_FIELDS",
    "ValidatedCmd",
    "SettingsUpdate",
    "ImportRow",
    "InputSanitizer",
    "normalize_phase",
]
