"""Core tournament state transitions (pure, no DB/HTTP).

This module implements the business logic for a multi-round kyudo tournament.
All functions are deterministic and side-effect free.

Architecture:
- State is a plain dict: {"entries": [...], "settings": {...}, "version": int}
- Commands are plain dicts with a 'type' field (SUBMIT_SCORES, MARK_ABSENT, ...)
- apply_command() takes (state, cmd) and returns CommandOutcome with updated state
- Mutations are performed on a deepcopy; a command that raises leaves the input
  state untouched, which is what makes squad updates all-or-nothing
- The store receives CommandOutcome, swaps the state in and notifies observers

Key concepts:
- version: monotonic counter bumped by every committed command
- expectedVersion: optional on commands; older than current → stale_version
- total_score / provisional_ranking are recomputed over all entries after every
  score or absence change, never patched incrementally

Command types:
- SUBMIT_SCORES: write one round's hits for a set of entries
- UPDATE_ENTRY: edit whitelisted entry columns
- MARK_ABSENT: withdraw an entry and close the order gaps it leaves
- SET_SQUAD_STATUS: set a squad's call status for a round
- SET_PLAYOFF_TYPE / ADJUST_PLAYOFF / SET_FINAL_RANK: manual playoff workflow
- UPDATE_SETTINGS: the single update path for tournament settings
- IMPORT_ENTRIES: replace the roster with validated rows
"""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from .calling import set_squad_status
from .config import RoundConfig
from .errors import InvalidInputError
from .ordering import (
    assert_contiguous_orders,
    find_entry,
    move_entry_order,
    renumber_for_absence,
)
from .ranking import adjust_playoff_counter, apply_rankings, validate_playoff_type
from .settings import TournamentSettings, apply_settings_update, default_settings
from .types import CmdDict, EntryRecord, StateDict
from .validation import CALL_STATUSES, EDITABLE_ENTRY_FIELDS, ImportRow


@dataclass
class CommandOutcome:
    """Result of applying a core command."""

    state: Dict[str, Any]
    cmd_payload: Dict[str, Any]
    snapshot_required: bool
    changed_tables: tuple[str, ...] = ()


@dataclass
class ValidationError:
    """Represents a non-transport validation failure (pure core)."""

    kind: str
    message: str | None = None
    status_code: int | None = None


def default_state() -> StateDict:
    """Create an empty tournament state.

    Returns:
        Dict with keys:
        - entries: list of entry records (empty until IMPORT_ENTRIES)
        - settings: settings record (phase 'preparing', default prize slots)
        - version: 0
    """
    return {
        "entries": [],
        "settings": default_settings(),
        "version": 0,
    }


def new_entry(
    entry_id: str,
    bib_number: int,
    player_name: str = "",
    team_name: str = "",
    **fields: Any,
) -> EntryRecord:
    """Build a complete entry record with every round column present."""
    entry: EntryRecord = {
        "id": entry_id,
        "bib_number": bib_number,
        "player_name": player_name,
        "team_name": team_name,
        "is_absent": False,
        "total_score": 0,
        "provisional_ranking": None,
        "final_ranking": None,
        "playoff_type": None,
        "playoff_score": None,
        "playoff_result": None,
    }
    for spec in RoundConfig.ROUNDS:
        entry[spec.order_field] = None
        entry[spec.score_field] = None
        entry[spec.status_field] = "waiting"
    entry.update(fields)
    return entry


def _coerce_score(value: Any, round_key: str) -> int:
    spec = RoundConfig.get(round_key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{spec.score_field} must be an integer, got {value!r}")
    if value < 0 or value > spec.max_score:
        raise InvalidInputError(
            f"{spec.score_field} must be between 0 and {spec.max_score}, got {value}"
        )
    return value


def _check_entry_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Validate an UPDATE_ENTRY field map against column types and bounds."""
    unknown = sorted(set(fields) - EDITABLE_ENTRY_FIELDS)
    if unknown:
        raise InvalidInputError(f"fields not editable: {unknown}")
    checked: Dict[str, Any] = {}
    for key, value in fields.items():
        if key.startswith("score_"):
            checked[key] = None if value is None else _coerce_score(value, key[len("score_"):])
        elif key.startswith("order_"):
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 1):
                raise InvalidInputError(f"{key} must be a positive integer, got {value!r}")
            checked[key] = value
        elif key.startswith("status_"):
            if value not in CALL_STATUSES:
                raise InvalidInputError(f"{key} must be one of {CALL_STATUSES}, got {value!r}")
            checked[key] = value
        elif key == "playoff_type":
            checked[key] = validate_playoff_type(value)
        elif key in {"playoff_score", "playoff_result", "final_ranking"}:
            floor = 1 if key == "final_ranking" else 0
            if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < floor):
                raise InvalidInputError(f"{key} must be an integer >= {floor}, got {value!r}")
            checked[key] = value
        else:
            if not isinstance(value, str) or not value.strip():
                raise InvalidInputError(f"{key} must be a non-empty string")
            checked[key] = value.strip()
    return checked


# Derived columns a backup carries; recomputed on import
DERIVED_ENTRY_FIELDS = {"total_score", "provisional_ranking"}


def _entry_from_row(row: Dict[str, Any], position: int) -> Dict[str, Any]:
    """Validate one import row with the same rules as the CSV importer."""
    if not isinstance(row, dict):
        raise InvalidInputError(f"row {position}: import rows must be objects")
    unknown = sorted(set(row) - set(ImportRow.model_fields) - DERIVED_ENTRY_FIELDS)
    if unknown:
        raise InvalidInputError(f"row {position}: unknown columns {unknown}")
    if not row.get("id"):
        raise InvalidInputError(f"row {position}: id is required")
    try:
        parsed = ImportRow(**row)
    except PydanticValidationError as e:
        problems = [
            f"row {position}: {'.'.join(str(part) for part in err['loc']) or 'row'}: {err['msg']}"
            for err in e.errors()
        ]
        raise InvalidInputError(f"row {position} rejected", details=problems) from e
    fields = parsed.model_dump(exclude_none=True)
    entry_id = str(fields.pop("id"))
    bib_number = fields.pop("bib_number")
    return new_entry(entry_id, bib_number, **fields)


def _apply_transition(state: Dict[str, Any], cmd: Dict[str, Any]) -> CommandOutcome:
    """Apply pure state transition without side effects.

    Args:
        state: Current tournament state dict (not mutated)
        cmd: Command dict with 'type' field and command-specific params

    Returns:
        CommandOutcome with:
        - state: Updated state dict (deepcopy with changes applied)
        - cmd_payload: Enriched command (adds resolved fields like affected rounds)
        - snapshot_required: True if the store should persist/broadcast
        - changed_tables: entity classes observers must re-pull

    Raises:
        InvalidInputError / EntryNotFoundError / SquadUpdateError on rejected input
    """
    new_state: Dict[str, Any] = deepcopy(state)
    ctype = cmd.get("type")
    payload = dict(cmd)
    snapshot_required = False
    changed: tuple[str, ...] = ()
    entries: List[Dict[str, Any]] = new_state.get("entries") or []

    if ctype == "SUBMIT_SCORES":
        spec = RoundConfig.get(cmd.get("round"))
        raw_scores = cmd.get("scores") or {}
        if not isinstance(raw_scores, dict) or not raw_scores:
            raise InvalidInputError("SUBMIT_SCORES requires a non-empty scores map")
        # Validate everything first; one bad score rejects the whole batch
        checked: Dict[str, int] = {}
        for entry_id, value in raw_scores.items():
            entry = find_entry(entries, entry_id)
            if entry.get("is_absent"):
                raise InvalidInputError(f"entry {entry_id!r} is absent")
            checked[entry_id] = _coerce_score(value, spec.key)
        for entry_id, value in checked.items():
            find_entry(entries, entry_id)[spec.score_field] = value
        new_state["entries"] = apply_rankings(entries)
        payload["scores"] = checked
        snapshot_required = True
        changed = ("entries",)

    elif ctype == "UPDATE_ENTRY":
        entry_id = cmd.get("entryId")
        find_entry(entries, entry_id)
        fields = _check_entry_fields(cmd.get("fields") or {})
        # Order edits move the entry and shift the ones in between
        for key, value in fields.items():
            if key.startswith("order_"):
                entries = move_entry_order(entries, entry_id, key[len("order_"):], value)
        find_entry(entries, entry_id).update(
            {key: value for key, value in fields.items() if not key.startswith("order_")}
        )
        new_state["entries"] = apply_rankings(entries)
        payload["fields"] = fields
        snapshot_required = True
        changed = ("entries",)

    elif ctype == "MARK_ABSENT":
        outcome = _renumber(entries, cmd.get("entryId"))
        new_state["entries"] = apply_rankings(outcome.entries)
        payload["rounds"] = list(outcome.rounds)
        payload["removedOrders"] = dict(outcome.removed_orders)
        snapshot_required = True
        changed = ("entries",)

    elif ctype == "SET_SQUAD_STATUS":
        change = set_squad_status(
            entries, cmd.get("round"), cmd.get("entryIds") or [], cmd.get("status")
        )
        new_state["entries"] = change.entries
        payload["changedIds"] = list(change.changed_ids)
        # Repeating the same status succeeds without a new version
        snapshot_required = not change.is_noop
        changed = ("entries",) if snapshot_required else ()

    elif ctype == "SET_PLAYOFF_TYPE":
        entry = find_entry(entries, cmd.get("entryId"))
        playoff_type = validate_playoff_type(cmd.get("playoffType"))
        entry["playoff_type"] = playoff_type
        if playoff_type in (None, "none"):
            entry["playoff_score"] = None
            entry["playoff_result"] = None
        else:
            entry["playoff_score"] = entry.get("playoff_score") or 0
            entry["playoff_result"] = entry.get("playoff_result") or 0
        snapshot_required = True
        changed = ("entries",)

    elif ctype == "ADJUST_PLAYOFF":
        entry = find_entry(entries, cmd.get("entryId"))
        if entry.get("playoff_type") in (None, "none"):
            raise InvalidInputError(f"entry {entry.get('id')!r} has no playoff assigned")
        counter = cmd.get("counter")
        if counter not in {"score", "result"}:
            raise InvalidInputError("counter must be 'score' or 'result'")
        field = f"playoff_{counter}"
        entry[field] = adjust_playoff_counter(entry.get(field), cmd.get("delta"))
        payload["value"] = entry[field]
        snapshot_required = True
        changed = ("entries",)

    elif ctype == "SET_FINAL_RANK":
        entry = find_entry(entries, cmd.get("entryId"))
        final_rank = cmd.get("finalRank")
        if final_rank is not None and (
            isinstance(final_rank, bool) or not isinstance(final_rank, int) or final_rank < 1
        ):
            raise InvalidInputError(f"finalRank must be a positive integer, got {final_rank!r}")
        entry["final_ranking"] = final_rank
        snapshot_required = True
        changed = ("entries",)

    elif ctype == "UPDATE_SETTINGS":
        current = TournamentSettings.from_record(new_state.get("settings"))
        updated = apply_settings_update(current, cmd.get("settings") or {})
        new_state["settings"] = updated.to_record()
        payload["settingsVersion"] = updated.version
        snapshot_required = True
        changed = ("settings",)

    elif ctype == "IMPORT_ENTRIES":
        imported = [
            _entry_from_row(row, position)
            for position, row in enumerate(deepcopy(cmd.get("entries") or []), start=1)
        ]
        ids = [entry["id"] for entry in imported]
        bibs = [entry["bib_number"] for entry in imported]
        if len(set(ids)) != len(ids):
            raise InvalidInputError("duplicate entry ids in import")
        if len(set(bibs)) != len(bibs):
            raise InvalidInputError("duplicate bib numbers in import")
        assert_contiguous_orders(imported)
        new_state["entries"] = apply_rankings(imported)
        payload["count"] = len(imported)
        payload.pop("entries", None)
        snapshot_required = True
        changed = ("entries",)

    else:
        raise InvalidInputError(f"unknown command type {ctype!r}")

    if snapshot_required:
        new_state["version"] = int(new_state.get("version") or 0) + 1
    payload["version"] = new_state.get("version", 0)

    return CommandOutcome(
        state=new_state,
        cmd_payload=payload,
        snapshot_required=snapshot_required,
        changed_tables=changed,
    )


def _renumber(entries: List[Dict[str, Any]], entry_id: Any):
    if not isinstance(entry_id, str) or not entry_id:
        raise InvalidInputError("MARK_ABSENT requires entryId")
    return renumber_for_absence(entries, entry_id)


def apply_command(state: StateDict, cmd: CmdDict) -> CommandOutcome:
    """Apply a tournament command to in-memory state.

    Args:
        state: Current state dict (not mutated)
        cmd: Command dict with 'type' field and command-specific params

    Returns:
        CommandOutcome with updated state, enriched command payload and flags
    """
    return _apply_transition(state, cmd)


def validate_version(state: StateDict, cmd: CmdDict) -> ValidationError | None:
    """Reject commands computed against an older store version.

    Returns ValidationError(kind='stale_version') when cmd.expectedVersion is
    behind the state's version, otherwise None. Commands without
    expectedVersion are accepted; the store serializes them.

    Example: two operators both load version 7 and mark different entries
    absent. The first commits version 8; the second still says 7 and is
    rejected, so it re-fetches orders instead of renumbering a stale list.
    """
    incoming = cmd.get("expectedVersion")
    current = int(state.get("version") or 0)
    if incoming is not None and incoming < current:
        return ValidationError(
            kind="stale_version",
            message=f"state is at version {current}, command expected {incoming}",
            status_code=409,
        )
    return None
