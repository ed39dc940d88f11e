"""Per-round call status for squads (waiting / called / shooting / finished).

Operators may move a squad to any status at any time; the only rule is that a
squad changes as one unit. Validation runs over the whole request before a
single entry is touched, and the caller gets a new list back, so a failure
never leaves a squad half-updated.
"""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Sequence

from .config import RoundConfig
from .errors import EntryNotFoundError, InvalidInputError, SquadUpdateError
from .squads import eligible_in_order
from .validation import CALL_STATUSES

CallStatus = Literal["waiting", "called", "shooting", "finished"]


@dataclass(frozen=True)
class StatusBoard:
    round_key: str
    shooting: tuple[Dict[str, Any], ...]
    on_deck: tuple[Dict[str, Any], ...]


@dataclass
class SquadStatusChange:
    entries: List[Dict[str, Any]]
    changed_ids: tuple[str, ...]

    @property
    def is_noop(self) -> bool:
        return not self.changed_ids


def set_squad_status(
    entries: Sequence[Dict[str, Any]],
    round_key: str,
    entry_ids: Sequence[str],
    status: str,
) -> SquadStatusChange:
    spec = RoundConfig.get(round_key)
    if status not in CALL_STATUSES:
        raise InvalidInputError(f"status must be one of {CALL_STATUSES}, got {status!r}")
    if not entry_ids:
        raise InvalidInputError("squad has no members")

    wanted = list(dict.fromkeys(entry_ids))
    new_entries: List[Dict[str, Any]] = deepcopy(list(entries))
    by_id = {entry.get("id"): entry for entry in new_entries}

    missing = [entry_id for entry_id in wanted if entry_id not in by_id]
    if missing:
        raise EntryNotFoundError(f"squad members not found: {missing}", details=missing)
    absent = [entry_id for entry_id in wanted if by_id[entry_id].get("is_absent")]
    if absent:
        raise SquadUpdateError(f"squad members are absent: {absent}", details=absent)

    changed: list[str] = []
    for entry_id in wanted:
        member = by_id[entry_id]
        if (member.get(spec.status_field) or "waiting") != status:
            changed.append(entry_id)
        member[spec.status_field] = status

    return SquadStatusChange(entries=new_entries, changed_ids=tuple(changed))


def entries_with_status(
    entries: Sequence[Dict[str, Any]], round_key: str, status: str
) -> tuple[Dict[str, Any], ...]:
    status_field = RoundConfig.get(round_key).status_field
    return tuple(
        entry
        for entry in eligible_in_order(entries, round_key)
        if (entry.get(status_field) or "waiting") == status
    )


def shooting_entries(entries: Sequence[Dict[str, Any]], round_key: str) -> tuple[Dict[str, Any], ...]:
    return entries_with_status(entries, round_key, "shooting")


def on_deck_entries(entries: Sequence[Dict[str, Any]], round_key: str) -> tuple[Dict[str, Any], ...]:
    return entries_with_status(entries, round_key, "called")


def status_board(entries: Sequence[Dict[str, Any]], round_key: str) -> StatusBoard:
    """Signage view: who is on the line now and who is waiting behind them."""
    return StatusBoard(
        round_key=round_key,
        shooting=shooting_entries(entries, round_key),
        on_deck=on_deck_entries(entries, round_key),
    )
