"""Type definitions for entry records, settings and commands."""
from __future__ import annotations

from typing import Dict, List, Optional, TypedDict


class EntryRecord(TypedDict, total=False):
    """One competitor's participation record, keyed by store column name."""
    id: str
    bib_number: int
    player_name: str
    team_name: str
    is_absent: bool

    # Per-round shooting position (1-based, contiguous among non-absent entries)
    order_am1: Optional[int]
    order_am2: Optional[int]
    order_pm1: Optional[int]

    # Per-round hits (None until the round is shot)
    score_am1: Optional[int]
    score_am2: Optional[int]
    score_pm1: Optional[int]

    # Per-round call status: 'waiting' | 'called' | 'shooting' | 'finished'
    status_am1: str
    status_am2: str
    status_pm1: str

    # Derived
    total_score: int
    provisional_ranking: Optional[int]

    # Playoff / final
    final_ranking: Optional[int]
    playoff_type: Optional[str]  # 'none' | 'izume' | 'enkin'
    playoff_score: Optional[int]
    playoff_result: Optional[int]


class SettingsRecord(TypedDict, total=False):
    """Stored form of the tournament settings entity."""
    current_phase: str  # 'preparing' | 'qualifying' | 'tallying' | 'final' | 'finished'
    prize_slot_count: int
    announcement: Optional[str]
    show_phase: bool
    show_announcement: bool
    version: int


class TournamentState(TypedDict, total=False):
    entries: List[EntryRecord]
    settings: SettingsRecord
    # Monotonic counter bumped by every committed write; used for conflict detection
    version: int


class CommandPayload(TypedDict, total=False):
    """
    TypedDict for command payloads sent to apply_command().

    Fields vary by command type.
    """
    # Common
    type: str
    expectedVersion: Optional[int]

    # SUBMIT_SCORES / SET_SQUAD_STATUS
    round: Optional[str]
    scores: Optional[Dict[str, int]]
    entryIds: Optional[List[str]]
    status: Optional[str]

    # MARK_ABSENT / UPDATE_ENTRY / playoff commands
    entryId: Optional[str]
    fields: Optional[dict]
    playoffType: Optional[str]
    counter: Optional[str]  # 'score' | 'result'
    delta: Optional[int]
    finalRank: Optional[int]

    # UPDATE_SETTINGS
    settings: Optional[dict]

    # IMPORT_ENTRIES
    entries: Optional[List[dict]]


StateDict = TournamentState
CmdDict = CommandPayload
