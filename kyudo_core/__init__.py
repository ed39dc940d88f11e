from .tournament import (
    CommandOutcome,
    ValidationError,
    apply_command,
    default_state,
    new_entry,
    validate_version,
)
from .types import CommandPayload, EntryRecord, SettingsRecord, TournamentState
from .validation import ImportRow, InputSanitizer, SettingsUpdate, ValidatedCmd, normalize_phase
from .config import LockConfig, RoundConfig, RoundSpec, SquadConfig
from .errors import (
    ConflictError,
    EntryNotFoundError,
    InvalidInputError,
    KyudoCoreError,
    SquadUpdateError,
    StoreTimeoutError,
)
from .squads import Squad, group_squads, squad_for_entry, squad_sizes
from .ordering import (
    RenumberOutcome,
    assert_contiguous_orders,
    check_order_sequence,
    move_entry_order,
    renumber_for_absence,
)
from .calling import (
    StatusBoard,
    on_deck_entries,
    set_squad_status,
    shooting_entries,
    status_board,
)
from .ranking import (
    PlayoffGroup,
    RankingResult,
    StandingRow,
    adjust_playoff_counter,
    apply_rankings,
    competition_ranks,
    compute_standings,
    tie_straddles_cutoff,
)
from .settings import TournamentSettings, apply_settings_update
from .events import ChangeEvent, EventChannel, Subscription
from .store import MemoryStore
from .csv_io import export_backup_csv, export_score_sheet_csv, parse_entries_csv

__all__ = [
    "CommandOutcome",
    "CommandPayload",
    "EntryRecord",
    "SettingsRecord",
    "TournamentState",
    "ValidationError",
    "apply_command",
    "default_state",
    "new_entry",
    "validate_version",
    "ValidatedCmd",
    "SettingsUpdate",
    "ImportRow",
    "InputSanitizer",
    "normalize_phase",
    "LockConfig",
    "RoundConfig",
    "RoundSpec",
    "SquadConfig",
    "KyudoCoreError",
    "InvalidInputError",
    "EntryNotFoundError",
    "ConflictError",
    "SquadUpdateError",
    "StoreTimeoutError",
    "Squad",
    "group_squads",
    "squad_for_entry",
    "squad_sizes",
    "RenumberOutcome",
    "renumber_for_absence",
    "check_order_sequence",
    "move_entry_order",
    "assert_contiguous_orders",
    "StatusBoard",
    "set_squad_status",
    "shooting_entries",
    "on_deck_entries",
    "status_board",
    "StandingRow",
    "PlayoffGroup",
    "RankingResult",
    "competition_ranks",
    "compute_standings",
    "apply_rankings",
    "adjust_playoff_counter",
    "tie_straddles_cutoff",
    "TournamentSettings",
    "apply_settings_update",
    "ChangeEvent",
    "EventChannel",
    "Subscription",
    "MemoryStore",
    "export_backup_csv",
    "export_score_sheet_csv",
    "parse_entries_csv",
]
