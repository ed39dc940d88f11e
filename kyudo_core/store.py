"""In-process tournament store.

Holds the single tournament state, runs every write through the pure command
layer and serializes writes with one lock:

- a write that cannot take the lock in time raises StoreTimeoutError
- a write based on an outdated version (expected_version) raises ConflictError
- a write that fails validation leaves the previous state in place
- reads copy the state under the lock, so ranking never mixes versions
- committed writes notify subscribers of the changed tables after the lock is
  released
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from copy import deepcopy
from typing import Any, Callable, Dict, Iterable, Iterator, List, Sequence

from .calling import StatusBoard, status_board
from .config import LockConfig, RoundConfig
from .errors import ConflictError, StoreTimeoutError
from .events import ChangeEvent, EventChannel, Subscription
from .ranking import RankingResult, compute_standings
from .settings import TournamentSettings
from .squads import Squad, group_squads
from .tournament import CommandOutcome, apply_command, default_state, validate_version
from .validation import InputSanitizer

logger = logging.getLogger(__name__)


class MemoryStore:
    def __init__(
        self,
        state: Dict[str, Any] | None = None,
        *,
        lock_timeout: float = LockConfig.ACQUIRE_TIMEOUT_SEC,
        events: EventChannel | None = None,
    ) -> None:
        self._state: Dict[str, Any] = deepcopy(state) if state is not None else default_state()
        self._lock = threading.Lock()
        self._lock_timeout = lock_timeout
        self.events = events or EventChannel()

    @contextmanager
    def _locked(self, action: str) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            logger.warning(f"Store lock timeout during {action}")
            raise StoreTimeoutError(f"{action} timed out waiting for the store")
        try:
            yield
        finally:
            self._lock.release()

    # ==================== WRITES ====================

    def execute(self, cmd: Dict[str, Any]) -> CommandOutcome:
        """Validate, version-check and apply one command atomically."""
        validated = InputSanitizer.validate_and_sanitize_cmd(cmd)
        clean = {k: v for k, v in validated.model_dump().items() if v is not None}
        with self._locked(clean["type"]):
            rejection = validate_version(self._state, clean)
            if rejection is not None:
                logger.warning(f"{clean['type']} rejected: {rejection.message}")
                raise ConflictError(rejection.message)
            outcome = apply_command(self._state, clean)
            if outcome.snapshot_required:
                self._state = outcome.state
                logger.info(f"{clean['type']} committed at version {self._state['version']}")
        for table in outcome.changed_tables:
            self.events.publish(
                ChangeEvent(table=table, version=outcome.state["version"], command=clean["type"])
            )
        return outcome

    def update_entry_fields(
        self, entry_id: str, fields: Dict[str, Any], *, expected_version: int | None = None
    ) -> CommandOutcome:
        return self.execute(
            {"type": "UPDATE_ENTRY", "entryId": entry_id, "fields": fields,
             "expectedVersion": expected_version}
        )

    def submit_scores(
        self, round_key: str, scores: Dict[str, int], *, expected_version: int | None = None
    ) -> CommandOutcome:
        return self.execute(
            {"type": "SUBMIT_SCORES", "round": round_key, "scores": scores,
             "expectedVersion": expected_version}
        )

    def mark_absent(self, entry_id: str, *, expected_version: int | None = None) -> CommandOutcome:
        """Withdraw an entry and renumber its unplayed rounds. Irreversible."""
        return self.execute(
            {"type": "MARK_ABSENT", "entryId": entry_id, "expectedVersion": expected_version}
        )

    def set_squad_status(
        self, round_key: str, entry_ids: Sequence[str], status: str
    ) -> CommandOutcome:
        """Set every member to ``status`` or none of them; repeating a status is a no-op."""
        return self.execute(
            {"type": "SET_SQUAD_STATUS", "round": round_key,
             "entryIds": list(entry_ids), "status": status}
        )

    def set_playoff_type(self, entry_id: str, playoff_type: str | None) -> CommandOutcome:
        return self.execute(
            {"type": "SET_PLAYOFF_TYPE", "entryId": entry_id, "playoffType": playoff_type}
        )

    def adjust_playoff(self, entry_id: str, counter: str, delta: int) -> CommandOutcome:
        return self.execute(
            {"type": "ADJUST_PLAYOFF", "entryId": entry_id, "counter": counter, "delta": delta}
        )

    def set_final_rank(self, entry_id: str, final_rank: int | None) -> CommandOutcome:
        return self.execute({"type": "SET_FINAL_RANK", "entryId": entry_id, "finalRank": final_rank})

    def update_settings(
        self, fields: Dict[str, Any], *, expected_version: int | None = None
    ) -> TournamentSettings:
        outcome = self.execute(
            {"type": "UPDATE_SETTINGS", "settings": fields, "expectedVersion": expected_version}
        )
        return TournamentSettings.from_record(outcome.state["settings"])

    def import_entries(self, rows: List[Dict[str, Any]]) -> CommandOutcome:
        return self.execute({"type": "IMPORT_ENTRIES", "entries": rows})

    # ==================== READS ====================

    def snapshot(self) -> Dict[str, Any]:
        with self._locked("snapshot"):
            return deepcopy(self._state)

    @property
    def version(self) -> int:
        with self._locked("version"):
            return int(self._state.get("version") or 0)

    def list_entries(self, round_key: str | None = None) -> List[Dict[str, Any]]:
        """All entries, or only those holding an order in ``round_key`` sorted by it."""
        entries = self.snapshot()["entries"]
        if round_key is None:
            return sorted(entries, key=lambda entry: entry.get("bib_number") or 0)
        order_field = RoundConfig.get(round_key).order_field
        in_round = [entry for entry in entries if entry.get(order_field) is not None]
        in_round.sort(key=lambda entry: entry[order_field])
        return in_round

    def get_settings(self) -> TournamentSettings:
        return TournamentSettings.from_record(self.snapshot()["settings"])

    def standings(self) -> RankingResult:
        state = self.snapshot()
        settings = TournamentSettings.from_record(state["settings"])
        return compute_standings(state["entries"], settings.prize_slot_count)

    def squads(self, round_key: str) -> tuple[Squad, ...]:
        return group_squads(self.snapshot()["entries"], round_key)

    def status_board(self, round_key: str) -> StatusBoard:
        return status_board(self.snapshot()["entries"], round_key)

    # ==================== NOTIFICATIONS ====================

    def subscribe_to_changes(
        self, tables: Iterable[str], callback: Callable[[ChangeEvent], None]
    ) -> Subscription:
        return self.events.subscribe(tables, callback)
