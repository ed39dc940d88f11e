"""Tournament settings entity.

Settings are passed explicitly to whatever needs them. Reads hand out frozen
snapshots carrying a ``version``; the only way to change them is
``apply_settings_update`` (used by the UPDATE_SETTINGS command), which bumps
the version.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict

from .errors import InvalidInputError
from .validation import SettingsUpdate, normalize_phase

logger = logging.getLogger(__name__)

DEFAULT_PRIZE_SLOT_COUNT = 8


@dataclass(frozen=True)
class TournamentSettings:
    current_phase: str = "preparing"
    prize_slot_count: int = DEFAULT_PRIZE_SLOT_COUNT
    announcement: str | None = None
    show_phase: bool = True
    show_announcement: bool = True
    version: int = 0

    @classmethod
    def from_record(cls, record: Dict[str, Any] | None) -> "TournamentSettings":
        record = record or {}
        return cls(
            current_phase=normalize_phase(record.get("current_phase") or "preparing"),
            prize_slot_count=int(record.get("prize_slot_count") or DEFAULT_PRIZE_SLOT_COUNT),
            announcement=record.get("announcement"),
            show_phase=bool(record.get("show_phase", True)),
            show_announcement=bool(record.get("show_announcement", True)),
            version=int(record.get("version") or 0),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def visible_announcement(self) -> str | None:
        return self.announcement if self.show_announcement else None


def default_settings() -> Dict[str, Any]:
    return TournamentSettings().to_record()


def apply_settings_update(current: TournamentSettings, fields: Dict[str, Any]) -> TournamentSettings:
    """Validate ``fields`` and return the next settings version.

    Only the provided fields change; an explicit ``None`` announcement clears it.
    """
    try:
        update = SettingsUpdate(**fields)
    except Exception as e:
        logger.warning(f"Settings update rejected: {e}")
        raise InvalidInputError(f"Invalid settings: {e}") from e

    changes = update.model_dump(exclude_unset=True)
    # None is only meaningful for the announcement
    changes = {k: v for k, v in changes.items() if v is not None or k == "announcement"}
    return replace(current, **changes, version=current.version + 1)
