"""Squad grouping for a round's shooting order.

Squads are derived, never stored: every board (calling, score entry, signage)
recomputes them from the current order values of a round.

- Non-absent entries with an order in the round are sorted by that order.
- They are split into ``ceil(n / squad_size)`` consecutive squads whose sizes
  differ by at most one; the larger squads come last (13 at size 5 → 4, 4, 5),
  so the round never ends with an isolated shooter.
- Squads alternate ranges: even index → first range, odd index → second range.
  Two consecutive squads shoot together and share a ``pair_number``.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .config import RoundConfig, SquadConfig
from .errors import InvalidInputError


@dataclass(frozen=True)
class Squad:
    number: int
    pair_number: int
    venue: str
    round_key: str
    entry_ids: tuple[str, ...]
    entries: tuple[Dict[str, Any], ...]
    start_order: int
    end_order: int
    status: str
    is_mixed: bool

    @property
    def size(self) -> int:
        return len(self.entry_ids)

    @property
    def label(self) -> str:
        return f"Squad {self.pair_number} - {self.venue}"


def squad_sizes(count: int, squad_size: int = SquadConfig.SQUAD_SIZE) -> list[int]:
    """Sizes of the squads for ``count`` shooters, in shooting order.

    Examples:
        - 13, 5 → [4, 4, 5]
        - 10, 5 → [5, 5]
        - 7, 5 → [3, 4]
        - 0, 5 → []
    """
    if isinstance(squad_size, bool) or not isinstance(squad_size, int) or squad_size < 1:
        raise InvalidInputError(f"squad_size must be a positive integer, got {squad_size!r}")
    if count <= 0:
        return []
    total = math.ceil(count / squad_size)
    base, remainder = divmod(count, total)
    return [base] * (total - remainder) + [base + 1] * remainder


def eligible_in_order(entries: Sequence[Dict[str, Any]], round_key: str) -> List[Dict[str, Any]]:
    """Non-absent entries holding an order in ``round_key``, sorted by that order."""
    order_field = RoundConfig.get(round_key).order_field
    eligible = [
        entry
        for entry in entries
        if not entry.get("is_absent") and entry.get(order_field) is not None
    ]
    eligible.sort(key=lambda entry: (int(entry[order_field]), entry.get("bib_number") or 0))
    return eligible


def group_squads(
    entries: Sequence[Dict[str, Any]],
    round_key: str,
    squad_size: int = SquadConfig.SQUAD_SIZE,
) -> tuple[Squad, ...]:
    spec = RoundConfig.get(round_key)
    ordered = eligible_in_order(entries, round_key)
    sizes = squad_sizes(len(ordered), squad_size)

    squads: list[Squad] = []
    start = 0
    for index, size in enumerate(sizes):
        members = ordered[start : start + size]
        start += size
        statuses = [member.get(spec.status_field) or "waiting" for member in members]
        squads.append(
            Squad(
                number=index + 1,
                pair_number=index // 2 + 1,
                venue=SquadConfig.VENUES[index % 2],
                round_key=round_key,
                entry_ids=tuple(str(member["id"]) for member in members),
                entries=tuple(members),
                start_order=int(members[0][spec.order_field]),
                end_order=int(members[-1][spec.order_field]),
                # Board shows the first member's status as the squad's status
                status=statuses[0],
                is_mixed=len(set(statuses)) > 1,
            )
        )
    return tuple(squads)


def squad_for_entry(squads: Sequence[Squad], entry_id: str) -> Squad | None:
    for squad in squads:
        if entry_id in squad.entry_ids:
            return squad
    return None
