"""Qualifying standings (total hits, competition ranking, playoff detection).

Single source of truth for provisional ranks across boards and exports:
- Total = sum of recorded round hits; entries with no hits yet are unranked.
- Competition ranking: equal totals share a rank, the next total's rank is one
  plus the number of entries above it (1, 1, 3, 4, 4, 6).
- A tie group that crosses the prize cutoff needs a playoff (izume / enkin).
  Ties are never split automatically; playoff counters are operator-driven
  and the final rank is only ever set explicitly.
"""
from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Sequence

from .config import RoundConfig
from .errors import InvalidInputError
from .validation import PLAYOFF_TYPES

PlayoffType = Literal["none", "izume", "enkin"]


@dataclass(frozen=True)
class StandingRow:
    entry_id: str
    bib_number: int
    player_name: str
    team_name: str
    total_score: int
    rank: int
    in_prize: bool
    playoff_required: bool
    playoff_type: str | None
    playoff_score: int | None
    playoff_result: int | None
    final_rank: int | None


@dataclass(frozen=True)
class PlayoffGroup:
    rank: int
    total_score: int
    entry_ids: tuple[str, ...]
    # Prize places left for this group: prize_slot_count - rank + 1
    slots_remaining: int


@dataclass(frozen=True)
class RankingResult:
    rows: tuple[StandingRow, ...]
    playoff_groups: tuple[PlayoffGroup, ...]
    unranked_ids: tuple[str, ...]
    prize_slot_count: int

    @property
    def is_resolved(self) -> bool:
        """True when every playoff participant has a final rank."""
        flagged = set(self.playoff_entry_ids)
        return all(row.final_rank is not None for row in self.rows if row.entry_id in flagged)

    @property
    def playoff_entry_ids(self) -> tuple[str, ...]:
        return tuple(eid for group in self.playoff_groups for eid in group.entry_ids)


def total_score(entry: Dict[str, Any]) -> int:
    return sum(
        int(entry[spec.score_field])
        for spec in RoundConfig.ROUNDS
        if entry.get(spec.score_field) is not None
    )


def has_scores(entry: Dict[str, Any]) -> bool:
    return any(entry.get(spec.score_field) is not None for spec in RoundConfig.ROUNDS)


def is_rankable(entry: Dict[str, Any]) -> bool:
    return not entry.get("is_absent") and has_scores(entry)


def competition_ranks(totals: Sequence[int]) -> list[int]:
    """Ranks for totals already sorted descending.

    Examples:
        - [10, 10, 8, 7, 7, 7, 5] → [1, 1, 3, 4, 4, 4, 7]
    """
    ranks: list[int] = []
    for position, value in enumerate(totals):
        if position > 0 and value == totals[position - 1]:
            ranks.append(ranks[-1])
        else:
            ranks.append(position + 1)
    return ranks


def tie_straddles_cutoff(rank: int, size: int, prize_slot_count: int) -> bool:
    """A shared rank needs a playoff when it starts inside the prize places
    but its last member would fall outside them."""
    return size > 1 and rank <= prize_slot_count < rank + size - 1


def _sorted_rankable(entries: Sequence[Dict[str, Any]]) -> list[Dict[str, Any]]:
    rankable = [entry for entry in entries if is_rankable(entry)]
    # Display order inside a tie is by bib number; ranks stay shared
    rankable.sort(key=lambda entry: (-total_score(entry), int(entry.get("bib_number") or 0)))
    return rankable


def _tie_groups(ordered: Sequence[Dict[str, Any]], ranks: Sequence[int]) -> list[tuple[int, list]]:
    groups: list[tuple[int, list]] = []
    for entry, rank in zip(ordered, ranks):
        if groups and groups[-1][0] == rank:
            groups[-1][1].append(entry)
        else:
            groups.append((rank, [entry]))
    return groups


def _to_row(entry: Dict[str, Any], rank: int, prize_slot_count: int, playoff: bool) -> StandingRow:
    return StandingRow(
        entry_id=str(entry.get("id")),
        bib_number=int(entry.get("bib_number") or 0),
        player_name=entry.get("player_name") or "",
        team_name=entry.get("team_name") or "",
        total_score=total_score(entry),
        rank=rank,
        in_prize=rank <= prize_slot_count,
        playoff_required=playoff,
        playoff_type=entry.get("playoff_type"),
        playoff_score=entry.get("playoff_score"),
        playoff_result=entry.get("playoff_result"),
        final_rank=entry.get("final_ranking"),
    )


def compute_standings(entries: Sequence[Dict[str, Any]], prize_slot_count: int) -> RankingResult:
    """
    Compute provisional standings for every entry.

    Args:
      entries: full entry set (one consistent snapshot).
      prize_slot_count: number of prize places (>= 1).

    Every call recomputes from scratch; nothing is carried over from a
    previous pass.
    """
    if isinstance(prize_slot_count, bool) or not isinstance(prize_slot_count, int) or prize_slot_count < 1:
        raise InvalidInputError(
            f"prize_slot_count must be a positive integer, got {prize_slot_count!r}"
        )
    ordered = _sorted_rankable(entries)
    ranks = competition_ranks([total_score(entry) for entry in ordered])

    rows: list[StandingRow] = []
    playoff_groups: list[PlayoffGroup] = []
    for rank, members in _tie_groups(ordered, ranks):
        playoff = tie_straddles_cutoff(rank, len(members), prize_slot_count)
        if playoff:
            playoff_groups.append(
                PlayoffGroup(
                    rank=rank,
                    total_score=total_score(members[0]),
                    entry_ids=tuple(str(member.get("id")) for member in members),
                    slots_remaining=prize_slot_count - rank + 1,
                )
            )
        rows.extend(_to_row(member, rank, prize_slot_count, playoff) for member in members)

    ranked_ids = {row.entry_id for row in rows}
    unranked = tuple(
        str(entry.get("id")) for entry in entries if str(entry.get("id")) not in ranked_ids
    )
    return RankingResult(
        rows=tuple(rows),
        playoff_groups=tuple(playoff_groups),
        unranked_ids=unranked,
        prize_slot_count=prize_slot_count,
    )


def apply_rankings(entries: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return copies of ``entries`` with total_score and provisional_ranking recomputed."""
    new_entries: List[Dict[str, Any]] = deepcopy(list(entries))
    ordered = _sorted_rankable(new_entries)
    ranks = competition_ranks([total_score(entry) for entry in ordered])
    rank_by_id = {id(entry): rank for entry, rank in zip(ordered, ranks)}
    for entry in new_entries:
        entry["total_score"] = total_score(entry)
        entry["provisional_ranking"] = rank_by_id.get(id(entry))
    return new_entries


def adjust_playoff_counter(value: int | None, delta: int) -> int:
    """Step a playoff counter by +1 / -1; never below zero, no upper bound."""
    if delta not in (1, -1):
        raise InvalidInputError(f"delta must be +1 or -1, got {delta!r}")
    return max(0, int(value or 0) + delta)


def validate_playoff_type(value: str | None) -> str | None:
    if value is not None and value not in PLAYOFF_TYPES:
        raise InvalidInputError(f"playoff_type must be one of {PLAYOFF_TYPES}, got {value!r}")
    return value
