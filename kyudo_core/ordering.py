"""Shooting-order maintenance when a competitor withdraws.

Marking an entry absent removes it from every round it has not shot yet and
pulls everybody behind it forward by one. Rounds the entry already shot keep
their order values for the record, and those held orders move forward with
everyone else, so every round stays 1..N over the entries holding an order.
There is no inverse operation; restoring requires a snapshot.

Operators can also move a single entry within a round; the entries in between
shift by one so the sequence stays contiguous.
"""
from __future__ import annotations

import logging
from collections import Counter
from copy import deepcopy
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .config import RoundConfig
from .errors import EntryNotFoundError, InvalidInputError

logger = logging.getLogger(__name__)


@dataclass
class RenumberOutcome:
    """Entries after the renumbering and the rounds whose orders moved."""

    entries: List[Dict[str, Any]]
    rounds: tuple[str, ...]
    removed_orders: Dict[str, int]


def find_entry(entries: Sequence[Dict[str, Any]], entry_id: str) -> Dict[str, Any]:
    for entry in entries:
        if entry.get("id") == entry_id:
            return entry
    raise EntryNotFoundError(f"entry {entry_id!r} not found")


def renumber_for_absence(entries: Sequence[Dict[str, Any]], entry_id: str) -> RenumberOutcome:
    new_entries: List[Dict[str, Any]] = deepcopy(list(entries))
    target = find_entry(new_entries, entry_id)
    if target.get("is_absent"):
        raise InvalidInputError(f"entry {entry_id!r} is already absent")

    rounds: list[str] = []
    removed: Dict[str, int] = {}
    for spec in RoundConfig.ROUNDS:
        if target.get(spec.score_field) is not None:
            # Already shot: keep the historical order
            continue
        removed_order = target.get(spec.order_field)
        if removed_order is None:
            continue
        target[spec.order_field] = None
        for entry in new_entries:
            if entry is target:
                continue
            current = entry.get(spec.order_field)
            if current is not None and current > removed_order:
                entry[spec.order_field] = current - 1
        rounds.append(spec.key)
        removed[spec.key] = int(removed_order)

    target["is_absent"] = True
    logger.debug(
        f"Entry {entry_id} (bib {target.get('bib_number')}) absent; renumbered rounds {rounds}"
    )
    return RenumberOutcome(entries=new_entries, rounds=tuple(rounds), removed_orders=removed)


def move_entry_order(
    entries: Sequence[Dict[str, Any]], entry_id: str, round_key: str, new_order: int | None
) -> List[Dict[str, Any]]:
    """Place ``entry_id`` at ``new_order`` in a round, shifting the entries in between.

    ``None`` takes the entry out of the round. An entry without an order in the
    round is inserted, pushing the entries from ``new_order`` on back by one.
    """
    order_field = RoundConfig.get(round_key).order_field
    new_entries: List[Dict[str, Any]] = deepcopy(list(entries))
    target = find_entry(new_entries, entry_id)
    if target.get("is_absent"):
        raise InvalidInputError(f"entry {entry_id!r} is absent; its orders cannot move")
    others = [e for e in new_entries if e is not target and e.get(order_field) is not None]
    old_order = target.get(order_field)
    if new_order is not None and not 1 <= new_order <= len(others) + 1:
        raise InvalidInputError(
            f"{order_field} must be between 1 and {len(others) + 1}, got {new_order}"
        )
    if old_order == new_order:
        return new_entries

    for entry in others:
        current = entry[order_field]
        if old_order is not None and current > old_order:
            current -= 1
        if new_order is not None and current >= new_order:
            current += 1
        entry[order_field] = current
    target[order_field] = new_order
    logger.debug(f"Entry {entry_id} {order_field}: {old_order} -> {new_order}")
    return new_entries


def check_order_sequence(entries: Sequence[Dict[str, Any]], round_key: str) -> list[str]:
    """Problems with a round's order values (empty when contiguous).

    Every entry holding an order counts, including absent entries that keep
    the order of a round they already shot.
    """
    order_field = RoundConfig.get(round_key).order_field
    values = [entry.get(order_field) for entry in entries if entry.get(order_field) is not None]
    problems: list[str] = []
    counts = Counter(values)
    for value in sorted(v for v, n in counts.items() if n > 1):
        problems.append(f"{order_field}: duplicate order {value}")
    expected = set(range(1, len(counts) + 1))
    missing = sorted(expected - set(counts))
    unexpected = sorted(set(counts) - expected)
    if missing:
        problems.append(f"{order_field}: missing orders {missing}")
    if unexpected:
        problems.append(f"{order_field}: out-of-sequence orders {unexpected}")
    return problems


def assert_contiguous_orders(entries: Sequence[Dict[str, Any]]) -> None:
    problems: list[str] = []
    for key in RoundConfig.keys():
        problems.extend(check_order_sequence(entries, key))
    if problems:
        raise InvalidInputError("order values are not contiguous", details=problems)
