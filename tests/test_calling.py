from __future__ import annotations

import pytest

from kyudo_core import (
    EntryNotFoundError,
    InvalidInputError,
    SquadUpdateError,
    group_squads,
    on_deck_entries,
    set_squad_status,
    shooting_entries,
    status_board,
)

from .helpers import by_id, make_entries


def test_set_squad_status_updates_every_member():
    entries = make_entries(10)
    squad = group_squads(entries, "am1")[0]
    change = set_squad_status(entries, "am1", squad.entry_ids, "called")
    after = by_id(change.entries)
    assert change.changed_ids == squad.entry_ids
    assert all(after[eid]["status_am1"] == "called" for eid in squad.entry_ids)
    assert all(after[f"e{n}"]["status_am1"] == "waiting" for n in range(6, 11))
    # Other rounds untouched
    assert all(after[eid]["status_am2"] == "waiting" for eid in squad.entry_ids)


def test_same_status_twice_is_noop():
    entries = make_entries(5)
    ids = [e["id"] for e in entries]
    first = set_squad_status(entries, "pm1", ids, "shooting")
    second = set_squad_status(first.entries, "pm1", ids, "shooting")
    assert second.is_noop
    assert second.entries == first.entries


def test_any_transition_is_allowed():
    entries = make_entries(5)
    ids = [e["id"] for e in entries]
    done = set_squad_status(entries, "am1", ids, "finished").entries
    back = set_squad_status(done, "am1", ids, "waiting").entries
    assert all(e["status_am1"] == "waiting" for e in back)


def test_unknown_member_rejects_whole_squad():
    entries = make_entries(5)
    with pytest.raises(EntryNotFoundError):
        set_squad_status(entries, "am1", ["e1", "e2", "ghost"], "called")
    assert all(e["status_am1"] == "waiting" for e in entries)


def test_absent_member_rejects_whole_squad():
    entries = make_entries(5)
    entries[2]["is_absent"] = True
    with pytest.raises(SquadUpdateError):
        set_squad_status(entries, "am1", ["e1", "e2", "e3"], "called")


def test_invalid_status_or_round():
    entries = make_entries(2)
    with pytest.raises(InvalidInputError):
        set_squad_status(entries, "am1", ["e1"], "done")
    with pytest.raises(InvalidInputError):
        set_squad_status(entries, "xx", ["e1"], "called")
    with pytest.raises(InvalidInputError):
        set_squad_status(entries, "am1", [], "called")


def test_status_board_filters_by_status_in_order():
    entries = make_entries(8)
    entries[6]["status_am2"] = "shooting"
    entries[5]["status_am2"] = "shooting"
    entries[7]["status_am2"] = "called"
    entries[4]["status_am2"] = "finished"
    entries[3].update(status_am2="called", is_absent=True)
    board = status_board(entries, "am2")
    assert [e["id"] for e in board.shooting] == ["e6", "e7"]
    assert [e["id"] for e in board.on_deck] == ["e8"]
    assert shooting_entries(entries, "am2") == board.shooting
    assert on_deck_entries(entries, "am2") == board.on_deck
