from __future__ import annotations

import pytest

from kyudo_core import (
    EntryNotFoundError,
    InvalidInputError,
    assert_contiguous_orders,
    check_order_sequence,
    move_entry_order,
    renumber_for_absence,
)

from .helpers import by_id, make_entries


def test_absent_entry_closes_gap_in_every_unplayed_round():
    entries = make_entries(7)
    outcome = renumber_for_absence(entries, "e3")
    after = by_id(outcome.entries)

    assert after["e3"]["is_absent"] is True
    assert outcome.rounds == ("am1", "am2", "pm1")
    assert outcome.removed_orders == {"am1": 3, "am2": 3, "pm1": 3}
    for key in ("am1", "am2", "pm1"):
        assert after["e3"][f"order_{key}"] is None
        assert [after[f"e{n}"][f"order_{key}"] for n in (1, 2, 4, 5, 6, 7)] == [1, 2, 3, 4, 5, 6]
        assert check_order_sequence(outcome.entries, key) == []


def test_input_entries_are_not_mutated():
    entries = make_entries(3)
    renumber_for_absence(entries, "e1")
    assert entries[0]["is_absent"] is False
    assert entries[1]["order_am1"] == 2


def test_scored_round_keeps_historical_orders():
    entries = make_entries(7)
    for entry in entries:
        entry["score_am1"] = 1
    outcome = renumber_for_absence(entries, "e3")
    after = by_id(outcome.entries)

    assert outcome.rounds == ("am2", "pm1")
    assert [after[f"e{n}"]["order_am1"] for n in range(1, 8)] == [1, 2, 3, 4, 5, 6, 7]
    assert after["e3"]["score_am1"] == 1
    assert after["e4"]["order_am2"] == 3


def test_second_withdrawal_sees_first_renumbering():
    first = renumber_for_absence(make_entries(5), "e2")
    second = renumber_for_absence(first.entries, "e4")
    after = by_id(second.entries)
    assert [after[f"e{n}"]["order_pm1"] for n in (1, 3, 5)] == [1, 2, 3]
    assert check_order_sequence(second.entries, "pm1") == []


def test_marking_absent_twice_is_rejected():
    outcome = renumber_for_absence(make_entries(3), "e2")
    with pytest.raises(InvalidInputError):
        renumber_for_absence(outcome.entries, "e2")


def test_unknown_entry():
    with pytest.raises(EntryNotFoundError):
        renumber_for_absence(make_entries(3), "nope")


def test_check_order_sequence_reports_duplicates_and_gaps():
    entries = make_entries(4)
    entries[1]["order_am1"] = 1
    entries[3]["order_am1"] = 6
    problems = check_order_sequence(entries, "am1")
    assert "order_am1: duplicate order 1" in problems
    assert "order_am1: missing orders [2]" in problems
    assert "order_am1: out-of-sequence orders [6]" in problems
    with pytest.raises(InvalidInputError) as exc:
        assert_contiguous_orders(entries)
    assert exc.value.details


def test_historical_orders_of_absent_entries_count_toward_sequence():
    entries = make_entries(7)
    for entry in entries:
        entry["score_am1"] = 2
    outcome = renumber_for_absence(entries, "e4")
    # am1 still holds 1..7 with e4 keeping its shot order
    assert check_order_sequence(outcome.entries, "am1") == []
    assert check_order_sequence(outcome.entries, "am2") == []
    assert_contiguous_orders(outcome.entries)


def test_withdrawal_ahead_of_absent_entry_shifts_its_held_order():
    entries = make_entries(10)
    for entry in entries[5:]:
        entry["score_am1"] = 2
    first = renumber_for_absence(entries, "e7")
    second = renumber_for_absence(first.entries, "e3")
    after = by_id(second.entries)

    assert second.rounds == ("am1", "am2", "pm1")
    # e7 shot am1 before withdrawing; its order moves forward with the rest
    assert after["e7"]["order_am1"] == 6
    assert [after[f"e{n}"]["order_am1"] for n in (4, 5, 6, 8, 9, 10)] == [3, 4, 5, 7, 8, 9]
    for key in ("am1", "am2", "pm1"):
        assert check_order_sequence(second.entries, key) == []


def test_move_entry_forward_and_back():
    entries = make_entries(5)
    forward = by_id(move_entry_order(entries, "e5", "am1", 2))
    assert [forward[f"e{n}"]["order_am1"] for n in range(1, 6)] == [1, 3, 4, 5, 2]
    back = by_id(move_entry_order(entries, "e1", "am1", 4))
    assert [back[f"e{n}"]["order_am1"] for n in range(1, 6)] == [4, 1, 2, 3, 5]
    assert entries[4]["order_am1"] == 5


def test_move_entry_out_of_and_into_a_round():
    entries = make_entries(4)
    removed = move_entry_order(entries, "e2", "pm1", None)
    assert [e["order_pm1"] for e in removed] == [1, None, 2, 3]
    inserted = move_entry_order(removed, "e2", "pm1", 1)
    assert [e["order_pm1"] for e in inserted] == [2, 1, 3, 4]
    assert check_order_sequence(inserted, "pm1") == []


def test_move_entry_rejects_out_of_range_and_absent():
    entries = make_entries(3)
    with pytest.raises(InvalidInputError):
        move_entry_order(entries, "e1", "am1", 4)
    absent = renumber_for_absence(entries, "e2").entries
    with pytest.raises(InvalidInputError):
        move_entry_order(absent, "e2", "am1", 1)
