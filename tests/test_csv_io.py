from __future__ import annotations

import pytest

from kyudo_core import (
    InvalidInputError,
    MemoryStore,
    apply_rankings,
    export_backup_csv,
    export_score_sheet_csv,
    parse_entries_csv,
    renumber_for_absence,
)
from kyudo_core.csv_io import BACKUP_COLUMNS, read_csv, write_csv

from .helpers import by_id, make_entries


def test_roster_import_assigns_bib_order_when_orders_missing():
    text = "bib_number,player_name,team_name\n3,佐藤,京都\n1,田中,大阪\n2,鈴木,京都\n"
    rows = parse_entries_csv(text)
    by_bib = {row["bib_number"]: row for row in rows}
    assert by_bib[1]["order_am1"] == 1
    assert by_bib[3]["order_pm1"] == 3
    assert by_bib[1]["player_name"] == "田中"
    assert all(row["id"] for row in rows)


def test_import_rejects_missing_required_column():
    with pytest.raises(InvalidInputError) as exc:
        parse_entries_csv("bib_number,player_name\n1,田中\n")
    assert exc.value.details == ["team_name"]


def test_import_rejects_whole_batch_on_bad_row():
    text = "bib_number,player_name,team_name,score_am1\n1,A,T,1\n2,B,T,3\nx,C,T,\n"
    with pytest.raises(InvalidInputError) as exc:
        parse_entries_csv(text)
    assert len(exc.value.details) == 2
    assert any("line 3" in d for d in exc.value.details)
    assert any("line 4" in d for d in exc.value.details)


def test_import_rejects_duplicate_bibs():
    with pytest.raises(InvalidInputError):
        parse_entries_csv("bib_number,player_name,team_name\n1,A,T\n1,B,T\n")


def test_backup_has_bom_fixed_columns_and_blank_cells():
    text = export_backup_csv(make_entries(2))
    assert text.startswith("\ufeff")
    lines = text[1:].splitlines()
    assert lines[0].split(",") == list(BACKUP_COLUMNS)
    assert len(lines) == 3
    row = dict(zip(BACKUP_COLUMNS, lines[1].split(",")))
    assert row["score_am1"] == ""
    assert row["is_absent"] == "false"


def test_backup_round_trip_preserves_bibs_scores_and_orders():
    entries = make_entries(6)
    for entry in entries:
        entry["score_am1"] = entry["bib_number"] % 3
    entries = renumber_for_absence(entries, "e4").entries
    entries = apply_rankings(entries)
    by_id(entries)["e2"].update(playoff_type="izume", playoff_score=2, playoff_result=1)

    store = MemoryStore()
    store.import_entries(parse_entries_csv(export_backup_csv(entries)))
    restored = by_id(store.list_entries())

    for original in entries:
        copy = restored[original["id"]]
        for column in BACKUP_COLUMNS:
            assert copy[column] == original[column], column


def test_score_sheet_lists_round_in_order_with_blank_hits():
    entries = make_entries(7)
    entries[0]["score_am2"] = 2
    entries = renumber_for_absence(entries, "e3").entries
    text = export_score_sheet_csv(entries, "am2")
    lines = text[1:].splitlines()
    assert lines[0] == "squad,venue,order,bib_number,player_name,team_name,hits,max_hits"
    assert len(lines) == 7
    assert lines[1] == "1,first range,1,1,Player 1,Team 1,2,2"
    assert lines[2] == "1,first range,2,2,Player 2,Team 1,,2"
    assert lines[4].startswith("1,second range,4,5,")


def test_write_and_read_csv(tmp_path):
    path = tmp_path / "backup.csv"
    text = export_backup_csv(make_entries(1))
    write_csv(str(path), text)
    assert path.read_bytes().startswith(b"\xef\xbb\xbf")
    assert read_csv(str(path)) == text[1:]
    assert len(parse_entries_csv(read_csv(str(path)))) == 1


def test_backup_round_trip_after_withdrawal_ahead_of_absent_shooter():
    state_entries = make_entries(10)
    for entry in state_entries[5:]:
        entry["score_am1"] = 2
    store = MemoryStore()
    store.import_entries(parse_entries_csv(export_backup_csv(state_entries)))
    store.mark_absent("e7")
    store.mark_absent("e3")

    entries = store.list_entries()
    restored = MemoryStore()
    restored.import_entries(parse_entries_csv(export_backup_csv(entries)))
    assert restored.list_entries() == entries
