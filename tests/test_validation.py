from __future__ import annotations

import pytest
from pydantic import ValidationError

from kyudo_core import (
    ImportRow,
    InputSanitizer,
    InvalidInputError,
    SettingsUpdate,
    TournamentSettings,
    ValidatedCmd,
    apply_settings_update,
    normalize_phase,
)


def test_submit_scores_requires_round_and_scores():
    with pytest.raises(ValidationError):
        ValidatedCmd(type="SUBMIT_SCORES", scores={"e1": 1})
    with pytest.raises(ValidationError):
        ValidatedCmd(type="SUBMIT_SCORES", round="am1")
    cmd = ValidatedCmd(type="SUBMIT_SCORES", round="am1", scores={"e1": 2})
    assert cmd.scores == {"e1": 2}


def test_unknown_round_and_type_are_rejected():
    with pytest.raises(ValidationError):
        ValidatedCmd(type="SUBMIT_SCORES", round="pm2", scores={"e1": 1})
    with pytest.raises(ValidationError):
        ValidatedCmd(type="DROP_TABLE")


def test_unknown_command_fields_are_rejected():
    with pytest.raises(ValidationError):
        ValidatedCmd(type="MARK_ABSENT", entryId="e1", reason="sick")


def test_squad_status_needs_unique_non_empty_ids():
    with pytest.raises(ValidationError):
        ValidatedCmd(type="SET_SQUAD_STATUS", round="am1", entryIds=[], status="called")
    with pytest.raises(ValidationError):
        ValidatedCmd(type="SET_SQUAD_STATUS", round="am1", entryIds=["e1", "e1"], status="called")
    with pytest.raises(ValidationError):
        ValidatedCmd(type="SET_SQUAD_STATUS", round="am1", entryIds=["e1"], status="resting")


def test_playoff_delta_is_a_single_step():
    with pytest.raises(ValidationError):
        ValidatedCmd(type="ADJUST_PLAYOFF", entryId="e1", counter="score", delta=2)
    with pytest.raises(ValidationError):
        ValidatedCmd(type="ADJUST_PLAYOFF", entryId="e1", counter="points", delta=1)
    with pytest.raises(ValidationError):
        ValidatedCmd(type="ADJUST_PLAYOFF", entryId="e1")
    cmd = ValidatedCmd(type="ADJUST_PLAYOFF", entryId="e1", counter="result", delta=-1)
    assert cmd.delta == -1


def test_update_entry_rejects_immutable_fields():
    with pytest.raises(ValidationError):
        ValidatedCmd(type="UPDATE_ENTRY", entryId="e1", fields={"bib_number": 9})
    cmd = ValidatedCmd(type="UPDATE_ENTRY", entryId="e1", fields={"team_name": "Kyoto"})
    assert cmd.fields == {"team_name": "Kyoto"}


def test_sanitizer_wraps_errors():
    with pytest.raises(InvalidInputError) as exc:
        InputSanitizer.validate_and_sanitize_cmd({"type": "MARK_ABSENT"})
    assert exc.value.kind == "validation"
    assert exc.value.status_code == 400
    assert any("entryId" in d for d in exc.value.details)


def test_competitor_names_keep_japanese_and_drop_markup():
    assert InputSanitizer.sanitize_competitor_name("  山田 太郎<script>  ") == "山田 太郎script"


def test_phase_aliases_normalize():
    assert normalize_phase("qualifier") == "qualifying"
    assert normalize_phase("Tally") == "tallying"
    with pytest.raises(ValueError):
        normalize_phase("lunch")
    assert SettingsUpdate(current_phase="tally").current_phase == "tallying"


def test_settings_update_bumps_version_and_keeps_other_fields():
    current = TournamentSettings(announcement="welcome", version=3)
    updated = apply_settings_update(current, {"prize_slot_count": 4})
    assert updated.prize_slot_count == 4
    assert updated.announcement == "welcome"
    assert updated.version == 4
    assert current.prize_slot_count == 8


def test_blank_or_null_announcement_clears_banner():
    current = TournamentSettings(announcement="welcome")
    assert apply_settings_update(current, {"announcement": "   "}).announcement is None
    assert apply_settings_update(current, {"announcement": None}).announcement is None


def test_settings_update_rejects_bad_values():
    current = TournamentSettings()
    with pytest.raises(InvalidInputError):
        apply_settings_update(current, {"prize_slot_count": 0})
    with pytest.raises(InvalidInputError):
        apply_settings_update(current, {"theme": "dark"})


def test_hidden_announcement_is_not_visible():
    settings = TournamentSettings(announcement="break", show_announcement=False)
    assert settings.visible_announcement is None


def test_settings_from_legacy_record():
    settings = TournamentSettings.from_record({"current_phase": "qualifier", "version": 5})
    assert settings.current_phase == "qualifying"
    assert settings.prize_slot_count == 8
    assert settings.version == 5
    assert TournamentSettings.from_record(settings.to_record()) == settings


def test_import_row_coerces_blank_cells_and_flags():
    row = ImportRow(
        bib_number="12",
        player_name="Sato",
        team_name="Tokyo",
        is_absent="yes",
        order_am1="",
        score_am1="2",
    )
    assert row.bib_number == 12
    assert row.is_absent is True
    assert row.order_am1 is None
    assert row.score_am1 == 2


def test_import_row_rejects_scores_above_round_maximum():
    with pytest.raises(ValidationError):
        ImportRow(bib_number=1, player_name="Sato", team_name="Tokyo", score_am2="3")
    row = ImportRow(bib_number=1, player_name="Sato", team_name="Tokyo", score_pm1="4")
    assert row.score_pm1 == 4


def test_import_row_requires_names():
    with pytest.raises(ValidationError):
        ImportRow(bib_number=1, player_name=" ", team_name="Tokyo")
