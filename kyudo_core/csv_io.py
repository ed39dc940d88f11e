"""Bulk roster import and CSV exports.

Import is fail-closed: a missing required column or a single bad row rejects
the whole batch. Exports are UTF-8 with a byte-order mark so spreadsheet
software opens Japanese names correctly:
  - full backup: every entry, every stored column, fixed column order
  - score sheet: one round's shooting order with blank hit cells to fill in
"""
from __future__ import annotations

import csv
import io
import logging
import uuid
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError as PydanticValidationError

from .config import RoundConfig
from .errors import InvalidInputError
from .squads import group_squads
from .validation import ImportRow

logger = logging.getLogger(__name__)

BOM = "\ufeff"

REQUIRED_COLUMNS = ("bib_number", "player_name", "team_name")

BACKUP_COLUMNS = (
    ["id", "bib_number", "player_name", "team_name", "is_absent"]
    + [spec.order_field for spec in RoundConfig.ROUNDS]
    + [spec.score_field for spec in RoundConfig.ROUNDS]
    + [spec.status_field for spec in RoundConfig.ROUNDS]
    + ["total_score", "provisional_ranking", "final_ranking",
       "playoff_type", "playoff_score", "playoff_result"]
)

SCORE_SHEET_COLUMNS = (
    "squad", "venue", "order", "bib_number", "player_name", "team_name", "hits", "max_hits"
)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _write_rows(header: Sequence[str], rows: List[List[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\r\n")
    writer.writerow(header)
    writer.writerows(rows)
    return BOM + buffer.getvalue()


def export_backup_csv(entries: Sequence[Dict[str, Any]]) -> str:
    ordered = sorted(entries, key=lambda entry: entry.get("bib_number") or 0)
    rows = [[_cell(entry.get(column)) for column in BACKUP_COLUMNS] for entry in ordered]
    return _write_rows(BACKUP_COLUMNS, rows)


def export_score_sheet_csv(entries: Sequence[Dict[str, Any]], round_key: str) -> str:
    spec = RoundConfig.get(round_key)
    rows: List[List[str]] = []
    for squad in group_squads(entries, round_key):
        for entry in squad.entries:
            rows.append(
                [
                    _cell(squad.pair_number),
                    squad.venue,
                    _cell(entry.get(spec.order_field)),
                    _cell(entry.get("bib_number")),
                    _cell(entry.get("player_name")),
                    _cell(entry.get("team_name")),
                    # Blank until the round has been shot
                    _cell(entry.get(spec.score_field)),
                    _cell(spec.max_score),
                ]
            )
    return _write_rows(SCORE_SHEET_COLUMNS, rows)


def parse_entries_csv(text: str) -> List[Dict[str, Any]]:
    """Parse roster or backup CSV text into validated entry rows.

    Returns:
        List of dicts accepted by the IMPORT_ENTRIES command

    Raises:
        InvalidInputError: missing required column, invalid row or duplicate bib
            (details lists every problem found)
    """
    if text.startswith(BOM):
        text = text[len(BOM):]
    reader = csv.DictReader(io.StringIO(text))
    header = [name.strip() for name in (reader.fieldnames or [])]
    missing = [column for column in REQUIRED_COLUMNS if column not in header]
    if missing:
        logger.warning(f"Import rejected, missing columns: {missing}")
        raise InvalidInputError(f"missing required columns: {missing}", details=missing)

    problems: list[str] = []
    parsed: list[ImportRow] = []
    for line_no, raw in enumerate(reader, start=2):
        row = {(key or "").strip(): value for key, value in raw.items()}
        try:
            parsed.append(ImportRow(**row))
        except PydanticValidationError as e:
            for err in e.errors():
                location = ".".join(str(part) for part in err["loc"]) or "row"
                problems.append(f"line {line_no}: {location}: {err['msg']}")

    seen: dict[int, int] = {}
    for index, row in enumerate(parsed):
        if row.bib_number in seen:
            problems.append(f"duplicate bib_number {row.bib_number}")
        seen[row.bib_number] = index
    if problems:
        logger.warning(f"Import rejected with {len(problems)} problem(s)")
        raise InvalidInputError("import rejected", details=problems)

    # Rosters without order columns shoot in bib order in every round
    present = sorted((row for row in parsed if not row.is_absent), key=lambda r: r.bib_number)
    default_orders = {row.bib_number: position for position, row in enumerate(present, start=1)}
    entries: List[Dict[str, Any]] = []
    for row in parsed:
        entry = row.model_dump(exclude_none=True)
        entry["id"] = row.id or str(uuid.uuid4())
        for spec in RoundConfig.ROUNDS:
            if spec.order_field not in header and not row.is_absent:
                entry[spec.order_field] = default_orders[row.bib_number]
        entries.append(entry)
    return entries


def write_csv(path: str, text: str) -> None:
    # The BOM is already part of the text
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def read_csv(path: str) -> str:
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        return f.read()
