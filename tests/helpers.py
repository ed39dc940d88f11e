from __future__ import annotations

from kyudo_core import new_entry


def make_entries(count: int, **fields) -> list[dict]:
    """``count`` present entries shooting in bib order in every round."""
    return [
        new_entry(
            f"e{n}",
            n,
            player_name=f"Player {n}",
            team_name=f"Team {(n - 1) // 3 + 1}",
            order_am1=n,
            order_am2=n,
            order_pm1=n,
            **fields,
        )
        for n in range(1, count + 1)
    ]


def by_id(entries) -> dict[str, dict]:
    return {entry["id"]: entry for entry in entries}


def scored(totals: list[int]) -> list[dict]:
    """Entries whose afternoon round carries the given totals (bibs 1..n)."""
    entries = make_entries(len(totals))
    for entry, total in zip(entries, totals):
        am1 = min(total, 2)
        am2 = min(total - am1, 2)
        entry["score_am1"] = am1
        entry["score_am2"] = am2
        entry["score_pm1"] = total - am1 - am2
    return entries
