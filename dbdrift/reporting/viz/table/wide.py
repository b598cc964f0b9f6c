from __future__ import annotations

from typing import Any, Dict, List
from dominate import tags

from .default import cell_text, render_table_block


def _columns(section: Dict[str, Any]) -> List[str]:
    """Key columns first, then every other column seen in a difference, in first-seen order."""
    seen: Dict[str, None] = {c: None for c in section.get("key_columns") or []}
    for d in section.get("differences") or []:
        for rec in (d.get("source") or {}, d.get("target") or {}):
            for c in rec.keys():
                seen.setdefault(c, None)
    return list(seen.keys())


def render_wide_table(section: Dict[str, Any], source_name: str, target_name: str):
    """
    Side-by-side variant: one source row and one target row per difference,
    every column shown, changed cells emphasized.
    Returns None when the category has no differences.
    """
    diffs = section.get("differences") or []
    if not diffs:
        return None

    cols = _columns(section)
    rows: List[List[Any]] = []
    for d in diffs:
        changed = set((d.get("changed") or {}).keys())
        for side, name in (("source", source_name), ("target", target_name)):
            rec = d.get(side) or {}
            row: List[Any] = [d.get("label", ""), name]
            for c in cols:
                txt = cell_text(rec.get(c))
                row.append(tags.span(txt, cls="changed-cell") if c in changed else txt)
            rows.append(row)

    return render_table_block(["Item", "Side", *cols], rows, sortable=False)
