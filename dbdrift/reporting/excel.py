# db-drift/dbdrift/reporting/excel.py
from __future__ import annotations
import re
from typing import Any, Dict, List, Set

import openpyxl
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from dbdrift import logging as slog

_STATUS_FILLS = {
    "MATCH": PatternFill(start_color="C6EFCE", end_color="C6EFCE", fill_type="solid"),     # green
    "WARN": PatternFill(start_color="FFEB9C", end_color="FFEB9C", fill_type="solid"),      # yellow
    "CRITICAL": PatternFill(start_color="FFC7CE", end_color="FFC7CE", fill_type="solid"),  # red
}
_ROW_FILLS = {
    "Changed": PatternFill(start_color="FFFF00", end_color="FFFF00", fill_type="solid"),
    "Source only": PatternFill(start_color="FCE4D6", end_color="FCE4D6", fill_type="solid"),
    "Target only": PatternFill(start_color="D9D9D9", end_color="D9D9D9", fill_type="solid"),
}
_OVERVIEW_HEADERS = ["Category", "Source", "Target", "Matches", "Differences", "Source only", "Target only", "Status"]
_NAMED_COLUMNS = {"Source": "source_name", "Target": "target_name"}

_bad_sheet_chars = re.compile(r"[\[\]:*?/\\]")
_bad_table_chars = re.compile(r"[^A-Za-z0-9_]")


def sheet_title(name: str, taken: Set[str]) -> str:
    """Excel-safe, unique (case-insensitive) sheet title of at most 31 chars."""
    base = _bad_sheet_chars.sub("_", str(name)).strip("'").strip() or "Sheet"
    base = base[:31]
    title, i = base, 1
    while title.lower() in taken:
        suffix = f"_{i}"
        title = base[:31 - len(suffix)] + suffix
        i += 1
    taken.add(title.lower())
    return title


def _unique_headers(headers: List[str]) -> List[str]:
    out: List[str] = []
    seen: Set[str] = set()
    for h in headers:
        h2, i = h, 2
        while h2.lower() in seen:
            h2 = f"{h} ({i})"
            i += 1
        seen.add(h2.lower())
        out.append(h2)
    return out


def _cell(v: Any) -> Any:
    if v is None or isinstance(v, (int, float, str)):
        return v
    return str(v)


def _add_table(wb, ws, base_name: str, ref: str) -> None:
    base = "Tbl_" + _bad_table_chars.sub("_", base_name)
    existing = set()
    for sheet in wb.worksheets:
        existing.update(sheet.tables.keys())
    name, i = base, 1
    while name in existing:
        name = f"{base}_{i}"
        i += 1
    table = Table(displayName=name, ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium2", showFirstColumn=False, showLastColumn=False,
        showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


def _fit_columns(ws) -> None:
    for col in ws.columns:
        max_length = max(len(str(cell.value)) if cell.value is not None else 0 for cell in col)
        ws.column_dimensions[get_column_letter(col[0].column)].width = min(max_length + 2, 50)


def write_overview(wb, report: Dict[str, Any]) -> None:
    ws = wb.active
    ws.title = "Overview"
    # record counts per side, headed with the compared databases
    ws.append([f"{h} ({report.get(_NAMED_COLUMNS[h], h.lower())})" if h in _NAMED_COLUMNS else h
               for h in _OVERVIEW_HEADERS])
    for name, sec in (report.get("sections") or {}).items():
        stats = sec.get("stats") or {}
        ws.append([
            name,
            stats.get("matches", 0) + stats.get("differences", 0) + stats.get("source_only", 0),
            stats.get("matches", 0) + stats.get("differences", 0) + stats.get("target_only", 0),
            stats.get("matches", 0),
            stats.get("differences", 0),
            stats.get("source_only", 0),
            stats.get("target_only", 0),
            sec.get("result", "WARN"),
        ])
    for cell in ws[1]:
        cell.font = Font(bold=True)

    status_idx = _OVERVIEW_HEADERS.index("Status")
    for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
        fill = _STATUS_FILLS.get(str(row[status_idx].value or ""))
        if fill is not None:
            row[status_idx].fill = fill

    if ws.max_row > 1:
        _add_table(wb, ws, "Overview", f"A1:{get_column_letter(len(_OVERVIEW_HEADERS))}{ws.max_row}")

    _fit_columns(ws)


def category_rows(section: Dict[str, Any]) -> List[List[Any]]:
    """Status, key values..., Column, Source value, Target value."""
    keys = list(section.get("key_columns") or [])
    rows: List[List[Any]] = []
    for d in section.get("differences") or []:
        key_vals = list(d.get("key") or [])
        for col, delta in (d.get("changed") or {}).items():
            rows.append(["Changed", *key_vals, col, _cell(delta.get("source")), _cell(delta.get("target"))])
    for bucket, status in (("source_only", "Source only"), ("target_only", "Target only")):
        for item in section.get(bucket) or []:
            rec = item.get("record") or {}
            key_vals = [_cell(rec.get(k)) for k in keys]
            rows.append([status, *key_vals, None, None, None])
    return rows


def write_category_sheet(wb, name: str, section: Dict[str, Any], taken: Set[str]) -> None:
    ws = wb.create_sheet(sheet_title(name, taken))
    headers = _unique_headers(["Status", *(section.get("key_columns") or []), "Column", "Source value", "Target value"])
    ws.append(headers)
    if section.get("error"):
        ws.append(["Error", *([None] * (len(headers) - 2)), section["error"]])
    for r in category_rows(section):
        ws.append(r)
    for cell in ws[1]:
        cell.font = Font(bold=True)

    for row in ws.iter_rows(min_row=2, max_row=ws.max_row):
        fill = _ROW_FILLS.get(str(row[0].value or ""))
        if fill is not None:
            for cell in row:
                cell.fill = fill

    if ws.max_row > 1:
        _add_table(wb, ws, name, f"A1:{get_column_letter(len(headers))}{ws.max_row}")
    _fit_columns(ws)


def write_workbook(report: Dict[str, Any], path: str) -> str:
    """Write an assembled report to an .xlsx workbook; returns the path."""
    slog.log_step("Writing Excel workbook:", path)
    wb = openpyxl.Workbook()
    write_overview(wb, report)
    taken = {"overview"}
    for name, sec in (report.get("sections") or {}).items():
        write_category_sheet(wb, name, sec, taken)
    wb.save(path)
    slog.log_ok(f"Workbook written with {len(wb.sheetnames)} sheet(s).")
    return path
