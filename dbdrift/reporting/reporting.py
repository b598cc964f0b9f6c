# db-drift/dbdrift/reporting/reporting.py
from __future__ import annotations
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from dbdrift.aggregator import DriftRun
from dbdrift.comparators.interface import ComparisonResult, DiffEntry
from dbdrift.comparators.keyed_comparator import canonical
from dbdrift.interfaces import DriftState

# --------------------------- enums & ordering ---------------------------

_ORDER = {s.name: s.value for s in DriftState}


def _max_state(a: str, b: str) -> str:
    return a if _ORDER.get(a, 1) >= _ORDER.get(b, 1) else b


# --------------------------- severity policy ---------------------------

def compute_severity(meta: dict, drift: int, total: int) -> str:
    """Return MATCH/WARN/CRITICAL based on thresholds."""
    if total == 0 or drift == 0:
        return "MATCH"

    thr_ratio = meta.get("threshold_ratio", None)
    thr_count = meta.get("threshold_count", None)

    if isinstance(thr_ratio, (int, float, str)) and not isinstance(thr_ratio, bool):
        try:
            thr_ratio = float(thr_ratio)
        except ValueError:
            thr_ratio = None
    if isinstance(thr_count, (int, float, str)) and not isinstance(thr_count, bool):
        try:
            thr_count = int(thr_count)
        except ValueError:
            thr_count = None

    if isinstance(thr_ratio, float) and 0 <= thr_ratio <= 1:
        ratio = drift / float(total)
        return "CRITICAL" if ratio >= thr_ratio else "WARN"

    if isinstance(thr_count, int) and thr_count > 0:
        return "CRITICAL" if drift >= thr_count else "WARN"

    return "WARN"


# --------------------------- JSON-safe values ---------------------------

def json_value(v: Any) -> Any:
    """Keep JSON scalars as they are; everything else goes through canonical()."""
    if v is None or isinstance(v, (bool, int, str)):
        return v
    if isinstance(v, float):
        return v if v == v and v not in (float("inf"), float("-inf")) else canonical(v)
    if isinstance(v, (Decimal, bytes, bytearray, memoryview, datetime, date, time)):
        return canonical(v)
    return str(v)


def _record(rec: Mapping[str, Any]) -> Dict[str, Any]:
    return {str(k): json_value(v) for k, v in rec.items()}


def identity_label(values: Any) -> str:
    """Human label for an identity tuple: dotted, NULL shown explicitly."""
    parts = [("NULL" if p == "" else str(p)) for p in values]
    return ".".join(parts)


def _record_label(rec: Mapping[str, Any], key_columns: List[str]) -> str:
    return identity_label(canonical(rec.get(k)) for k in key_columns)


def _diff_entry(d: DiffEntry) -> Dict[str, Any]:
    return {
        "key": list(d.identity),
        "label": identity_label(d.identity),
        "changed": {
            col: {"source": json_value(delta.source), "target": json_value(delta.target)}
            for col, delta in d.changed_columns.items()
        },
        "source": _record(d.source_record),
        "target": _record(d.target_record),
    }


# --------------------------- stats ---------------------------

def _stats(res: ComparisonResult) -> Dict[str, int]:
    stats = res.counts()
    stats["drift"] = res.drift_count
    return stats


def _empty_stats() -> Dict[str, int]:
    return {"matches": 0, "differences": 0, "source_only": 0, "target_only": 0, "total": 0, "drift": 0}


def _pick_global_theme(schema: Dict[str, Any]) -> str:
    """Find first non-null report.theme in schema, else 'light'."""
    if not isinstance(schema, dict):
        return "light"
    for _name, sec in schema.items():
        if not isinstance(sec, dict):
            continue
        rep = sec.get("report") or {}
        if isinstance(rep, dict):
            t = rep.get("theme")
            if isinstance(t, str) and t.strip().lower() in {"light", "dark"}:
                return t.strip().lower()
    return "light"


# --------------------------- main entrypoint ---------------------------

def assemble_report(
    *,
    schema: Dict[str, Any],
    run: DriftRun,
    source_name: str,
    target_name: str,
    title: Optional[str] = None,
) -> Dict[str, Any]:
    """Build the normalized report JSON used by the HTML and Excel layers."""

    sections_out: Dict[str, Any] = {}
    overall = "MATCH"

    overall_counts = {"MATCH": 0, "WARN": 0, "CRITICAL": 0}
    by_section: Dict[str, Dict[str, Any]] = {}

    theme = _pick_global_theme(schema)

    for name in run.categories:
        sec_schema = (schema.get(name) or {}) if isinstance(schema, dict) else {}
        cat = sec_schema.get("category")
        rep_cfg = dict(sec_schema.get("report") or {})
        if rep_cfg.get("theme") is None:
            rep_cfg["theme"] = theme
        show_matches = bool(rep_cfg.get("show_matches", True))

        key_columns = list(cat.key_columns) if cat is not None else []
        ignore_columns = sorted(cat.ignore_columns) if cat is not None else []

        res = run.results.get(name)
        if res is None:
            result = "CRITICAL"
            section = {
                "result": result,
                "stats": _empty_stats(),
                "key_columns": key_columns,
                "ignore_columns": ignore_columns,
                "differences": [],
                "source_only": [],
                "target_only": [],
                "error": run.errors.get(name, "category was not compared"),
                "report": rep_cfg,
            }
        else:
            key_columns = list(res.key_columns) or key_columns
            stats = _stats(res)
            result = compute_severity(sec_schema.get("severity") or {}, stats["drift"], stats["total"])
            section = {
                "result": result,
                "stats": stats,
                "key_columns": key_columns,
                "ignore_columns": ignore_columns,
                "differences": [_diff_entry(d) for d in res.differences],
                "source_only": [
                    {"label": _record_label(r, key_columns), "record": _record(r)} for r in res.source_only
                ],
                "target_only": [
                    {"label": _record_label(r, key_columns), "record": _record(r)} for r in res.target_only
                ],
                "report": rep_cfg,
            }
            if show_matches:
                section["matches"] = [
                    {"label": _record_label(r, key_columns), "record": _record(r)} for r in res.matches
                ]

        if cat is not None and cat.description:
            section["description"] = cat.description

        sections_out[name] = section
        overall_counts[result] = overall_counts.get(result, 0) + 1
        by_section[name] = {"result": result, **section["stats"]}
        overall = _max_state(overall, result)

    dashboard = {
        "overall_state_counts": {
            "MATCH": overall_counts.get("MATCH", 0),
            "WARN": overall_counts.get("WARN", 0),
            "CRITICAL": overall_counts.get("CRITICAL", 0),
            "TOTAL": sum(overall_counts.values()),
        },
        "totals": run.grand_totals(),
        "by_section": by_section,
    }

    return {
        "source_name": source_name,
        "target_name": target_name,
        "theme": theme,
        "overall": overall,
        "sections": sections_out,
        "dashboard": dashboard,
        "meta": {
            "generated_by": "assemble_report",
            "generated_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "schema_title": title,
        },
    }
