# db-drift/dbdrift/ingest.py
from __future__ import annotations
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from dbdrift import logging as slog
from dbdrift.records import Missing, RawResult, RecordList, RowSet, SingleRecord, Unrecognized

_META_KEYS = ("name", "server", "database", "captured_at")


class SnapshotError(ValueError):
    """The snapshot file itself cannot be read or has the wrong top-level shape."""


@dataclass(frozen=True)
class Snapshot:
    name: str
    server: Optional[str] = None
    database: Optional[str] = None
    captured_at: Optional[str] = None
    results: Mapping[str, RawResult] = field(default_factory=dict)

    @property
    def label(self) -> str:
        if self.server and self.database:
            return f"{self.server}/{self.database}"
        return self.database or self.name


def classify(payload: Any) -> RawResult:
    """Map one category payload onto the adapter-boundary union."""
    if payload is None:
        return Missing()
    if isinstance(payload, dict):
        if "error" in payload and set(payload.keys()) <= {"error", "code"}:
            return Missing(reason=str(payload.get("error")))
        if "columns" in payload and "rows" in payload:
            cols, rows = payload.get("columns"), payload.get("rows")
            if isinstance(cols, list) and isinstance(rows, list):
                return RowSet(columns=[str(c) for c in cols], rows=rows)
            return Unrecognized(payload, "row-set needs 'columns' and 'rows' lists")
        return SingleRecord(fields=payload)
    if isinstance(payload, list):
        return RecordList(items=payload)
    return Unrecognized(payload, f"expected object, list or null; got {type(payload).__name__}")


class SnapshotReader:
    """
    Read a catalog snapshot written by the extraction step.

    Two layouts are accepted:
      { "name": ..., "server": ..., "database": ..., "categories": { <category>: <payload>, ... } }
      { <category>: <payload>, ... }

    Payload shapes: null | {"error": msg} | {"columns": [...], "rows": [[...]]} | {...} | [{...}, ...]
    """

    def __init__(self, default_name: str = "snapshot"):
        self.default_name = default_name

    def read(self, json_path: str) -> Snapshot:
        try:
            with open(json_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except OSError as e:
            raise SnapshotError(f"Cannot read snapshot {json_path}: {e}") from e
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Snapshot {json_path} is not valid JSON: {e}") from e

        if not isinstance(raw, dict):
            raise SnapshotError(f"Snapshot {json_path} must be a JSON object, got {type(raw).__name__}")

        if "categories" in raw:
            cats = raw.get("categories")
            if not isinstance(cats, dict):
                raise SnapshotError(f"Snapshot {json_path}: 'categories' must be an object")
            meta = {k: raw.get(k) for k in _META_KEYS}
        else:
            cats = raw
            meta = {}

        results: Dict[str, RawResult] = {}
        for name, payload in cats.items():
            res = classify(payload)
            if isinstance(res, Missing) and res.reason:
                slog.log_warn(f"[{name}] fetch failed in snapshot: {res.reason}")
            results[str(name)] = res

        slog.log_debug(f"    • {json_path}: {len(results)} category result(s)")
        return Snapshot(
            name=str(meta.get("name") or self.default_name),
            server=meta.get("server"),
            database=meta.get("database"),
            captured_at=meta.get("captured_at"),
            results=results,
        )
