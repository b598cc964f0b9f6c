from __future__ import annotations
import os
from copy import deepcopy
from typing import Any, Dict, List, Optional
import yaml
from dbdrift import logging as slog
from dbdrift import categories as cat_registry
from dbdrift.categories import CategoryConfig
from dbdrift.comparators import registry as comp_registry
import dbdrift.comparators.keyed_comparator
from dbdrift.comparators.interface import ConfigurationError

_SUPPORTED_SCHEMA_VERSIONS = {"1.0"}
_MAX_DOC_BYTES = 64 * 1024

DEFAULT_REPORT: Dict[str, Any] = {
    "theme": "light", "show_matches": True, "table": None, "doc": None, "doc_text": None,
}
_TABLE_VARIANTS = {"wide"}
DEFAULT_SEVERITY: Dict[str, Any] = {"threshold_ratio": None, "threshold_count": None}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep-merge dicts with 'explicit null clears default' semantics."""
    out = deepcopy(base) if base else {}
    for k, v in (override or {}).items():
        if v is None:
            out[k] = None
        elif isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def builtin_schema() -> Dict[str, Dict[str, Any]]:
    """Schema equivalent used when no YAML file is given."""
    return {
        name: {"category": cfg, "report": dict(DEFAULT_REPORT), "severity": dict(DEFAULT_SEVERITY)}
        for name, cfg in cat_registry.builtin_categories().items()
    }


class SchemaLoader:
    """
    Loads a YAML category schema:
      schema_version: "1.0"
      title: optional string
      defaults: { component:..., report:..., severity:... }
      categories:
        <name>:
          builtin: true            (optional; copy the built-in descriptor)
          component: { comparator, key_columns, ignore_columns, description? }
          report:    { theme?, show_matches?, table?, doc? }
          severity:  { threshold_ratio?, threshold_count? }

    Notes:
      - key_columns / ignore_columns accept a list or a comma separated string.
      - report.doc is read into report.doc_text (UTF-8). Only .txt/.md allowed.
      - output preserves the category order of the file.
    """

    def __init__(self, yaml_path: str, *, strict: bool = True):
        self.yaml_path = yaml_path
        self.strict = strict
        self.title: Optional[str] = None

    def _warn_or_raise(self, msg: str, *, fatal: bool = False) -> None:
        if fatal or self.strict:
            slog.log_err(msg)
            raise ConfigurationError(msg)
        slog.log_warn(msg)

    def _columns(self, raw: Any, field_name: str, category: str) -> List[str]:
        if raw is None:
            return []
        if isinstance(raw, str):
            return [x.strip() for x in raw.split(",") if x.strip()]
        if isinstance(raw, list):
            out: List[str] = []
            for item in raw:
                if not isinstance(item, (str, int)) or not str(item).strip():
                    self._warn_or_raise(
                        f"Category '{category}': component.{field_name} items must be non-empty strings.",
                        fatal=True,
                    )
                out.append(str(item).strip())
            return out
        self._warn_or_raise(f"Category '{category}': component.{field_name} must be a string or list.", fatal=True)
        return []

    def _normalize_theme(self, theme_raw: Any, category: str) -> str | None:
        if theme_raw is None:
            return None
        t = str(theme_raw).strip().lower()
        if t not in {"light", "dark"}:
            self._warn_or_raise(
                f"Category '{category}': report.theme must be 'light' or 'dark' if provided.",
                fatal=True,
            )
        return t

    def _table_variant(self, raw: Any, category: str) -> str | None:
        if raw is None:
            return None
        v = str(raw).strip().lower()
        if v not in _TABLE_VARIANTS:
            self._warn_or_raise(f"Category '{category}': unknown report.table variant '{raw}'.")
            return None
        return v

    def _safe_read_doc(self, rel_path: Any, category: str) -> str | None:
        if rel_path is None:
            return None
        p = str(rel_path).strip()
        if not p:
            return None

        base_dir = os.path.dirname(os.path.abspath(self.yaml_path))
        abs_path = os.path.abspath(os.path.join(base_dir, p))

        # Prevent path traversal outside schema directory
        if os.path.commonpath([base_dir, abs_path]) != base_dir:
            self._warn_or_raise(
                f"Category '{category}': report.doc path must stay within the schema directory.",
                fatal=True,
            )

        ext = os.path.splitext(abs_path)[1].lower()
        if ext not in {".txt", ".md"}:
            self._warn_or_raise(
                f"Category '{category}': report.doc must point to a .txt or .md file.",
                fatal=True,
            )

        if not os.path.isfile(abs_path):
            self._warn_or_raise(f"Category '{category}': report.doc file not found: {p}", fatal=True)

        if os.path.getsize(abs_path) > _MAX_DOC_BYTES:
            self._warn_or_raise(
                f"Category '{category}': report.doc is too large (>64KB): {p}",
                fatal=True,
            )

        with open(abs_path, "r", encoding="utf-8") as f:
            return f.read()

    def _severity(self, raw: Dict[str, Any], category: str) -> Dict[str, Any]:
        ratio = raw.get("threshold_ratio")
        count = raw.get("threshold_count")
        if ratio is not None:
            try:
                ratio = float(ratio)
            except (TypeError, ValueError):
                self._warn_or_raise(f"Category '{category}': severity.threshold_ratio must be a number.")
                ratio = None
            if ratio is not None and not 0.0 <= ratio <= 1.0:
                self._warn_or_raise(f"Category '{category}': severity.threshold_ratio must be within [0, 1].")
                ratio = None
        if count is not None:
            try:
                count = int(count)
            except (TypeError, ValueError):
                self._warn_or_raise(f"Category '{category}': severity.threshold_count must be an integer.")
                count = None
        return {"threshold_ratio": ratio, "threshold_count": count}

    def _category(self, name: str, comp: Dict[str, Any], use_builtin: bool) -> CategoryConfig:
        base = cat_registry.builtin_categories().get(name) if use_builtin else None
        if use_builtin and base is None:
            self._warn_or_raise(f"Category '{name}': builtin: true but no built-in descriptor exists.", fatal=True)

        comparator = str(comp.get("comparator") or (base.comparator if base else "") or "keyed").strip().lower()
        if comp_registry.get(comparator) is None:
            self._warn_or_raise(
                f"Category '{name}': unknown comparator '{comparator}'. Available: {comp_registry.names()}",
                fatal=True,
            )

        keys = self._columns(comp.get("key_columns"), "key_columns", name) if "key_columns" in comp else []
        if not keys and base is not None:
            keys = list(base.key_columns)
        if not keys:
            self._warn_or_raise(f"Category '{name}': component.key_columns is mandatory.", fatal=True)

        if "ignore_columns" in comp:
            ignore = self._columns(comp.get("ignore_columns"), "ignore_columns", name)
        else:
            ignore = sorted(base.ignore_columns) if base is not None else []

        clash = sorted(set(ignore) & set(keys))
        if clash:
            slog.log_warn(f"Category '{name}': key column(s) {clash} listed in ignore_columns; they stay compared.")
            ignore = [c for c in ignore if c not in clash]

        return CategoryConfig(
            name=name,
            key_columns=tuple(keys),
            ignore_columns=frozenset(ignore),
            comparator=comparator,
            description=str(comp.get("description") or (base.description if base else "") or ""),
        )

    def load(self) -> Dict[str, Dict[str, Any]]:
        with open(self.yaml_path, "r", encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in {self.yaml_path}: {e}") from e

        if not isinstance(raw, dict):
            self._warn_or_raise("Schema root must be a mapping.", fatal=True)

        version = str(raw.get("schema_version", "")).strip()
        if version not in _SUPPORTED_SCHEMA_VERSIONS:
            self._warn_or_raise(
                f"Unsupported or missing schema_version '{version}'. Supported: {sorted(_SUPPORTED_SCHEMA_VERSIONS)}",
                fatal=True,
            )
        self.title = raw.get("title")

        defaults = raw.get("defaults", {}) or {}
        base = {
            "component": defaults.get("component", {}) or {},
            "report": _deep_merge(DEFAULT_REPORT, defaults.get("report", {}) or {}),
            "severity": _deep_merge(DEFAULT_SEVERITY, defaults.get("severity", {}) or {}),
        }

        cats_raw = raw.get("categories") or {}
        if not isinstance(cats_raw, dict) or not cats_raw:
            self._warn_or_raise("No categories defined.", fatal=True)

        out: Dict[str, Dict[str, Any]] = {}

        for name, cfg in cats_raw.items():
            name = str(name).strip()
            cfg = cfg or {}
            if not isinstance(cfg, dict):
                self._warn_or_raise(f"Category '{name}' must be a mapping.", fatal=True)
            if name.lower() in {k.lower() for k in out}:
                self._warn_or_raise(f"Category '{name}' defined twice.", fatal=True)

            merged: Dict[str, Any] = {}
            for bucket in ("component", "report", "severity"):
                merged[bucket] = _deep_merge(base.get(bucket, {}), cfg.get(bucket, {}) or {}) or {}

            use_builtin = bool(cfg.get("builtin", False))
            comp = dict(merged["component"])
            if use_builtin:
                # only what the category itself sets overrides the built-in descriptor
                comp = {k: v for k, v in comp.items() if k in (cfg.get("component") or {}) or k == "comparator"}
            category = self._category(name, comp, use_builtin)

            rep = merged["report"]
            theme = self._normalize_theme(rep.get("theme"), name)
            doc = rep.get("doc")
            report = {
                "theme": theme,
                "show_matches": bool(rep.get("show_matches", True)),
                "table": self._table_variant(rep.get("table"), name),
                "doc": doc,
                "doc_text": self._safe_read_doc(doc, name) if doc else None,
            }

            out[name] = {
                "category": category,
                "report": report,
                "severity": self._severity(merged["severity"], name),
            }

        return out
