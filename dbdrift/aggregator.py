# db-drift/dbdrift/aggregator.py
from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Union

from dbdrift import logging as slog
from dbdrift.categories import CategoryConfig
from dbdrift.comparators import registry as comp_registry
from dbdrift.comparators.interface import ComparisonResult, ConfigurationError
from dbdrift.records import RawResult, normalize

import dbdrift.comparators.keyed_comparator

_COUNT_KEYS = ("matches", "differences", "source_only", "target_only", "total")


@dataclass(frozen=True)
class DriftRun:
    """
    Outcome of one run: per-category results, their totals, and the
    categories that failed with a configuration error. Read-only.
    """
    results: Mapping[str, ComparisonResult] = field(default_factory=dict)
    totals: Mapping[str, Mapping[str, int]] = field(default_factory=dict)
    errors: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "results", MappingProxyType(dict(self.results)))
        object.__setattr__(self, "totals", MappingProxyType({k: MappingProxyType(dict(v)) for k, v in self.totals.items()}))
        object.__setattr__(self, "errors", MappingProxyType(dict(self.errors)))

    @property
    def has_drift(self) -> bool:
        return any(r.has_drift for r in self.results.values())

    @property
    def categories(self) -> List[str]:
        seen: Dict[str, None] = {}
        for name in list(self.results.keys()) + list(self.errors.keys()):
            seen.setdefault(name, None)
        return list(seen.keys())

    def grand_totals(self) -> Dict[str, int]:
        out = {k: 0 for k in _COUNT_KEYS}
        for t in self.totals.values():
            for k in _COUNT_KEYS:
                out[k] += int(t.get(k, 0))
        out["errors"] = len(self.errors)
        return out


def _as_config_list(categories: Union[Mapping[str, Any], Iterable[CategoryConfig]]) -> List[CategoryConfig]:
    if isinstance(categories, Mapping):
        out = []
        for v in categories.values():
            # accept SchemaLoader output ({"category": CategoryConfig, ...}) as well
            out.append(v["category"] if isinstance(v, Mapping) else v)
        return out
    return list(categories)


def compare_category(
    config: CategoryConfig,
    source_raw: RawResult,
    target_raw: RawResult,
) -> ComparisonResult:
    """Normalize both sides and run the category's comparator."""
    src = normalize(source_raw)
    tgt = normalize(target_raw)
    for side, ds in (("source", src), ("target", tgt)):
        if ds.warning:
            suffix = "; treated as empty" if ds.is_empty else ""
            slog.log_warn(f"[{config.name}] {side}: {ds.warning}{suffix}")

    comparator = comp_registry.create(config.comparator)
    return comparator.compare(config, src, tgt)


def run_all(
    categories: Union[Mapping[str, Any], Iterable[CategoryConfig]],
    source_by_category: Mapping[str, RawResult] | None,
    target_by_category: Mapping[str, RawResult] | None,
) -> DriftRun:
    """
    Compare every category of the descriptor table.

    A category absent from either side's map is compared against an empty
    dataset. A ConfigurationError only fails its own category.
    """
    source_by_category = source_by_category or {}
    target_by_category = target_by_category or {}
    configs = _as_config_list(categories)

    known = {c.name for c in configs}
    extra = sorted((set(source_by_category) | set(target_by_category)) - known)
    if extra:
        slog.log_warn(f"No descriptor for categor(ies) {extra}; skipped")

    results: Dict[str, ComparisonResult] = {}
    totals: Dict[str, Dict[str, int]] = {}
    errors: Dict[str, str] = {}

    for cfg in configs:
        slog.log_step("Comparing category:", f"[{cfg.name}] key={list(cfg.key_columns)}")
        try:
            res = compare_category(cfg, source_by_category.get(cfg.name), target_by_category.get(cfg.name))
        except ConfigurationError as e:
            slog.log_err(f"[{cfg.name}] {e}")
            errors[cfg.name] = str(e)
            continue

        results[cfg.name] = res
        totals[cfg.name] = res.counts()
        slog.log_counts(cfg.name, totals[cfg.name])

    return DriftRun(results=results, totals=totals, errors=errors)
