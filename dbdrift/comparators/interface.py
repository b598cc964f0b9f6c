# dbdrift/comparators/interface.py
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Mapping, Tuple

from dbdrift.records import Dataset, Record

if TYPE_CHECKING:
    from dbdrift.categories import CategoryConfig

Identity = Tuple[str, ...]


class ConfigurationError(ValueError):
    """A category cannot be compared as configured (bad descriptor or key columns)."""


@dataclass(frozen=True)
class ColumnDelta:
    source: Any
    target: Any


@dataclass(frozen=True)
class DiffEntry:
    identity: Identity
    source_record: Record
    target_record: Record
    changed_columns: Mapping[str, ColumnDelta]

    def __post_init__(self) -> None:
        if not isinstance(self.changed_columns, MappingProxyType):
            object.__setattr__(self, "changed_columns", MappingProxyType(dict(self.changed_columns)))

    def swapped(self) -> "DiffEntry":
        return DiffEntry(
            identity=self.identity,
            source_record=self.target_record,
            target_record=self.source_record,
            changed_columns={k: ColumnDelta(d.target, d.source) for k, d in self.changed_columns.items()},
        )


@dataclass(frozen=True)
class ComparisonResult:
    """
    Four disjoint buckets for one category.

    Order within a bucket is scan order: source order for matches,
    differences and source_only; target order for target_only.
    """
    category: str
    matches: Tuple[Record, ...] = ()
    differences: Tuple[DiffEntry, ...] = ()
    source_only: Tuple[Record, ...] = ()
    target_only: Tuple[Record, ...] = ()
    key_columns: Tuple[str, ...] = field(default=(), compare=False)

    @property
    def total(self) -> int:
        return len(self.matches) + len(self.differences) + len(self.source_only) + len(self.target_only)

    @property
    def drift_count(self) -> int:
        return len(self.differences) + len(self.source_only) + len(self.target_only)

    @property
    def has_drift(self) -> bool:
        return self.drift_count > 0

    def counts(self) -> Dict[str, int]:
        return {
            "matches": len(self.matches),
            "differences": len(self.differences),
            "source_only": len(self.source_only),
            "target_only": len(self.target_only),
            "total": self.total,
        }


class Comparator(ABC):
    """
    Stable comparator interface.
    Implementations must be pure functions of their inputs (no I/O, no global state).
    """

    @abstractmethod
    def compare(
        self,
        config: "CategoryConfig",
        source: Dataset,
        target: Dataset,
    ) -> ComparisonResult:
        """
        Classify every identity of ``source`` and ``target`` into exactly one bucket.
        Raises ConfigurationError when a non-empty side lacks a key column.
        """
        ...
