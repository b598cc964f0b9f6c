# db-drift/dbdrift/records.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

Scalar = Union[str, int, float, bool, None]
Record = Dict[str, Any]


# --------------------------- adapter-boundary union ---------------------------

@dataclass(frozen=True)
class Missing:
    """No result for the category (absent, or the fetch failed)."""
    reason: Optional[str] = None


@dataclass(frozen=True)
class SingleRecord:
    """A single decoded object (e.g. a one-row catalog query)."""
    fields: Mapping[str, Any]


@dataclass(frozen=True)
class RecordList:
    """A list of already-decoded objects."""
    items: Sequence[Any]


@dataclass(frozen=True)
class RowSet:
    """A tabular result: declared column names plus positional rows."""
    columns: Sequence[str]
    rows: Sequence[Sequence[Any]]


@dataclass(frozen=True)
class Unrecognized:
    """Whatever the adapter could not classify; normalizes to an empty Dataset."""
    value: Any = None
    note: str = ""


RawResult = Union[Missing, SingleRecord, RecordList, RowSet, Unrecognized, None]


# --------------------------- dataset ---------------------------

@dataclass(frozen=True)
class Dataset:
    """
    Uniform, ordered sequence of records sharing one column schema.

    Every record holds every column in ``columns`` (missing values are ``None``).
    ``warning`` is set when the raw input was degraded during normalization;
    logging it is the caller's job.
    """
    columns: Tuple[str, ...] = ()
    records: Tuple[Record, ...] = ()
    warning: Optional[str] = field(default=None, compare=False)

    @classmethod
    def empty(cls, warning: Optional[str] = None) -> "Dataset":
        return cls((), (), warning)

    @classmethod
    def from_records(cls, rows: Iterable[Mapping[str, Any]], warning: Optional[str] = None) -> "Dataset":
        rows = list(rows)
        columns = _union_columns(rows)
        return cls(columns, tuple(_fill(r, columns) for r in rows), warning)

    @property
    def is_empty(self) -> bool:
        return not self.records

    def has_columns(self, cols: Iterable[str]) -> bool:
        present = set(self.columns)
        return all(c in present for c in cols)

    def missing_columns(self, cols: Iterable[str]) -> List[str]:
        present = set(self.columns)
        return [c for c in cols if c not in present]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)


def _union_columns(rows: Sequence[Mapping[str, Any]]) -> Tuple[str, ...]:
    seen: Dict[str, None] = {}
    for r in rows:
        for k in r.keys():
            seen.setdefault(str(k), None)
    return tuple(seen.keys())


def _fill(row: Mapping[str, Any], columns: Sequence[str]) -> Record:
    src = {str(k): v for k, v in row.items()}
    return {c: src.get(c) for c in columns}


# --------------------------- normalizer ---------------------------

def _from_rowset(rs: RowSet) -> Dataset:
    columns = tuple(str(c) for c in (rs.columns or []))
    width = len(columns)
    records: List[Record] = []
    dropped = truncated = 0
    for row in rs.rows or []:
        if not isinstance(row, (list, tuple)):
            dropped += 1
            continue
        if len(row) > width:
            truncated += 1
        cells = list(row[:width]) + [None] * max(0, width - len(row))
        records.append(dict(zip(columns, cells)))
    notes = []
    if dropped:
        notes.append(f"dropped {dropped} non-tabular row(s) from row-set")
    if truncated:
        notes.append(f"cut {truncated} row(s) longer than the {width} declared column(s)")
    warning = "; ".join(notes) or None
    return Dataset(columns, tuple(records), warning)


def _from_list(rl: RecordList) -> Dataset:
    good: List[Mapping[str, Any]] = []
    dropped = 0
    for item in rl.items or []:
        if isinstance(item, Mapping):
            good.append(item)
        else:
            dropped += 1
    warning = f"dropped {dropped} non-object item(s) from record list" if dropped else None
    return Dataset.from_records(good, warning)


def normalize(raw: RawResult) -> Dataset:
    """
    Collapse any adapter result into a Dataset. Never raises.

    - None / Missing -> empty Dataset
    - SingleRecord   -> one-record Dataset, schema = the object's own fields
    - RecordList     -> schema = union of keys in first-seen order
    - RowSet         -> declared columns; short rows padded with None
    - Unrecognized   -> empty Dataset with a warning
    """
    try:
        if raw is None or isinstance(raw, Missing):
            return Dataset.empty()
        if isinstance(raw, SingleRecord):
            if not isinstance(raw.fields, Mapping):
                return Dataset.empty(warning="single record is not an object")
            return Dataset.from_records([raw.fields]) if raw.fields else Dataset.empty()
        if isinstance(raw, RecordList):
            return _from_list(raw)
        if isinstance(raw, RowSet):
            return _from_rowset(raw)
        if isinstance(raw, Unrecognized):
            note = raw.note or f"unrecognized result of type {type(raw.value).__name__}"
            return Dataset.empty(warning=note)
        return Dataset.empty(warning=f"unsupported raw result {type(raw).__name__}")
    except Exception as e:
        return Dataset.empty(warning=f"normalization failed: {e}")
