# dbdrift/comparators/keyed_comparator.py
from __future__ import annotations
from datetime import date, datetime, time
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Sequence, Tuple

from dbdrift.records import Dataset, Record
from .interface import ColumnDelta, Comparator, ComparisonResult, ConfigurationError, DiffEntry, Identity
from .registry import register

if TYPE_CHECKING:
    from dbdrift.categories import CategoryConfig


def _decimal_text(value: Decimal) -> str:
    """Plain notation with every significant digit kept; trailing fraction zeros dropped."""
    sign, digits, exponent = value.as_tuple()
    digits = list(digits)
    while exponent < 0 and len(digits) > 1 and digits[-1] == 0:
        digits.pop()
        exponent += 1
    text = "".join(str(d) for d in digits).lstrip("0")
    if exponent >= 0:
        text = (text + "0" * exponent) if text else "0"
    else:
        scale = -exponent
        text = text.rjust(scale, "0")
        whole, frac = text[:-scale] or "0", text[-scale:]
        text = f"{whole}.{frac}" if frac.strip("0") else whole
    if sign and text != "0":
        text = "-" + text
    return text


def canonical(value: Any) -> str:
    """
    Canonical string form used for identity and equality.

    Two servers answering the same catalog query may hand back the same value
    as different runtime types (bit as bool or int, 100 as int, float or
    Decimal). Everything is reduced to text before comparing; plain strings
    are taken verbatim.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        if value != value or value in (float("inf"), float("-inf")):
            return repr(value)
        return _decimal_text(Decimal(repr(value)))
    if isinstance(value, Decimal):
        if not value.is_finite():
            return str(value)
        return _decimal_text(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "0x" + bytes(value).hex().upper()
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def identity_of(record: Record, key_columns: Sequence[str]) -> Identity:
    return tuple(canonical(record.get(k)) for k in key_columns)


def _check_keys(config: "CategoryConfig", ds: Dataset, side: str) -> None:
    if ds.is_empty:
        return
    missing = ds.missing_columns(config.key_columns)
    if missing:
        raise ConfigurationError(
            f"Category '{config.name}': key column(s) {missing} not present in {side} dataset "
            f"(columns: {list(ds.columns)})"
        )


def _index(ds: Dataset, key_columns: Sequence[str]) -> Dict[Identity, Record]:
    # later duplicates replace the value but keep the first position
    out: Dict[Identity, Record] = {}
    for rec in ds:
        out[identity_of(rec, key_columns)] = rec
    return out


def _compared_columns(src: Dataset, tgt: Dataset, ignore: frozenset) -> List[str]:
    cols: Dict[str, None] = {}
    for c in list(src.columns) + list(tgt.columns):
        if c not in ignore:
            cols.setdefault(c, None)
    return list(cols.keys())


class KeyedComparator(Comparator):
    """
    Composite-key reconciliation of two catalog datasets.

    Each record is identified by the tuple of its key-column values (canonical
    strings, so a NULL key value joins as ""). For every identity:

      • present on both sides, all non-ignored columns equal   -> matches
      • present on both sides, some non-ignored column differs -> differences
      • present only in source                                  -> source_only
      • present only in target                                  -> target_only

    Ignored columns are skipped for equality but stay in the records for display.
    """

    def compare(
        self,
        config: "CategoryConfig",
        source: Dataset,
        target: Dataset,
    ) -> ComparisonResult:

        _check_keys(config, source, "source")
        _check_keys(config, target, "target")

        key_columns = tuple(config.key_columns)
        src_map = _index(source, key_columns)
        tgt_map = _index(target, key_columns)
        columns = _compared_columns(source, target, config.ignore_columns)

        matches: List[Record] = []
        differences: List[DiffEntry] = []
        source_only: List[Record] = []
        target_only: List[Record] = []

        for ident, s in src_map.items():
            t = tgt_map.get(ident)
            if t is None:
                source_only.append(s)
                continue

            changed: Dict[str, ColumnDelta] = {}
            for col in columns:
                sv, tv = s.get(col), t.get(col)
                if canonical(sv) != canonical(tv):
                    changed[col] = ColumnDelta(sv, tv)

            if changed:
                differences.append(DiffEntry(ident, s, t, changed))
            else:
                matches.append(s)

        for ident, t in tgt_map.items():
            if ident not in src_map:
                target_only.append(t)

        return ComparisonResult(
            category=config.name,
            matches=tuple(matches),
            differences=tuple(differences),
            source_only=tuple(source_only),
            target_only=tuple(target_only),
            key_columns=key_columns,
        )


def compare(config: "CategoryConfig", source: Dataset, target: Dataset) -> ComparisonResult:
    return KeyedComparator().compare(config, source, target)


# Self-register as the default "keyed" comparator
register("keyed", KeyedComparator)
