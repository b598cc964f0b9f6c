# db-drift/tests/test_aggregator.py
from decimal import Decimal

import pytest

from dbdrift import logging as slog
from dbdrift.aggregator import DriftRun, compare_category, run_all
from dbdrift.ingest import SnapshotReader
from dbdrift.records import Missing, RecordList, RowSet, Unrecognized
from dbdrift.schemaloader import SchemaLoader
from utility import cat, examples_dir, production_schema_yml

TABLES = cat("Tables", ("schema", "name"), ("row_count",))
SCHEMAS = cat("Schemas", ("name",))
SEQUENCES = cat("Sequences", ("schema", "name"))


# compare_category: normalizes raw inputs before comparing.
def test_compare_category_normalizes():
    res = compare_category(
        SCHEMAS,
        RecordList([{"name": "HR"}, {"name": "Inventory"}]),
        RecordList([{"name": "HR"}, "junk"]),
    )
    assert res.counts()["matches"] == 1
    assert res.counts()["source_only"] == 1


# compare_category: an unrecognized side is compared as empty.
def test_compare_category_unrecognized_is_empty():
    res = compare_category(SCHEMAS, RecordList([{"name": "HR"}]), Unrecognized(3, "bad"))
    assert len(res.source_only) == 1


# run_all: a category missing from a side is compared against an empty dataset.
def test_run_all_absent_category():
    run = run_all([SCHEMAS], {"Schemas": RecordList([{"name": "HR"}])}, {})
    assert run.totals["Schemas"]["source_only"] == 1
    assert run.has_drift


# run_all: a configuration error only fails its own category.
def test_run_all_isolates_errors():
    run = run_all(
        [TABLES, SCHEMAS],
        {"Tables": RecordList([{"schema": "dbo"}]), "Schemas": RecordList([{"name": "HR"}])},
        {"Schemas": RecordList([{"name": "HR"}])},
    )
    assert "Tables" in run.errors and "Tables" not in run.results
    assert run.results["Schemas"].counts()["matches"] == 1
    assert run.categories == ["Schemas", "Tables"]
    assert run.grand_totals()["errors"] == 1


# run_all: preserves descriptor order in results.
def test_run_all_preserves_order():
    run = run_all([TABLES, SCHEMAS], {}, {})
    assert list(run.results) == ["Tables", "Schemas"]
    assert not run.has_drift


# run_all: accepts SchemaLoader output and reproduces the drift of the fixture databases.
def test_run_all_on_examples():
    schema = SchemaLoader(str(production_schema_yml())).load()
    src = SnapshotReader().read(str(examples_dir() / "source.json"))
    tgt = SnapshotReader().read(str(examples_dir() / "target.json"))
    run = run_all(schema, src.results, tgt.results)

    schemas = run.results["Schemas"]
    assert [r["name"] for r in schemas.source_only] == ["Inventory"]
    assert [r["name"] for r in schemas.target_only] == ["Finance"]

    types = run.results["Types"]
    assert [d.identity for d in types.differences] == [("dbo", "EmailAddress")]
    assert [r["name"] for r in types.source_only] == ["EmployeeID"]

    tables = run.results["Tables"]
    assert len(tables.matches) == 4
    assert [(r["schema"], r["name"]) for r in tables.source_only] == [("Inventory", "Products")]

    indexes = run.results["Indexes"]
    assert sorted(r["index"] for r in indexes.source_only) == [
        "IX_Customers_City", "IX_Employees_HireDate", "IX_Orders_ShippedDate",
    ]

    users = run.results["Users"]
    assert len(users.matches) == 1
    assert [r["name"] for r in users.target_only] == ["FinanceUser"]

    assert run.results["Synonyms"].total == 0
    assert not run.errors


# DriftRun: results and totals are read-only mappings.
def test_drift_run_read_only():
    run = run_all([SCHEMAS], {}, {})
    with pytest.raises(TypeError):
        run.results["x"] = None
    with pytest.raises(TypeError):
        run.totals["Schemas"]["matches"] = 5


# DriftRun: grand totals sum every category.
def test_grand_totals():
    run = run_all(
        [SCHEMAS, cat("Roles", ("name",))],
        {"Schemas": RecordList([{"name": "a"}]), "Roles": RecordList([{"name": "r"}]), "Extra": Missing()},
        {"Roles": RecordList([{"name": "r"}])},
    )
    totals = run.grand_totals()
    assert totals["matches"] == 1
    assert totals["source_only"] == 1
    assert totals["total"] == 2
    assert isinstance(run, DriftRun)


# run_all: 38-digit and exponent-form numerics compare without failing any category.
def test_run_all_wide_numerics():
    src = {
        "Sequences": RecordList([
            {"schema": "dbo", "name": "Big", "maximum_value": Decimal("9" * 38)},
            {"schema": "dbo", "name": "Exp", "maximum_value": Decimal("1E+30")},
        ]),
        "Schemas": RecordList([{"name": "HR"}]),
    }
    tgt = {
        "Sequences": RecordList([
            {"schema": "dbo", "name": "Big", "maximum_value": Decimal("9" * 38)},
            {"schema": "dbo", "name": "Exp", "maximum_value": 10 ** 30},
        ]),
        "Schemas": RecordList([{"name": "HR"}]),
    }
    run = run_all([SEQUENCES, SCHEMAS], src, tgt)
    assert not run.errors
    assert run.totals["Sequences"]["matches"] == 2
    assert run.results["Schemas"].counts()["matches"] == 1


# compare_category: a partly dropped payload is warned about but not called empty.
def test_compare_category_partial_drop_warning(capsys):
    slog.setup_logging(0)
    compare_category(SCHEMAS, RowSet(["name"], [["HR"], "oops"]), Unrecognized(3, "expected rows"))
    out = capsys.readouterr().out
    assert "source: dropped 1 non-tabular row(s) from row-set" in out
    assert "from row-set; treated as empty" not in out
    assert "target: expected rows; treated as empty" in out
