# db-drift/tests/test_reporting.py
import json
from decimal import Decimal

import pytest

from dbdrift.aggregator import run_all
from dbdrift.ingest import SnapshotReader
from dbdrift.records import RecordList
from dbdrift.reporting.reporting import assemble_report, compute_severity, identity_label, json_value
from dbdrift.schemaloader import SchemaLoader, builtin_schema
from utility import cat, examples_dir, production_schema_yml


# compute_severity: returns MATCH when there is no drift (regardless of thresholds).
def test_compute_severity_match_when_no_drift():
    assert compute_severity({"threshold_ratio": 0.1}, drift=0, total=10) == "MATCH"
    assert compute_severity({"threshold_count": 3}, drift=0, total=10) == "MATCH"
    assert compute_severity({}, drift=0, total=0) == "MATCH"


# compute_severity: ratio threshold yields WARN below threshold and CRITICAL at/above it.
def test_compute_severity_ratio_threshold():
    meta = {"threshold_ratio": 0.2}
    assert compute_severity(meta, drift=1, total=10) == "WARN"
    assert compute_severity(meta, drift=2, total=10) == "CRITICAL"


# compute_severity: a valid ratio takes precedence over threshold_count.
def test_compute_severity_ratio_precedence_over_count():
    meta = {"threshold_ratio": 0.5, "threshold_count": 1}
    assert compute_severity(meta, drift=1, total=10) == "WARN"
    assert compute_severity(meta, drift=6, total=10) == "CRITICAL"


# compute_severity: count is used when the ratio is missing or invalid; <= 0 disables it.
def test_compute_severity_count_fallback():
    assert compute_severity({"threshold_count": 5}, drift=4, total=10) == "WARN"
    assert compute_severity({"threshold_count": 5}, drift=5, total=10) == "CRITICAL"
    assert compute_severity({"threshold_ratio": "x", "threshold_count": 2}, drift=2, total=10) == "CRITICAL"
    assert compute_severity({"threshold_count": 0}, drift=9, total=10) == "WARN"


# json_value: JSON scalars pass through; Decimal and bytes go through the canonical form.
@pytest.mark.parametrize("value,expected", [
    (None, None), (True, True), (3, 3), ("x", "x"), (1.5, 1.5),
    (Decimal("10.50"), "10.5"), (b"\x0f", "0x0F"), (float("nan"), "nan"),
])
def test_json_value(value, expected):
    assert json_value(value) == expected


# identity_label: dotted, with NULL shown for empty key parts.
def test_identity_label():
    assert identity_label(("dbo", "Foo")) == "dbo.Foo"
    assert identity_label(("", "x")) == "NULL.x"


def _example_report():
    schema = SchemaLoader(str(production_schema_yml())).load()
    src = SnapshotReader().read(str(examples_dir() / "source.json"))
    tgt = SnapshotReader().read(str(examples_dir() / "target.json"))
    run = run_all(schema, src.results, tgt.results)
    return assemble_report(schema=schema, run=run, source_name=src.label, target_name=tgt.label, title="t")


# assemble_report: the payload is JSON-serializable and carries the expected top-level keys.
def test_report_shape():
    rep = _example_report()
    json.dumps(rep)
    assert rep["source_name"] == "sqlsrv01/TestSourceDB"
    assert rep["theme"] == "light"
    assert rep["meta"]["schema_title"] == "t"
    assert set(rep["dashboard"]) == {"overall_state_counts", "totals", "by_section"}
    assert rep["dashboard"]["overall_state_counts"]["TOTAL"] == len(rep["sections"])


# assemble_report: difference entries expose key, label and per-column deltas.
def test_report_difference_entry():
    sec = _example_report()["sections"]["Types"]
    d = sec["differences"][0]
    assert d["key"] == ["dbo", "EmailAddress"]
    assert d["label"] == "dbo.EmailAddress"
    assert d["changed"] == {"max_length": {"source": 255, "target": 300}}
    assert sec["stats"]["drift"] == 3


# assemble_report: per-category severity follows the configured thresholds.
def test_report_severity_per_category():
    rep = _example_report()
    secs = rep["sections"]
    assert secs["Role Members"]["result"] == "CRITICAL"     # 1 of 2 >= 0.25
    assert secs["Procedures"]["result"] == "CRITICAL"       # count threshold 1
    assert secs["Synonyms"]["result"] == "MATCH"
    assert rep["overall"] == "CRITICAL"


# assemble_report: matches are omitted when show_matches is false.
def test_report_show_matches_false():
    secs = _example_report()["sections"]
    assert "matches" not in secs["Users"]
    assert secs["Tables"]["matches"]


# assemble_report: a failed category is CRITICAL with its error message and empty stats.
def test_report_failed_category():
    schema = {"Tables": {"category": cat("Tables"), "report": {}, "severity": {}}}
    run = run_all(schema, {"Tables": RecordList([{"schema": "dbo"}])}, {})
    rep = assemble_report(schema=schema, run=run, source_name="a", target_name="b")
    sec = rep["sections"]["Tables"]
    assert sec["result"] == "CRITICAL"
    assert "name" in sec["error"]
    assert sec["stats"]["total"] == 0
    assert rep["dashboard"]["totals"]["errors"] == 1


# assemble_report: with the built-in schema and no drift everything is MATCH.
def test_report_all_match():
    schema = builtin_schema()
    data = {"Schemas": RecordList([{"name": "dbo"}])}
    run = run_all(schema, data, data)
    rep = assemble_report(schema=schema, run=run, source_name="a", target_name="b")
    assert rep["overall"] == "MATCH"
    assert rep["dashboard"]["overall_state_counts"]["MATCH"] == 20
