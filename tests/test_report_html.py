# db-drift/tests/test_report_html.py
import json
import subprocess
import sys

import report_html
from dbdrift.aggregator import run_all
from dbdrift.ingest import SnapshotReader
from dbdrift.reporting.reporting import assemble_report
from dbdrift.reporting.viz.donut import render_donut_block
from dbdrift.reporting.viz.table import render_table_variant
from dbdrift.schemaloader import SchemaLoader
from utility import (
    div_is_collapsed, examples_dir, extract_category_order_from_html, find_opening_div_tag,
    production_schema_yml, repo_path,
)


def _report():
    schema = SchemaLoader(str(production_schema_yml())).load()
    src = SnapshotReader().read(str(examples_dir() / "source.json"))
    tgt = SnapshotReader().read(str(examples_dir() / "target.json"))
    return assemble_report(schema=schema, run=run_all(schema, src.results, tgt.results),
                           source_name=src.label, target_name=tgt.label)


# Issues-first ordering keeps the input order inside the issue and match groups.
def test_iter_sections_issues_first_stable():
    report = {"sections": {
        "A": {"result": "MATCH"}, "B": {"result": "WARN"},
        "C": {"result": "MATCH"}, "D": {"result": "CRITICAL"},
    }}
    assert [n for n, _ in report_html.iter_sections_issues_first(report)] == ["B", "D", "A", "C"]


# Unknown state strings fall back to WARN.
def test_state_enum_fallback():
    assert report_html.state_enum("BOGUS").name == "WARN"


# change_rows: one row per changed column with Item / Column / Source / Target.
def test_change_rows():
    sec = {"differences": [{"label": "dbo.T", "changed": {"a": {"source": 1, "target": 2},
                                                           "b": {"source": None, "target": "x"}}}]}
    assert report_html.change_rows(sec) == [["dbo.T", "a", 1, 2], ["dbo.T", "b", None, "x"]]


# record_text: non-key columns as col=value pairs, NULL spelled out.
def test_record_text():
    assert report_html.record_text({"schema": "s", "name": "n", "owner": None}, ["schema", "name"]) == "owner=NULL"


# The built document puts issue categories first and matches collapsed by default.
def test_build_document_order_and_collapse():
    rep = _report()
    html = str(report_html.build_document(rep, src_path="drift.json", script="", style=""))

    order = extract_category_order_from_html(html)
    expected = [n for n, _ in report_html.iter_sections_issues_first(rep)]
    assert order == expected

    match_idx = order.index("Tables")
    tag = find_opening_div_tag(html, f"section_{match_idx}_matches")
    assert tag is not None and div_is_collapsed(tag)
    assert "Drift of sqlsrv02/TestTargetDB against sqlsrv01/TestSourceDB" in html
    assert "sys.tables reference" in html


# Link mode references style.css and script.js instead of inlining them.
def test_build_document_link_mode():
    html = str(report_html.build_document(_report(), src_path="x", link_assets=True))
    assert 'href="style.css"' in html
    assert 'src="script.js"' in html


# A failed category card shows its error instead of tables.
def test_failed_category_card():
    rep = {"sections": {"Tables": {"result": "CRITICAL", "error": "boom", "stats": {}}}, "dashboard": {}}
    html = str(report_html.build_document(rep, src_path="x"))
    assert "Not compared: boom" in html


# The wide variant renders both sides per difference and marks changed cells.
def test_wide_table_variant():
    sec = _report()["sections"]["Types"]
    node = render_table_variant(section_name="Types", section=sec, source_name="S", target_name="T", variant="wide")
    html = node.render()
    assert html.count("changed-cell") == 2
    assert "max_length" in html
    assert render_table_variant(section_name="Types", section=sec, source_name="S", target_name="T") is None


# The donut block lists every segment with its percentage.
def test_donut_block_legend():
    html = render_donut_block("States", {"MATCH": 3, "WARN": 1}, segments=["MATCH", "WARN"]).render()
    assert "75.00%" in html and "25.00%" in html
    assert "<svg" in html


# Running the script end-to-end writes HTML and a zip into the output directory.
def test_report_html_script(tmp_path):
    rep_path = tmp_path / "drift.json"
    rep_path.write_text(json.dumps(_report()), encoding="utf-8")
    out_dir = tmp_path / "out"
    subprocess.check_call([
        sys.executable, str(repo_path("report_html.py")),
        "-p", str(rep_path), "-o", "r.html", "-d", str(out_dir),
    ])
    assert (out_dir / "r.html").is_file()
    assert list(out_dir.glob("results_*.zip"))


# write_report in link mode copies the assets next to the HTML and skips the zip on request.
def test_write_report_link_mode(tmp_path):
    rep_path = tmp_path / "drift.json"
    rep_path.write_text(json.dumps(_report()), encoding="utf-8")
    out = report_html.write_report(str(rep_path), output_file="x.html", out_dir=str(tmp_path / "o"),
                                   link_assets=True, make_zip=False)
    assert out.endswith("x.html")
    assert (tmp_path / "o" / "style.css").is_file()
    assert (tmp_path / "o" / "script.js").is_file()
    assert not list((tmp_path / "o").glob("*.zip"))
