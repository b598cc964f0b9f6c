#!/usr/bin/env python3
import sys
import argparse
import json
import os
import subprocess
from typing import Any, Dict, List, Optional

from dbdrift.schemaloader import SchemaLoader, builtin_schema
from dbdrift.ingest import Snapshot, SnapshotError, SnapshotReader
from dbdrift import logging as slog
from dbdrift.aggregator import DriftRun, run_all
from dbdrift.comparators.interface import ConfigurationError
from dbdrift.comparators.keyed_comparator import canonical
from dbdrift.reporting.reporting import assemble_report, identity_label
from dbdrift.reporting.excel import write_workbook

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG = 2
EXIT_DRIFT = 3


def _load_schema(path: Optional[str]):
    if not path:
        schema = builtin_schema()
        slog.log_step("Using built-in category table:", f"{len(schema)} categories")
        return schema, None
    slog.log_step("Loading schema:", path)
    loader = SchemaLoader(path)
    schema = loader.load()
    slog.log_ok(f"Schema loaded with {len(schema)} categor(ies).")
    return schema, loader.title


def _select(schema: Dict[str, Any], wanted: Optional[List[str]]) -> Dict[str, Any]:
    """Keep only the named categories, in schema order."""
    if not wanted:
        return schema
    unknown = [w for w in wanted if w not in schema]
    if unknown:
        raise ConfigurationError(f"Unknown categor(ies) {unknown}. Available: {list(schema.keys())}")
    return {k: v for k, v in schema.items() if k in wanted}


def _load_snapshot(title: str, path: str) -> Snapshot:
    slog.log_step(f"Reading {title} snapshot:", path)
    snap = SnapshotReader(default_name=title).read(path)
    slog.log_ok(f"{title} loaded ({snap.label}).")
    return snap


def _print_diffs(run: DriftRun, limit: int) -> None:
    if limit <= 0:
        return
    for name, res in run.results.items():
        for d in res.differences[:limit]:
            for col, delta in d.changed_columns.items():
                slog.log_drift_item(name, f"{identity_label(d.identity)}.{col}", f"{delta.source!r} != {delta.target!r}")
        for side, recs in (("source only", res.source_only), ("target only", res.target_only)):
            for r in recs[:limit]:
                label = identity_label(canonical(r.get(k)) for k in res.key_columns)
                slog.log_drift_item(name, label, side)


def _html_report(output_file: str) -> None:
    slog.log_ok("Generating HTML report")
    report_script = os.path.join(os.path.dirname(os.path.abspath(__file__)), "report_html.py")
    subprocess.run(
        [sys.executable, report_script, "-p", output_file, "-o", "drift.html"],
        check=True,
    )
    slog.log_ok("HTML report written to results/drift.html")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Compare two database catalog snapshots category by category and report drift."
    )
    p.add_argument("-S", "--source", required=True, help="Path to the source snapshot JSON")
    p.add_argument("-T", "--target", required=True, help="Path to the target snapshot JSON")
    p.add_argument("-s", "--schema", default=None, help="Category schema YAML (default: built-in table)")
    p.add_argument("-o", "--output-file", default="drift.json", help="Output JSON path")
    p.add_argument("-c", "--category", action="append", default=None, metavar="CATEGORY",
                   help="Only compare this category (repeatable)")

    p.add_argument("-v", "--verbose", action="count", default=0,
                   help="Increase log verbosity (-v, -vv)")
    p.add_argument("--log-file", default=None, metavar="PATH", help="Also write the log to PATH")
    p.add_argument("--print-diffs", type=int, default=3, metavar="N",
                   help="Print up to N drift items per category (default: 3, 0 to disable)")
    p.add_argument("-rep", "--report", action="store_true",
                   help="Create an HTML report (results/drift.html) using report_html.py")
    p.add_argument("-x", "--excel", default=None, metavar="XLSX", help="Also write an Excel workbook")
    p.add_argument("--fail-on-drift", action="store_true",
                   help=f"Exit with {EXIT_DRIFT} when any category drifts")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    slog.setup_logging(args.verbose, args.log_file)

    try:
        schema, title = _load_schema(args.schema)
        schema = _select(schema, args.category)
        source = _load_snapshot("source", args.source)
        target = _load_snapshot("target", args.target)
    except (ConfigurationError, SnapshotError) as e:
        slog.log_err(f"Error: {e}")
        return EXIT_CONFIG

    run = run_all(schema, source.results, target.results)
    _print_diffs(run, args.print_diffs)

    final_json = assemble_report(
        schema=schema,
        run=run,
        source_name=source.label,
        target_name=target.label,
        title=title,
    )

    slog.log_step("Writing output JSON:", args.output_file)
    with open(args.output_file, "w", encoding="utf-8") as f:
        json.dump(final_json, f, indent=2, ensure_ascii=False)

    if args.excel:
        write_workbook(final_json, args.excel)

    if args.report:
        try:
            _html_report(args.output_file)
        except subprocess.CalledProcessError as e:
            slog.log_err(f"Failed to build HTML report: {e}")
            return EXIT_ERROR
    else:
        slog.log_info("Report generation skipped (use -rep/--report to enable).")

    totals = run.grand_totals()
    slog.log_ok(
        f"Done. overall={final_json['overall']} drift="
        f"{totals['differences'] + totals['source_only'] + totals['target_only']} errors={totals['errors']}"
    )

    if args.fail_on_drift and (run.has_drift or run.errors):
        return EXIT_DRIFT
    return EXIT_OK


if __name__ == "__main__":
    try:
        sys.exit(main())
    except Exception as e:
        slog.log_err(f"Error: {e}")
        sys.exit(EXIT_ERROR)
