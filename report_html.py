# db-drift/report_html.py
import argparse
import json
import os
import re
import zipfile
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from dominate import document, tags
from dominate.util import raw

from dbdrift.htmlutils import show_hide_div, show_all_button, hide_all_button, default_button
from dbdrift.interfaces import DriftState

from dbdrift.reporting.viz.table import render_table_block, render_table_variant
from dbdrift.reporting.viz.table.default import cell_text
from dbdrift.reporting.viz.donut import render_donut_block

# ----------------------------
# Texts & small helpers
# ----------------------------
OUT_DIR = "results"
_HERE = os.path.dirname(os.path.abspath(__file__))
JS_PATH = os.path.join(_HERE, "data", "script.js")
CSS_PATH = os.path.join(_HERE, "data", "style.css")

TOOLTIP_TEXT = {
    DriftState.MATCH: "Source and target agree",
    DriftState.WARN: "Some drift worth checking",
    DriftState.CRITICAL: "Drift above the configured threshold, or the category failed",
}

RESULT_TEXT = {
    DriftState.MATCH: lambda x:
        "No drift was found in any compared category.",
    DriftState.WARN: lambda x:
        f"Some drift was found. {x} category(ies) report differences.",
    DriftState.CRITICAL: lambda x:
        f"{x} category(ies) report drift. At least one of them exceeds its threshold "
        "or could not be compared.",
}

_id_pat = re.compile(r"[^A-Za-z0-9_-]+")
def safe_id(s: str) -> str:
    return _id_pat.sub("_", s)

def state_enum(s: str) -> DriftState:
    try:
        return DriftState[s]
    except KeyError:
        return DriftState.WARN

def iter_sections_issues_first(report: Dict[str, Any]) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Stable partition:
      - keep original order within groups
      - move WARN/CRITICAL to the front
      - keep MATCH last
    """
    items = list((report.get("sections") or {}).items())
    issues: List[Tuple[str, Dict[str, Any]]] = []
    matches: List[Tuple[str, Dict[str, Any]]] = []
    for name, sec in items:
        if state_enum(sec.get("result", "WARN")) == DriftState.MATCH:
            matches.append((name, sec))
        else:
            issues.append((name, sec))
    return issues + matches

def render_status_dot_link(*, section_name: str, state: DriftState, target_id: str):
    """Clickable status dot: hover shows the category and its state, click jumps to its card."""
    tip = TOOLTIP_TEXT.get(state, "")
    with tags.a(cls="dot " + state.name.lower(), href=f"#{target_id}", title=section_name):
        tooltip = f"{section_name}: {tip}" if tip else section_name
        tags.span(tooltip, cls="tooltiptext " + state.name.lower())

def table(headers: Iterable[str], rows: Iterable[Iterable[Any]]):
    return render_table_block(list(headers), list(rows))

def fast_summary(stats: Dict[str, Any]) -> str:
    s = stats or {}
    return (f"Compared {int(s.get('total', 0) or 0)} items. "
            f"Matches: {int(s.get('matches', 0) or 0)}. "
            f"Differences: {int(s.get('differences', 0) or 0)}. "
            f"Source only: {int(s.get('source_only', 0) or 0)}. "
            f"Target only: {int(s.get('target_only', 0) or 0)}.")

def record_text(record: Dict[str, Any], key_columns: List[str]) -> str:
    """Non-key columns of a record as 'col=value' pairs."""
    parts = [f"{k}={cell_text(v)}" for k, v in (record or {}).items() if k not in key_columns]
    return ", ".join(parts)

# ----------------------------
# Doc rendering
# ----------------------------

_link_pat = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")

def _render_paragraph_with_links(text: str) -> None:
    """Render a paragraph, supporting minimal [text](url) link syntax."""
    if not text:
        return
    with tags.p():
        pos = 0
        for m in _link_pat.finditer(text):
            if m.start() > pos:
                tags.span(text[pos:m.start()])
            label = (m.group(1) or "").strip() or (m.group(2) or "").strip()
            href = (m.group(2) or "").strip()
            if href:
                tags.a(label, href=href, target="_blank", rel="noopener noreferrer")
            else:
                tags.span(label)
            pos = m.end()
        if pos < len(text):
            tags.span(text[pos:])

def render_doc_text(doc_text: str) -> None:
    """Render doc_text as paragraphs split by blank lines."""
    if not doc_text:
        return
    chunks = [c.strip() for c in re.split(r"\n\s*\n", str(doc_text).replace("\r\n", "\n"))]
    for c in chunks:
        if c:
            _render_paragraph_with_links(c)

# ----------------------------
# Rows for the generic tables
# ----------------------------

def change_rows(section: Dict[str, Any]) -> List[List[Any]]:
    """One row per changed column: Item / Column / Source / Target."""
    rows = []
    for d in section.get("differences") or []:
        for col, delta in (d.get("changed") or {}).items():
            rows.append([d.get("label", ""), col, delta.get("source"), delta.get("target")])
    return rows

def presence_rows(items: List[Dict[str, Any]], key_columns: List[str]) -> List[List[Any]]:
    return [[it.get("label", ""), record_text(it.get("record") or {}, key_columns)] for it in items or []]

# ----------------------------
# Category card renderer
# ----------------------------

def render_category_card(section_name: str, section: Dict[str, Any], idx: int, *, source_name: str, target_name: str):
    state = state_enum(section.get("result", "WARN"))
    anchor_id = safe_id(section_name)

    tags.h2(f"Category: {section_name}", id=anchor_id)
    with tags.div():
        tags.span(f"{state.name}", style="font-weight:bold;", cls="state-" + state.name.lower())

    if section.get("description"):
        tags.p(section["description"], cls="hint")

    rep_cfg = section.get("report") or {}
    doc_text = (rep_cfg.get("doc_text") or "").strip()
    if doc_text:
        with tags.div(cls="module-doc"):
            render_doc_text(doc_text)

    if section.get("error"):
        tags.p(f"Not compared: {section['error']}", cls="error")
        tags.hr()
        return

    key_columns = list(section.get("key_columns") or [])
    tags.p(fast_summary(section.get("stats") or {}))
    tags.p("Key: " + ", ".join(key_columns) +
           (("; ignored: " + ", ".join(section.get("ignore_columns") or [])) if section.get("ignore_columns") else ""),
           cls="hint")

    divname = f"section_{idx}"

    if section.get("differences"):
        with show_hide_div(f"{divname}_changes", hide=False):
            tags.h3("Changed columns")
            node = render_table_variant(
                section_name=section_name,
                section=section,
                source_name=source_name,
                target_name=target_name,
                variant=rep_cfg.get("table"),
            )
            if node is not None:
                container = tags.div()
                container.add(node)
            else:
                table(["Item", "Column", source_name, target_name], change_rows(section))

    if section.get("source_only"):
        with show_hide_div(f"{divname}_source_only", hide=False):
            tags.h3(f"Only in {source_name}")
            table(["Item", "Detail"], presence_rows(section["source_only"], key_columns))

    if section.get("target_only"):
        with show_hide_div(f"{divname}_target_only", hide=False):
            tags.h3(f"Only in {target_name}")
            table(["Item", "Detail"], presence_rows(section["target_only"], key_columns))

    # Matches are always collapsed by default
    if section.get("matches"):
        with show_hide_div(f"{divname}_matches", hide=True):
            tags.h3("Matches")
            table(["Item", "Detail"], presence_rows(section["matches"], key_columns))

    tags.hr()

# ----------------------------
# Intro (left + right panels)
# ----------------------------

def state_counts(report: Dict[str, Any]) -> Dict[str, int]:
    counts = {s.name: 0 for s in DriftState}
    for sec in (report.get("sections") or {}).values():
        counts[state_enum(sec.get("result", "WARN")).name] += 1
    return counts

def render_intro_left(report: Dict[str, Any], *, overall_state: DriftState, drifting: int, src_path: str):
    source_name = report.get("source_name", "source")
    target_name = report.get("target_name", "target")

    tags.h1(f"Drift of {target_name} against {source_name}")
    title = (report.get("meta") or {}).get("schema_title")
    if title:
        tags.p(f"Schema: {title}")
    tags.p("Generated on: " + datetime.now().strftime("%d/%m/%Y %H:%M:%S"))
    tags.p("Generated from: " + src_path)

    with tags.div():
        tags.h2("Drift results")
        with tags.span(cls="circle info-circle"):
            tags.span("i")
            with tags.span(cls="tooltiptext info"):
                tags.strong("Result: ")
                tags.span(RESULT_TEXT[overall_state](drifting))
                tags.br()
                tags.br()
                tags.strong("Methodology: ")
                tags.span(
                    "Records are paired by their key columns. WARN when drift stays below the configured "
                    "threshold; CRITICAL when drift/total reaches the ratio threshold, drift reaches the "
                    "count threshold, or the category could not be compared."
                )

    with tags.div(id="modules"):
        for name, sec in iter_sections_issues_first(report):
            st = state_enum(sec.get("result", "WARN"))
            render_status_dot_link(section_name=name, state=st, target_id=safe_id(name))

        counts = state_counts(report)
        tags.p(f"{counts['MATCH']} Match • {counts['WARN']} Warn • {counts['CRITICAL']} Critical")

    tags.h3("Quick visibility settings")
    show_all_button()
    hide_all_button()
    default_button()

    sections = [name for (name, _sec) in iter_sections_issues_first(report)]
    if sections:
        with tags.div():
            tags.label("Jump to category: ", _for="jumpCat")
            sel = tags.select(id="jumpCat", onchange="location.hash=this.value")
            for name in sections:
                sel.add(tags.option(name, value=safe_id(name)))

def render_intro_right(report: Dict[str, Any]):
    counts = state_counts(report)
    totals = (report.get("dashboard") or {}).get("totals") or {}
    total = int(totals.get("total", 0) or 0)
    matches = int(totals.get("matches", 0) or 0)
    diffs = int(totals.get("differences", 0) or 0)
    src_only = int(totals.get("source_only", 0) or 0)
    tgt_only = int(totals.get("target_only", 0) or 0)

    with tags.div(_class="donut-stack"):
        render_donut_block(
            "Categories",
            counts,
            segments=["MATCH", "WARN", "CRITICAL"],
            legend_labels={"MATCH": "Match", "WARN": "Warn", "CRITICAL": "Critical"},
        )
        render_donut_block(
            "Records",
            {"MATCH": matches, "DIFF": diffs, "SOURCE_ONLY": src_only, "TARGET_ONLY": tgt_only},
            segments=["MATCH", "DIFF", "SOURCE_ONLY", "TARGET_ONLY"],
            center_label=str(total),
            legend_labels={"MATCH": "Matches", "DIFF": "Differences",
                           "SOURCE_ONLY": "Source only", "TARGET_ONLY": "Target only"},
        )
        with tags.div(_class="kpi-row"):
            with tags.div(_class="kpi"):
                tags.div("Compared items", _class="kpi-title")
                tags.div(str(total), _class="kpi-value")
            with tags.div(_class="kpi"):
                tags.div("Total drift", _class="kpi-title")
                tags.div(str(diffs + src_only + tgt_only), _class="kpi-value")
            with tags.div(_class="kpi"):
                tags.div("Failed categories", _class="kpi-title")
                tags.div(str(int(totals.get("errors", 0) or 0)), _class="kpi-value")

# ----------------------------
# Document
# ----------------------------

def build_document(report: Dict[str, Any], *, src_path: str, link_assets: bool = False,
                   script: Optional[str] = None, style: Optional[str] = None) -> document:
    """Build the whole HTML document for an assembled report."""
    overall_state = state_enum(report.get("overall", "WARN"))
    drifting = sum(
        1 for s in (report.get("sections") or {}).values()
        if state_enum(s.get("result", "WARN")).value >= DriftState.WARN.value
    )

    doc = document(title="Database drift report")

    with doc.head:
        if link_assets:
            tags.link(rel="stylesheet", href="style.css")
            tags.script(type="text/javascript", src="script.js")
        else:
            tags.style(raw("\n" + (style or "") + "\n"))
            tags.script(raw("\n" + (script or "") + "\n"), type="text/javascript")

    with doc:
        theme = str(report.get("theme", "light")).strip().lower()
        if theme not in {"light", "dark"}:
            theme = "light"
        doc.body["data-theme"] = theme

        tags.button("Back to Top", onclick="backToTop()", id="topButton", cls="floatingbutton")

        with tags.div(cls="intro-grid"):
            with tags.div(cls="intro-left", id="intro"):
                render_intro_left(report, overall_state=overall_state, drifting=drifting, src_path=src_path)
            with tags.div(cls="intro-right"):
                render_intro_right(report)

        source_name = report.get("source_name", "source")
        target_name = report.get("target_name", "target")
        for idx, (section_name, sec) in enumerate(iter_sections_issues_first(report)):
            render_category_card(section_name, sec, idx, source_name=source_name, target_name=target_name)

    return doc


def zip_preparation(html_report_path: str, report_json_path: str, out_dir: str, js_path: str, css_path: str,
                    link_mode: bool) -> str:
    ts = datetime.now().strftime("%Y%m%d_%H%M")
    zip_path = os.path.join(out_dir, f"results_{ts}.zip")

    with zipfile.ZipFile(zip_path, mode="w", compression=zipfile.ZIP_DEFLATED) as z:
        z.write(html_report_path, arcname=os.path.basename(html_report_path))
        z.write(report_json_path, arcname=os.path.basename(report_json_path))

        if link_mode:
            z.write(js_path, arcname="script.js")
            z.write(css_path, arcname="style.css")

    return zip_path


def write_report(report_json_path: str, *, output_file: str = "drift.html", out_dir: str = OUT_DIR,
                 link_assets: bool = False, make_zip: bool = True) -> str:
    """Render report_json_path into out_dir/output_file; returns the HTML path."""
    with open(report_json_path, "r", encoding="utf-8") as f:
        report = json.load(f)

    with open(JS_PATH, "r", encoding="utf-8") as js, open(CSS_PATH, "r", encoding="utf-8") as css:
        script = js.read()
        style = css.read()

    doc = build_document(report, src_path=report_json_path, link_assets=link_assets, script=script, style=style)

    os.makedirs(out_dir, exist_ok=True)
    out_path = os.path.join(out_dir, os.path.basename(output_file))
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(str(doc))

    if link_assets:
        for src, name in ((JS_PATH, "script.js"), (CSS_PATH, "style.css")):
            with open(src, "r", encoding="utf-8") as fin, \
                    open(os.path.join(out_dir, name), "w", encoding="utf-8") as fout:
                fout.write(fin.read())

    if make_zip:
        zip_preparation(out_path, report_json_path, out_dir=out_dir, js_path=JS_PATH, css_path=CSS_PATH,
                        link_mode=link_assets)
    return out_path

# ----------------------------
# Main
# ----------------------------

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("-p", "--drift-report",
                        help="Input drift JSON produced by drift.py",
                        action="store", metavar="file", required=True)
    parser.add_argument("-o", "--output-file",
                        help="Name of output HTML",
                        action="store", metavar="outfile",
                        required=False, default="drift.html")
    parser.add_argument("-d", "--output-dir",
                        help="Directory for the HTML and zip",
                        action="store", metavar="dir", default=OUT_DIR)
    parser.add_argument("-e", "--exclude-style-and-scripts",
                        help="Link style.css/script.js next to the HTML instead of inlining them",
                        action="store_true")
    parser.add_argument("-nz", "--no-zip",
                        help="Disables creation of a zip",
                        action="store_true")
    args = parser.parse_args()

    write_report(
        args.drift_report,
        output_file=args.output_file,
        out_dir=args.output_dir,
        link_assets=args.exclude_style_and_scripts,
        make_zip=not args.no_zip,
    )
