from typing import Dict, List, Optional
from dominate import tags
from dominate.util import raw
import math
import html

# SVG donut card with a legend (count + percent, native <title> tooltips)

_DEFAULT_COLORS = {
    "MATCH": "#49b473",      # green
    "WARN": "#c9b400",       # yellow
    "CRITICAL": "#c04444",   # red
    "DIFF": "#d3923e",       # orange
    "SOURCE_ONLY": "#5b8def",
    "TARGET_ONLY": "#9a6fd6",
}


def _pct2(value: float, total: float) -> float:
    """Percentage with two decimals, clamped to [0, 100]."""
    if total <= 0:
        return 0.0
    pct = (float(value) / float(total)) * 100.0
    pct = min(max(pct, 0.0), 100.0)
    return round(pct + 1e-12, 2)


def _sanitize(values: Dict[str, int], segments: List[str]) -> Dict[str, int]:
    out: Dict[str, int] = {}
    for k in segments:
        try:
            out[k] = max(0, int(values.get(k, 0) or 0))
        except (TypeError, ValueError):
            out[k] = 0
    return out


def _svg_ring(
    vals: Dict[str, int],
    segments: List[str],
    *,
    radius: int,
    stroke: int,
    center_label: str,
    labels: Dict[str, str],
    colors: Dict[str, str],
) -> str:
    total = sum(vals.values())
    r = radius - stroke / 2.0
    circumference = 2 * math.pi * r
    view = 2 * (radius + stroke)
    cx = cy = radius + stroke / 2.0

    parts: List[str] = [f'<svg width="{view}" height="{view}" viewBox="0 0 {view} {view}" class="donut">']
    if total <= 0:
        parts.append(
            f'<circle cx="{cx}" cy="{cy}" r="{r:.2f}" stroke="#e6e6e6" stroke-width="{stroke}" fill="none"></circle>'
        )
    else:
        offset = 0.0
        for k in segments:
            v = vals[k]
            if v <= 0:
                continue
            dash = circumference * (v / total)
            tip = f"{labels.get(k, k.title())}: {v} ({_pct2(v, total):.2f}%)"
            parts.append(
                f'<g><title>{html.escape(tip)}</title>'
                f'<circle cx="{cx}" cy="{cy}" r="{r:.2f}" stroke="{colors.get(k, "#888")}" '
                f'stroke-width="{stroke}" fill="none" '
                f'stroke-dasharray="{dash:.3f} {circumference - dash:.3f}" '
                f'stroke-dashoffset="{-offset:.3f}" transform="rotate(-90 {cx} {cy})"></circle></g>'
            )
            offset += dash
    parts.append(
        f'<text x="{cx}" y="{cy}" dominant-baseline="middle" text-anchor="middle" '
        f'class="donut-center">{html.escape(center_label)}</text>'
    )
    parts.append("</svg>")
    return "".join(parts)


def render_donut_block(
    title: str,
    values: Dict[str, int],
    *,
    segments: Optional[List[str]] = None,
    radius: int = 52,
    stroke: int = 18,
    center_label: Optional[str] = None,
    legend_labels: Optional[Dict[str, str]] = None,
    colors: Optional[Dict[str, str]] = None,
) -> tags.div:
    """
    Donut card: title, ring, legend.
      - values:   e.g. {"MATCH": 14, "WARN": 4, "CRITICAL": 2}
      - segments: keys to draw, in order (default: values' keys)
      - center_label defaults to the total
    """
    segments = list(segments or values.keys())
    labels = legend_labels or {}
    palette = {**_DEFAULT_COLORS, **(colors or {})}

    vals = _sanitize(values, segments)
    total = sum(vals.values())
    if center_label is None:
        center_label = str(total)

    card = tags.div(_class="donut-card")
    card.add(tags.div(title, _class="donut-title"))

    wrap = tags.div(_class="donut-wrap")
    wrap.add(raw(_svg_ring(vals, segments, radius=radius, stroke=stroke,
                           center_label=center_label, labels=labels, colors=palette)))
    card.add(wrap)

    legend = tags.div(_class="donut-legend")
    for k in segments:
        v = vals.get(k, 0)
        row = tags.div(_class="legend-row")
        row.add(tags.span(_class="legend-swatch", style=f"background:{palette.get(k, '#888')}"))
        row.add(tags.span(f"{labels.get(k, k.title())}: {v} ({_pct2(v, total):.2f}%)", _class="legend-text"))
        legend.add(row)
    card.add(legend)
    return card
