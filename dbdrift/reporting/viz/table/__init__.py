from __future__ import annotations

from typing import Any, Dict, Optional

from .default import render_table_block
from .wide import render_wide_table


def render_table_variant(
    *,
    section_name: str,
    section: Dict[str, Any],
    source_name: str,
    target_name: str,
    variant: Optional[str] = None,
):
    """
    Dispatch difference-table rendering based on report.table.
    - variant=None   -> caller renders the generic per-column change table
    - variant='wide' -> full side-by-side source/target records
    """
    v = (variant or "").strip().lower() if variant else None
    if v == "wide":
        return render_wide_table(section, source_name, target_name)

    return None
