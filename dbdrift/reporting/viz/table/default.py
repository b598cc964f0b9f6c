from typing import List, Any
from dominate import tags


def cell_text(v: Any) -> str:
    if v is None:
        return "NULL"
    if isinstance(v, bool):
        return "1" if v else "0"
    return str(v)


def render_table_block(headers: List[str], rows: List[List[Any]], *, sortable: bool = True):
    """
    Render a generic table block (NO per-table show/hide).
    The section wrapper decides visibility. Cells that are already dominate
    nodes are inserted as-is; everything else is rendered as text.
    """
    container = tags.div(_class="table-container")

    with container:
        t = tags.table(_class="report-table" + (" sortable" if sortable else ""))
        with t:
            with tags.thead():
                with tags.tr():
                    for i, h in enumerate(headers):
                        if sortable:
                            tags.th(str(h), onclick=f"sortTable(this, {i})")
                        else:
                            tags.th(str(h))

            with tags.tbody():
                for r in rows or []:
                    cells = r if isinstance(r, (list, tuple)) else [r]
                    with tags.tr():
                        for c in cells:
                            if isinstance(c, tags.html_tag):
                                tags.td(c)
                            else:
                                tags.td(cell_text(c))
    return container
