# db-drift/dbdrift/htmlutils.py
from dominate import tags

# Every collapsible block registers with these functions in data/script.js.
_TOGGLE_CLASS = "toggle-block"


def show_hide_div(div_id: str, hide: bool = False) -> tags.div:
    """
    A collapsible container with its own toggle button.
    Use as a context manager; ``hide`` decides the initial state, and the
    "Default" button restores it.
    """
    tags.button("Show / hide", cls="toggle-button", onclick=f"toggleDiv('{div_id}')")
    style = "display: none;" if hide else "display: block;"
    return tags.div(id=div_id, cls=_TOGGLE_CLASS, style=style, data_default="hidden" if hide else "shown")


def show_all_button() -> tags.button:
    return tags.button("Show all", cls="visibility-button", onclick="showAll()")


def hide_all_button() -> tags.button:
    return tags.button("Hide all", cls="visibility-button", onclick="hideAll()")


def default_button() -> tags.button:
    return tags.button("Default", cls="visibility-button", onclick="defaultAll()")
