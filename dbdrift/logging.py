# db-drift/dbdrift/logging.py
from __future__ import annotations
import logging as _logging
import os
import re
import sys
from typing import Any, Mapping

_ANSI = {
    "reset": "\x1b[0m",
    "bold": "\x1b[1m",
    "green": "\x1b[32m",
    "yellow": "\x1b[33m",
    "red": "\x1b[31m",
    "cyan": "\x1b[36m",
    "magenta": "\x1b[35m",
    "gray": "\x1b[90m",
}
_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")

_COLOR_ENABLED: bool = False
_LOGGER = _logging.getLogger("dbdrift.drift")

_LEVELS = {0: _logging.WARNING, 1: _logging.INFO}


class _PlainFormatter(_logging.Formatter):
    """File output: timestamped, level-tagged, no color codes."""

    def format(self, record: _logging.LogRecord) -> str:
        return _ANSI_RE.sub("", super().format(record))


def _supports_color() -> bool:
    return sys.stdout.isatty() and (os.environ.get("TERM") not in (None, "dumb"))


def c(text: str, color: str) -> str:
    if not _COLOR_ENABLED:
        return text
    return f"{_ANSI.get(color, '')}{text}{_ANSI['reset']}"


def get_logger() -> _logging.Logger:
    return _LOGGER


def setup_logging(verbosity: int = 0, log_file: str | None = None) -> None:
    """Console (and optional file) logging. Verbosity: 0→WARNING, 1→INFO, 2+→DEBUG."""
    global _COLOR_ENABLED
    _COLOR_ENABLED = _supports_color()
    level = _LEVELS.get(verbosity, _logging.DEBUG if verbosity > 1 else _logging.WARNING)

    # drop handlers from a previous setup
    for h in list(_LOGGER.handlers):
        _LOGGER.removeHandler(h)
        h.close()
    _LOGGER.setLevel(level)

    console = _logging.StreamHandler(stream=sys.stdout)
    console.setLevel(level)
    console.setFormatter(_logging.Formatter("%(message)s"))
    _LOGGER.addHandler(console)

    if log_file:
        fh = _logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(level)
        fh.setFormatter(_PlainFormatter("%(asctime)s %(levelname)-7s %(message)s"))
        _LOGGER.addHandler(fh)


def log_info(msg: str) -> None:
    _LOGGER.info(msg)


def log_debug(msg: str) -> None:
    _LOGGER.debug(msg)


def log_warn(msg: str) -> None:
    _LOGGER.warning(f"{c('⚠', 'yellow')} {msg}")


def log_err(msg: str) -> None:
    _LOGGER.error(f"{c('✖', 'red')} {msg}")


def log_ok(msg: str) -> None:
    _LOGGER.info(f"{c('✓', 'green')} {msg}")


def log_step(label: str, value: str = "") -> None:
    suffix = f" {c(value, 'gray')}" if value else ""
    _LOGGER.info(f"{c('→', 'cyan')} {label}{suffix}")


def log_counts(category: str, counts: Mapping[str, int]) -> None:
    """One summary line per compared category; drift is highlighted."""
    drift = counts.get("differences", 0) + counts.get("source_only", 0) + counts.get("target_only", 0)
    tag = c(f"drift {drift}", "magenta" if drift else "green")
    _LOGGER.info(
        f"    • {category}: {counts.get('matches', 0)} match, {counts.get('differences', 0)} diff, "
        f"{counts.get('source_only', 0)} source-only, {counts.get('target_only', 0)} target-only ({tag})"
    )


def log_drift_item(category: str, label: str, detail: Any) -> None:
    _LOGGER.info(f"       {c('-', 'gray')} [{category}] {label}: {detail}")
