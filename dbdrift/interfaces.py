# db-drift/dbdrift/interfaces.py
from enum import Enum


class DriftState(Enum):
    """Per-category verdict, ordered by severity."""
    MATCH = 0
    WARN = 1
    CRITICAL = 2
