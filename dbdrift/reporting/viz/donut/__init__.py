# dbdrift/reporting/viz/donut/__init__.py
from .default import render_donut_block

__all__ = ["render_donut_block"]
