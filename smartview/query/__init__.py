"""
Grid and member filter query model.

Pure, I/O free building blocks of the client: axis specifications, the
grid model and its wire mapping, filter expression parsing and retrieval
preferences.
"""

from .axis import cross_join, process_axes, process_axis_spec
from .grid import CellKind, Grid
from .parsers import FilterParser, default_filter, match_catalog, resolve_filter
from .preferences import Preferences

__all__ = [
    "CellKind",
    "Grid",
    "cross_join",
    "process_axis_spec",
    "process_axes",
    "FilterParser",
    "default_filter",
    "match_catalog",
    "resolve_filter",
    "Preferences",
]
