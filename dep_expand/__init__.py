"""Expand Cargo dependencies during a build.

    from dep_expand import Expander

    output = Expander().expand("anyhow")
"""
from __future__ import annotations

from dep_expand.core.errors import ExpandError
from dep_expand.core.expander import Expander, expand, expand_path
from dep_expand.core.filter import filter_source
from dep_expand.core.options import ExpandOptions
from dep_expand.core.selector import PathSelector

__all__ = [
    "ExpandError",
    "ExpandOptions",
    "Expander",
    "PathSelector",
    "expand",
    "expand_path",
    "filter_source",
]
