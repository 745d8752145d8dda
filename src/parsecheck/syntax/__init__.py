"""Source buffers, edits and tree notation.

Provides the edit model applied to source buffers, code-point boundary
helpers, the parenthesized tree notation, and the structural tree
comparator shared by the corpus runner and the incremental verifier.

Python 3.13+.
"""

from .compare import compare, compare_nodes
from .edit import Edit, SourceBuffer
from .position import Point, advance_point, point_at
from .sexp import (
    SexpNode,
    contains_error,
    format_sexp,
    iter_nodes,
    normalize_sexp,
    parse_sexp,
    render_sexp_node,
)

__all__ = [
    "Edit",
    "Point",
    "SexpNode",
    "SourceBuffer",
    "advance_point",
    "compare",
    "compare_nodes",
    "contains_error",
    "format_sexp",
    "iter_nodes",
    "normalize_sexp",
    "parse_sexp",
    "point_at",
    "render_sexp_node",
]
