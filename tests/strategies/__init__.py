"""Hypothesis strategies for parsecheck property-based testing.

Strategies are organized by domain:

- sources: buffers for the reference grammar and encoding-aware buffers
- edits: seeds and edit policies

Usage:
    from tests.strategies import arithmetic_sources, edit_policies, seeds
"""

from .edits import edit_counts, edit_policies, seeds
from .sources import arithmetic_sources, sexp_trees, unicode_sources

__all__ = [
    "arithmetic_sources",
    "edit_counts",
    "edit_policies",
    "seeds",
    "sexp_trees",
    "unicode_sources",
]
