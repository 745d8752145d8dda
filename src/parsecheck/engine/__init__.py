"""Parsing engine layer.

The engine Protocol, cooperative cancellation with deadline-bounded
calls, error-normalizing call wrappers, the pure-Python reference engine
and the optional tree-sitter adapter.

Python 3.13+.
"""

from .deadline import WORKER_THREAD_NAME, CancellationFlag, call_with_deadline
from .guard import guarded_edit, guarded_parse, guarded_render
from .protocol import EngineFactory, ParsingEngine, SyntaxTree
from .reference import ARITHMETIC, ReferenceEngine, ReferenceTree
from .treesitter import TreeSitterEngine

__all__ = [
    "ARITHMETIC",
    "WORKER_THREAD_NAME",
    "CancellationFlag",
    "EngineFactory",
    "ParsingEngine",
    "ReferenceEngine",
    "ReferenceTree",
    "SyntaxTree",
    "TreeSitterEngine",
    "call_with_deadline",
    "guarded_edit",
    "guarded_parse",
    "guarded_render",
]
