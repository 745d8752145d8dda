"""parsecheck - correctness verification for incremental parsers.

Checks a parsing engine against a corpus of source-snippet / expected-tree
fixtures, and fuzzes it with seeded random edits to verify that every
incremental reparse produces the same tree as a parse from scratch.

Public API:
    run_corpus - Check corpus fixtures against an engine
    run_fuzz - Load fixtures and fuzz incremental reparsing
    minimize - Shrink a failing fuzz trial to its shortest edit prefix
    load_corpus - Parse fixture files into CorpusEntry records
    compare - Structural diff of two trees in parenthesized notation
    generate_edits - Seeded, prefix-stable random edit sequences
    IncrementalVerifier - Verify a single fuzz trial
    FuzzSession - Run the (language, entry, seed) matrix
    ReferenceEngine - Built-in incremental engine for the arithmetic grammar

Exceptions:
    ParseCheckError - Base exception class
    MalformedCorpusError - Fixture file could not be parsed
    EngineError - Engine failure or malformed tree
    TimeoutExceededError - Parse ran past its deadline

Submodules:
    parsecheck.syntax - Edits, source buffers, tree notation, comparator
    parsecheck.corpus - Fixture loading and the corpus runner
    parsecheck.fuzz - Edit generation, verifier, session, minimizer
    parsecheck.engine - Engine protocol, deadlines, reference and tree-sitter engines
    parsecheck.diagnostics - Errors, mismatch reports and their formatting
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

from .corpus import CorpusEntry, load_corpus, run_corpus
from .diagnostics import (
    EngineError,
    MalformedCorpusError,
    MismatchReport,
    ParseCheckError,
    TimeoutExceededError,
)
from .engine import ParsingEngine, ReferenceEngine
from .fuzz import (
    EditPolicy,
    FuzzSession,
    FuzzTrial,
    IncrementalVerifier,
    generate_edits,
    minimize,
    run_fuzz,
)
from .config import FuzzConfig  # noqa: I001 - after .fuzz, which it imports
from .syntax import Edit, compare

# Version comes from the installed distribution metadata (pyproject.toml)
try:
    __version__ = _get_version("parsecheck")
except PackageNotFoundError:
    # Source checkout without an install
    __version__ = "0.0.0+dev"

__all__ = [
    "CorpusEntry",
    "Edit",
    "EditPolicy",
    "EngineError",
    "FuzzConfig",
    "FuzzSession",
    "FuzzTrial",
    "IncrementalVerifier",
    "MalformedCorpusError",
    "MismatchReport",
    "ParseCheckError",
    "ParsingEngine",
    "ReferenceEngine",
    "TimeoutExceededError",
    "__version__",
    "compare",
    "generate_edits",
    "load_corpus",
    "minimize",
    "run_corpus",
    "run_fuzz",
]
