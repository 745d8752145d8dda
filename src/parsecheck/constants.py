"""Shared constants for parsecheck.

This module provides centralized defaults used across the corpus, engine
and fuzz packages. Placing constants here avoids circular imports and
provides a single source of truth.

Constants are grouped by domain:
- Fuzzing defaults: Seeds, edit counts, timeouts, parallelism
- Edit shape limits: Bounds on generated insertions and deletions
- Depth limits: Recursion protection for tree notation handling
- Corpus format: Delimiter and attribute spellings

Python 3.13+.
"""

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Fuzzing defaults
    "DEFAULT_SEED",
    "DEFAULT_ITERATIONS",
    "DEFAULT_EDIT_COUNT",
    "DEFAULT_PER_EDIT_TIMEOUT",
    "DEFAULT_PARALLELISM",
    "DEFAULT_CANCEL_GRACE",
    # Edit shape limits
    "DEFAULT_MAX_INSERT_TOKENS",
    "DEFAULT_MAX_INSERT_BYTES",
    "DEFAULT_MAX_DELETE",
    # Depth limits
    "MAX_SEXP_DEPTH",
    # Corpus format
    "CORPUS_FILE_SUFFIX",
    "ENTRY_DELIMITER_MIN",
    "DIVIDER_MIN",
    # Environment overrides
    "ENV_PREFIX",
]

# ============================================================================
# FUZZING DEFAULTS
# ============================================================================

# First seed of the default seed range.
DEFAULT_SEED: int = 0

# Number of seeds (trials per corpus entry) in the default seed range.
DEFAULT_ITERATIONS: int = 10

# Edits applied per trial.
DEFAULT_EDIT_COUNT: int = 3

# Seconds allowed for a single parse call during verification.
DEFAULT_PER_EDIT_TIMEOUT: float = 5.0

# Worker threads for the fuzz session matrix. 1 = run in the calling thread.
DEFAULT_PARALLELISM: int = 1

# Seconds a timed-out worker is given to observe cancellation and exit
# before it is abandoned.
DEFAULT_CANCEL_GRACE: float = 1.0

# ============================================================================
# EDIT SHAPE LIMITS
# ============================================================================

# Maximum alphabet tokens concatenated into one insertion.
DEFAULT_MAX_INSERT_TOKENS: int = 3

# Hard cap on inserted bytes per edit (after re-encoding).
DEFAULT_MAX_INSERT_BYTES: int = 32

# Maximum bytes removed by one deletion or replacement.
DEFAULT_MAX_DELETE: int = 8

# ============================================================================
# DEPTH LIMITS
# ============================================================================

# Maximum nesting accepted when parsing tree notation. The sexp parser and
# renderer are iterative; this bounds memory for adversarial input.
MAX_SEXP_DEPTH: int = 10_000

# ============================================================================
# CORPUS FORMAT
# ============================================================================

# Files picked up when a corpus directory is walked.
CORPUS_FILE_SUFFIX: str = ".txt"

# Minimum run of '=' forming an entry delimiter line.
ENTRY_DELIMITER_MIN: int = 3

# Minimum run of '-' forming an input/expected divider line.
DIVIDER_MIN: int = 3

# ============================================================================
# ENVIRONMENT OVERRIDES
# ============================================================================

# Prefix for FuzzConfig.from_env() variables (PARSECHECK_SEED, ...).
ENV_PREFIX: str = "PARSECHECK_"
