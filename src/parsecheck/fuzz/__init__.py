"""Randomized incremental-reparse verification.

Seeded edit generation, the per-trial incremental verifier, the session
that runs the (language, entry, seed) matrix, and failure minimization.

Python 3.13+.
"""

from .edits import Alphabet, EditGenerator, EditPolicy, generate_edits
from .minimize import MinimizedReport, minimize
from .rand import SeededRandom
from .session import FuzzAccumulator, FuzzSession, FuzzSessionResult, run_fuzz
from .trial import FuzzTrial, TrialResult
from .verifier import IncrementalVerifier, check_tree_ranges

__all__ = [
    "Alphabet",
    "EditGenerator",
    "EditPolicy",
    "FuzzAccumulator",
    "FuzzSession",
    "FuzzSessionResult",
    "FuzzTrial",
    "IncrementalVerifier",
    "MinimizedReport",
    "SeededRandom",
    "TrialResult",
    "check_tree_ranges",
    "generate_edits",
    "minimize",
    "run_fuzz",
]
