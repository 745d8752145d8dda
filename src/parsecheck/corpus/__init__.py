"""Corpus fixtures: loading and static expected-tree checks.

Python 3.13+.
"""

from .entry import CorpusEntry
from .loader import CorpusLoadResult, collect_corpus, corpus_files, load_corpus, parse_corpus_text
from .runner import CorpusRunner, CorpusRunResult, EntryOutcome, run_corpus

__all__ = [
    "CorpusEntry",
    "CorpusLoadResult",
    "CorpusRunResult",
    "CorpusRunner",
    "EntryOutcome",
    "collect_corpus",
    "corpus_files",
    "load_corpus",
    "parse_corpus_text",
    "run_corpus",
]
