"""Diagnostics for parsecheck failures.

Provides the exception hierarchy, the MismatchReport record, and report
formatting for terminals and tooling.

Python 3.13+.
"""

from .errors import (
    EngineError,
    MalformedCorpusError,
    ParseCancelledError,
    ParseCheckError,
    SexpSyntaxError,
    TimeoutExceededError,
)
from .formatter import OutputFormat, ReportFormatter
from .report import MismatchReport

__all__ = [
    "EngineError",
    "MalformedCorpusError",
    "MismatchReport",
    "OutputFormat",
    "ParseCancelledError",
    "ParseCheckError",
    "ReportFormatter",
    "SexpSyntaxError",
    "TimeoutExceededError",
]
