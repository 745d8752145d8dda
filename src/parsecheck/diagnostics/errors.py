"""parsecheck exception hierarchy.

Every error raised by the library derives from ParseCheckError so callers
can catch the whole family in one clause. The verification layers convert
these exceptions into MismatchReport records; they never escape a session.

Python 3.13+.
"""

from pathlib import Path

__all__ = [
    "EngineError",
    "MalformedCorpusError",
    "ParseCancelledError",
    "ParseCheckError",
    "SexpSyntaxError",
    "TimeoutExceededError",
]


class ParseCheckError(Exception):
    """Base exception for all parsecheck errors."""


class MalformedCorpusError(ParseCheckError):
    """Corpus fixture could not be parsed.

    Fatal to the file being loaded; other files continue.

    Attributes:
        path: Fixture file (None for in-memory text)
        line: 1-based line where the problem was detected
        reason: Human-readable description without location prefix
    """

    def __init__(self, reason: str, *, path: Path | str | None = None, line: int = 0) -> None:
        """Initialize MalformedCorpusError.

        Args:
            reason: What is wrong with the fixture
            path: Fixture file, if known
            line: 1-based line number, 0 if unknown
        """
        self.path = Path(path) if path is not None else None
        self.line = line
        self.reason = reason
        super().__init__(f"{self.location}: {reason}")

    @property
    def location(self) -> str:
        """Return ``path:line`` for messages."""
        name = str(self.path) if self.path is not None else "<corpus>"
        return f"{name}:{self.line}" if self.line else name


class EngineError(ParseCheckError):
    """External engine raised an internal error or produced a malformed tree.

    Fatal to the trial. Reported, never retried.
    """


class ParseCancelledError(EngineError):
    """Engine observed its cancellation flag and abandoned the parse.

    Only meaningful inside a deadline-bounded call, where it is converted
    to TimeoutExceededError.
    """


class TimeoutExceededError(ParseCheckError):
    """A parse ran past its deadline.

    Signals possible non-termination in the engine. Fatal to the trial and
    flagged distinctly from structural differences.

    Attributes:
        timeout: Deadline in seconds that was exceeded
        abandoned: True if the worker did not exit within the grace period
    """

    def __init__(self, timeout: float, *, abandoned: bool = False) -> None:
        """Initialize TimeoutExceededError.

        Args:
            timeout: Deadline in seconds
            abandoned: Whether the worker thread had to be abandoned
        """
        self.timeout = timeout
        self.abandoned = abandoned
        suffix = " (worker abandoned)" if abandoned else ""
        super().__init__(f"Parse exceeded {timeout:g}s deadline{suffix}")


class SexpSyntaxError(ValueError):
    """Tree notation could not be parsed.

    Subclasses ValueError so callers treating notation as plain input data
    can catch it generically.

    Attributes:
        position: Character offset in the notation text
    """

    def __init__(self, message: str, position: int) -> None:
        """Initialize SexpSyntaxError.

        Args:
            message: What was expected or found
            position: Character offset of the problem
        """
        self.position = position
        super().__init__(f"{message} at offset {position}")
