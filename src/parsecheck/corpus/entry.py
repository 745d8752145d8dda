"""Corpus entry record.

Python 3.13+.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from parsecheck.enums import EntryAttribute

__all__ = ["CorpusEntry"]


@dataclass(frozen=True, slots=True)
class CorpusEntry:
    """One source-snippet / expected-tree pair from a fixture file.

    Immutable after load and shared read-only across trials.

    Attributes:
        name: Free-text entry name
        input_bytes: Source text fed to the engine
        expected_tree_sexp: Expected tree in parenthesized notation
        attributes: Flags such as skip or error-expected
        languages: Language variants named by ``:language(...)``; empty
            means the run's default language
        path: Fixture file the entry came from
        line: 1-based line of the entry's opening delimiter
        expected_line: 1-based line where the expected tree starts
    """

    name: str
    input_bytes: bytes
    expected_tree_sexp: str
    attributes: frozenset[EntryAttribute] = field(default_factory=frozenset)
    languages: tuple[str, ...] = ()
    path: Path | None = None
    line: int = 0
    expected_line: int = 0

    @property
    def skipped(self) -> bool:
        """True when the entry is flagged skip."""
        return EntryAttribute.SKIP in self.attributes

    @property
    def error_expected(self) -> bool:
        """True when the parse must contain an error node."""
        return EntryAttribute.ERROR_EXPECTED in self.attributes

    @property
    def fail_fast(self) -> bool:
        """True when a failure of this entry stops the corpus run."""
        return EntryAttribute.FAIL_FAST in self.attributes

    @property
    def concrete(self) -> bool:
        """True when the expected tree lists anonymous nodes as quoted kinds."""
        return EntryAttribute.CST in self.attributes

    @property
    def origin(self) -> str:
        """``path:line`` of the entry for reports."""
        name = str(self.path) if self.path is not None else "<corpus>"
        return f"{name}:{self.line}"

    def variants(self, default_language: str | None) -> tuple[str, ...]:
        """Languages this entry runs under."""
        if self.languages:
            return self.languages
        return (default_language,) if default_language else ()

    def describe(self, language: str | None = None) -> str:
        """Human-readable origin with name and optional language."""
        suffix = f" [{language}]" if language else ""
        return f"{self.origin} {self.name!r}{suffix}"

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form. Input bytes are stored as latin-1 text."""
        return {
            "name": self.name,
            "input": self.input_bytes.decode("latin-1"),
            "expected": self.expected_tree_sexp,
            "attributes": sorted(str(a) for a in self.attributes),
            "languages": list(self.languages),
            "path": str(self.path) if self.path is not None else None,
            "line": self.line,
            "expected_line": self.expected_line,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CorpusEntry:
        """Inverse of to_dict()."""
        path = data.get("path")
        return cls(
            name=data["name"],
            input_bytes=data["input"].encode("latin-1"),
            expected_tree_sexp=data.get("expected", ""),
            attributes=frozenset(EntryAttribute(a) for a in data.get("attributes", ())),
            languages=tuple(data.get("languages", ())),
            path=Path(path) if path is not None else None,
            line=data.get("line", 0),
            expected_line=data.get("expected_line", 0),
        )
