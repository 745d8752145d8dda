"""Static corpus checks.

Parses every corpus entry once per language variant and checks the
rendering against the entry's expected tree, or, for error-expected
entries, that error recovery happened at all. Each failure becomes a
MismatchReport carrying the entry origin; nothing is retried.

Python 3.13+.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from parsecheck.constants import DEFAULT_CANCEL_GRACE
from parsecheck.diagnostics.errors import (
    EngineError,
    MalformedCorpusError,
    SexpSyntaxError,
    TimeoutExceededError,
)
from parsecheck.diagnostics.report import MismatchReport
from parsecheck.engine.guard import guarded_parse, guarded_render
from parsecheck.enums import EntryStatus, MismatchKind
from parsecheck.syntax.compare import compare_nodes
from parsecheck.syntax.sexp import contains_error, format_sexp, parse_sexp

from .loader import collect_corpus

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

    from parsecheck.engine.protocol import ParsingEngine

    from .entry import CorpusEntry

__all__ = ["CorpusRunResult", "CorpusRunner", "EntryOutcome", "run_corpus"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EntryOutcome:
    """Result of one entry under one language variant."""

    entry: CorpusEntry
    language: str | None
    status: EntryStatus
    report: MismatchReport | None = None
    duration_ms: float = 0.0


@dataclass(frozen=True, slots=True)
class CorpusRunResult:
    """Outcomes in load order plus files that failed to load."""

    outcomes: tuple[EntryOutcome, ...]
    load_errors: tuple[MalformedCorpusError, ...] = ()

    def _count(self, status: EntryStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def passed(self) -> int:
        """Number of passing outcomes."""
        return self._count(EntryStatus.PASS)

    @property
    def failed(self) -> int:
        """Number of failing outcomes plus load errors."""
        return self._count(EntryStatus.FAIL) + len(self.load_errors)

    @property
    def skipped(self) -> int:
        """Number of skipped outcomes."""
        return self._count(EntryStatus.SKIPPED)

    @property
    def failures(self) -> tuple[MismatchReport, ...]:
        """Reports for load errors first, then failing outcomes in load order."""
        load_reports = tuple(
            MismatchReport(
                kind=MismatchKind.MALFORMED_CORPUS,
                location=error.location,
                detail=error.reason,
                origin=error.location,
            )
            for error in self.load_errors
        )
        return load_reports + tuple(
            outcome.report for outcome in self.outcomes if outcome.report is not None
        )

    @property
    def ok(self) -> bool:
        """True when nothing failed."""
        return self.failed == 0


def _unrunnable(entry: CorpusEntry) -> EntryOutcome:
    if entry.skipped:
        return EntryOutcome(entry, None, EntryStatus.SKIPPED)
    report = MismatchReport(
        kind=MismatchKind.MALFORMED_CORPUS,
        location=entry.origin,
        detail="entry names no language and no default language is set",
        origin=entry.describe(),
    )
    return EntryOutcome(entry, None, EntryStatus.FAIL, report)


class CorpusRunner:
    """Runs corpus entries against one engine.

    Attributes:
        engine: Engine under test
        default_language: Language for entries without ``:language(...)``
        language_filter: Only these languages run (None = all)
        timeout: Per-parse deadline in seconds (None = unbounded)
    """

    __slots__ = ("_grace", "default_language", "engine", "language_filter", "timeout")

    def __init__(
        self,
        engine: ParsingEngine,
        *,
        default_language: str | None = None,
        language_filter: Sequence[str] | None = None,
        timeout: float | None = None,
        grace: float = DEFAULT_CANCEL_GRACE,
    ) -> None:
        self.engine = engine
        self.language_filter = tuple(language_filter) if language_filter else None
        if default_language is None and self.language_filter:
            default_language = self.language_filter[0]
        self.default_language = default_language
        self.timeout = timeout
        self._grace = grace

    def run(
        self,
        entries: Iterable[CorpusEntry],
        load_errors: Iterable[MalformedCorpusError] = (),
    ) -> CorpusRunResult:
        """Check every entry variant in order.

        A failing entry flagged fail-fast stops the run. An entry that names
        no language when there is no default fails as malformed.
        """
        outcomes: list[EntryOutcome] = []
        for entry in entries:
            languages = entry.variants(self.default_language)
            if not languages:
                outcomes.append(_unrunnable(entry))
                if entry.fail_fast:
                    break
                continue
            stop = False
            for language in languages:
                if self.language_filter is not None and language not in self.language_filter:
                    continue
                outcome = self.check(entry, language)
                outcomes.append(outcome)
                if outcome.status is EntryStatus.FAIL and entry.fail_fast:
                    logger.warning(
                        "Stopping corpus run at fail-fast entry %s", entry.describe(language)
                    )
                    stop = True
                    break
            if stop:
                break

        result = CorpusRunResult(tuple(outcomes), tuple(load_errors))
        logger.info(
            "Corpus run: %d passed, %d failed, %d skipped",
            result.passed,
            result.failed,
            result.skipped,
        )
        return result

    def check(self, entry: CorpusEntry, language: str) -> EntryOutcome:
        """Check one entry under one language."""
        origin = entry.describe(language)
        if entry.skipped:
            logger.debug("Skipping %s", origin)
            return EntryOutcome(entry, language, EntryStatus.SKIPPED)

        started = time.perf_counter()
        report = self._verify(entry, language)
        duration_ms = (time.perf_counter() - started) * 1000.0
        if report is None:
            logger.debug("Passed %s", origin)
            return EntryOutcome(entry, language, EntryStatus.PASS, duration_ms=duration_ms)
        logger.debug("Failed %s: %s", origin, report.detail)
        return EntryOutcome(
            entry,
            language,
            EntryStatus.FAIL,
            report.with_context(origin=origin),
            duration_ms,
        )

    def _verify(self, entry: CorpusEntry, language: str) -> MismatchReport | None:
        try:
            tree = guarded_parse(
                self.engine,
                entry.input_bytes,
                language,
                timeout=self.timeout,
                grace=self._grace,
            )
            actual_text = guarded_render(
                self.engine, tree, include_ranges=False, include_anonymous=entry.concrete
            )
        except TimeoutExceededError as e:
            return MismatchReport(kind=MismatchKind.TIMEOUT_EXCEEDED, detail=str(e))
        except EngineError as e:
            return MismatchReport(kind=MismatchKind.ENGINE_ERROR, detail=str(e))

        try:
            actual = parse_sexp(actual_text)
        except SexpSyntaxError as e:
            return MismatchReport(
                kind=MismatchKind.ENGINE_ERROR,
                detail=f"Engine rendered malformed notation: {e}",
                actual_repr=actual_text,
            )

        if entry.error_expected:
            if contains_error(actual):
                return None
            return MismatchReport(
                kind=MismatchKind.STRUCTURAL_DIFF,
                location="(root)",
                actual_repr=format_sexp(actual, include_ranges=False),
                detail="expected an ERROR or MISSING node, parse had none",
            )

        try:
            expected = parse_sexp(entry.expected_tree_sexp)
        except SexpSyntaxError as e:
            where = entry.path if entry.path is not None else "<corpus>"
            return MismatchReport(
                kind=MismatchKind.MALFORMED_CORPUS,
                location=f"{where}:{entry.expected_line}",
                detail=f"Expected tree is malformed: {e}",
            )
        return compare_nodes(expected, actual)


def run_corpus(
    paths: Path | str | Iterable[Path | str],
    language_filter: Sequence[str] | None = None,
    *,
    engine: ParsingEngine,
    default_language: str | None = None,
    timeout: float | None = None,
) -> CorpusRunResult:
    """Load fixtures from ``paths`` and check them against ``engine``.

    Args:
        paths: Fixture file or directory, or several of them
        language_filter: Only run these languages (None = all)
        engine: Engine under test
        default_language: Language for entries without ``:language(...)``;
            defaults to the first filtered language
        timeout: Per-parse deadline in seconds

    Returns:
        CorpusRunResult with outcomes in load order; malformed files are
        in ``load_errors`` and did not stop the run

    Example:
        >>> result = run_corpus("tests/fixtures/corpus", engine=ReferenceEngine(),
        ...                     default_language="arithmetic")
        >>> result.ok
        True
    """
    if isinstance(paths, (str, bytes)) or hasattr(paths, "__fspath__"):
        paths = [paths]  # type: ignore[list-item]
    loaded = collect_corpus(paths)  # type: ignore[arg-type]
    runner = CorpusRunner(
        engine,
        default_language=default_language,
        language_filter=language_filter,
        timeout=timeout,
    )
    return runner.run(loaded.entries, loaded.errors)
