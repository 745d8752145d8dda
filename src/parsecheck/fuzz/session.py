"""Fuzz session orchestration.

A session fuzzes every (language, entry, seed) combination. Work is split
into one task per (language, entry); a task runs its seeds in order, each
trial on a fresh engine instance and verifier, and stops at the entry's first
failure unless the config says to continue. Tasks share nothing but
read-only corpus entries, so they run on a thread pool when parallelism
is above 1.

Every task returns an immutable FuzzAccumulator. Accumulators are merged
by a pure reduction once all tasks finish, and reports are sorted by
(grammar, entry name, seed) so the result does not depend on scheduling.

Python 3.13+.
"""

from __future__ import annotations

import logging
import os
import statistics
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from functools import reduce
from pathlib import Path
from typing import TYPE_CHECKING, Any

import psutil

from parsecheck.config import FuzzConfig
from parsecheck.corpus.loader import collect_corpus
from parsecheck.diagnostics.report import MismatchReport
from parsecheck.enums import MismatchKind

from .minimize import minimize
from .trial import FuzzTrial, TrialResult
from .verifier import IncrementalVerifier

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from parsecheck.corpus.entry import CorpusEntry
    from parsecheck.diagnostics.errors import MalformedCorpusError
    from parsecheck.engine.protocol import EngineFactory

__all__ = [
    "FuzzAccumulator",
    "FuzzSession",
    "FuzzSessionResult",
    "run_fuzz",
]

logger = logging.getLogger(__name__)

_BYTES_PER_MB = 1024 * 1024
_P95_MIN_SAMPLES = 20


def _current_rss() -> int:
    return psutil.Process(os.getpid()).memory_info().rss


@dataclass(frozen=True, slots=True)
class FuzzAccumulator:
    """Partial session totals, merged with merge()."""

    trials: int = 0
    passed: int = 0
    failed: int = 0
    reports: tuple[MismatchReport, ...] = ()
    durations_ms: tuple[float, ...] = ()
    peak_rss_bytes: int = 0

    def record(self, result: TrialResult, report: MismatchReport | None = None) -> FuzzAccumulator:
        """Return a copy including ``result``.

        Args:
            result: Finished trial
            report: Report to keep instead of ``result.report`` (for
                example its minimized form)
        """
        failed = not result.passed
        kept = report if report is not None else result.report
        return FuzzAccumulator(
            trials=self.trials + 1,
            passed=self.passed + (0 if failed else 1),
            failed=self.failed + (1 if failed else 0),
            reports=self.reports + ((kept,) if failed and kept is not None else ()),
            durations_ms=self.durations_ms + result.parse_durations_ms,
            peak_rss_bytes=max(self.peak_rss_bytes, _current_rss()),
        )

    def merge(self, other: FuzzAccumulator) -> FuzzAccumulator:
        """Combine two accumulators. Associative; the empty accumulator is neutral."""
        return FuzzAccumulator(
            trials=self.trials + other.trials,
            passed=self.passed + other.passed,
            failed=self.failed + other.failed,
            reports=self.reports + other.reports,
            durations_ms=self.durations_ms + other.durations_ms,
            peak_rss_bytes=max(self.peak_rss_bytes, other.peak_rss_bytes),
        )


@dataclass(frozen=True, slots=True)
class FuzzSessionResult:
    """Aggregated outcome of a session.

    Attributes:
        trials: Trials run
        passed: Trials that reached Done
        failed: Trials that failed
        reports: Failure reports sorted by (grammar, entry name, seed)
        load_errors: Corpus files that failed to load
        durations_ms: Every parse duration in milliseconds
        peak_rss_mb: Highest resident set size observed, in MB
    """

    trials: int
    passed: int
    failed: int
    reports: tuple[MismatchReport, ...]
    load_errors: tuple[MalformedCorpusError, ...] = ()
    durations_ms: tuple[float, ...] = ()
    peak_rss_mb: float = 0.0

    @property
    def ok(self) -> bool:
        """True when no trial failed and every corpus file loaded."""
        return self.failed == 0 and not self.load_errors

    @property
    def mean_ms(self) -> float:
        """Mean parse duration (0.0 without parses)."""
        return statistics.fmean(self.durations_ms) if self.durations_ms else 0.0

    @property
    def p95_ms(self) -> float:
        """95th percentile parse duration; the maximum for small samples."""
        if len(self.durations_ms) < _P95_MIN_SAMPLES:
            return self.max_ms
        return statistics.quantiles(self.durations_ms, n=20)[18]

    @property
    def max_ms(self) -> float:
        """Slowest parse duration (0.0 without parses)."""
        return max(self.durations_ms, default=0.0)

    def stats(self) -> dict[str, Any]:
        """Summary statistics for JSON output."""
        return {
            "trials": self.trials,
            "passed": self.passed,
            "failed": self.failed,
            "load_errors": len(self.load_errors),
            "parses": len(self.durations_ms),
            "parse_mean_ms": round(self.mean_ms, 3),
            "parse_p95_ms": round(self.p95_ms, 3),
            "parse_max_ms": round(self.max_ms, 3),
            "peak_rss_mb": round(self.peak_rss_mb, 2),
        }


def _unrunnable(entry: CorpusEntry) -> FuzzAccumulator:
    report = MismatchReport(
        kind=MismatchKind.MALFORMED_CORPUS,
        location=entry.origin,
        detail="entry names no language and no default language is set",
        origin=entry.describe(),
    )
    return FuzzAccumulator(trials=1, failed=1, reports=(report,))


class FuzzSession:
    """Runs the (language, entry, seed) matrix.

    Example:
        >>> session = FuzzSession(ReferenceEngine, FuzzConfig(seeds=(1, 2, 3)))
        >>> result = session.run(load_corpus("tests/fixtures/corpus"))
        >>> result.ok
        True
    """

    __slots__ = ("config", "engine_factory")

    def __init__(self, engine_factory: EngineFactory, config: FuzzConfig | None = None) -> None:
        self.engine_factory = engine_factory
        self.config = config or FuzzConfig()

    def tasks(self, entries: Iterable[CorpusEntry]) -> list[tuple[str, CorpusEntry]]:
        """(language, entry) pairs to fuzz, in corpus order.

        Skipped entries and entries rejected by the filters are left out, as
        are entries naming no language when there is no default; run()
        reports those as malformed.
        """
        pairs, _ = self._plan(entries)
        return pairs

    def _plan(
        self, entries: Iterable[CorpusEntry]
    ) -> tuple[list[tuple[str, CorpusEntry]], list[CorpusEntry]]:
        config = self.config
        default = config.default_language
        if default is None and config.languages:
            default = config.languages[0]
        pairs: list[tuple[str, CorpusEntry]] = []
        unrunnable: list[CorpusEntry] = []
        for entry in entries:
            if entry.skipped or not config.selects(entry):
                continue
            languages = entry.variants(default)
            if not languages:
                logger.warning("No language for %s; reporting it as malformed", entry.describe())
                unrunnable.append(entry)
                continue
            pairs.extend(
                (language, entry)
                for language in languages
                if config.languages is None or language in config.languages
            )
        return pairs, unrunnable

    def run(
        self,
        entries: Iterable[CorpusEntry],
        load_errors: Sequence[MalformedCorpusError] = (),
    ) -> FuzzSessionResult:
        """Fuzz ``entries`` and aggregate the results."""
        tasks, unrunnable = self._plan(entries)
        config = self.config
        logger.info(
            "Fuzzing %d entry variants x %d seeds, %d edits each",
            len(tasks),
            len(config.seeds),
            config.edit_count,
        )
        if config.parallelism > 1 and len(tasks) > 1:
            with ThreadPoolExecutor(
                max_workers=config.parallelism, thread_name_prefix="parsecheck-fuzz"
            ) as executor:
                partials = list(executor.map(lambda task: self.run_task(*task), tasks))
        else:
            partials = [self.run_task(language, entry) for language, entry in tasks]
        partials.extend(_unrunnable(entry) for entry in unrunnable)

        total = reduce(FuzzAccumulator.merge, partials, FuzzAccumulator())
        result = FuzzSessionResult(
            trials=total.trials,
            passed=total.passed,
            failed=total.failed,
            reports=tuple(sorted(total.reports, key=lambda r: r.sort_key())),
            load_errors=tuple(load_errors),
            durations_ms=total.durations_ms,
            peak_rss_mb=total.peak_rss_bytes / _BYTES_PER_MB,
        )
        log = logger.warning if not result.ok else logger.info
        log(
            "Fuzz session: %d trials, %d passed, %d failed, %d load errors",
            result.trials,
            result.passed,
            result.failed,
            len(result.load_errors),
        )
        return result

    def run_task(self, language: str, entry: CorpusEntry) -> FuzzAccumulator:
        """Run every seed for one (language, entry) pair."""
        config = self.config
        accumulator = FuzzAccumulator()
        for seed in config.seeds:
            # Fresh engine per trial: an abandoned worker may still hold the last one.
            verifier = IncrementalVerifier(
                self.engine_factory(),
                verify_undo=config.verify_undo,
                cancel_grace=config.cancel_grace,
            )
            trial = FuzzTrial(
                seed=seed,
                grammar_id=language,
                entry=entry,
                edit_count=config.edit_count,
                per_edit_timeout=config.per_edit_timeout,
                policy=config.policy,
            )
            result = verifier.run(trial)
            if result.passed:
                accumulator = accumulator.record(result)
                continue

            report = result.report
            logger.warning("Trial failed: %s (%s)", trial.describe(), report.kind if report else "")
            if config.minimize_failures:
                minimized = minimize(
                    trial,
                    engine=self.engine_factory(),
                    verify_undo=config.verify_undo,
                    cancel_grace=config.cancel_grace,
                )
                if minimized.reproduced:
                    report = minimized.report
            accumulator = accumulator.record(result, report)
            if not config.continue_on_failure:
                break
        return accumulator


def run_fuzz(
    paths: Path | str | Iterable[Path | str],
    seed_range: range | Sequence[int] | None = None,
    edit_count: int | None = None,
    timeout: float | None = None,
    parallelism: int | None = None,
    *,
    engine_factory: EngineFactory,
    config: FuzzConfig | None = None,
    **options: Any,
) -> FuzzSessionResult:
    """Load fixtures and fuzz them.

    Args:
        paths: Fixture file or directory, or several of them
        seed_range: Seeds per entry (default from config)
        edit_count: Edits per trial (default from config)
        timeout: Per-parse deadline in seconds (default from config)
        parallelism: Worker threads (default from config)
        engine_factory: Creates one engine per trial
        config: Base configuration (default: FuzzConfig.from_env())
        **options: Further FuzzConfig fields, such as policy or
            continue_on_failure

    Returns:
        FuzzSessionResult; malformed corpus files are in ``load_errors``
    """
    overrides: dict[str, Any] = dict(options)
    if seed_range is not None:
        overrides["seeds"] = tuple(seed_range)
    if edit_count is not None:
        overrides["edit_count"] = edit_count
    if timeout is not None:
        overrides["per_edit_timeout"] = timeout
    if parallelism is not None:
        overrides["parallelism"] = parallelism
    if config is None:
        config = FuzzConfig.from_env(**overrides)
    elif overrides:
        config = replace(config, **overrides)

    if isinstance(paths, (str, Path)):
        paths = [paths]
    loaded = collect_corpus(paths)
    return FuzzSession(engine_factory, config).run(loaded.entries, loaded.errors)
