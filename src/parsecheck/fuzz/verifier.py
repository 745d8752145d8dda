"""Incremental-versus-fresh verification of one fuzz trial.

State machine per trial:

    Init -> Parsed(tree0) -> {Edit -> Reparsed -> Compared} * N -> [Undo] -> Done
                                                                          \\-> Failed

Init parses the entry input from scratch. Each iteration applies the
next edit to the trial's SourceBuffer, asks the engine for an edited
copy of the previous tree, then parses the new buffer twice: once
incrementally from the edited tree and once fresh. Both trees are
sanity-checked, rendered with byte ranges, and compared. The first
failure ends the trial; nothing is retried.

A trial that reaches Done has shown, for every edit, that the
incremental reparse equals the fresh parse of the same buffer.

Python 3.13+.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING

from parsecheck.constants import DEFAULT_CANCEL_GRACE
from parsecheck.diagnostics.errors import EngineError, SexpSyntaxError, TimeoutExceededError
from parsecheck.diagnostics.report import MismatchReport
from parsecheck.engine.guard import guarded_edit, guarded_parse, guarded_render
from parsecheck.enums import MismatchKind
from parsecheck.syntax.compare import compare_nodes
from parsecheck.syntax.edit import SourceBuffer
from parsecheck.syntax.sexp import SexpNode, parse_sexp

from .trial import FuzzTrial, TrialResult

if TYPE_CHECKING:
    from parsecheck.engine.protocol import ParsingEngine, SyntaxTree
    from parsecheck.syntax.edit import Edit

__all__ = ["IncrementalVerifier", "check_tree_ranges"]

logger = logging.getLogger(__name__)


def check_tree_ranges(root: SexpNode | None, length: int) -> None:
    """Check byte ranges of a rendered tree for consistency.

    Children must lie inside their parent and follow each other in order;
    the root must end within the buffer. Nodes without a range are not
    checked.

    Raises:
        EngineError: On the first inconsistency
    """
    if root is None:
        return
    if root.has_range and root.end > length:  # type: ignore[operator]
        msg = f"malformed tree: root ends at {root.end} past buffer length {length}"
        raise EngineError(msg)
    stack = [root]
    while stack:
        node = stack.pop()
        previous_end: int | None = None
        for child in node.children:
            if child.has_range:
                if node.has_range and not (
                    node.start <= child.start and child.end <= node.end  # type: ignore[operator]
                ):
                    msg = (
                        f"malformed tree: {child.kind} [{child.start}, {child.end}] "
                        f"outside {node.kind} [{node.start}, {node.end}]"
                    )
                    raise EngineError(msg)
                if previous_end is not None and (
                    child.start < previous_end  # type: ignore[operator]
                ):
                    msg = f"malformed tree: {child.kind} at {child.start} overlaps previous sibling"
                    raise EngineError(msg)
                previous_end = child.end
            stack.append(child)


class IncrementalVerifier:
    """Runs trials against one engine instance.

    Attributes:
        engine: Engine under test; owned by this verifier for its lifetime
        verify_undo: After the forward edits, apply the inverse edits in
            reverse order, verify each step, and require the final tree to
            equal the initial one
        cancel_grace: Seconds a timed-out parse gets to honour cancellation

    Thread Safety:
        Not thread-safe. One verifier per trial.
    """

    __slots__ = ("cancel_grace", "engine", "verify_undo")

    def __init__(
        self,
        engine: ParsingEngine,
        *,
        verify_undo: bool = False,
        cancel_grace: float = DEFAULT_CANCEL_GRACE,
    ) -> None:
        self.engine = engine
        self.verify_undo = verify_undo
        self.cancel_grace = cancel_grace

    def run(self, trial: FuzzTrial) -> TrialResult:
        """Verify one trial.

        Failures are returned in the result, never raised.
        """
        durations: list[float] = []
        encoding = trial.policy.encoding
        try:
            buffer = SourceBuffer(trial.entry.input_bytes, encoding)
            edits = trial.edits()
        except ValueError as e:
            report = MismatchReport(
                kind=MismatchKind.MALFORMED_CORPUS,
                location=trial.entry.origin,
                detail=f"Entry input unusable in {encoding} mode: {e}",
            )
            return TrialResult(trial, report.with_context(trial=trial), 0)

        try:
            tree = self._parse(trial, buffer.data, None, durations)
            previous = self._render(tree, len(buffer))
        except (EngineError, TimeoutExceededError) as e:
            report = self._failure(e, "initial parse").with_context(trial=trial)
            return TrialResult(trial, report, 0, tuple(durations))
        initial = previous

        applied: list[Edit] = []
        inverses: list[Edit] = []
        for edit in edits:
            inverses.append(buffer.apply(edit))
            applied.append(edit)
            report, tree, previous = self._step(trial, buffer, tree, edit, previous, durations)
            if report is not None:
                return self._failed(trial, report, applied, durations)

        if self.verify_undo:
            for inverse in reversed(inverses):
                buffer.apply(inverse)
                applied.append(inverse)
                report, tree, previous = self._step(
                    trial, buffer, tree, inverse, previous, durations
                )
                if report is not None:
                    return self._failed(trial, report, applied, durations)
            report = compare_nodes(initial, previous)
            if report is not None:
                detail = f"undo did not restore the initial tree: {report.detail}"
                report = replace(report, detail=detail)
                return self._failed(trial, report, applied, durations)

        logger.debug("Trial passed: %s (%d edits)", trial.describe(), len(applied))
        return TrialResult(trial, None, len(applied), tuple(durations))

    def _step(
        self,
        trial: FuzzTrial,
        buffer: SourceBuffer,
        tree: SyntaxTree,
        edit: Edit,
        previous: SexpNode | None,
        durations: list[float],
    ) -> tuple[MismatchReport | None, SyntaxTree, SexpNode | None]:
        logger.debug("%s: %s", trial.describe(), edit.describe())
        source = buffer.data
        try:
            edited = guarded_edit(self.engine, tree, edit)
            incremental_tree = self._parse(trial, source, edited, durations)
            fresh_tree = self._parse(trial, source, None, durations)
            incremental = self._render(incremental_tree, len(source))
            fresh = self._render(fresh_tree, len(source))
        except (EngineError, TimeoutExceededError) as e:
            return self._failure(e, edit.describe()), tree, previous

        report = compare_nodes(fresh, incremental)
        if report is None and edit.is_noop:
            report = compare_nodes(previous, incremental)
            if report is not None:
                report = replace(report, detail=f"no-op edit changed the tree: {report.detail}")
        return report, incremental_tree, incremental

    def _parse(
        self,
        trial: FuzzTrial,
        source: bytes,
        previous_tree: SyntaxTree | None,
        durations: list[float],
    ) -> SyntaxTree:
        started = time.perf_counter()
        try:
            return guarded_parse(
                self.engine,
                source,
                trial.grammar_id,
                previous_tree,
                timeout=trial.per_edit_timeout,
                grace=self.cancel_grace,
                encoding=trial.policy.encoding,
            )
        finally:
            durations.append((time.perf_counter() - started) * 1000.0)

    def _render(self, tree: SyntaxTree, length: int) -> SexpNode | None:
        text = guarded_render(self.engine, tree, include_ranges=True)
        try:
            node = parse_sexp(text)
        except SexpSyntaxError as e:
            msg = f"malformed tree: engine rendered invalid notation: {e}"
            raise EngineError(msg) from e
        check_tree_ranges(node, length)
        return node

    @staticmethod
    def _failure(error: EngineError | TimeoutExceededError, stage: str) -> MismatchReport:
        kind = (
            MismatchKind.TIMEOUT_EXCEEDED
            if isinstance(error, TimeoutExceededError)
            else MismatchKind.ENGINE_ERROR
        )
        return MismatchReport(kind=kind, location=stage, detail=str(error))

    @staticmethod
    def _failed(
        trial: FuzzTrial,
        report: MismatchReport,
        applied: list[Edit],
        durations: list[float],
    ) -> TrialResult:
        logger.debug("Trial failed after %d edits: %s", len(applied), report.detail)
        return TrialResult(
            trial,
            report.with_context(trial=trial, edits=applied),
            len(applied),
            tuple(durations),
        )
