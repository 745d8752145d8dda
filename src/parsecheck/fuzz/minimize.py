"""Failure minimization.

Shrinks a failing trial to the shortest edit prefix that still fails the
same way. Edit sequences are prefix-stable, so a trial with a smaller
edit count replays exactly the first edits of the original.

Python 3.13+.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from parsecheck.constants import DEFAULT_CANCEL_GRACE

from .verifier import IncrementalVerifier

if TYPE_CHECKING:
    from parsecheck.diagnostics.report import MismatchReport
    from parsecheck.engine.protocol import ParsingEngine

    from .trial import FuzzTrial, TrialResult

__all__ = ["MinimizedReport", "minimize"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MinimizedReport:
    """Outcome of minimize().

    Attributes:
        original: Trial that was minimized
        trial: Smallest reproducing trial found (the original when nothing
            smaller reproduces or the failure did not reproduce at all)
        report: Report of ``trial``; None when the failure did not reproduce
        reproduced: False when replaying the original trial passed
        attempts: Number of trial replays
    """

    original: FuzzTrial
    trial: FuzzTrial
    report: MismatchReport | None
    reproduced: bool
    attempts: int

    @property
    def edit_count(self) -> int:
        """Edit count of the minimized trial."""
        return self.trial.edit_count


def minimize(
    trial: FuzzTrial,
    *,
    engine: ParsingEngine,
    verify_undo: bool = False,
    cancel_grace: float = DEFAULT_CANCEL_GRACE,
) -> MinimizedReport:
    """Find the shortest edit prefix that reproduces ``trial``'s failure.

    Replays the full trial first. If it fails, binary-searches the edit
    counts in ``[0, edit_count]`` for the smallest one whose replay fails
    with the same mismatch kind. Runs sequentially.

    Args:
        trial: Failing trial
        engine: Engine to replay with
        verify_undo: Replay with the undo phase enabled
        cancel_grace: Seconds a timed-out parse gets to honour cancellation

    Returns:
        MinimizedReport; its trial never has more edits than ``trial``
    """
    verifier = IncrementalVerifier(engine, verify_undo=verify_undo, cancel_grace=cancel_grace)
    baseline = verifier.run(trial)
    attempts = 1
    if baseline.report is None:
        logger.warning("Failure did not reproduce: %s", trial.describe())
        return MinimizedReport(trial, trial, None, reproduced=False, attempts=attempts)

    kind = baseline.report.kind
    best_trial, best_report = trial, baseline.report

    def reproduces(result: TrialResult) -> bool:
        return result.report is not None and result.report.kind is kind

    low, high = 0, min(trial.edit_count, baseline.edits_applied)
    if high < trial.edit_count:
        candidate = trial.with_edit_count(high)
        result = verifier.run(candidate)
        attempts += 1
        if reproduces(result):
            best_trial, best_report = candidate, result.report
        else:
            high = trial.edit_count

    while low < high:
        middle = (low + high) // 2
        candidate = trial.with_edit_count(middle)
        result = verifier.run(candidate)
        attempts += 1
        if reproduces(result):
            high = middle
            best_trial, best_report = candidate, result.report
        else:
            low = middle + 1

    logger.info(
        "Minimized %s from %d to %d edits in %d replays",
        trial.describe(),
        trial.edit_count,
        best_trial.edit_count,
        attempts,
    )
    return MinimizedReport(trial, best_trial, best_report, reproduced=True, attempts=attempts)
