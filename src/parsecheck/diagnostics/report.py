"""Mismatch reports: the terminal artifact of a failed verification.

A report is produced by the Tree Comparator without context, then
enriched by the layer that knows how to reproduce it (the corpus runner
attaches the entry origin, the incremental verifier attaches the trial and
the edit history).

Python 3.13+.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

from parsecheck.enums import MismatchKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from parsecheck.fuzz.trial import FuzzTrial
    from parsecheck.syntax.edit import Edit

__all__ = ["MismatchReport"]


@dataclass(frozen=True, slots=True)
class MismatchReport:
    """Description of a single failed check.

    Attributes:
        kind: Failure class (structural diff, timeout, engine error, corpus)
        location: Path of node kinds from the root to the deepest common
            ancestor of the divergence, or a file:line for corpus problems
        expected_repr: Differing subtree on the expected (or fresh) side
        actual_repr: Differing subtree on the actual (or incremental) side
        detail: One-line explanation of the divergence
        trial: Fuzz trial that reproduces the failure, if any
        edits: Edits applied before the failure was observed
        origin: Human-readable origin for corpus failures
            (``file:line 'name' [language]``)
    """

    kind: MismatchKind
    location: str = ""
    expected_repr: str = ""
    actual_repr: str = ""
    detail: str = ""
    trial: FuzzTrial | None = None
    edits: tuple[Edit, ...] = ()
    origin: str = ""

    @property
    def edit_prefix_length(self) -> int:
        """Number of the trial's edits applied when the failure surfaced."""
        if self.trial is None:
            return len(self.edits)
        return min(len(self.edits), self.trial.edit_count)

    @property
    def undo_steps(self) -> int:
        """Inverse edits applied after the trial's edits; 0 outside the undo phase.

        The undo phase appends inverses to ``edits``, so they are the entries
        past ``trial.edit_count``.
        """
        return len(self.edits) - self.edit_prefix_length

    def sort_key(self) -> tuple[str, str, int]:
        """Deterministic ordering: grammar, then entry name, then seed."""
        if self.trial is None:
            return ("", self.origin, 0)
        return (self.trial.grammar_id, self.trial.entry.name, self.trial.seed)

    def with_context(
        self,
        *,
        trial: FuzzTrial | None = None,
        edits: Sequence[Edit] | None = None,
        origin: str | None = None,
    ) -> MismatchReport:
        """Return a copy carrying reproduction context."""
        return replace(
            self,
            trial=trial if trial is not None else self.trial,
            edits=tuple(edits) if edits is not None else self.edits,
            origin=origin if origin is not None else self.origin,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form, including the replay descriptor."""
        return {
            "kind": str(self.kind),
            "location": self.location,
            "expected": self.expected_repr,
            "actual": self.actual_repr,
            "detail": self.detail,
            "origin": self.origin,
            "trial": self.trial.to_dict() if self.trial is not None else None,
            "edits": [edit.to_dict() for edit in self.edits],
            "undo_steps": self.undo_steps,
        }
