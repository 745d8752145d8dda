"""Fuzz trial descriptors and results.

A FuzzTrial fully determines a run: the same seed, grammar, entry, edit
count and policy always generate the identical edit sequence. Its dict
form is the replay descriptor written by the CLI.

Python 3.13+.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from parsecheck.constants import DEFAULT_PER_EDIT_TIMEOUT
from parsecheck.corpus.entry import CorpusEntry

from .edits import EditPolicy, generate_edits

if TYPE_CHECKING:
    from parsecheck.diagnostics.report import MismatchReport
    from parsecheck.syntax.edit import Edit

__all__ = ["FuzzTrial", "TrialResult"]


@dataclass(frozen=True, slots=True)
class FuzzTrial:
    """One (grammar, entry, seed) edit-sequence run.

    Attributes:
        seed: Random seed for the edit sequence
        grammar_id: Language the entry is parsed as
        entry: Corpus entry supplying the starting buffer
        edit_count: Number of edits to apply
        per_edit_timeout: Deadline per parse in seconds (None = unbounded)
        policy: Edit policy
    """

    seed: int
    grammar_id: str
    entry: CorpusEntry
    edit_count: int
    per_edit_timeout: float | None = DEFAULT_PER_EDIT_TIMEOUT
    policy: EditPolicy = field(default_factory=EditPolicy)

    def __post_init__(self) -> None:
        """Validate trial."""
        if self.edit_count < 0:
            msg = f"edit_count must be >= 0, got {self.edit_count}"
            raise ValueError(msg)
        if self.per_edit_timeout is not None and not (
            math.isfinite(self.per_edit_timeout) and self.per_edit_timeout >= 0
        ):
            msg = f"per_edit_timeout must be a finite number >= 0, got {self.per_edit_timeout}"
            raise ValueError(msg)

    def edits(self) -> tuple[Edit, ...]:
        """Regenerate this trial's edit sequence.

        Raises:
            ValueError: If the entry input is invalid in the policy's encoding
        """
        return generate_edits(self.seed, self.entry.input_bytes, self.edit_count, self.policy)

    def with_edit_count(self, edit_count: int) -> FuzzTrial:
        """Same trial truncated (or extended) to ``edit_count`` edits."""
        return replace(self, edit_count=edit_count)

    def describe(self) -> str:
        """Reproduction descriptor for reports."""
        return f"grammar={self.grammar_id} entry={self.entry.name!r} seed={self.seed}"

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible replay descriptor."""
        return {
            "seed": self.seed,
            "grammar": self.grammar_id,
            "entry": self.entry.to_dict(),
            "edit_count": self.edit_count,
            "per_edit_timeout": self.per_edit_timeout,
            "policy": self.policy.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FuzzTrial:
        """Inverse of to_dict().

        Raises:
            KeyError: If a required field is absent
            ValueError: If a field is invalid
        """
        return cls(
            seed=int(data["seed"]),
            grammar_id=data["grammar"],
            entry=CorpusEntry.from_dict(data["entry"]),
            edit_count=int(data["edit_count"]),
            per_edit_timeout=data.get("per_edit_timeout", DEFAULT_PER_EDIT_TIMEOUT),
            policy=EditPolicy.from_dict(data["policy"]),
        )


@dataclass(frozen=True, slots=True)
class TrialResult:
    """Outcome of one verified trial.

    Attributes:
        trial: The trial that ran
        report: Failure report, or None when every check passed
        edits_applied: Edits applied before the trial finished or failed
        parse_durations_ms: Wall time of every parse in milliseconds
    """

    trial: FuzzTrial
    report: MismatchReport | None
    edits_applied: int
    parse_durations_ms: tuple[float, ...] = ()

    @property
    def passed(self) -> bool:
        """True when the trial reached Done."""
        return self.report is None
