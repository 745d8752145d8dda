"""Fuzz session configuration.

FuzzConfig is a frozen value object validated at construction. Defaults
come from parsecheck.constants; ``from_env()`` layers environment
overrides on top of them:

    PARSECHECK_SEED        first seed of the range
    PARSECHECK_ITERATIONS  number of seeds
    PARSECHECK_EDITS       edits per trial
    PARSECHECK_TIMEOUT     per-parse deadline in seconds ("none" = unbounded)
    PARSECHECK_JOBS        worker threads
    PARSECHECK_EXAMPLE     regex selecting corpus entries by name

Python 3.13+.
"""

from __future__ import annotations

import math
import os
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from parsecheck.constants import (
    DEFAULT_CANCEL_GRACE,
    DEFAULT_EDIT_COUNT,
    DEFAULT_ITERATIONS,
    DEFAULT_PARALLELISM,
    DEFAULT_PER_EDIT_TIMEOUT,
    DEFAULT_SEED,
    ENV_PREFIX,
)
from parsecheck.fuzz.edits import EditPolicy

if TYPE_CHECKING:
    from collections.abc import Mapping

    from parsecheck.corpus.entry import CorpusEntry

__all__ = ["FuzzConfig", "parse_timeout"]

_UNBOUNDED = frozenset({"", "none", "off", "inf"})


def parse_timeout(value: str) -> float | None:
    """Parse a deadline option; ``none``/``off``/``inf`` mean unbounded.

    Raises:
        ValueError: For a non-numeric, non-finite or negative value
    """
    if value.strip().lower() in _UNBOUNDED:
        return None
    timeout = float(value)
    if not math.isfinite(timeout) or timeout < 0:
        msg = f"Timeout must be a finite number >= 0, got {value!r}"
        raise ValueError(msg)
    return timeout


def _env_int(environ: Mapping[str, str], name: str) -> int | None:
    raw = environ.get(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        msg = f"{ENV_PREFIX}{name} must be an integer, got {raw!r}"
        raise ValueError(msg) from None


@dataclass(frozen=True, slots=True)
class FuzzConfig:
    """Settings for one fuzz session.

    Attributes:
        seeds: Seeds each entry is fuzzed with, in order
        edit_count: Edits per trial
        per_edit_timeout: Deadline per parse in seconds (None = unbounded)
        parallelism: Worker threads; 1 runs in the calling thread
        continue_on_failure: Keep running an entry's seeds after a failure
        policy: Edit policy
        verify_undo: Also verify the inverse edits
        minimize_failures: Minimize each failure before reporting it
        entry_filter: Regex; only entries whose name it matches are fuzzed
        languages: Only these languages run (None = all)
        default_language: Language for entries without ``:language(...)``
        cancel_grace: Seconds a timed-out parse gets to honour cancellation
    """

    seeds: tuple[int, ...] = tuple(range(DEFAULT_SEED, DEFAULT_SEED + DEFAULT_ITERATIONS))
    edit_count: int = DEFAULT_EDIT_COUNT
    per_edit_timeout: float | None = DEFAULT_PER_EDIT_TIMEOUT
    parallelism: int = DEFAULT_PARALLELISM
    continue_on_failure: bool = False
    policy: EditPolicy = field(default_factory=EditPolicy)
    verify_undo: bool = False
    minimize_failures: bool = False
    entry_filter: str | None = None
    languages: tuple[str, ...] | None = None
    default_language: str | None = None
    cancel_grace: float = DEFAULT_CANCEL_GRACE

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not self.seeds:
            msg = "At least one seed is required"
            raise ValueError(msg)
        if self.edit_count < 0:
            msg = f"edit_count must be >= 0, got {self.edit_count}"
            raise ValueError(msg)
        if self.per_edit_timeout is not None and not (
            math.isfinite(self.per_edit_timeout) and self.per_edit_timeout >= 0
        ):
            msg = f"per_edit_timeout must be a finite number >= 0, got {self.per_edit_timeout}"
            raise ValueError(msg)
        if self.parallelism < 1:
            msg = f"parallelism must be >= 1, got {self.parallelism}"
            raise ValueError(msg)
        if self.cancel_grace < 0:
            msg = f"cancel_grace must be >= 0, got {self.cancel_grace}"
            raise ValueError(msg)
        if self.entry_filter is not None:
            try:
                re.compile(self.entry_filter)
            except re.error as e:
                msg = f"Invalid entry filter {self.entry_filter!r}: {e}"
                raise ValueError(msg) from e

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> FuzzConfig:
        """Build a config from ``PARSECHECK_*`` variables.

        Keyword overrides win over the environment, which wins over the
        defaults.

        Raises:
            ValueError: If a variable is malformed
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        seed = _env_int(env, "SEED")
        iterations = _env_int(env, "ITERATIONS")
        if seed is not None or iterations is not None:
            first = DEFAULT_SEED if seed is None else seed
            count = DEFAULT_ITERATIONS if iterations is None else iterations
            values["seeds"] = tuple(range(first, first + count))

        edits = _env_int(env, "EDITS")
        if edits is not None:
            values["edit_count"] = edits
        jobs = _env_int(env, "JOBS")
        if jobs is not None:
            values["parallelism"] = jobs

        timeout = env.get(ENV_PREFIX + "TIMEOUT")
        if timeout is not None:
            try:
                values["per_edit_timeout"] = parse_timeout(timeout)
            except ValueError as e:
                msg = f"{ENV_PREFIX}TIMEOUT is invalid: {e}"
                raise ValueError(msg) from e
        example = env.get(ENV_PREFIX + "EXAMPLE")
        if example:
            values["entry_filter"] = example

        values.update(overrides)
        return cls(**values)

    def selects(self, entry: CorpusEntry) -> bool:
        """True when the entry filter accepts ``entry``."""
        if self.entry_filter is None:
            return True
        return re.search(self.entry_filter, entry.name) is not None
