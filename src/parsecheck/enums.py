"""Enumerations for parsecheck type-safe constants.

Uses StrEnum (Python 3.11+) for automatic string conversion.
StrEnum members are strings themselves, so they serialize into replay
descriptors and reports without extra boilerplate.

Python 3.13+.
"""

from enum import StrEnum


class MismatchKind(StrEnum):
    """Classification of a failed verification.

    str(MismatchKind.STRUCTURAL_DIFF) == "structural-diff"
    """

    STRUCTURAL_DIFF = "structural-diff"
    """Incremental vs fresh, or actual vs expected trees differ."""

    TIMEOUT_EXCEEDED = "timeout-exceeded"
    """A parse ran past its deadline (possible non-termination)."""

    ENGINE_ERROR = "engine-error"
    """The engine raised an internal error or produced a malformed tree."""

    MALFORMED_CORPUS = "malformed-corpus"
    """A fixture file or its expected tree notation could not be parsed."""


class EntryAttribute(StrEnum):
    """Flags attached to a corpus entry.

    StrEnum provides automatic string conversion: str(EntryAttribute.SKIP) == "skip"
    """

    SKIP = "skip"
    """Entry is not run (``:skip``)."""

    ERROR_EXPECTED = "error-expected"
    """Parse must contain an ERROR or MISSING node (``:error``)."""

    LANGUAGE_OVERRIDE = "language-override"
    """Entry names its own language variants (``:language(name)``)."""

    CST = "cst"
    """Expected tree also lists anonymous nodes such as ``("+")`` (``:cst``)."""

    FAIL_FAST = "fail-fast"
    """Stop the corpus run after this entry fails (``:fail-fast``)."""


class EditKind(StrEnum):
    """Shape of a single edit.

    StrEnum provides automatic string conversion: str(EditKind.INSERT) == "insert"
    """

    INSERT = "insert"
    """Pure insertion: old_end == start."""

    DELETE = "delete"
    """Pure deletion: new_end == start, no inserted text."""

    REPLACE = "replace"
    """Both ends differ from start."""

    NOOP = "noop"
    """start == old_end == new_end, no inserted text."""


class EncodingMode(StrEnum):
    """Encoding a source buffer must stay valid under.

    StrEnum provides automatic string conversion: str(EncodingMode.UTF8) == "utf-8"
    """

    BYTES = "bytes"
    """Arbitrary bytes. No boundary constraints."""

    UTF8 = "utf-8"
    """Edits never split a UTF-8 sequence."""

    UTF16LE = "utf-16-le"
    """Edits fall on even offsets and never split a surrogate pair."""


class EntryStatus(StrEnum):
    """Outcome of one corpus entry check.

    StrEnum provides automatic string conversion: str(EntryStatus.PASS) == "pass"
    """

    PASS = "pass"
    FAIL = "fail"
    SKIPPED = "skipped"


__all__ = [
    "EditKind",
    "EncodingMode",
    "EntryAttribute",
    "EntryStatus",
    "MismatchKind",
]
