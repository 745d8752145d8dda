"""Seeded random edit generation.

Each edit is drawn against the buffer as left by the previous edits, in
the order the verifier applies them. Draws for one edit never depend on
how many edits were requested, so ``generate(seed, source, k)`` is a
prefix of ``generate(seed, source, n)`` for every ``k <= n``.

Draw order per edit:
    1. kind (skipped when only one kind is permitted, or the buffer is
       empty, where only insertion is possible)
    2. position: insertion point in [0, len], or deletion start in
       [0, len) followed by a length in [1, min(max_delete, len - start)]
    3. text, for insertions and replacements: a token count in
       [1, max_insert_tokens] (skipped when the maximum is 1), then one
       alphabet index per token

Python 3.13+.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from itertools import islice
from typing import Any, ClassVar

from parsecheck.constants import (
    DEFAULT_MAX_DELETE,
    DEFAULT_MAX_INSERT_BYTES,
    DEFAULT_MAX_INSERT_TOKENS,
)
from parsecheck.enums import EditKind, EncodingMode
from parsecheck.syntax.edit import Edit, SourceBuffer
from parsecheck.syntax.encoding import reencode, snap_backward, snap_forward, truncate

from .rand import SeededRandom

__all__ = [
    "DEFAULT_KIND_WEIGHTS",
    "Alphabet",
    "EditGenerator",
    "EditPolicy",
    "generate_edits",
]

logger = logging.getLogger(__name__)

# Out of 10: insert 2, delete 3, replace 5.
DEFAULT_KIND_WEIGHTS: tuple[tuple[EditKind, int], ...] = (
    (EditKind.INSERT, 2),
    (EditKind.DELETE, 3),
    (EditKind.REPLACE, 5),
)


# Inserted when truncation leaves nothing; one code unit in every mode.
_FILLER: dict[EncodingMode, bytes] = {
    EncodingMode.BYTES: b"x",
    EncodingMode.UTF8: b"x",
    EncodingMode.UTF16LE: b"x\x00",
}


def _single_bytes(codes: range) -> tuple[bytes, ...]:
    return tuple(bytes([code]) for code in codes)


class Alphabet:
    """Insertion alphabet presets.

    Tokens are byte strings. In UTF-16 mode tokens are read as UTF-8 text
    and transcoded before insertion.
    """

    IDENTIFIER: ClassVar[tuple[bytes, ...]] = _single_bytes(range(ord("a"), ord("z") + 1))
    ARITHMETIC: ClassVar[tuple[bytes, ...]] = (
        b"a", b"b", b"x", b"foo", b"_tmp", b"0", b"1", b"42",
        b"+", b"-", b"*", b"/", b"(", b")", b" ", b"\n",
    )  # fmt: skip
    ASCII: ClassVar[tuple[bytes, ...]] = (*_single_bytes(range(0x20, 0x7F)), b"\n", b"\t")
    RAW_BYTES: ClassVar[tuple[bytes, ...]] = _single_bytes(range(256))

    _NAMES: ClassVar[dict[str, str]] = {
        "identifier": "IDENTIFIER",
        "arithmetic": "ARITHMETIC",
        "ascii": "ASCII",
        "raw-bytes": "RAW_BYTES",
    }

    @classmethod
    def names(cls) -> tuple[str, ...]:
        """Preset names accepted by named()."""
        return tuple(cls._NAMES)

    @classmethod
    def named(cls, name: str) -> tuple[bytes, ...]:
        """Look up a preset by name.

        Raises:
            ValueError: For an unknown name
        """
        attribute = cls._NAMES.get(name.lower())
        if attribute is None:
            msg = f"Unknown alphabet {name!r}; choose from {', '.join(cls._NAMES)}"
            raise ValueError(msg)
        alphabet: tuple[bytes, ...] = getattr(cls, attribute)
        return alphabet


@dataclass(frozen=True, slots=True)
class EditPolicy:
    """How random edits are drawn.

    Attributes:
        encoding: Encoding the buffer must stay valid under
        alphabet: Tokens inserted text is assembled from
        max_insert_tokens: Maximum tokens per insertion
        max_insert_bytes: Inserted text is truncated to this many bytes
        max_delete: Maximum bytes removed by one deletion or replacement
        kinds: Permitted edit kinds with relative weights
    """

    encoding: EncodingMode = EncodingMode.BYTES
    alphabet: tuple[bytes, ...] = Alphabet.ASCII
    max_insert_tokens: int = DEFAULT_MAX_INSERT_TOKENS
    max_insert_bytes: int = DEFAULT_MAX_INSERT_BYTES
    max_delete: int = DEFAULT_MAX_DELETE
    kinds: tuple[tuple[EditKind, int], ...] = field(default=DEFAULT_KIND_WEIGHTS)

    def __post_init__(self) -> None:
        """Validate policy."""
        if not self.alphabet or any(not token for token in self.alphabet):
            msg = "Alphabet must contain at least one non-empty token"
            raise ValueError(msg)
        for name in ("max_insert_tokens", "max_insert_bytes", "max_delete"):
            value = getattr(self, name)
            if value < 1:
                msg = f"{name} must be >= 1, got {value}"
                raise ValueError(msg)
        if self.encoding is EncodingMode.UTF16LE and self.max_insert_bytes < 2:
            msg = f"max_insert_bytes must be >= 2 for utf-16-le, got {self.max_insert_bytes}"
            raise ValueError(msg)
        if any(weight < 0 for _, weight in self.kinds):
            msg = "Edit kind weights must be >= 0"
            raise ValueError(msg)
        if not self.permitted:
            msg = "At least one edit kind needs a positive weight"
            raise ValueError(msg)

    @classmethod
    def insert_only(
        cls,
        alphabet: tuple[bytes, ...] = Alphabet.IDENTIFIER,
        *,
        max_insert_tokens: int = 1,
        encoding: EncodingMode = EncodingMode.BYTES,
    ) -> EditPolicy:
        """Policy drawing only insertions."""
        return cls(
            encoding=encoding,
            alphabet=alphabet,
            max_insert_tokens=max_insert_tokens,
            kinds=((EditKind.INSERT, 1),),
        )

    @property
    def permitted(self) -> tuple[tuple[EditKind, int], ...]:
        """Kinds with a positive weight."""
        return tuple((kind, weight) for kind, weight in self.kinds if weight > 0)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form. Alphabet tokens are stored as latin-1 text."""
        return {
            "encoding": str(self.encoding),
            "alphabet": [token.decode("latin-1") for token in self.alphabet],
            "max_insert_tokens": self.max_insert_tokens,
            "max_insert_bytes": self.max_insert_bytes,
            "max_delete": self.max_delete,
            "kinds": [[str(kind), weight] for kind, weight in self.kinds],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EditPolicy:
        """Inverse of to_dict()."""
        return cls(
            encoding=EncodingMode(data.get("encoding", EncodingMode.BYTES)),
            alphabet=tuple(token.encode("latin-1") for token in data["alphabet"]),
            max_insert_tokens=data.get("max_insert_tokens", DEFAULT_MAX_INSERT_TOKENS),
            max_insert_bytes=data.get("max_insert_bytes", DEFAULT_MAX_INSERT_BYTES),
            max_delete=data.get("max_delete", DEFAULT_MAX_DELETE),
            kinds=tuple((EditKind(kind), int(weight)) for kind, weight in data["kinds"]),
        )


class EditGenerator:
    """Draws reproducible edit sequences under a policy.

    Example:
        >>> generator = EditGenerator(EditPolicy.insert_only())
        >>> [e.describe() for e in generator.generate(42, b"a+b", 3)]
        ["insert b'a' at 2 (0:2)", "insert b'f' at 1 (0:1)", "insert b'r' at 4 (0:4)"]
    """

    __slots__ = ("_alphabet", "policy")

    def __init__(self, policy: EditPolicy | None = None) -> None:
        self.policy = policy or EditPolicy()
        if self.policy.encoding is EncodingMode.UTF16LE:
            self._alphabet = tuple(
                token.decode("utf-8", errors="replace").encode("utf-16-le")
                for token in self.policy.alphabet
            )
        else:
            self._alphabet = self.policy.alphabet

    def iter_edits(self, seed: int, source: bytes) -> Iterator[Edit]:
        """Yield edits forever, each against the buffer left by the last.

        Raises:
            ValueError: If ``source`` is not valid in the policy's encoding
        """
        rng = SeededRandom(seed)
        buffer = SourceBuffer(source, self.policy.encoding)
        while True:
            edit = self._next_edit(rng, buffer)
            buffer.apply(edit)
            yield edit

    def generate(self, seed: int, source: bytes, count: int) -> tuple[Edit, ...]:
        """Return the first ``count`` edits for ``seed`` and ``source``."""
        if count < 0:
            msg = f"Edit count must be >= 0, got {count}"
            raise ValueError(msg)
        edits = tuple(islice(self.iter_edits(seed, source), count))
        logger.debug("Generated %d edits for seed %d", len(edits), seed)
        return edits

    def _draw_kind(self, rng: SeededRandom, length: int) -> EditKind:
        permitted = self.policy.permitted
        if length == 0:
            return EditKind.INSERT
        if len(permitted) == 1:
            return permitted[0][0]
        return permitted[rng.weighted([weight for _, weight in permitted])][0]

    def _draw_text(self, rng: SeededRandom) -> bytes:
        maximum = self.policy.max_insert_tokens
        count = 1 if maximum == 1 else rng.between(1, maximum)
        text = b"".join(rng.choice(self._alphabet) for _ in range(count))
        encoding = self.policy.encoding
        text = truncate(reencode(text, encoding), self.policy.max_insert_bytes, encoding)
        return text or _FILLER[encoding]

    def _draw_range(self, rng: SeededRandom, length: int) -> tuple[int, int]:
        start = rng.below(length)
        size = rng.between(1, min(self.policy.max_delete, length - start))
        return start, start + size

    def _next_edit(self, rng: SeededRandom, buffer: SourceBuffer) -> Edit:
        length = len(buffer)
        match self._draw_kind(rng, length):
            case EditKind.INSERT:
                start = end = rng.below(length + 1)
                text = self._draw_text(rng)
            case EditKind.DELETE:
                start, end = self._draw_range(rng, length)
                text = b""
            case EditKind.REPLACE:
                start, end = self._draw_range(rng, length)
                text = self._draw_text(rng)
            case EditKind.NOOP:
                start = end = rng.below(length + 1)
                text = b""

        data = buffer.data
        point = start == end
        start = snap_backward(data, min(max(start, 0), length), self.policy.encoding)
        encoding = self.policy.encoding
        end = start if point else snap_forward(data, min(max(end, start), length), encoding)
        return buffer.make_edit(start, end, text)


def generate_edits(
    seed: int,
    source: bytes,
    count: int,
    policy: EditPolicy | None = None,
) -> tuple[Edit, ...]:
    """Generate ``count`` reproducible edits for ``source``.

    Args:
        seed: Random seed
        source: Starting buffer contents
        count: Number of edits
        policy: Edit policy (default: EditPolicy())

    Returns:
        Edits in application order

    Raises:
        ValueError: If ``source`` is invalid in the policy's encoding
    """
    return EditGenerator(policy).generate(seed, source, count)
