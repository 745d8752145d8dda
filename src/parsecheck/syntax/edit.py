"""Text edits and the mutable source buffer they apply to.

An Edit describes one contiguous replacement in byte offsets plus the
matching (row, column) points, in the shape incremental parsing engines
expect. SourceBuffer owns the current document text and is the only
place edits are applied, so offsets and points are always computed
against the buffer version they describe.

Python 3.13+.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from parsecheck.enums import EditKind, EncodingMode

from .encoding import is_boundary, is_valid
from .position import Point, advance_point, point_at

__all__ = ["Edit", "SourceBuffer"]


@dataclass(frozen=True, slots=True)
class Edit:
    """Single contiguous replacement.

    Attributes:
        start_byte: First byte replaced
        old_end_byte: End of the replaced range in the pre-edit buffer
        new_end_byte: End of the inserted text in the post-edit buffer
        start_point: Point of start_byte
        old_end_point: Point of old_end_byte in the pre-edit buffer
        new_end_point: Point of new_end_byte in the post-edit buffer
        inserted_text: Bytes written at start_byte

    Example:
        Buffer b"a+b", insert b"x" at 1:
        Edit(1, 1, 2, Point(0, 1), Point(0, 1), Point(0, 2), b"x")
    """

    start_byte: int
    old_end_byte: int
    new_end_byte: int
    start_point: Point
    old_end_point: Point
    new_end_point: Point
    inserted_text: bytes = b""

    def __post_init__(self) -> None:
        """Validate edit invariants."""
        if self.start_byte < 0:
            msg = f"Edit start must be >= 0, got {self.start_byte}"
            raise ValueError(msg)
        if self.old_end_byte < self.start_byte:
            msg = f"Edit old_end ({self.old_end_byte}) must be >= start ({self.start_byte})"
            raise ValueError(msg)
        if self.new_end_byte - self.start_byte != len(self.inserted_text):
            msg = (
                f"Edit new_end ({self.new_end_byte}) must equal start + "
                f"{len(self.inserted_text)} inserted bytes"
            )
            raise ValueError(msg)

    @property
    def kind(self) -> EditKind:
        """Classify the edit by which ends moved."""
        removes = self.old_end_byte > self.start_byte
        inserts = self.new_end_byte > self.start_byte
        if removes and inserts:
            return EditKind.REPLACE
        if removes:
            return EditKind.DELETE
        if inserts:
            return EditKind.INSERT
        return EditKind.NOOP

    @property
    def is_noop(self) -> bool:
        """True when the edit leaves the buffer unchanged."""
        return self.kind is EditKind.NOOP

    @property
    def delta(self) -> int:
        """Change in buffer length."""
        return self.new_end_byte - self.old_end_byte

    def describe(self) -> str:
        """One-line description for reports."""
        match self.kind:
            case EditKind.INSERT:
                return f"insert {self.inserted_text!r} at {self.start_byte} ({self.start_point})"
            case EditKind.DELETE:
                return (
                    f"delete {self.start_byte}..{self.old_end_byte} "
                    f"({self.start_point}..{self.old_end_point})"
                )
            case EditKind.REPLACE:
                return (
                    f"replace {self.start_byte}..{self.old_end_byte} with "
                    f"{self.inserted_text!r} ({self.start_point}..{self.old_end_point})"
                )
            case EditKind.NOOP:
                return f"no-op at {self.start_byte} ({self.start_point})"

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible form. Inserted bytes are stored as latin-1 text."""
        return {
            "start_byte": self.start_byte,
            "old_end_byte": self.old_end_byte,
            "new_end_byte": self.new_end_byte,
            "start_point": self.start_point.as_tuple(),
            "old_end_point": self.old_end_point.as_tuple(),
            "new_end_point": self.new_end_point.as_tuple(),
            "inserted_text": self.inserted_text.decode("latin-1"),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Edit:
        """Inverse of to_dict()."""
        return cls(
            start_byte=data["start_byte"],
            old_end_byte=data["old_end_byte"],
            new_end_byte=data["new_end_byte"],
            start_point=Point(*data["start_point"]),
            old_end_point=Point(*data["old_end_point"]),
            new_end_point=Point(*data["new_end_point"]),
            inserted_text=data["inserted_text"].encode("latin-1"),
        )


class SourceBuffer:
    """Mutable document text owned by one verification loop.

    In an encoding-aware mode the buffer is validated at construction and
    every applied edit must start and end on code-point boundaries, so
    the buffer stays decodable for its whole lifetime.

    Thread Safety:
        Not thread-safe. Each trial owns its own buffer.

    Example:
        >>> buffer = SourceBuffer(b"a+b")
        >>> edit = buffer.make_edit(1, 2, b"*")
        >>> undo = buffer.apply(edit)
        >>> buffer.data
        b'a*b'
        >>> _ = buffer.apply(undo)
        >>> buffer.data
        b'a+b'
    """

    __slots__ = ("_data", "_encoding")

    def __init__(self, data: bytes = b"", encoding: EncodingMode = EncodingMode.BYTES) -> None:
        """Initialize buffer.

        Args:
            data: Initial contents
            encoding: Encoding the contents must stay valid under

        Raises:
            ValueError: If data is not valid in the encoding
        """
        if not is_valid(data, encoding):
            msg = f"Source is not valid {encoding}"
            raise ValueError(msg)
        self._data = bytearray(data)
        self._encoding = encoding

    @property
    def data(self) -> bytes:
        """Immutable snapshot of the current contents."""
        return bytes(self._data)

    @property
    def encoding(self) -> EncodingMode:
        """Encoding mode of this buffer."""
        return self._encoding

    def __len__(self) -> int:
        return len(self._data)

    def point_at(self, pos: int) -> Point:
        """Point of a byte offset in the current contents."""
        return point_at(bytes(self._data), pos)

    def make_edit(self, start: int, old_end: int, inserted: bytes = b"") -> Edit:
        """Build an Edit against the current contents.

        Args:
            start: First byte to replace
            old_end: End of the replaced range
            inserted: Bytes to write at start

        Raises:
            ValueError: If offsets fall outside the buffer or split a code point
        """
        self._check_range(start, old_end)
        data = bytes(self._data)
        start_point = point_at(data, start)
        return Edit(
            start_byte=start,
            old_end_byte=old_end,
            new_end_byte=start + len(inserted),
            start_point=start_point,
            old_end_point=point_at(data, old_end),
            new_end_point=advance_point(start_point, inserted),
            inserted_text=inserted,
        )

    def apply(self, edit: Edit) -> Edit:
        """Apply an edit in place and return its inverse.

        The inverse, applied to the post-edit buffer, restores the
        pre-edit contents exactly.

        Raises:
            ValueError: If the edit does not fit the current contents
        """
        self._check_range(edit.start_byte, edit.old_end_byte)
        if edit.start_point != self.point_at(edit.start_byte):
            msg = f"Edit start point {edit.start_point} does not match offset {edit.start_byte}"
            raise ValueError(msg)
        if self._encoding is not EncodingMode.BYTES and not is_valid(
            edit.inserted_text, self._encoding
        ):
            msg = f"Inserted text is not valid {self._encoding}"
            raise ValueError(msg)

        removed = bytes(self._data[edit.start_byte : edit.old_end_byte])
        self._data[edit.start_byte : edit.old_end_byte] = edit.inserted_text
        return Edit(
            start_byte=edit.start_byte,
            old_end_byte=edit.new_end_byte,
            new_end_byte=edit.old_end_byte,
            start_point=edit.start_point,
            old_end_point=edit.new_end_point,
            new_end_point=edit.old_end_point,
            inserted_text=removed,
        )

    def _check_range(self, start: int, old_end: int) -> None:
        if not 0 <= start <= old_end <= len(self._data):
            msg = f"Edit range {start}..{old_end} outside buffer of length {len(self._data)}"
            raise ValueError(msg)
        data = bytes(self._data)
        for pos in (start, old_end):
            if not is_boundary(data, pos, self._encoding):
                msg = f"Offset {pos} splits a {self._encoding} code point"
                raise ValueError(msg)
