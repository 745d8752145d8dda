"""Position utilities for source buffers.

Provides helpers for converting byte offsets to (row, column) points for
edit descriptions and engine input.

Rows are delimited by LF. CRLF sources work because the LF is still
present; the CR counts as a trailing column of its row. Columns count
bytes, not characters, so they agree with byte offsets in every encoding.
"""

from dataclasses import dataclass

__all__ = [
    "Point",
    "advance_point",
    "column_offset",
    "line_offset",
    "point_at",
]


@dataclass(frozen=True, slots=True, order=True)
class Point:
    """Zero-based (row, column) position; column is a byte count.

    Example:
        Source: b"ab\\ncd"
        Offset 4 ('d'): Point(row=1, column=1)
    """

    row: int
    column: int

    def __post_init__(self) -> None:
        """Validate point invariants."""
        if self.row < 0 or self.column < 0:
            msg = f"Point coordinates must be >= 0, got ({self.row}, {self.column})"
            raise ValueError(msg)

    def as_tuple(self) -> tuple[int, int]:
        """Return ``(row, column)`` for engines that take plain tuples."""
        return (self.row, self.column)

    def __str__(self) -> str:
        return f"{self.row}:{self.column}"


def _check_pos(pos: int) -> None:
    if pos < 0:
        msg = f"Position must be >= 0, got {pos}"
        raise ValueError(msg)


def line_offset(source: bytes, pos: int) -> int:
    """Get 0-based row from byte offset.

    Args:
        source: Buffer contents
        pos: Byte offset in source (clamped to the buffer length)

    Returns:
        0-based row number

    Example:
        >>> line_offset(b"line1\\nline2\\nline3", 6)
        1
    """
    _check_pos(pos)
    pos = min(pos, len(source))
    return source.count(b"\n", 0, pos)


def column_offset(source: bytes, pos: int) -> int:
    """Get 0-based byte column from byte offset.

    Example:
        >>> column_offset(b"hello\\nworld", 10)
        4
    """
    _check_pos(pos)
    pos = min(pos, len(source))
    line_start = source.rfind(b"\n", 0, pos)
    if line_start == -1:
        return pos
    return pos - line_start - 1


def point_at(source: bytes, pos: int) -> Point:
    """Get the Point for a byte offset."""
    return Point(line_offset(source, pos), column_offset(source, pos))


def advance_point(start: Point, text: bytes) -> Point:
    """Point reached after writing ``text`` at ``start``.

    Used to compute an edit's new end point without materializing the
    post-edit buffer.
    """
    newlines = text.count(b"\n")
    if newlines == 0:
        return Point(start.row, start.column + len(text))
    return Point(start.row + newlines, len(text) - text.rfind(b"\n") - 1)

