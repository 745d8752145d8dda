"""Code-point boundary handling for encoding-aware buffers.

In an encoding-aware mode an edit may only start or end on a code-point
boundary, and inserted bytes must themselves be valid in the encoding.
These helpers answer boundary questions, snap offsets outward to the
nearest boundary, truncate without splitting a code point, and re-encode
arbitrary bytes into a valid sequence.

Python 3.13+.
"""

from parsecheck.enums import EncodingMode

__all__ = [
    "is_boundary",
    "is_valid",
    "reencode",
    "snap_backward",
    "snap_forward",
    "truncate",
]

_UTF8_CONTINUATION_MASK = 0xC0
_UTF8_CONTINUATION_BITS = 0x80

_HIGH_SURROGATE_START = 0xD800
_HIGH_SURROGATE_END = 0xDBFF


def _utf16_unit(data: bytes, pos: int) -> int:
    return data[pos] | (data[pos + 1] << 8)


def is_boundary(data: bytes, pos: int, mode: EncodingMode) -> bool:
    """Check whether ``pos`` falls between two code points.

    Offsets 0 and ``len(data)`` are always boundaries.
    """
    if pos <= 0 or pos >= len(data):
        return pos in (0, len(data))
    match mode:
        case EncodingMode.BYTES:
            return True
        case EncodingMode.UTF8:
            return data[pos] & _UTF8_CONTINUATION_MASK != _UTF8_CONTINUATION_BITS
        case EncodingMode.UTF16LE:
            if pos % 2:
                return False
            unit = _utf16_unit(data, pos - 2)
            return not _HIGH_SURROGATE_START <= unit <= _HIGH_SURROGATE_END


def snap_backward(data: bytes, pos: int, mode: EncodingMode) -> int:
    """Move ``pos`` left to the nearest boundary (clamped into the buffer)."""
    pos = max(0, min(pos, len(data)))
    while not is_boundary(data, pos, mode):
        pos -= 1
    return pos


def snap_forward(data: bytes, pos: int, mode: EncodingMode) -> int:
    """Move ``pos`` right to the nearest boundary (clamped into the buffer)."""
    pos = max(0, min(pos, len(data)))
    while not is_boundary(data, pos, mode):
        pos += 1
    return pos


def truncate(data: bytes, limit: int, mode: EncodingMode) -> bytes:
    """Cut ``data`` to at most ``limit`` bytes without splitting a code point."""
    if len(data) <= limit:
        return data
    return data[: snap_backward(data, limit, mode)]


def reencode(data: bytes, mode: EncodingMode) -> bytes:
    """Return ``data`` as a valid sequence in ``mode``.

    Invalid sequences are replaced with U+FFFD. Bytes mode returns the
    input unchanged.
    """
    if mode is EncodingMode.BYTES:
        return data
    codec = str(mode)
    return data.decode(codec, errors="replace").encode(codec)


def is_valid(data: bytes, mode: EncodingMode) -> bool:
    """Check that ``data`` decodes cleanly in ``mode``."""
    if mode is EncodingMode.BYTES:
        return True
    try:
        data.decode(str(mode))
    except UnicodeDecodeError:
        return False
    return True
