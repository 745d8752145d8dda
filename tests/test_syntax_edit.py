"""Edits, source buffers, positions and code-point boundaries."""

import pytest
from hypothesis import event, given
from hypothesis import strategies as st

from parsecheck.enums import EditKind, EncodingMode
from parsecheck.syntax.edit import Edit, SourceBuffer
from parsecheck.syntax.encoding import (
    is_boundary,
    is_valid,
    reencode,
    snap_backward,
    snap_forward,
    truncate,
)
from parsecheck.syntax.position import Point, advance_point, point_at
from tests.strategies import unicode_sources

# =============================================================================
# POSITIONS
# =============================================================================


class TestPoints:
    """Byte offsets to (row, column) points."""

    def test_first_row(self) -> None:
        assert point_at(b"a+b", 2) == Point(0, 2)

    def test_later_row(self) -> None:
        assert point_at(b"ab\ncd", 4) == Point(1, 1)

    def test_offset_at_newline(self) -> None:
        assert point_at(b"ab\ncd", 2) == Point(0, 2)
        assert point_at(b"ab\ncd", 3) == Point(1, 0)

    def test_columns_count_bytes(self) -> None:
        assert point_at("é+b".encode(), 3) == Point(0, 3)

    def test_clamped_to_buffer(self) -> None:
        assert point_at(b"ab", 10) == Point(0, 2)

    def test_negative_rejected(self) -> None:
        with pytest.raises(ValueError, match=">= 0"):
            point_at(b"ab", -1)
        with pytest.raises(ValueError, match=">= 0"):
            Point(-1, 0)

    def test_advance_point(self) -> None:
        assert advance_point(Point(0, 2), b"xy") == Point(0, 4)
        assert advance_point(Point(3, 2), b"x\nyz\nw") == Point(5, 1)
        assert advance_point(Point(1, 1), b"") == Point(1, 1)

    @given(st.binary(max_size=40), st.binary(max_size=10), st.data())
    def test_advance_matches_point_at(
        self, prefix: bytes, text: bytes, data: st.DataObject
    ) -> None:
        """advance_point() agrees with point_at() on the written buffer."""
        pos = data.draw(st.integers(min_value=0, max_value=len(prefix)))
        written = prefix[:pos] + text + prefix[pos:]
        assert advance_point(point_at(prefix, pos), text) == point_at(written, pos + len(text))


# =============================================================================
# ENCODING BOUNDARIES
# =============================================================================


class TestEncodingBoundaries:
    """Boundary checks and snapping per encoding mode."""

    def test_bytes_mode_has_no_constraints(self) -> None:
        data = "é".encode()
        assert is_boundary(data, 1, EncodingMode.BYTES)

    def test_utf8_continuation_byte(self) -> None:
        data = "aé".encode()  # 61 c3 a9
        assert is_boundary(data, 1, EncodingMode.UTF8)
        assert not is_boundary(data, 2, EncodingMode.UTF8)
        assert snap_backward(data, 2, EncodingMode.UTF8) == 1
        assert snap_forward(data, 2, EncodingMode.UTF8) == 3

    def test_utf16_odd_offsets(self) -> None:
        data = "ab".encode("utf-16-le")
        assert not is_boundary(data, 1, EncodingMode.UTF16LE)
        assert is_boundary(data, 2, EncodingMode.UTF16LE)

    def test_utf16_surrogate_pair(self) -> None:
        data = "\U0001f600".encode("utf-16-le")
        assert len(data) == 4
        assert not is_boundary(data, 2, EncodingMode.UTF16LE)
        assert snap_backward(data, 2, EncodingMode.UTF16LE) == 0
        assert snap_forward(data, 3, EncodingMode.UTF16LE) == 4

    def test_ends_are_boundaries(self) -> None:
        data = "é".encode()
        assert is_boundary(data, 0, EncodingMode.UTF8)
        assert is_boundary(data, 2, EncodingMode.UTF8)

    def test_truncate_keeps_code_points_whole(self) -> None:
        data = "aéb".encode()
        assert truncate(data, 2, EncodingMode.UTF8) == b"a"
        assert truncate(data, 2, EncodingMode.BYTES) == b"a\xc3"
        assert truncate(data, 10, EncodingMode.UTF8) == data

    def test_reencode_replaces_invalid(self) -> None:
        assert reencode(b"a\xffb", EncodingMode.UTF8) == "a�b".encode()
        assert reencode(b"a\xffb", EncodingMode.BYTES) == b"a\xffb"

    def test_is_valid(self) -> None:
        assert is_valid(b"\xff", EncodingMode.BYTES)
        assert not is_valid(b"\xff", EncodingMode.UTF8)
        assert not is_valid(b"a", EncodingMode.UTF16LE)

    @given(unicode_sources(), st.data())
    def test_snapped_utf8_splits_stay_decodable(self, text: str, data: st.DataObject) -> None:
        """Cutting at a snapped offset leaves two valid halves."""
        encoded = text.encode()
        pos = data.draw(st.integers(min_value=0, max_value=len(encoded)))
        snapped = snap_backward(encoded, pos, EncodingMode.UTF8)
        event(f"moved={pos != snapped}")
        assert is_valid(encoded[:snapped], EncodingMode.UTF8)
        assert is_valid(encoded[snapped:], EncodingMode.UTF8)


# =============================================================================
# EDITS AND BUFFERS
# =============================================================================


class TestEdit:
    """Edit record invariants and classification."""

    def test_kinds(self) -> None:
        buffer = SourceBuffer(b"a+b")
        assert buffer.make_edit(1, 1, b"x").kind is EditKind.INSERT
        assert buffer.make_edit(1, 2).kind is EditKind.DELETE
        assert buffer.make_edit(1, 2, b"*").kind is EditKind.REPLACE
        noop = buffer.make_edit(1, 1)
        assert noop.kind is EditKind.NOOP
        assert noop.is_noop

    def test_delta(self) -> None:
        buffer = SourceBuffer(b"a+b")
        assert buffer.make_edit(0, 3, b"x").delta == -2
        assert buffer.make_edit(3, 3, b"yz").delta == 2

    def test_invariants(self) -> None:
        with pytest.raises(ValueError, match="must be >= start"):
            Edit(2, 1, 2, Point(0, 2), Point(0, 1), Point(0, 2))
        with pytest.raises(ValueError, match="inserted bytes"):
            Edit(0, 0, 2, Point(0, 0), Point(0, 0), Point(0, 2), b"x")
        with pytest.raises(ValueError, match="start must be >= 0"):
            Edit(-1, 0, -1, Point(0, 0), Point(0, 0), Point(0, 0))

    def test_points_computed(self) -> None:
        buffer = SourceBuffer(b"ab\ncd")
        edit = buffer.make_edit(1, 4, b"x\ny")
        assert edit.start_point == Point(0, 1)
        assert edit.old_end_point == Point(1, 1)
        assert edit.new_end_byte == 4
        assert edit.new_end_point == Point(1, 1)

    def test_describe(self) -> None:
        buffer = SourceBuffer(b"a+b")
        assert buffer.make_edit(2, 2, b"a").describe() == "insert b'a' at 2 (0:2)"
        assert buffer.make_edit(0, 2).describe() == "delete 0..2 (0:0..0:2)"
        assert buffer.make_edit(1, 2, b"-").describe() == "replace 1..2 with b'-' (0:1..0:2)"
        assert buffer.make_edit(1, 1).describe() == "no-op at 1 (0:1)"

    def test_dict_form(self) -> None:
        edit = SourceBuffer(b"a\nb").make_edit(1, 3, b"\xff")
        data = edit.to_dict()
        assert data["start_point"] == (0, 1)
        assert data["inserted_text"] == "\xff"
        assert Edit.from_dict(data) == edit


class TestSourceBuffer:
    """Applying edits and their inverses."""

    def test_apply_insert(self) -> None:
        buffer = SourceBuffer(b"a+b")
        buffer.apply(buffer.make_edit(2, 2, b"a"))
        assert buffer.data == b"a+ab"
        assert len(buffer) == 4

    def test_inverse_restores(self) -> None:
        buffer = SourceBuffer(b"a+b\nc")
        inverse = buffer.apply(buffer.make_edit(1, 4, b"*"))
        assert buffer.data == b"a*c"
        assert inverse.inserted_text == b"+b\n"
        buffer.apply(inverse)
        assert buffer.data == b"a+b\nc"

    def test_range_outside_buffer(self) -> None:
        buffer = SourceBuffer(b"ab")
        with pytest.raises(ValueError, match="outside buffer"):
            buffer.make_edit(1, 3)

    def test_stale_edit_rejected(self) -> None:
        buffer = SourceBuffer(b"ab\ncd")
        edit = buffer.make_edit(4, 5)
        buffer.apply(buffer.make_edit(0, 3))
        with pytest.raises(ValueError, match="outside buffer"):
            buffer.apply(edit)

    def test_point_mismatch_rejected(self) -> None:
        buffer = SourceBuffer(b"ab\ncd")
        edit = buffer.make_edit(3, 3, b"x")
        buffer.apply(buffer.make_edit(2, 3))
        with pytest.raises(ValueError, match="does not match"):
            buffer.apply(edit)

    def test_invalid_initial_contents(self) -> None:
        with pytest.raises(ValueError, match="not valid utf-8"):
            SourceBuffer(b"\xff", EncodingMode.UTF8)

    def test_split_code_point_rejected(self) -> None:
        buffer = SourceBuffer("é".encode(), EncodingMode.UTF8)
        with pytest.raises(ValueError, match="splits"):
            buffer.make_edit(1, 1, b"x")

    def test_invalid_inserted_text_rejected(self) -> None:
        buffer = SourceBuffer(b"ab", EncodingMode.UTF8)
        edit = SourceBuffer(b"ab").make_edit(1, 1, b"\xff")
        with pytest.raises(ValueError, match="Inserted text"):
            buffer.apply(edit)

    @given(st.binary(max_size=30), st.data())
    def test_apply_then_inverse_is_identity(self, source: bytes, data: st.DataObject) -> None:
        """Every edit's inverse restores the buffer."""
        buffer = SourceBuffer(source)
        start = data.draw(st.integers(min_value=0, max_value=len(source)))
        end = data.draw(st.integers(min_value=start, max_value=len(source)))
        text = data.draw(st.binary(max_size=5))
        edit = buffer.make_edit(start, end, text)
        event(f"kind={edit.kind}")
        inverse = buffer.apply(edit)
        assert len(buffer) == len(source) + edit.delta
        buffer.apply(inverse)
        assert buffer.data == source
