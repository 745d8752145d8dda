"""Structural tree comparison."""

import pytest
from hypothesis import given

from parsecheck.diagnostics.errors import SexpSyntaxError
from parsecheck.enums import MismatchKind
from parsecheck.syntax.compare import compare, compare_nodes
from parsecheck.syntax.sexp import SexpNode, parse_sexp
from tests.strategies import sexp_trees


class TestMatching:
    """Trees that compare equal."""

    def test_identical(self) -> None:
        text = "(program (binary_expression (identifier) (number)))"
        assert compare(text, text) is None

    def test_whitespace_and_formatting(self) -> None:
        assert compare("(program (identifier))", "(program\n  (identifier)\n)") is None

    def test_ranges_ignored_when_one_side_has_none(self) -> None:
        assert compare("(program (identifier))", "(program [0, 1] (identifier [0, 1]))") is None

    def test_fields_ignored_when_one_side_has_none(self) -> None:
        assert compare(
            "(binary_expression (identifier) (number))",
            "(binary_expression left: (identifier) right: (number))",
        ) is None

    def test_both_empty(self) -> None:
        assert compare("", "") is None


class TestDivergence:
    """First divergence is reported with its location."""

    def test_kind_differs_below_root(self) -> None:
        report = compare(
            "(program (binary_expression (identifier) (identifier)))",
            "(program (binary_expression (identifier) (number)))",
        )
        assert report is not None
        assert report.kind is MismatchKind.STRUCTURAL_DIFF
        assert report.location == "program > binary_expression[0]"
        assert report.detail == "node kind differs: identifier != number"
        assert report.expected_repr == "(identifier)"
        assert report.actual_repr == "(number)"

    def test_root_kind_differs(self) -> None:
        report = compare("(program)", "(module)")
        assert report is not None
        assert report.location == "(root)"

    def test_child_count_differs(self) -> None:
        report = compare("(program (identifier))", "(program (identifier) (number))")
        assert report is not None
        assert report.location == "program"
        assert report.detail.startswith("child count differs: 1 != 2")
        assert "actual child: number" in report.detail

    def test_byte_range_differs(self) -> None:
        report = compare(
            "(program [0, 3] (identifier [0, 1]))",
            "(program [0, 3] (identifier [0, 2]))",
        )
        assert report is not None
        assert report.detail == "byte range differs: [0, 1] != [0, 2]"
        assert report.expected_repr == "(identifier [0, 1])"

    def test_field_differs(self) -> None:
        report = compare(
            "(binary_expression left: (identifier))",
            "(binary_expression right: (identifier))",
        )
        assert report is not None
        assert report.detail == "field differs: left != right"

    def test_field_shown_in_location(self) -> None:
        report = compare(
            "(binary_expression left: (parenthesized_expression (identifier)))",
            "(binary_expression left: (parenthesized_expression (number)))",
        )
        assert report is not None
        assert report.location == "binary_expression > left: parenthesized_expression[0]"

    def test_one_side_empty(self) -> None:
        report = compare("(program)", "")
        assert report is not None
        assert report.detail == "one tree is empty"
        assert report.actual_repr == ""

    def test_first_divergence_in_preorder(self) -> None:
        report = compare(
            "(program (a (x)) (b))",
            "(program (a (y)) (c))",
        )
        assert report is not None
        assert report.location == "program > a[0]"
        assert report.detail == "node kind differs: x != y"

    def test_malformed_input_raises(self) -> None:
        with pytest.raises(SexpSyntaxError):
            compare("(program", "(program)")


class TestProperties:
    """Comparator properties over random trees."""

    @given(sexp_trees())
    def test_reflexive(self, node: SexpNode) -> None:
        assert compare_nodes(node, node) is None

    @given(sexp_trees(), sexp_trees())
    def test_symmetric(self, left: SexpNode, right: SexpNode) -> None:
        assert (compare_nodes(left, right) is None) == (compare_nodes(right, left) is None)

    def test_deep_trees(self) -> None:
        depth = 2000
        left = parse_sexp("(a " * depth + "(x)" + ")" * depth)
        right = parse_sexp("(a " * depth + "(y)" + ")" * depth)
        report = compare_nodes(left, right)
        assert report is not None
        assert report.detail == "node kind differs: x != y"
