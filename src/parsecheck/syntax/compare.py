"""Structural comparison of syntax trees in parenthesized notation.

The comparator walks both trees in lock-step, pre-order and left to
right, with an explicit stack. It stops at the first divergence and
reports the path to the deepest common ancestor plus the differing
subtree on each side; it never produces a full-tree diff.

Matching rules:
    - Node kinds and the order of named children must match exactly.
    - Byte ranges are compared only when both nodes carry one, so a
      static corpus expectation without ranges matches a ranged render.
    - Field labels are compared only when both nodes carry one.

The result is symmetric (compare(a, b) is None iff compare(b, a) is
None) and depends only on the inputs.

Python 3.13+.
"""

from typing import Final

from parsecheck.diagnostics.report import MismatchReport
from parsecheck.enums import MismatchKind

from .sexp import SexpNode, format_sexp, parse_sexp

__all__ = ["compare", "compare_nodes"]

_VISIT: Final = 0
_CHECK_COUNT: Final = 1

type _PathStep = str
type _Work = tuple[int, SexpNode, SexpNode, tuple[_PathStep, ...], int]


def _step(node: SexpNode, index: int) -> _PathStep:
    label = f"{node.field}: {node.kind}" if node.field else node.kind
    return label if index < 0 else f"{label}[{index}]"


def _node_difference(expected: SexpNode, actual: SexpNode) -> str | None:
    if expected.kind != actual.kind:
        return f"node kind differs: {expected.kind} != {actual.kind}"
    if expected.field and actual.field and expected.field != actual.field:
        return f"field differs: {expected.field} != {actual.field}"
    if expected.has_range and actual.has_range and (
        (expected.start, expected.end) != (actual.start, actual.end)
    ):
        return (
            f"byte range differs: [{expected.start}, {expected.end}] != "
            f"[{actual.start}, {actual.end}]"
        )
    return None


def _mismatch(
    path: tuple[_PathStep, ...],
    expected: SexpNode | None,
    actual: SexpNode | None,
    detail: str,
) -> MismatchReport:
    ranged = expected is not None and actual is not None and expected.has_range and actual.has_range
    return MismatchReport(
        kind=MismatchKind.STRUCTURAL_DIFF,
        location=" > ".join(path) if path else "(root)",
        expected_repr=format_sexp(expected, include_ranges=ranged),
        actual_repr=format_sexp(actual, include_ranges=ranged),
        detail=detail,
    )


def compare_nodes(expected: SexpNode | None, actual: SexpNode | None) -> MismatchReport | None:
    """Compare two parsed trees.

    Args:
        expected: Expected (or fresh-parse) tree; None for an empty tree
        actual: Actual (or incremental-parse) tree; None for an empty tree

    Returns:
        None when the trees match, otherwise a StructuralDiff report
        without trial context
    """
    if expected is None or actual is None:
        if expected is None and actual is None:
            return None
        return _mismatch((), expected, actual, "one tree is empty")

    stack: list[_Work] = [(_VISIT, expected, actual, (), -1)]
    while stack:
        operation, left, right, path, index = stack.pop()
        if operation == _CHECK_COUNT:
            left_count, right_count = len(left.children), len(right.children)
            if left_count != right_count:
                extra = (left.children if left_count > right_count else right.children)[
                    min(left_count, right_count)
                ]
                side = "expected" if left_count > right_count else "actual"
                return _mismatch(
                    path,
                    left,
                    right,
                    f"child count differs: {left_count} != {right_count} "
                    f"(first unmatched {side} child: {extra.kind})",
                )
            continue

        difference = _node_difference(left, right)
        if difference is not None:
            return _mismatch(path, left, right, difference)

        here = (*path, _step(left, index))
        stack.append((_CHECK_COUNT, left, right, here, index))
        pairs = list(zip(left.children, right.children, strict=False))
        for child_index in range(len(pairs) - 1, -1, -1):
            left_child, right_child = pairs[child_index]
            stack.append((_VISIT, left_child, right_child, here, child_index))
    return None


def compare(expected_repr: str, actual_repr: str) -> MismatchReport | None:
    """Compare two trees given in parenthesized notation.

    Args:
        expected_repr: Expected tree notation (empty string = empty tree)
        actual_repr: Actual tree notation (empty string = empty tree)

    Returns:
        None when the trees match, otherwise a StructuralDiff report

    Raises:
        SexpSyntaxError: If either notation is malformed

    Example:
        >>> compare("(program (identifier))", "(program (identifier [0, 1]))") is None
        True
        >>> compare("(program (identifier))", "(program (number))").location
        'program'
    """
    return compare_nodes(parse_sexp(expected_repr), parse_sexp(actual_repr))
