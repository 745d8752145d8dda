"""Source buffer and tree notation strategies."""

from __future__ import annotations

from hypothesis import event
from hypothesis import strategies as st

from parsecheck.syntax.sexp import SexpNode

_ARITHMETIC_PIECES = (
    "a", "b", "x", "foo", "_t1", "0", "7", "42",
    "+", "-", "*", "/", "(", ")", " ", "\n", "#",
)  # fmt: skip


@st.composite
def arithmetic_sources(draw: st.DrawFn, max_pieces: int = 20) -> bytes:
    """Plausible (and sometimes broken) arithmetic buffers."""
    pieces = draw(st.lists(st.sampled_from(_ARITHMETIC_PIECES), max_size=max_pieces))
    event(f"pieces={min(len(pieces), 10)}")
    return "".join(pieces).encode("ascii")


def unicode_sources(max_size: int = 30) -> st.SearchStrategy[str]:
    """Text mixing ASCII with multi-byte code points."""
    return st.text(
        alphabet=st.one_of(
            st.sampled_from("ab+ (\n"),
            st.characters(min_codepoint=0x80, max_codepoint=0x10FFFF, exclude_categories=("Cs",)),
        ),
        max_size=max_size,
    )


_KINDS = st.sampled_from(("program", "identifier", "number", "binary_expression", "ERROR"))


def sexp_trees(max_leaves: int = 12) -> st.SearchStrategy[SexpNode]:
    """Random trees, with or without byte ranges."""
    leaves = st.builds(SexpNode, kind=_KINDS)
    return st.recursive(
        leaves,
        lambda children: st.builds(
            SexpNode,
            kind=_KINDS,
            children=st.lists(children, max_size=3).map(tuple),
        ),
        max_leaves=max_leaves,
    )
