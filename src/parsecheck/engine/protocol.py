"""Parsing engine interface.

The engine that actually parses is an external collaborator. parsecheck
talks to it only through this Protocol, so any incremental parser can be
verified by writing a small adapter.

Python 3.13+.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from parsecheck.enums import EncodingMode

if TYPE_CHECKING:
    from parsecheck.syntax.edit import Edit

    from .deadline import CancellationFlag

__all__ = ["EngineFactory", "ParsingEngine", "SyntaxTree"]


class SyntaxTree(Protocol):
    """Opaque parse result owned by the engine.

    parsecheck never inspects a tree directly; it renders it through the
    engine and compares renderings. A tree holds on to the buffer version
    it was parsed from.
    """


class ParsingEngine(Protocol):
    """Protocol for incremental parsing engines.

    This is a Protocol (structural typing) rather than ABC so existing
    engine wrappers can be verified without inheriting from parsecheck.

    Thread Safety:
        One engine instance is used by one trial at a time. Sessions create
        an instance per trial via an EngineFactory.

    Example:
        >>> class MyEngine:
        ...     def parse(self, source, language, previous_tree=None, *, cancellation=None):
        ...         return my_parser(language).parse(source, previous_tree)
        ...     def edit_tree(self, tree, edit):
        ...         return tree.copy_with_edit(edit)
        ...     def render_sexp(self, tree, *, include_ranges=False):
        ...         return tree.to_sexp(include_ranges)
    """

    def parse(
        self,
        source: bytes,
        language: str,
        previous_tree: SyntaxTree | None = None,
        *,
        cancellation: CancellationFlag | None = None,
        encoding: EncodingMode = EncodingMode.UTF8,
    ) -> SyntaxTree:
        """Parse ``source`` from scratch, or incrementally from ``previous_tree``.

        Args:
            source: Complete current buffer contents
            language: Grammar identifier
            previous_tree: Tree already passed through edit_tree(), or None
            cancellation: Flag the engine should poll; when it is set the
                engine raises ParseCancelledError
            encoding: Encoding of ``source``. Callers pass it only for
                UTF-16 buffers, so engines that read UTF-8 alone may omit
                the parameter

        Raises:
            EngineError: On an internal engine failure
            ParseCancelledError: When cancellation was observed
        """

    def edit_tree(self, tree: SyntaxTree, edit: Edit) -> SyntaxTree:
        """Return a copy of ``tree`` marked stale over the edited range.

        Must not reparse. The original tree stays usable.
        """

    def render_sexp(
        self,
        tree: SyntaxTree,
        *,
        include_ranges: bool = False,
        include_anonymous: bool = False,
    ) -> str:
        """Render ``tree`` in parenthesized node-kind notation.

        Only named nodes appear unless include_anonymous is set, in which
        case anonymous nodes render with quoted kinds such as ``("+")``.
        Error nodes render as ``ERROR``, nodes inserted by error recovery
        as ``(MISSING kind)``. With include_ranges every node carries
        ``[start_byte, end_byte]``.

        Callers pass include_anonymous only when it is True, so engines
        that never render concrete syntax may omit the parameter.
        """


type EngineFactory = Callable[[], ParsingEngine]
"""Creates an engine instance owned by a single trial."""
