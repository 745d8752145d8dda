"""ParsingEngine adapter for the tree-sitter Python binding.

Requires the optional ``tree-sitter`` extra and one installed grammar
package per language (for example ``tree-sitter-python``, imported as
``tree_sitter_python``). Grammars are given as ``{language: module}``;
each module must expose ``language()`` returning the grammar pointer.

Cancellation is wired into tree-sitter's progress callback, which the
parser invokes periodically; returning True aborts the parse.

Python 3.13+.
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING, Any

from parsecheck.diagnostics.errors import EngineError, ParseCancelledError
from parsecheck.enums import EncodingMode

if TYPE_CHECKING:
    from collections.abc import Mapping

    from tree_sitter import Node, Parser, Tree

    from parsecheck.syntax.edit import Edit

    from .deadline import CancellationFlag

__all__ = ["TreeSitterEngine", "parse_grammar_option"]

logger = logging.getLogger(__name__)


def parse_grammar_option(value: str) -> tuple[str, str]:
    """Split a ``NAME=MODULE`` option; ``NAME`` alone means ``tree_sitter_NAME``."""
    name, sep, module = value.partition("=")
    name = name.strip()
    if not name:
        msg = f"Invalid grammar option {value!r}; expected NAME=MODULE"
        raise ValueError(msg)
    return name, module.strip() if sep else f"tree_sitter_{name.replace('-', '_')}"


def _quote(kind: str) -> str:
    escaped = kind.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class TreeSitterEngine:
    """Engine backed by ``tree_sitter.Parser``.

    Parsers are created lazily, one per language, and owned by this engine
    instance; sessions build one engine per trial.
    """

    def __init__(self, grammars: Mapping[str, Any]) -> None:
        """Initialize engine.

        Args:
            grammars: Language id mapped to a grammar module, a module name,
                or a ``tree_sitter.Language``

        Raises:
            EngineError: If the tree-sitter binding is not installed
        """
        try:
            import tree_sitter  # noqa: PLC0415 - optional dependency
        except ImportError as e:
            msg = "TreeSitterEngine requires the 'tree-sitter' extra"
            raise EngineError(msg) from e
        self._ts = tree_sitter
        self._grammars = dict(grammars)
        self._parsers: dict[str, Parser] = {}

    @property
    def languages(self) -> tuple[str, ...]:
        """Configured language ids."""
        return tuple(self._grammars)

    def _parser(self, language: str) -> Parser:
        parser = self._parsers.get(language)
        if parser is not None:
            return parser
        if language not in self._grammars:
            msg = f"No tree-sitter grammar configured for {language!r}"
            raise EngineError(msg)
        grammar = self._grammars[language]
        if isinstance(grammar, str):
            try:
                grammar = importlib.import_module(grammar)
            except ImportError as e:
                msg = f"Cannot import grammar module {grammar!r} for {language!r}"
                raise EngineError(msg) from e
        if not isinstance(grammar, self._ts.Language):
            grammar = self._ts.Language(grammar.language())
        parser = self._ts.Parser(grammar)
        self._parsers[language] = parser
        logger.debug("Created tree-sitter parser for %s", language)
        return parser

    def parse(
        self,
        source: bytes,
        language: str,
        previous_tree: Tree | None = None,
        *,
        cancellation: CancellationFlag | None = None,
        encoding: EncodingMode = EncodingMode.UTF8,
    ) -> Tree:
        """Parse with the language's parser, incrementally when given a tree.

        UTF-16LE buffers are decoded as UTF-16 by tree-sitter; anything else
        is read as UTF-8.
        """
        parser = self._parser(language)
        ts_encoding = "utf16" if encoding is EncodingMode.UTF16LE else "utf8"
        if cancellation is None:
            tree = parser.parse(source, previous_tree, encoding=ts_encoding)
        else:
            tree = parser.parse(
                source,
                previous_tree,
                encoding=ts_encoding,
                progress_callback=lambda *_: cancellation.is_cancelled,
            )
        if tree is None or (cancellation is not None and cancellation.is_cancelled):
            parser.reset()
            msg = "tree-sitter parse cancelled"
            raise ParseCancelledError(msg)
        return tree

    def edit_tree(self, tree: Tree, edit: Edit) -> Tree:
        """Copy the tree and record the edit on the copy."""
        edited = tree.copy()
        edited.edit(
            start_byte=edit.start_byte,
            old_end_byte=edit.old_end_byte,
            new_end_byte=edit.new_end_byte,
            start_point=edit.start_point.as_tuple(),
            old_end_point=edit.old_end_point.as_tuple(),
            new_end_point=edit.new_end_point.as_tuple(),
        )
        return edited

    def render_sexp(
        self, tree: Tree, *, include_ranges: bool = False, include_anonymous: bool = False
    ) -> str:
        """Render named and missing nodes with field labels; all nodes with include_anonymous."""
        parts: list[str] = []
        stack: list[tuple[Node, str | None] | str] = [(tree.root_node, None)]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                parts.append(item)
                continue
            node, field = item
            kind = node.type if node.is_named else _quote(node.type)
            if node.is_missing:
                kind = f"MISSING {kind}"
            prefix = " " if parts else ""
            label = f"{field}: " if field else ""
            span = f" [{node.start_byte}, {node.end_byte}]" if include_ranges else ""
            parts.append(f"{prefix}{label}({kind}{span}")
            stack.append(")")
            visible = [
                (child, node.field_name_for_child(index))
                for index, child in enumerate(node.children)
                if include_anonymous or child.is_named or child.is_missing
            ]
            stack.extend(reversed(visible))
        return "".join(parts)
