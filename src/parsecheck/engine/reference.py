"""Reference incremental engine for a small arithmetic grammar.

Grammar (language id ``arithmetic``):

    program    := (expression | ERROR)*
    expression := term (('+' | '-') term)*
    term       := factor (('*' | '/') factor)*
    factor     := identifier | number | '(' expression ')'
    identifier := [A-Za-z_][A-Za-z0-9_]*
    number     := [0-9]+

Whitespace separates tokens and is otherwise ignored. Runs of other bytes
lex as a single error token.

Error recovery:
    - A missing operand becomes a zero-width ``(MISSING identifier)``.
    - An unclosed parenthesis gets a zero-width ``(MISSING ")")``.
    - Tokens that cannot start an expression at top level are grouped
      into one ``(ERROR)`` node per run.

Incrementality works like tree-sitter's token reuse: edit_tree() keeps
the tokens the edit cannot have affected (shifted into post-edit
coordinates) and parse() reuses a kept token whenever the lexer lands
exactly on its start. A token's extent depends on its own bytes plus one
byte of lookahead, so a token is kept before the edit only when that
lookahead byte also precedes the edit.

Python 3.13+.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Final

from parsecheck.diagnostics.errors import EngineError, ParseCancelledError
from parsecheck.enums import EncodingMode
from parsecheck.syntax.sexp import ERROR_KIND, MISSING_PREFIX

if TYPE_CHECKING:
    from collections.abc import Callable

    from parsecheck.syntax.edit import Edit

    from .deadline import CancellationFlag

__all__ = [
    "ARITHMETIC",
    "MAX_NESTING",
    "RefNode",
    "ReferenceEngine",
    "ReferenceTree",
    "Token",
    "lex",
]

logger = logging.getLogger(__name__)

ARITHMETIC: Final = "arithmetic"
# Four parser frames per level; stays well inside the default recursion limit.
MAX_NESTING: Final = 100

_LETTERS: Final = frozenset(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
_DIGITS: Final = frozenset(b"0123456789")
_IDENT_CHARS: Final = _LETTERS | _DIGITS
_OPERATORS: Final = frozenset(b"+-*/()")
_WHITESPACE: Final = frozenset(b" \t\r\n\f\v")
_KNOWN: Final = _IDENT_CHARS | _OPERATORS | _WHITESPACE

_FACTOR_STARTS: Final = frozenset({"identifier", "number", "("})
_ADDITIVE: Final = frozenset({"+", "-"})
_MULTIPLICATIVE: Final = frozenset({"*", "/"})
_ERROR_TOKEN: Final = "error"


@dataclass(frozen=True, slots=True)
class Token:
    """Lexed token. Kind is ``identifier``, ``number``, ``error`` or the operator."""

    kind: str
    start: int
    end: int

    def shifted(self, delta: int) -> Token:
        """Copy moved by ``delta`` bytes."""
        return Token(self.kind, self.start + delta, self.end + delta)


@dataclass(frozen=True, slots=True)
class RefNode:
    """Node of a reference syntax tree.

    Anonymous nodes (operators and parentheses) are kept in the tree but
    not rendered unless error recovery inserted them.
    """

    kind: str
    start: int
    end: int
    children: tuple[RefNode, ...] = ()
    field: str | None = None
    named: bool = True
    missing: bool = False

    @property
    def visible(self) -> bool:
        """True when the node appears in the rendered notation."""
        return self.named or self.missing


@dataclass(frozen=True, slots=True)
class ReferenceTree:
    """Parse result of the reference engine.

    Attributes:
        source: Buffer contents the tree was parsed from
        language: Grammar id
        root: Root ``program`` node
        tokens: Tokens of ``source`` in order
        reusable: Tokens still valid after edit_tree(), in post-edit
            coordinates; None for a tree that was never edited
        reused_tokens: Number of tokens reused while producing this tree
    """

    source: bytes
    language: str
    root: RefNode
    tokens: tuple[Token, ...]
    reusable: tuple[Token, ...] | None = None
    reused_tokens: int = 0


def _check(cancellation: CancellationFlag | None) -> None:
    if cancellation is not None and cancellation.is_cancelled:
        msg = "Parse cancelled"
        raise ParseCancelledError(msg)


def _scan(source: bytes, pos: int, accept: Callable[[int], bool]) -> int:
    end = pos + 1
    while end < len(source) and accept(source[end]):
        end += 1
    return end


def lex(
    source: bytes,
    reusable: dict[int, Token] | None = None,
    cancellation: CancellationFlag | None = None,
) -> tuple[tuple[Token, ...], int]:
    """Tokenize ``source``, reusing tokens keyed by start offset.

    Returns:
        Tuple of (tokens, number of reused tokens)
    """
    reusable = reusable or {}
    tokens: list[Token] = []
    reused = 0
    pos = 0
    length = len(source)
    while pos < length:
        _check(cancellation)
        byte = source[pos]
        if byte in _WHITESPACE:
            pos += 1
            continue
        token = reusable.get(pos)
        if token is not None and token.end <= length:
            tokens.append(token)
            reused += 1
            pos = token.end
            continue
        if byte in _LETTERS:
            token = Token("identifier", pos, _scan(source, pos, _IDENT_CHARS.__contains__))
        elif byte in _DIGITS:
            token = Token("number", pos, _scan(source, pos, _DIGITS.__contains__))
        elif byte in _OPERATORS:
            token = Token(chr(byte), pos, pos + 1)
        else:
            token = Token(_ERROR_TOKEN, pos, _scan(source, pos, lambda b: b not in _KNOWN))
        tokens.append(token)
        pos = token.end
    return tuple(tokens), reused


class _Parser:
    """Recursive-descent parser over a token list."""

    __slots__ = ("_cancellation", "_depth", "_index", "_last_end", "_tokens")

    def __init__(self, tokens: tuple[Token, ...], cancellation: CancellationFlag | None) -> None:
        self._tokens = tokens
        self._cancellation = cancellation
        self._index = 0
        self._last_end = 0
        self._depth = 0

    def _peek(self) -> Token | None:
        return self._tokens[self._index] if self._index < len(self._tokens) else None

    def _advance(self) -> Token:
        token = self._tokens[self._index]
        self._index += 1
        self._last_end = token.end
        return token

    def program(self, length: int) -> RefNode:
        children: list[RefNode] = []
        while (token := self._peek()) is not None:
            _check(self._cancellation)
            if token.kind in _FACTOR_STARTS:
                children.append(self._binary(_ADDITIVE, self._term))
            else:
                children.append(self._error_run())
        return RefNode("program", 0, length, tuple(children))

    def _error_run(self) -> RefNode:
        first = last = self._advance()
        while (token := self._peek()) is not None and token.kind not in _FACTOR_STARTS:
            last = self._advance()
        return RefNode(ERROR_KIND, first.start, last.end)

    def _term(self) -> RefNode:
        return self._binary(_MULTIPLICATIVE, self._factor)

    def _binary(self, operators: frozenset[str], operand: Callable[[], RefNode]) -> RefNode:
        left = operand()
        while (token := self._peek()) is not None and token.kind in operators:
            operator = self._advance()
            right = operand()
            left = RefNode(
                "binary_expression",
                left.start,
                right.end,
                (
                    replace(left, field="left"),
                    RefNode(
                        operator.kind, operator.start, operator.end, field="operator", named=False
                    ),
                    replace(right, field="right"),
                ),
            )
        return left

    def _factor(self) -> RefNode:
        token = self._peek()
        if token is None or token.kind not in _FACTOR_STARTS:
            return RefNode("identifier", self._last_end, self._last_end, missing=True)
        if token.kind != "(":
            self._advance()
            return RefNode(token.kind, token.start, token.end)

        if self._depth >= MAX_NESTING:
            msg = f"Parentheses nested deeper than {MAX_NESTING}"
            raise EngineError(msg)
        opening = self._advance()
        self._depth += 1
        inner = self._binary(_ADDITIVE, self._term)
        self._depth -= 1
        following = self._peek()
        if following is not None and following.kind == ")":
            self._advance()
            closing = RefNode(")", following.start, following.end, named=False)
        else:
            closing = RefNode(")", self._last_end, self._last_end, named=False, missing=True)
        return RefNode(
            "parenthesized_expression",
            opening.start,
            closing.end,
            (RefNode("(", opening.start, opening.end, named=False), inner, closing),
        )


def _node_label(node: RefNode) -> str:
    kind = node.kind if node.named else f'"{node.kind}"'
    return f"{MISSING_PREFIX} {kind}" if node.missing else kind


class ReferenceEngine:
    """Pure-Python incremental engine implementing ParsingEngine.

    Polls its cancellation flag once per token, so deadline-bounded calls
    stop promptly.

    Example:
        >>> engine = ReferenceEngine()
        >>> tree = engine.parse(b"a + 1", "arithmetic")
        >>> engine.render_sexp(tree)
        '(program (binary_expression left: (identifier) right: (number)))'
    """

    languages: tuple[str, ...] = (ARITHMETIC,)

    def parse(
        self,
        source: bytes,
        language: str,
        previous_tree: ReferenceTree | None = None,
        *,
        cancellation: CancellationFlag | None = None,
        encoding: EncodingMode = EncodingMode.UTF8,
    ) -> ReferenceTree:
        """Parse ``source``, reusing tokens of an edited ``previous_tree``.

        The grammar is ASCII, so ``encoding`` does not change the result.
        """
        if language not in self.languages:
            msg = f"Unknown language {language!r}; reference engine supports {ARITHMETIC!r}"
            raise EngineError(msg)
        reusable: dict[int, Token] = {}
        if previous_tree is not None:
            self._check_tree(previous_tree)
            if previous_tree.reusable is not None:
                reusable = {token.start: token for token in previous_tree.reusable}
            elif previous_tree.source == source:
                reusable = {token.start: token for token in previous_tree.tokens}

        tokens, reused = lex(source, reusable, cancellation)
        root = _Parser(tokens, cancellation).program(len(source))
        if previous_tree is not None:
            logger.debug("Reused %d of %d tokens", reused, len(tokens))
        return ReferenceTree(source, language, root, tokens, reused_tokens=reused)

    def edit_tree(self, tree: ReferenceTree, edit: Edit) -> ReferenceTree:
        """Return a copy of ``tree`` keeping only tokens the edit cannot affect."""
        self._check_tree(tree)
        base = tree.reusable if tree.reusable is not None else tree.tokens
        kept = [token for token in base if token.end < edit.start_byte]
        kept.extend(
            token.shifted(edit.delta) for token in base if token.start >= edit.old_end_byte
        )
        return replace(tree, reusable=tuple(kept))

    def render_sexp(
        self,
        tree: ReferenceTree,
        *,
        include_ranges: bool = False,
        include_anonymous: bool = False,
    ) -> str:
        """Render named and missing nodes, with field labels.

        With include_anonymous, operator and parenthesis tokens appear too,
        as quoted kinds.
        """
        self._check_tree(tree)
        parts: list[str] = []
        stack: list[RefNode | str] = [tree.root]
        while stack:
            item = stack.pop()
            if isinstance(item, str):
                parts.append(item)
                continue
            prefix = " " if parts else ""
            field = f"{item.field}: " if item.field else ""
            span = f" [{item.start}, {item.end}]" if include_ranges else ""
            parts.append(f"{prefix}{field}({_node_label(item)}{span}")
            stack.append(")")
            stack.extend(
                child
                for child in reversed(item.children)
                if child.visible or include_anonymous
            )
        return "".join(parts)

    @staticmethod
    def _check_tree(tree: object) -> None:
        if not isinstance(tree, ReferenceTree):
            msg = f"Expected a ReferenceTree, got {type(tree).__name__}"
            raise EngineError(msg)
