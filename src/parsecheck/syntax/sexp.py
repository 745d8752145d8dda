"""Parenthesized tree notation.

Parses, renders and pretty-prints the compact node-kind notation used by
corpus fixtures and by engine renderings:

    (program [0, 3]
      (binary_expression [0, 3]
        left: (identifier [0, 1])
        right: (identifier [2, 3])))

Grammar:
    node   := "(" kind [range] child* ")"
    child  := [field ":"] node
    kind   := atom | quoted | "MISSING" (atom | quoted)
    range  := "[" integer ["," ] integer "]"

Byte ranges and field labels are optional everywhere. Parsing and
rendering use explicit stacks, so deep trees never hit the Python
recursion limit.

Python 3.13+.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from parsecheck.constants import MAX_SEXP_DEPTH
from parsecheck.diagnostics.errors import SexpSyntaxError

__all__ = [
    "ERROR_KIND",
    "MISSING_PREFIX",
    "SexpNode",
    "contains_error",
    "format_sexp",
    "iter_nodes",
    "normalize_sexp",
    "parse_sexp",
    "render_sexp_node",
]

ERROR_KIND = "ERROR"
MISSING_PREFIX = "MISSING"

_DELIMITERS = frozenset('()[],"')

type _Token = tuple[str, str, int]  # (type, text, offset)


@dataclass(frozen=True, slots=True)
class SexpNode:
    """Immutable node of a parsed tree notation.

    Attributes:
        kind: Node kind; quoted kinds keep their quotes, missing nodes are
            ``"MISSING <kind>"``
        start: Start byte, if the notation carried a range
        end: End byte, if the notation carried a range
        field: Field label under which the parent holds this node
        children: Named children in order
    """

    kind: str
    start: int | None = None
    end: int | None = None
    field: str | None = None
    children: tuple["SexpNode", ...] = ()

    @property
    def has_range(self) -> bool:
        """True when the notation carried a byte range for this node."""
        return self.start is not None and self.end is not None

    @property
    def is_error(self) -> bool:
        """True for ERROR nodes."""
        return self.kind == ERROR_KIND

    @property
    def is_missing(self) -> bool:
        """True for zero-width MISSING nodes inserted by error recovery."""
        return self.kind == MISSING_PREFIX or self.kind.startswith(MISSING_PREFIX + " ")


def _tokenize(text: str) -> Iterator[_Token]:
    pos = 0
    length = len(text)
    while pos < length:
        char = text[pos]
        if char.isspace():
            pos += 1
        elif char in "()[],":
            yield (char, char, pos)
            pos += 1
        elif char == '"':
            end = pos + 1
            while end < length and text[end] != '"':
                end += 2 if text[end] == "\\" else 1
            if end >= length:
                raise SexpSyntaxError("Unterminated quoted kind", pos)
            yield ("string", text[pos : end + 1], pos)
            pos = end + 1
        else:
            end = pos
            while end < length and not text[end].isspace() and text[end] not in _DELIMITERS:
                end += 1
            atom = text[pos:end]
            if atom.endswith(":") and len(atom) > 1:
                yield ("field", atom[:-1], pos)
            else:
                yield ("atom", atom, pos)
            pos = end


@dataclass(slots=True)
class _Frame:
    kind: str
    start: int | None
    end: int | None
    field: str | None
    children: list[SexpNode]


def _parse_int(token: _Token) -> int:
    kind, text, offset = token
    if kind != "atom" or not text.isdigit():
        raise SexpSyntaxError(f"Expected byte offset, found {text!r}", offset)
    return int(text)


def parse_sexp(text: str, *, max_depth: int = MAX_SEXP_DEPTH) -> SexpNode | None:
    """Parse tree notation into a SexpNode.

    Args:
        text: Notation text; whitespace is insignificant
        max_depth: Maximum node nesting accepted

    Returns:
        Root node, or None for empty (whitespace-only) text

    Raises:
        SexpSyntaxError: On malformed notation or a second root node

    Example:
        >>> node = parse_sexp("(program (identifier [0, 1]))")
        >>> node.children[0].kind, node.children[0].end
        ('identifier', 1)
    """
    tokens = list(_tokenize(text))
    stack: list[_Frame] = []
    root: SexpNode | None = None
    pending_field: tuple[str, int] | None = None
    i = 0
    count = len(tokens)

    def peek(index: int) -> _Token | None:
        return tokens[index] if index < count else None

    while i < count:
        token_type, token_text, offset = tokens[i]
        match token_type:
            case "(":
                if root is not None:
                    raise SexpSyntaxError("Unexpected content after root node", offset)
                if len(stack) >= max_depth:
                    raise SexpSyntaxError(f"Nesting exceeds {max_depth} levels", offset)
                kind_token = peek(i + 1)
                if kind_token is None or kind_token[0] not in ("atom", "string"):
                    raise SexpSyntaxError("Expected node kind after '('", offset)
                kind = kind_token[1]
                i += 2
                follow = peek(i)
                is_named = follow is not None and follow[0] in ("atom", "string")
                if kind == MISSING_PREFIX and is_named:
                    kind = f"{MISSING_PREFIX} {follow[1]}"
                    i += 1
                start = end = None
                follow = peek(i)
                if follow is not None and follow[0] == "[":
                    start_token, next_token = peek(i + 1), peek(i + 2)
                    if start_token is None or next_token is None:
                        raise SexpSyntaxError("Unterminated byte range", follow[2])
                    start = _parse_int(start_token)
                    i += 2
                    if next_token[0] == ",":
                        i += 1
                    end_token, close_token = peek(i), peek(i + 1)
                    if end_token is None or close_token is None or close_token[0] != "]":
                        raise SexpSyntaxError("Unterminated byte range", follow[2])
                    end = _parse_int(end_token)
                    if end < start:
                        raise SexpSyntaxError(f"Range end {end} before start {start}", follow[2])
                    i += 2
                field = pending_field[0] if pending_field is not None else None
                pending_field = None
                stack.append(_Frame(kind, start, end, field, []))
                continue
            case ")":
                if not stack:
                    raise SexpSyntaxError("Unbalanced ')'", offset)
                if pending_field is not None:
                    raise SexpSyntaxError(
                        f"Field {pending_field[0]!r} has no node", pending_field[1]
                    )
                frame = stack.pop()
                node = SexpNode(
                    kind=frame.kind,
                    start=frame.start,
                    end=frame.end,
                    field=frame.field,
                    children=tuple(frame.children),
                )
                if stack:
                    stack[-1].children.append(node)
                else:
                    root = node
            case "field":
                if not stack:
                    raise SexpSyntaxError("Field label outside a node", offset)
                if pending_field is not None:
                    raise SexpSyntaxError("Two field labels in a row", offset)
                pending_field = (token_text, offset)
            case _:
                raise SexpSyntaxError(f"Unexpected {token_text!r}", offset)
        i += 1

    if stack:
        raise SexpSyntaxError("Unclosed '('", len(text))
    return root


def _open_text(node: SexpNode, include_ranges: bool) -> str:
    if include_ranges and node.has_range:
        return f"({node.kind} [{node.start}, {node.end}]"
    return f"({node.kind}"


def _label(node: SexpNode, include_fields: bool) -> str:
    return f"{node.field}: " if include_fields and node.field else ""


def render_sexp_node(
    node: SexpNode | None,
    *,
    include_ranges: bool = True,
    include_fields: bool = True,
) -> str:
    """Render a node as canonical single-line notation.

    Example:
        >>> render_sexp_node(parse_sexp("( program\\n  (identifier [0,1]) )"))
        '(program (identifier [0, 1]))'
    """
    if node is None:
        return ""
    out: list[str] = []
    stack: list[SexpNode | str] = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
            continue
        out.append(_open_text(item, include_ranges))
        stack.append(")")
        for child in reversed(item.children):
            stack.append(child)
            stack.append(" " + _label(child, include_fields))
    return "".join(out)


def format_sexp(node: SexpNode | None, *, include_ranges: bool = True, indent: str = "  ") -> str:
    """Render a node as indented multi-line notation for reports."""
    if node is None:
        return ""
    out: list[str] = []
    stack: list[tuple[SexpNode, int] | str] = [(node, 0)]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            out.append(item)
            continue
        current, depth = item
        out.append(_open_text(current, include_ranges))
        stack.append(")")
        for child in reversed(current.children):
            stack.append((child, depth + 1))
            stack.append("\n" + indent * (depth + 1) + _label(child, True))
    return "".join(out)


def iter_nodes(node: SexpNode | None) -> Iterator[SexpNode]:
    """Yield nodes in pre-order."""
    stack = [node] if node is not None else []
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def contains_error(node: SexpNode | None) -> bool:
    """True when the tree has at least one ERROR or MISSING node."""
    return any(n.is_error or n.is_missing for n in iter_nodes(node))


def normalize_sexp(text: str, *, include_ranges: bool = True) -> str:
    """Collapse whitespace and formatting differences in notation text."""
    return render_sexp_node(parse_sexp(text), include_ranges=include_ranges)
