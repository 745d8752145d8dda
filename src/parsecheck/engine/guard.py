"""Engine calls with errors normalized to the parsecheck hierarchy.

Engines are foreign code. Anything they raise that is not already a
ParseCheckError is wrapped as EngineError with the original chained, so
the verification layers only ever handle one exception family.

Python 3.13+.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from parsecheck.constants import DEFAULT_CANCEL_GRACE
from parsecheck.diagnostics.errors import EngineError, ParseCheckError
from parsecheck.enums import EncodingMode

from .deadline import CancellationFlag, call_with_deadline

if TYPE_CHECKING:
    from parsecheck.syntax.edit import Edit

    from .protocol import ParsingEngine, SyntaxTree

__all__ = ["guarded_edit", "guarded_parse", "guarded_render"]


def _wrap(e: Exception, action: str) -> EngineError:
    return EngineError(f"Engine failed during {action}: {type(e).__name__}: {e}")


def guarded_parse(
    engine: ParsingEngine,
    source: bytes,
    language: str,
    previous_tree: SyntaxTree | None = None,
    *,
    timeout: float | None = None,
    grace: float = DEFAULT_CANCEL_GRACE,
    encoding: EncodingMode = EncodingMode.UTF8,
) -> SyntaxTree:
    """Parse under a deadline.

    ``encoding`` reaches the engine only for UTF-16 buffers.

    Raises:
        EngineError: On any engine failure
        TimeoutExceededError: If the parse ran past ``timeout``
    """
    action = "incremental parse" if previous_tree is not None else "parse"

    def run(flag: CancellationFlag) -> SyntaxTree:
        try:
            if encoding is EncodingMode.UTF16LE:
                return engine.parse(
                    source, language, previous_tree, cancellation=flag, encoding=encoding
                )
            return engine.parse(source, language, previous_tree, cancellation=flag)
        except ParseCheckError:
            raise
        except Exception as e:
            raise _wrap(e, action) from e

    return call_with_deadline(run, timeout, grace=grace)


def guarded_edit(engine: ParsingEngine, tree: SyntaxTree, edit: Edit) -> SyntaxTree:
    """Apply ``edit`` to a copy of ``tree`` through the engine."""
    try:
        return engine.edit_tree(tree, edit)
    except ParseCheckError:
        raise
    except Exception as e:
        raise _wrap(e, "tree edit") from e


def guarded_render(
    engine: ParsingEngine,
    tree: SyntaxTree,
    *,
    include_ranges: bool,
    include_anonymous: bool = False,
) -> str:
    """Render ``tree`` through the engine."""
    try:
        if include_anonymous:
            return engine.render_sexp(
                tree, include_ranges=include_ranges, include_anonymous=True
            )
        return engine.render_sexp(tree, include_ranges=include_ranges)
    except ParseCheckError:
        raise
    except Exception as e:
        raise _wrap(e, "rendering") from e
