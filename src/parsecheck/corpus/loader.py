"""Corpus fixture loading.

Parses fixture files into ordered CorpusEntry records. The format is the
tree-sitter corpus format, also accepting a compact header closed by a
divider line:

    ==================
    Sum of two names
    :language(arithmetic)
    ==================
    a + b
    ---
    (program (binary_expression (identifier) (identifier)))

    ===
    Dangling operator
    ---
    a+
    ---
    (program (binary_expression (identifier) (MISSING identifier)))
    :error

Rules:
    - An entry opens with a line of three or more '='.
    - The header holds the name line(s) and optional ':' attribute lines,
      and ends at a second '=' line or at a '-' divider line.
    - The body runs to the next '=' line. Its last divider line separates
      input from the expected tree; one line terminator before the divider
      is not part of the input.
    - Attribute lines may also trail the expected tree.

The loader does not validate the tree notation; the corpus runner does.

Python 3.13+.
"""

from __future__ import annotations

import logging
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from parsecheck.constants import CORPUS_FILE_SUFFIX, DIVIDER_MIN, ENTRY_DELIMITER_MIN
from parsecheck.diagnostics.errors import MalformedCorpusError
from parsecheck.enums import EntryAttribute

from .entry import CorpusEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "CorpusLoadResult",
    "collect_corpus",
    "corpus_files",
    "load_corpus",
    "parse_corpus_text",
]

logger = logging.getLogger(__name__)

_DELIMITER = re.compile(rb"={%d,}" % ENTRY_DELIMITER_MIN)
_DIVIDER = re.compile(rb"-{%d,}" % DIVIDER_MIN)
_PARAMETERIZED = re.compile(r":([a-z-]+)\((.*)\)")

_FLAG_ATTRIBUTES: dict[str, EntryAttribute] = {
    "skip": EntryAttribute.SKIP,
    "error": EntryAttribute.ERROR_EXPECTED,
    "cst": EntryAttribute.CST,
    "fail-fast": EntryAttribute.FAIL_FAST,
}


@dataclass(frozen=True, slots=True)
class CorpusLoadResult:
    """Entries from every loadable file plus one error per malformed file."""

    entries: tuple[CorpusEntry, ...]
    errors: tuple[MalformedCorpusError, ...]


def _is_delimiter(line: bytes) -> bool:
    return _DELIMITER.fullmatch(line.strip()) is not None


def _is_divider(line: bytes) -> bool:
    return _DIVIDER.fullmatch(line.strip()) is not None


def _strip_terminator(data: bytes) -> bytes:
    if data.endswith(b"\r\n"):
        return data[:-2]
    if data.endswith(b"\n"):
        return data[:-1]
    return data


@dataclass(slots=True)
class _Attributes:
    flags: set[EntryAttribute]
    languages: list[str]
    platforms: list[str]

    def add(self, raw: bytes, path: Path | None, line: int) -> None:
        text = raw.decode("utf-8", errors="replace").strip()
        flag = _FLAG_ATTRIBUTES.get(text[1:])
        if flag is not None:
            self.flags.add(flag)
            return
        match = _PARAMETERIZED.fullmatch(text)
        if match is None:
            msg = f"Unknown attribute {text!r}"
            raise MalformedCorpusError(msg, path=path, line=line)
        name, argument = match.group(1), match.group(2).strip()
        if not argument:
            msg = f"Attribute {text!r} needs an argument"
            raise MalformedCorpusError(msg, path=path, line=line)
        match name:
            case "language":
                self.flags.add(EntryAttribute.LANGUAGE_OVERRIDE)
                if argument not in self.languages:
                    self.languages.append(argument)
            case "platform":
                self.platforms.append(argument)
            case _:
                msg = f"Unknown attribute {text!r}"
                raise MalformedCorpusError(msg, path=path, line=line)

    def frozen(self) -> frozenset[EntryAttribute]:
        flags = set(self.flags)
        if self.platforms and sys.platform not in self.platforms:
            flags.add(EntryAttribute.SKIP)
        return frozenset(flags)


def parse_corpus_text(data: bytes | str, path: Path | str | None = None) -> tuple[CorpusEntry, ...]:
    """Parse one fixture file's contents.

    Args:
        data: File contents (str is encoded as UTF-8)
        path: File the contents came from, for error messages

    Returns:
        Entries in file order

    Raises:
        MalformedCorpusError: On any structural problem, naming file and line
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    source_path = Path(path) if path is not None else None
    lines = data.splitlines(keepends=True)
    count = len(lines)
    entries: list[CorpusEntry] = []

    i = 0
    while i < count and not _is_delimiter(lines[i]):
        if lines[i].strip():
            msg = "Content before the first entry delimiter"
            raise MalformedCorpusError(msg, path=source_path, line=i + 1)
        i += 1

    while i < count:
        opening_line = i + 1
        i += 1
        name_parts: list[str] = []
        attributes = _Attributes(set(), [], [])
        closed = False
        while i < count:
            stripped = lines[i].strip()
            i += 1
            if _is_delimiter(stripped) or _is_divider(stripped):
                closed = True
                break
            if stripped.startswith(b":"):
                attributes.add(stripped, source_path, i)
            elif stripped:
                name_parts.append(stripped.decode("utf-8", errors="replace"))
        if not closed:
            msg = "Entry header is never closed"
            raise MalformedCorpusError(msg, path=source_path, line=opening_line)
        if not name_parts:
            msg = "Entry has no name"
            raise MalformedCorpusError(msg, path=source_path, line=opening_line)

        body_start = i
        while i < count and not _is_delimiter(lines[i]):
            i += 1
        body = lines[body_start:i]

        divider = next(
            (index for index in range(len(body) - 1, -1, -1) if _is_divider(body[index])),
            None,
        )
        if divider is None:
            msg = f"Entry {' '.join(name_parts)!r} has no '---' divider"
            raise MalformedCorpusError(msg, path=source_path, line=opening_line)

        input_bytes = _strip_terminator(b"".join(body[:divider]))
        expected_parts: list[bytes] = []
        expected_line = 0
        for offset, raw in enumerate(body[divider + 1 :]):
            line_number = body_start + divider + offset + 2
            stripped = raw.strip()
            if stripped.startswith(b":"):
                attributes.add(stripped, source_path, line_number)
                continue
            if stripped and not expected_line:
                expected_line = line_number
            expected_parts.append(raw)

        expected_text = b"".join(expected_parts).decode("utf-8", errors="replace")
        entries.append(
            CorpusEntry(
                name=" ".join(name_parts),
                input_bytes=input_bytes,
                expected_tree_sexp=expected_text.strip(),
                attributes=attributes.frozen(),
                languages=tuple(attributes.languages),
                path=source_path,
                line=opening_line,
                expected_line=expected_line or body_start + divider + 1,
            )
        )
    return tuple(entries)


def corpus_files(path: Path | str) -> tuple[Path, ...]:
    """Fixture files under ``path`` in sorted order (or ``path`` itself)."""
    root = Path(path)
    if root.is_dir():
        return tuple(
            sorted(p for p in root.rglob(f"*{CORPUS_FILE_SUFFIX}") if p.is_file())
        )
    return (root,)


def load_corpus(path: Path | str) -> tuple[CorpusEntry, ...]:
    """Load every entry under a file or directory.

    Raises:
        MalformedCorpusError: On the first malformed fixture
        OSError: If a file cannot be read
    """
    entries: list[CorpusEntry] = []
    for file in corpus_files(path):
        loaded = parse_corpus_text(file.read_bytes(), file)
        logger.debug("Loaded %d corpus entries from %s", len(loaded), file)
        entries.extend(loaded)
    return tuple(entries)


def collect_corpus(paths: Iterable[Path | str]) -> CorpusLoadResult:
    """Load several paths, isolating malformed files.

    A malformed or unreadable file contributes one error and no entries;
    the remaining files still load.
    """
    entries: list[CorpusEntry] = []
    errors: list[MalformedCorpusError] = []
    for path in paths:
        for file in corpus_files(path):
            try:
                loaded = parse_corpus_text(file.read_bytes(), file)
            except MalformedCorpusError as e:
                logger.warning("Skipping malformed corpus file: %s", e)
                errors.append(e)
                continue
            except OSError as e:
                logger.warning("Cannot read corpus file %s: %s", file, e)
                errors.append(MalformedCorpusError(f"Cannot read file: {e}", path=file))
                continue
            logger.debug("Loaded %d corpus entries from %s", len(loaded), file)
            entries.extend(loaded)
    return CorpusLoadResult(tuple(entries), tuple(errors))
