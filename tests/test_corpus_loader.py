"""Corpus fixture loading."""

import sys
from pathlib import Path

import pytest

from parsecheck.corpus.entry import CorpusEntry
from parsecheck.corpus.loader import collect_corpus, corpus_files, load_corpus, parse_corpus_text
from parsecheck.diagnostics.errors import MalformedCorpusError
from parsecheck.enums import EntryAttribute

FULL_HEADER = b"""\
==================
Sum of two names
==================

a + b

---

(program (binary_expression (identifier) (identifier)))
"""


class TestParseCorpusText:
    """Entry structure and attributes."""

    def test_full_header(self) -> None:
        (entry,) = parse_corpus_text(FULL_HEADER, "sums.txt")
        assert entry.name == "Sum of two names"
        assert entry.input_bytes == b"\na + b\n"
        assert entry.expected_tree_sexp == (
            "(program (binary_expression (identifier) (identifier)))"
        )
        assert entry.path == Path("sums.txt")
        assert entry.line == 1
        assert entry.expected_line == 9
        assert entry.attributes == frozenset()

    def test_compact_header(self) -> None:
        (entry,) = parse_corpus_text("===\nDangling\n---\na+\n---\n(program)\n")
        assert entry.name == "Dangling"
        assert entry.input_bytes == b"a+"
        assert entry.expected_tree_sexp == "(program)"

    def test_only_one_terminator_stripped(self) -> None:
        (entry,) = parse_corpus_text(b"===\nx\n===\na\n\n\n---\n(program)\n")
        assert entry.input_bytes == b"a\n\n"

    def test_crlf_terminator_stripped(self) -> None:
        (entry,) = parse_corpus_text(b"===\r\nx\r\n===\r\na\r\n---\r\n(program)\r\n")
        assert entry.input_bytes == b"a"
        assert entry.name == "x"

    def test_last_divider_wins(self) -> None:
        (entry,) = parse_corpus_text(b"===\nx\n===\na\n---\nb\n---\n(program)\n")
        assert entry.input_bytes == b"a\n---\nb"

    def test_multiline_name(self) -> None:
        (entry,) = parse_corpus_text(b"===\nfirst\nsecond\n===\na\n---\n(program)\n")
        assert entry.name == "first second"

    def test_several_entries_keep_order(self) -> None:
        text = b"===\none\n---\na\n---\n(p)\n===\ntwo\n---\nb\n---\n(q)\n"
        entries = parse_corpus_text(text)
        assert [e.name for e in entries] == ["one", "two"]
        assert [e.line for e in entries] == [1, 7]
        assert entries[1].expected_tree_sexp == "(q)"

    def test_flags_in_header_and_trailer(self) -> None:
        text = b"===\nx\n:skip\n:fail-fast\n---\na\n---\n(program)\n:error\n:cst\n"
        (entry,) = parse_corpus_text(text)
        assert entry.attributes == {
            EntryAttribute.SKIP,
            EntryAttribute.FAIL_FAST,
            EntryAttribute.ERROR_EXPECTED,
            EntryAttribute.CST,
        }
        assert entry.skipped
        assert entry.error_expected
        assert entry.fail_fast
        assert entry.concrete
        assert entry.expected_tree_sexp == "(program)"

    def test_language_variants(self) -> None:
        text = (
            b"===\nx\n:language(python)\n:language(cython)\n:language(python)\n"
            b"---\na\n---\n(m)\n"
        )
        (entry,) = parse_corpus_text(text)
        assert entry.languages == ("python", "cython")
        assert EntryAttribute.LANGUAGE_OVERRIDE in entry.attributes
        assert entry.variants("arithmetic") == ("python", "cython")

    def test_default_language_variant(self) -> None:
        (entry,) = parse_corpus_text(b"===\nx\n---\na\n---\n(m)\n")
        assert entry.variants("arithmetic") == ("arithmetic",)
        assert entry.variants(None) == ()

    def test_platform_attribute(self) -> None:
        here = f"===\nx\n:platform({sys.platform})\n---\na\n---\n(m)\n"
        elsewhere = "===\nx\n:platform(plan9)\n---\na\n---\n(m)\n"
        assert not parse_corpus_text(here)[0].skipped
        assert parse_corpus_text(elsewhere)[0].skipped

    def test_blank_lines_before_first_entry(self) -> None:
        assert len(parse_corpus_text(b"\n\n===\nx\n---\na\n---\n(m)\n")) == 1

    def test_empty_file(self) -> None:
        assert parse_corpus_text(b"") == ()


class TestMalformedCorpus:
    """Structural problems name the file and line."""

    @pytest.mark.parametrize(
        ("text", "line", "fragment"),
        [
            (b"junk\n===\nx\n---\na\n---\n(m)\n", 1, "before the first"),
            (b"===\nx\n", 1, "never closed"),
            (b"===\n===\na\n---\n(m)\n", 1, "no name"),
            (b"===\nx\n===\na\n(m)\n", 1, "divider"),
            (b"===\nx\n:bogus\n---\na\n---\n(m)\n", 3, "Unknown attribute"),
            (b"===\nx\n:language()\n---\na\n---\n(m)\n", 3, "needs an argument"),
            (b"===\nx\n---\na\n---\n(m)\n:weird(1)\n", 7, "Unknown attribute"),
        ],
    )
    def test_malformed(self, text: bytes, line: int, fragment: str) -> None:
        with pytest.raises(MalformedCorpusError, match=fragment) as exc_info:
            parse_corpus_text(text, "bad.txt")
        error = exc_info.value
        assert error.line == line
        assert error.path == Path("bad.txt")
        assert str(error).startswith(f"bad.txt:{line}: ")

    def test_location_without_path(self) -> None:
        error = MalformedCorpusError("broken")
        assert error.location == "<corpus>"
        assert str(error) == "<corpus>: broken"


class TestLoadCorpus:
    """Files and directories."""

    def test_directory_sorted(self, corpus_dir: Path) -> None:
        files = corpus_files(corpus_dir)
        assert [f.name for f in files] == ["arithmetic.txt", "recovery.txt"]

    def test_load_directory(self, corpus_dir: Path) -> None:
        entries = load_corpus(corpus_dir)
        assert len(entries) == 10
        assert entries[0].name == "Single identifier"
        assert entries[-1].skipped

    def test_fixture_empty_input(self, corpus_dir: Path) -> None:
        entries = {e.name: e for e in load_corpus(corpus_dir / "arithmetic.txt")}
        assert entries["Empty input"].input_bytes == b""
        assert entries["Empty input"].expected_tree_sexp == "(program)"
        assert entries["Sum of two names"].languages == ("arithmetic",)

    def test_load_raises_on_malformed(self, corpus_dir: Path) -> None:
        with pytest.raises(MalformedCorpusError, match="divider"):
            load_corpus(corpus_dir.parent / "broken" / "no_divider.txt")

    def test_collect_isolates_malformed_files(self, corpus_dir: Path) -> None:
        result = collect_corpus([corpus_dir, corpus_dir.parent / "broken"])
        assert len(result.entries) == 10
        assert len(result.errors) == 2
        assert {e.path.name for e in result.errors if e.path} == {
            "bad_attribute.txt",
            "no_divider.txt",
        }

    def test_collect_unreadable_file(self, tmp_path: Path) -> None:
        result = collect_corpus([tmp_path / "absent.txt"])
        assert result.entries == ()
        (error,) = result.errors
        assert "Cannot read file" in error.reason


class TestCorpusEntry:
    """Entry helpers."""

    def test_describe(self) -> None:
        entry = CorpusEntry("Sums", b"a+b", "(p)", path=Path("c.txt"), line=4)
        assert entry.origin == "c.txt:4"
        assert entry.describe() == "c.txt:4 'Sums'"
        assert entry.describe("arithmetic") == "c.txt:4 'Sums' [arithmetic]"

    def test_dict_form(self) -> None:
        entry = CorpusEntry(
            "Bytes",
            b"\x00\xff",
            "(p)",
            attributes=frozenset({EntryAttribute.SKIP}),
            languages=("arithmetic",),
            path=Path("c.txt"),
            line=2,
            expected_line=6,
        )
        data = entry.to_dict()
        assert data["attributes"] == ["skip"]
        assert CorpusEntry.from_dict(data) == entry
