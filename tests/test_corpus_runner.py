"""Static corpus checks against an engine."""

from pathlib import Path

from parsecheck.corpus.loader import parse_corpus_text
from parsecheck.corpus.runner import CorpusRunner, run_corpus
from parsecheck.engine.reference import ARITHMETIC, ReferenceEngine
from parsecheck.enums import EntryStatus, MismatchKind
from tests.helpers.engines import BrokenEngine, HangingEngine, wait_for_workers


def write(tmp_path: Path, text: str, name: str = "case.txt") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


class TestPassingCorpus:
    """The bundled fixtures pass against the reference engine."""

    def test_run_directory(self, corpus_dir: Path) -> None:
        result = run_corpus(corpus_dir, engine=ReferenceEngine(), default_language=ARITHMETIC)
        assert result.ok
        assert (result.passed, result.failed, result.skipped) == (9, 0, 1)
        assert result.failures == ()

    def test_language_filter_supplies_default(self, corpus_dir: Path) -> None:
        result = run_corpus(corpus_dir, [ARITHMETIC], engine=ReferenceEngine())
        assert result.passed == 9

    def test_entry_without_language_fails_as_malformed(self, corpus_dir: Path) -> None:
        result = run_corpus(corpus_dir, engine=ReferenceEngine())
        assert (result.passed, result.failed, result.skipped) == (1, 8, 1)
        assert {report.kind for report in result.failures} == {MismatchKind.MALFORMED_CORPUS}
        first = result.failures[0]
        assert first.origin.endswith("arithmetic.txt:1 'Single identifier'")
        assert "no default language" in first.detail

    def test_entry_without_language_does_not_stop_the_run(self, tmp_path: Path) -> None:
        text = "===\nBare\n---\na\n---\n(program (identifier))\n"
        text += "===\nNamed\n:language(arithmetic)\n---\na\n---\n(program (identifier))\n"
        result = run_corpus(write(tmp_path, text), engine=ReferenceEngine())
        statuses = [(outcome.entry.name, outcome.status) for outcome in result.outcomes]
        assert statuses == [("Bare", EntryStatus.FAIL), ("Named", EntryStatus.PASS)]

    def test_outcomes_in_load_order(self, corpus_dir: Path) -> None:
        result = run_corpus(corpus_dir, engine=ReferenceEngine(), default_language=ARITHMETIC)
        names = [outcome.entry.name for outcome in result.outcomes]
        assert names[0] == "Single identifier"
        assert names[-1] == "Exponent operator"
        assert result.outcomes[-1].status is EntryStatus.SKIPPED


class TestFailures:
    """Each failure class becomes a report with the entry origin."""

    def test_structural_diff(self, tmp_path: Path) -> None:
        text = "===\nWrong\n---\na + b\n---\n(program (binary_expression (identifier) (number)))\n"
        path = write(tmp_path, text)
        result = run_corpus(path, engine=ReferenceEngine(), default_language=ARITHMETIC)
        assert not result.ok
        (report,) = result.failures
        assert report.kind is MismatchKind.STRUCTURAL_DIFF
        assert report.location == "program > binary_expression[0]"
        assert report.origin == f"{path}:1 'Wrong' [arithmetic]"

    def test_error_expected_but_clean(self, tmp_path: Path) -> None:
        path = write(tmp_path, "===\nClean\n:error\n---\na + b\n---\n(program)\n")
        result = run_corpus(path, engine=ReferenceEngine(), default_language=ARITHMETIC)
        (report,) = result.failures
        assert report.kind is MismatchKind.STRUCTURAL_DIFF
        assert "ERROR or MISSING" in report.detail

    def test_malformed_expected_tree(self, tmp_path: Path) -> None:
        path = write(tmp_path, "===\nBad tree\n---\na\n---\n(program (identifier)\n")
        result = run_corpus(path, engine=ReferenceEngine(), default_language=ARITHMETIC)
        (report,) = result.failures
        assert report.kind is MismatchKind.MALFORMED_CORPUS
        assert report.location == f"{path}:6"

    def test_engine_error(self, corpus_dir: Path) -> None:
        result = run_corpus(corpus_dir, engine=BrokenEngine(), default_language=ARITHMETIC)
        assert result.failed == 9
        assert {r.kind for r in result.failures} == {MismatchKind.ENGINE_ERROR}
        assert "RuntimeError" in result.failures[0].detail

    def test_timeout(self, tmp_path: Path) -> None:
        path = write(tmp_path, "===\nHangs\n---\na\n---\n(program (identifier))\n")
        result = run_corpus(path, engine=HangingEngine(), default_language=ARITHMETIC, timeout=0.05)
        (report,) = result.failures
        assert report.kind is MismatchKind.TIMEOUT_EXCEEDED
        assert wait_for_workers()

    def test_malformed_file_does_not_stop_run(self, corpus_dir: Path) -> None:
        result = run_corpus(
            [corpus_dir, corpus_dir.parent / "broken"],
            engine=ReferenceEngine(),
            default_language=ARITHMETIC,
        )
        assert result.passed == 9
        assert result.failed == 2
        assert [r.kind for r in result.failures] == [MismatchKind.MALFORMED_CORPUS] * 2


class TestCorpusRunner:
    """Variant selection and fail-fast."""

    def test_fail_fast_stops_run(self) -> None:
        entries = parse_corpus_text(
            "===\nFirst\n:fail-fast\n---\na\n---\n(program (number))\n"
            "===\nSecond\n---\nb\n---\n(program (identifier))\n"
        )
        result = CorpusRunner(ReferenceEngine(), default_language=ARITHMETIC).run(entries)
        assert [o.entry.name for o in result.outcomes] == ["First"]
        assert result.failed == 1

    def test_failure_without_fail_fast_continues(self) -> None:
        entries = parse_corpus_text(
            "===\nFirst\n---\na\n---\n(program (number))\n"
            "===\nSecond\n---\nb\n---\n(program (identifier))\n"
        )
        result = CorpusRunner(ReferenceEngine(), default_language=ARITHMETIC).run(entries)
        assert (result.passed, result.failed) == (1, 1)

    def test_language_filter_drops_other_variants(self) -> None:
        entries = parse_corpus_text(
            "===\nPython only\n:language(python)\n---\nx\n---\n(module)\n"
            "===\nBoth\n:language(python)\n:language(arithmetic)\n"
            "---\nx\n---\n(program (identifier))\n"
        )
        result = CorpusRunner(ReferenceEngine(), language_filter=[ARITHMETIC]).run(entries)
        assert [(o.entry.name, o.language) for o in result.outcomes] == [("Both", ARITHMETIC)]
        assert result.ok

    def test_cst_entry_lists_anonymous_nodes(self) -> None:
        expected = (
            '(program (binary_expression left: (identifier) operator: ("+") right: (identifier)))'
        )
        entries = parse_corpus_text(
            f"===\nConcrete\n:cst\n---\na+b\n---\n{expected}\n"
            f"===\nAbstract\n---\na+b\n---\n{expected}\n"
        )
        result = CorpusRunner(ReferenceEngine(), default_language=ARITHMETIC).run(entries)
        statuses = [(o.entry.name, o.status) for o in result.outcomes]
        assert statuses == [("Concrete", EntryStatus.PASS), ("Abstract", EntryStatus.FAIL)]

    def test_check_skipped_entry(self) -> None:
        (entry,) = parse_corpus_text("===\nLater\n:skip\n---\n??\n---\n(nonsense\n")
        outcome = CorpusRunner(ReferenceEngine()).check(entry, ARITHMETIC)
        assert outcome.status is EntryStatus.SKIPPED
        assert outcome.report is None

    def test_durations_recorded(self) -> None:
        (entry,) = parse_corpus_text("===\nx\n---\na\n---\n(program (identifier))\n")
        outcome = CorpusRunner(ReferenceEngine()).check(entry, ARITHMETIC)
        assert outcome.status is EntryStatus.PASS
        assert outcome.duration_ms >= 0.0
