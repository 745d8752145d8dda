"""tree-sitter adapter: option parsing and engine contract."""

import sys

import pytest

from parsecheck.corpus.entry import CorpusEntry
from parsecheck.diagnostics.errors import EngineError
from parsecheck.engine.treesitter import TreeSitterEngine, parse_grammar_option
from parsecheck.enums import EncodingMode
from parsecheck.fuzz.edits import EditPolicy
from parsecheck.fuzz.trial import FuzzTrial
from parsecheck.fuzz.verifier import IncrementalVerifier


class TestGrammarOption:
    """NAME=MODULE command line values."""

    def test_explicit_module(self) -> None:
        assert parse_grammar_option("python=tree_sitter_python") == ("python", "tree_sitter_python")

    def test_bare_name(self) -> None:
        assert parse_grammar_option("javascript") == ("javascript", "tree_sitter_javascript")
        assert parse_grammar_option("c-sharp") == ("c-sharp", "tree_sitter_c_sharp")

    def test_missing_name(self) -> None:
        with pytest.raises(ValueError, match="NAME=MODULE"):
            parse_grammar_option("=tree_sitter_python")


class TestTreeSitterEngine:
    """Behaviour that needs only the binding, not a grammar."""

    def test_binding_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setitem(sys.modules, "tree_sitter", None)
        with pytest.raises(EngineError, match="tree-sitter"):
            TreeSitterEngine({"python": "tree_sitter_python"})

    def test_unconfigured_language(self) -> None:
        pytest.importorskip("tree_sitter")
        engine = TreeSitterEngine({"python": "tree_sitter_python"})
        assert engine.languages == ("python",)
        with pytest.raises(EngineError, match="No tree-sitter grammar"):
            engine.parse(b"x", "ruby")

    def test_unimportable_grammar(self) -> None:
        pytest.importorskip("tree_sitter")
        engine = TreeSitterEngine({"nothing": "tree_sitter_does_not_exist"})
        with pytest.raises(EngineError, match="Cannot import grammar module"):
            engine.parse(b"x", "nothing")


class TestWithPythonGrammar:
    """End-to-end checks, run when a Python grammar package is installed."""

    @pytest.fixture
    def engine(self) -> TreeSitterEngine:
        pytest.importorskip("tree_sitter")
        grammar = pytest.importorskip("tree_sitter_python")
        return TreeSitterEngine({"python": grammar})

    def test_render(self, engine: TreeSitterEngine) -> None:
        tree = engine.parse(b"x = 1\n", "python")
        text = engine.render_sexp(tree)
        assert text.startswith("(module (expression_statement (assignment left: (identifier)")

    def test_incremental_matches_fresh(self, engine: TreeSitterEngine) -> None:
        entry = CorpusEntry("Assignment", b"x = foo(1, 2)\nprint(x)\n", "(module)")
        for seed in range(5):
            trial = FuzzTrial(seed, "python", entry, 5, policy=EditPolicy())
            assert IncrementalVerifier(engine).run(trial).passed

    def test_utf16_source(self, engine: TreeSitterEngine) -> None:
        text = "s = 'é'\n"
        utf8 = engine.parse(text.encode(), "python")
        utf16 = engine.parse(text.encode("utf-16-le"), "python", encoding=EncodingMode.UTF16LE)
        assert engine.render_sexp(utf16) == engine.render_sexp(utf8)
        assert "ERROR" not in engine.render_sexp(utf16)

    def test_utf16_trial(self, engine: TreeSitterEngine) -> None:
        source = "x = foo(1, 2)\nprint(x)\n".encode("utf-16-le")
        entry = CorpusEntry("Assignment", source, "(module)")
        policy = EditPolicy(encoding=EncodingMode.UTF16LE)
        trial = FuzzTrial(7, "python", entry, 5, policy=policy)
        assert IncrementalVerifier(engine).run(trial).passed
