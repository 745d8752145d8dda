"""Command line interface.

Usage:
    parsecheck corpus PATH... [--language L] [--default-language L]
    parsecheck fuzz PATH... [--seed N] [--iterations N] [--edits N]
        [--timeout S] [--jobs N] [--continue] [--minimize] [--undo]
        [--alphabet A] [--encoding E] [--example REGEX] [--json FILE]
    parsecheck replay DESCRIPTOR.json [--minimize]

Engines:
    --engine reference              built-in arithmetic engine (default)
    --engine tree-sitter --grammar NAME=MODULE [--grammar ...]

Fuzz options left unset fall back to the PARSECHECK_* environment
variables, then to the built-in defaults.

Exit Codes:
    0   No failures
    1   At least one failure or corpus load error
    2   Usage error

Python 3.13+.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from parsecheck.config import FuzzConfig, parse_timeout
from parsecheck.corpus.runner import run_corpus
from parsecheck.diagnostics.errors import ParseCheckError
from parsecheck.diagnostics.formatter import OutputFormat, ReportFormatter
from parsecheck.engine.reference import ARITHMETIC, ReferenceEngine
from parsecheck.engine.treesitter import TreeSitterEngine, parse_grammar_option
from parsecheck.enums import EncodingMode
from parsecheck.fuzz.edits import Alphabet, EditPolicy
from parsecheck.fuzz.minimize import minimize
from parsecheck.fuzz.session import run_fuzz
from parsecheck.fuzz.trial import FuzzTrial
from parsecheck.fuzz.verifier import IncrementalVerifier

if TYPE_CHECKING:
    from collections.abc import Sequence

    from parsecheck.engine.protocol import EngineFactory

__all__ = ["build_parser", "main"]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2


class UsageError(Exception):
    """Invalid combination of command line options."""


def _timeout(value: str) -> float | None:
    try:
        return parse_timeout(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _add_engine_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("engine")
    group.add_argument(
        "--engine",
        choices=("reference", "tree-sitter"),
        default="reference",
        help="Engine under test (default: reference)",
    )
    group.add_argument(
        "--grammar",
        action="append",
        default=[],
        metavar="NAME=MODULE",
        help="tree-sitter grammar module per language (repeatable)",
    )
    group.add_argument(
        "--format",
        choices=[str(f) for f in OutputFormat],
        default=str(OutputFormat.TEXT),
        help="Report format (default: text)",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="parsecheck",
        description="Verify parsers against corpus fixtures and by incremental fuzzing.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  parsecheck corpus tests/fixtures/corpus
  parsecheck fuzz tests/fixtures/corpus --seed 42 --iterations 100 --edits 5
  parsecheck fuzz corpus/ --engine tree-sitter --grammar python=tree_sitter_python
  parsecheck replay failure.json --minimize
""",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    commands = parser.add_subparsers(dest="command", required=True)

    corpus = commands.add_parser("corpus", help="Check corpus fixtures")
    corpus.add_argument("paths", nargs="+", type=Path, help="Fixture files or directories")
    corpus.add_argument("--language", action="append", default=[], help="Only run this language")
    corpus.add_argument("--default-language", help="Language for entries without :language()")
    corpus.add_argument("--timeout", type=_timeout, default=None, help="Per-parse deadline (s)")
    _add_engine_options(corpus)

    fuzz = commands.add_parser("fuzz", help="Fuzz incremental reparsing")
    fuzz.add_argument("paths", nargs="+", type=Path, help="Fixture files or directories")
    fuzz.add_argument("--seed", type=int, help="First seed")
    fuzz.add_argument("--iterations", type=int, help="Seeds per entry")
    fuzz.add_argument("--edits", type=int, help="Edits per trial")
    fuzz.add_argument("--timeout", type=_timeout, help="Per-parse deadline (s); 'none' = unbounded")
    fuzz.add_argument("--jobs", type=int, help="Worker threads")
    fuzz.add_argument("--continue", dest="continue_on_failure", action="store_true",
                      help="Keep fuzzing an entry after its first failure")
    fuzz.add_argument("--minimize", action="store_true", help="Minimize failures")
    fuzz.add_argument("--undo", action="store_true", help="Also verify the inverse edits")
    fuzz.add_argument("--alphabet", choices=Alphabet.names(), default="ascii",
                      help="Insertion alphabet (default: ascii)")
    fuzz.add_argument("--encoding", choices=[str(e) for e in EncodingMode], default="bytes",
                      help="Keep buffers valid in this encoding (default: bytes)")
    fuzz.add_argument("--example", help="Regex selecting entries by name")
    fuzz.add_argument("--language", action="append", default=[], help="Only run this language")
    fuzz.add_argument("--default-language", help="Language for entries without :language()")
    fuzz.add_argument("--json", type=Path, metavar="FILE",
                      help="Write statistics and replay descriptors to FILE")
    _add_engine_options(fuzz)

    replay = commands.add_parser("replay", help="Replay a trial descriptor")
    replay.add_argument("descriptor", type=Path, help="JSON trial or report descriptor")
    replay.add_argument("--minimize", action="store_true", help="Minimize the failure")
    replay.add_argument("--undo", action="store_true", help="Also verify the inverse edits")
    _add_engine_options(replay)
    return parser


def _engine(args: argparse.Namespace) -> tuple[EngineFactory, str]:
    """Engine factory and its default language."""
    if args.engine == "reference":
        if args.grammar:
            msg = "--grammar only applies to --engine tree-sitter"
            raise UsageError(msg)
        return ReferenceEngine, ARITHMETIC
    if not args.grammar:
        msg = "--engine tree-sitter needs at least one --grammar NAME=MODULE"
        raise UsageError(msg)
    try:
        grammars = dict(parse_grammar_option(option) for option in args.grammar)
    except ValueError as e:
        raise UsageError(str(e)) from e
    return (lambda: TreeSitterEngine(grammars)), next(iter(grammars))


def _configure_logging(args: argparse.Namespace) -> None:
    if args.quiet:
        level = logging.ERROR
    elif args.verbose >= 2:
        level = logging.DEBUG
    elif args.verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr
    )


def _run_corpus(args: argparse.Namespace, formatter: ReportFormatter) -> int:
    factory, default_language = _engine(args)
    result = run_corpus(
        args.paths,
        args.language or None,
        engine=factory(),
        default_language=args.default_language or (None if args.language else default_language),
        timeout=args.timeout,
    )
    if result.failures:
        print(formatter.format_all(result.failures))
        print()
    summary = formatter.format_summary(
        passed=result.passed, failed=result.failed, skipped=result.skipped
    )
    print(summary)
    return EXIT_OK if result.ok else EXIT_FAILURES


def _fuzz_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {
        "policy": EditPolicy(
            encoding=EncodingMode(args.encoding),
            alphabet=Alphabet.named(args.alphabet),
        ),
        "continue_on_failure": args.continue_on_failure,
        "minimize_failures": args.minimize,
        "verify_undo": args.undo,
    }
    if args.example is not None:
        overrides["entry_filter"] = args.example
    if args.language:
        overrides["languages"] = tuple(args.language)
    if args.edits is not None:
        overrides["edit_count"] = args.edits
    if args.timeout is not None:
        overrides["per_edit_timeout"] = args.timeout
    if args.jobs is not None:
        overrides["parallelism"] = args.jobs
    return overrides


def _run_fuzz(args: argparse.Namespace, formatter: ReportFormatter) -> int:
    factory, default_language = _engine(args)
    overrides = _fuzz_overrides(args)
    overrides["default_language"] = args.default_language or (
        None if args.language else default_language
    )
    try:
        config = FuzzConfig.from_env(**overrides)
        if args.seed is not None or args.iterations is not None:
            first = args.seed if args.seed is not None else config.seeds[0]
            count = args.iterations if args.iterations is not None else len(config.seeds)
            config = replace(config, seeds=tuple(range(first, first + count)))
    except ValueError as e:
        raise UsageError(str(e)) from e

    result = run_fuzz(args.paths, engine_factory=factory, config=config)
    for error in result.load_errors:
        print(f"error[malformed-corpus]: {error}")
    if result.reports:
        print(formatter.format_all(result.reports))
        print()
    failed = result.failed + len(result.load_errors)
    print(formatter.format_summary(passed=result.passed, failed=failed))
    stats = result.stats()
    print(
        f"parses: {stats['parses']}, mean {stats['parse_mean_ms']} ms, "
        f"p95 {stats['parse_p95_ms']} ms, max {stats['parse_max_ms']} ms, "
        f"peak rss {stats['peak_rss_mb']} MB"
    )
    if args.json is not None:
        payload = {
            "stats": stats,
            "reports": [report.to_dict() for report in result.reports],
            "load_errors": [str(error) for error in result.load_errors],
        }
        args.json.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        logger.info("Wrote %d report(s) to %s", len(result.reports), args.json)
    return EXIT_OK if result.ok else EXIT_FAILURES


def _load_trial(path: Path) -> FuzzTrial:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot read descriptor {path}: {e}"
        raise UsageError(msg) from e
    if isinstance(data, dict) and isinstance(data.get("trial"), dict):
        data = data["trial"]
    try:
        return FuzzTrial.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        msg = f"Invalid descriptor {path}: {e}"
        raise UsageError(msg) from e


def _run_replay(args: argparse.Namespace, formatter: ReportFormatter) -> int:
    factory, _ = _engine(args)
    trial = _load_trial(args.descriptor)
    if args.minimize:
        minimized = minimize(trial, engine=factory(), verify_undo=args.undo)
        if not minimized.reproduced or minimized.report is None:
            print(f"ok: failure did not reproduce ({trial.describe()})")
            return EXIT_OK
        print(formatter.format(minimized.report))
        print()
        print(
            f"minimized from {trial.edit_count} to {minimized.edit_count} edits "
            f"in {minimized.attempts} replays"
        )
        return EXIT_FAILURES

    result = IncrementalVerifier(factory(), verify_undo=args.undo).run(trial)
    if result.report is None:
        print(f"ok: {trial.describe()} passed {result.edits_applied} edits")
        return EXIT_OK
    print(formatter.format(result.report))
    return EXIT_FAILURES


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the exit status."""
    args = build_parser().parse_args(argv)
    _configure_logging(args)
    formatter = ReportFormatter(OutputFormat(args.format))
    try:
        match args.command:
            case "corpus":
                return _run_corpus(args, formatter)
            case "fuzz":
                return _run_fuzz(args, formatter)
            case "replay":
                return _run_replay(args, formatter)
    except UsageError as e:
        print(f"parsecheck: error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except ParseCheckError as e:
        print(f"parsecheck: error: {e}", file=sys.stderr)
        return EXIT_FAILURES
    msg = f"Unknown command {args.command!r}"
    raise AssertionError(msg)
