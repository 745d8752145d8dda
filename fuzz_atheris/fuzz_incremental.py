#!/usr/bin/env python3
"""Incremental Reparse Fuzzer (Atheris).

Targets: parsecheck.fuzz.verifier.IncrementalVerifier over ReferenceEngine

Coverage-guided counterpart of ``parsecheck fuzz``: libFuzzer chooses the
starting buffer, the edit seed, the edit count and the edit policy, and
every trial is verified edit by edit and then undone. A structural
difference between incremental and fresh parses is a finding; each one is
written as a JSON trial descriptor that ``parsecheck replay`` accepts.

Engine errors (nesting limit) are expected outcomes, not findings.

Requires Python 3.13+ (uses PEP 695 type aliases).
"""

from __future__ import annotations

import argparse
import atexit
import json
import pathlib
import sys
import time
from dataclasses import dataclass, field
from typing import Any

# --- Dependency Checks ---
_psutil_mod: Any = None
_atheris_mod: Any = None

try:  # noqa: SIM105 - need module ref for the dependency check
    import psutil as _psutil_mod  # type: ignore[no-redef]
except ImportError:
    pass

try:  # noqa: SIM105 - need module ref for the dependency check
    import atheris as _atheris_mod  # type: ignore[no-redef]
except ImportError:
    pass

_missing = [
    name
    for name, module in (("psutil", _psutil_mod), ("atheris", _atheris_mod))
    if module is None
]
if _missing:
    print("-" * 80, file=sys.stderr)
    print("ERROR: Missing required dependencies for fuzzing:", file=sys.stderr)
    for _name in _missing:
        print(f"  - {_name}", file=sys.stderr)
    print("", file=sys.stderr)
    print("Install with: pip install -e '.[fuzz]'", file=sys.stderr)
    print("-" * 80, file=sys.stderr)
    sys.exit(1)

import atheris  # noqa: E402
import psutil  # noqa: E402

with atheris.instrument_imports(include=["parsecheck"]):
    from parsecheck.corpus.entry import CorpusEntry
    from parsecheck.engine.reference import ARITHMETIC, ReferenceEngine
    from parsecheck.enums import EncodingMode, MismatchKind
    from parsecheck.fuzz.edits import Alphabet, EditPolicy
    from parsecheck.fuzz.trial import FuzzTrial
    from parsecheck.fuzz.verifier import IncrementalVerifier

# --- PEP 695 Type Aliases ---
type FuzzStats = dict[str, int | str | float]

MAX_SOURCE_BYTES = 512
MAX_EDITS = 16
FINDINGS_DIR = pathlib.Path(".fuzz_atheris_corpus/incremental/findings")

_POLICIES: tuple[EditPolicy, ...] = (
    EditPolicy(alphabet=Alphabet.ARITHMETIC),
    EditPolicy(alphabet=Alphabet.ASCII),
    EditPolicy.insert_only(Alphabet.IDENTIFIER),
    EditPolicy(alphabet=Alphabet.RAW_BYTES),
    EditPolicy(encoding=EncodingMode.UTF8, alphabet=(b"a", b"+", "é".encode(), b"(")),
)


@dataclass
class IncrementalFuzzState:
    """Counters reported when the fuzzer exits."""

    iterations: int = 0
    findings: int = 0
    engine_errors: int = 0
    edits_applied: int = 0
    status: str = "incomplete"
    started: float = field(default_factory=time.perf_counter)
    initial_memory_mb: float = 0.0

    def stats(self) -> FuzzStats:
        rss_mb = psutil.Process().memory_info().rss / (1024 * 1024)
        elapsed = time.perf_counter() - self.started
        return {
            "status": self.status,
            "iterations": self.iterations,
            "findings": self.findings,
            "engine_errors": self.engine_errors,
            "edits_applied": self.edits_applied,
            "elapsed_s": round(elapsed, 1),
            "memory_growth_mb": round(rss_mb - self.initial_memory_mb, 1),
        }


_state = IncrementalFuzzState()
_engine = ReferenceEngine()
_verifier = IncrementalVerifier(_engine, verify_undo=True)


def _emit_final_report() -> None:
    print(f"[SUMMARY-JSON-BEGIN]{json.dumps(_state.stats(), sort_keys=True)}[SUMMARY-JSON-END]")


atexit.register(_emit_final_report)


def _write_finding(trial: FuzzTrial, detail: str) -> pathlib.Path:
    FINDINGS_DIR.mkdir(parents=True, exist_ok=True)
    path = FINDINGS_DIR / f"finding_{_state.findings:04d}.json"
    payload = {"detail": detail, "trial": trial.to_dict()}
    path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    return path


def test_one_input(data: bytes) -> None:
    """Atheris entry point: one verified edit sequence."""
    _state.iterations += 1
    fdp = atheris.FuzzedDataProvider(data)
    seed = fdp.ConsumeIntInRange(0, 2**32 - 1)
    edit_count = fdp.ConsumeIntInRange(0, MAX_EDITS)
    policy = _POLICIES[fdp.ConsumeIntInRange(0, len(_POLICIES) - 1)]
    source = fdp.ConsumeBytes(MAX_SOURCE_BYTES)
    if policy.encoding is EncodingMode.UTF8:
        source = source.decode("utf-8", errors="ignore").encode()

    entry = CorpusEntry("atheris", source, "(program)")
    trial = FuzzTrial(seed, ARITHMETIC, entry, edit_count, per_edit_timeout=None, policy=policy)
    result = _verifier.run(trial)
    _state.edits_applied += result.edits_applied
    if result.report is None:
        return
    if result.report.kind is MismatchKind.ENGINE_ERROR:
        _state.engine_errors += 1
        return

    _state.findings += 1
    path = _write_finding(trial, result.report.detail)
    msg = f"{result.report.kind} at {result.report.location}: {result.report.detail} ({path})"
    raise AssertionError(msg)


def main() -> None:
    """Run the incremental fuzzer with CLI support."""
    global FINDINGS_DIR  # noqa: PLW0603
    parser = argparse.ArgumentParser(
        description="Incremental reparse fuzzer using Atheris/libFuzzer",
        epilog="All unrecognized arguments are passed to libFuzzer.",
    )
    parser.add_argument(
        "--findings-dir",
        type=pathlib.Path,
        default=FINDINGS_DIR,
        help=f"Where failing trial descriptors are written (default: {FINDINGS_DIR})",
    )
    args, remaining = parser.parse_known_args()
    FINDINGS_DIR = args.findings_dir

    if not any(arg.startswith("-rss_limit_mb") for arg in remaining):
        remaining.append("-rss_limit_mb=4096")
    sys.argv = [sys.argv[0], *remaining]

    _state.initial_memory_mb = psutil.Process().memory_info().rss / (1024 * 1024)
    print("=" * 80)
    print("Incremental Reparse Fuzzer (Atheris)")
    print("Target:     parsecheck.fuzz.verifier.IncrementalVerifier (ReferenceEngine)")
    print(f"Policies:   {len(_POLICIES)}")
    print(f"Findings:   {FINDINGS_DIR}")
    print("=" * 80)

    atheris.Setup(sys.argv, test_one_input)
    try:
        atheris.Fuzz()
    finally:
        _state.status = "complete" if _state.findings == 0 else "findings"


if __name__ == "__main__":
    main()
