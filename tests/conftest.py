"""Shared pytest setup for parsecheck.

Hypothesis example counts are set here and nowhere else. Three profiles:
- dev (default): 200 examples per property
- ci: 50 derandomized examples, chosen when CI=true
- verbose: 100 examples with per-example output

HYPOTHESIS_PROFILE=<name> picks a profile explicitly.

Tests under tests/fuzz/ carry the ``fuzz`` marker and only run when the
marker is selected: pytest -m fuzz
"""

import os
from pathlib import Path

import pytest
from hypothesis import HealthCheck, Phase, Verbosity, settings

# =============================================================================
# HYPOTHESIS PROFILES
# =============================================================================

_PHASES = [Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink]

settings.register_profile(
    "dev",
    max_examples=200,
    phases=_PHASES,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "ci",
    max_examples=50,
    phases=_PHASES,
    derandomize=True,
    print_blob=True,
    suppress_health_check=[HealthCheck.too_slow],
)
settings.register_profile(
    "verbose",
    max_examples=100,
    phases=_PHASES,
    verbosity=Verbosity.verbose,
)


def _profile_name() -> str:
    """HYPOTHESIS_PROFILE wins, then CI=true selects ci, else dev."""
    requested = os.environ.get("HYPOTHESIS_PROFILE")
    if requested in ("dev", "ci", "verbose"):
        return requested
    return "ci" if os.environ.get("CI") == "true" else "dev"


settings.load_profile(_profile_name())


# =============================================================================
# SHARED FIXTURES
# =============================================================================

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def corpus_dir() -> Path:
    """Directory of passing arithmetic corpus fixtures."""
    return FIXTURES / "corpus"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep PARSECHECK_* variables of the calling shell out of tests."""
    for name in list(os.environ):
        if name.startswith("PARSECHECK_"):
            monkeypatch.delenv(name)


# =============================================================================
# FUZZ MARKER
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip ``fuzz`` tests unless the -m expression mentions fuzz."""
    if "fuzz" in str(config.getoption("-m", default="")):
        return
    skip = pytest.mark.skip(reason="intensive property test; run with pytest -m fuzz")
    for item in items:
        if item.get_closest_marker("fuzz") is not None:
            item.add_marker(skip)
