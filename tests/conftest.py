"""Pytest configuration for test environment setup.

- Forces ``DISABLE_FILE_LOGS=1`` to avoid writing log files during tests.
- Ensures the project root is available on ``sys.path`` for imports.
- Clears pipeline environment variables so a developer's ``.env`` or
  shell cannot change test outcomes.
- Provides small council area datasets shared by the pipeline tests.
"""

import os
import signal
import sys

os.environ.setdefault("DISABLE_FILE_LOGS", "1")  # Avoid creating log files during tests
from pathlib import Path

import pandas as pd
import pytest

# Ensure project root is on sys.path
ROOT = Path(__file__).resolve().parents[1]
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from src.config import AREA_COLUMN, NATIONAL_AREA_NAME  # noqa: E402

_PIPELINE_ENV_VARS = ("N_WORKERS", "WORKER_KIND", "STRICT_SCHEMA_GATE", "CONTENT_LENGTH")

_TEST_TIMEOUT = int(os.environ.get("PYTEST_TEST_TIMEOUT", "30"))


def _timeout_handler(signum, frame):
    """Test Timeout handler."""
    raise TimeoutError(f"Test exceeded {_TEST_TIMEOUT} seconds timeout")


def pytest_runtest_setup(item):
    """Arm a per-test alarm where the platform supports it."""
    if hasattr(signal, "SIGALRM"):
        signal.signal(signal.SIGALRM, _timeout_handler)
        signal.alarm(_TEST_TIMEOUT)


def pytest_runtest_teardown(item, nextitem):
    """Disarm the per-test alarm."""
    if hasattr(signal, "SIGALRM"):
        signal.alarm(0)


@pytest.fixture(autouse=True)
def _clean_pipeline_env(monkeypatch):
    """Remove pipeline tunables from the environment for every test."""
    for name in _PIPELINE_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # PipelineSettings loads <PROJECT_ROOT>/.env; point it somewhere empty.
    import src.config as cfg

    monkeypatch.setattr(cfg, "PROJECT_ROOT", ROOT / "tests" / "_no_env_here")


def make_sheet(areas, **columns):
    """Build one sheet with an area column, a national row and value columns.

    Each keyword maps a column name to a callable ``index -> value``.
    """
    names = [*areas, NATIONAL_AREA_NAME]
    data = {AREA_COLUMN: names}
    for column, value_for in columns.items():
        data[column] = [value_for(i) for i in range(len(names))]
    return pd.DataFrame(data)


@pytest.fixture
def sheet_factory():
    """Expose :func:`make_sheet` to test modules."""
    return make_sheet


@pytest.fixture
def small_areas():
    """Three council areas used by the end-to-end tests."""
    return ("Angus", "Fife", "Moray")


@pytest.fixture
def small_dataset(small_areas):
    """A conforming two-sheet dataset with one pending update."""
    population = make_sheet(
        small_areas,
        **{"Total Population": lambda i: 1000 * (i + 1), "Median Age": lambda i: 40 + i},
    )
    health = make_sheet(small_areas, **{"Life Expectancy": lambda i: 78.5 + i})
    patched_health = health.copy()
    patched_health.loc[0, "Life Expectancy"] = 90.0
    return {
        "Population": population,
        "Health": health,
        "updates": {"Health": patched_health},
    }
