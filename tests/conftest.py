"""
Shared test fixtures and configuration.
"""

import os
from pathlib import Path

import pytest

from k0s_action.adapters.mock import MockRunner

# Runner variables that would otherwise leak in from a CI host.
_RUNNER_VARS = (
    "GITHUB_ACTIONS",
    "GITHUB_OUTPUT",
    "GITHUB_ENV",
    "GITHUB_STATE",
    "GITHUB_TOKEN",
    "RUNNER_TEMP",
    "RUNNER_DEBUG",
    "KUBECONFIG",
    "K0S_LOG_LEVEL",
    "K0S_LOG_FILE",
    "K0S_LOG_FILE_LEVEL",
)


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def clean_runner_env(monkeypatch):
    """Strip runner/input variables so tests never touch the real host's."""
    for name in _RUNNER_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith(("INPUT_", "STATE_")):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner() -> MockRunner:
    """A mock runner where k0s and kubectl are on PATH."""
    return MockRunner()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def runner_files(tmp_path: Path) -> dict[str, str]:
    """An environ mapping with runner command files under tmp_path."""
    files = {}
    for name in ("GITHUB_OUTPUT", "GITHUB_ENV", "GITHUB_STATE"):
        path = tmp_path / name.lower()
        path.write_text("")
        files[name] = str(path)
    return files
