"""
Tests for phase marker persistence and store selection.
"""

import json
from pathlib import Path

import pytest

from k0s_action.core.models.phase import PhaseMarker, PhaseState
from k0s_action.core.persistence.phase_store import (
    DEFAULT_STATE_FILE,
    STATE_KEY,
    FilePhaseStore,
    RunnerStatePhaseStore,
    select_phase_store,
)


def _setup_done() -> PhaseMarker:
    return PhaseMarker().advance(PhaseState.SETUP_DONE)


class TestFilePhaseStore:
    def test_save_and_load(self, tmp_path: Path):
        store = FilePhaseStore(tmp_path / "phase.json")
        store.save(_setup_done())
        assert store.load().phase is PhaseState.SETUP_DONE

    def test_load_missing_returns_fresh(self, tmp_path: Path):
        marker = FilePhaseStore(tmp_path / "nope.json").load()
        assert marker.phase is PhaseState.NOT_STARTED

    def test_load_corrupt_returns_fresh(self, tmp_path: Path):
        path = tmp_path / "phase.json"
        path.write_text("{not json")
        assert FilePhaseStore(path).load().phase is PhaseState.NOT_STARTED

    def test_load_unknown_phase_returns_fresh(self, tmp_path: Path):
        path = tmp_path / "phase.json"
        path.write_text(json.dumps({"phase": "HalfDone"}))
        assert FilePhaseStore(path).load().phase is PhaseState.NOT_STARTED

    def test_save_creates_directories(self, tmp_path: Path):
        path = tmp_path / "a" / "b" / "phase.json"
        FilePhaseStore(path).save(_setup_done())
        assert path.is_file()

    def test_save_is_valid_json(self, tmp_path: Path):
        path = tmp_path / "phase.json"
        FilePhaseStore(path).save(_setup_done())
        data = json.loads(path.read_text())
        assert data["phase"] == "SetupDone"
        assert data["schema_version"] == 1

    def test_no_temp_files_left(self, tmp_path: Path):
        path = tmp_path / "phase.json"
        store = FilePhaseStore(path)
        store.save(_setup_done())
        store.save(_setup_done().advance(PhaseState.REVERSED))
        assert [p.name for p in tmp_path.iterdir()] == ["phase.json"]
        assert store.load().phase is PhaseState.REVERSED


class TestRunnerStatePhaseStore:
    def test_save_writes_state_file(self, runner_files):
        RunnerStatePhaseStore(runner_files).save(_setup_done())
        line = open(runner_files["GITHUB_STATE"]).read().strip()
        key, _, value = line.partition("=")
        assert key == STATE_KEY
        assert json.loads(value)["phase"] == "SetupDone"

    def test_load_reads_state_variable(self):
        payload = json.dumps(_setup_done().model_dump(mode="json"))
        store = RunnerStatePhaseStore({f"STATE_{STATE_KEY}": payload})
        assert store.load().phase is PhaseState.SETUP_DONE

    def test_load_absent(self):
        assert RunnerStatePhaseStore({}).load().phase is PhaseState.NOT_STARTED

    def test_load_corrupt(self):
        store = RunnerStatePhaseStore({f"STATE_{STATE_KEY}": "garbage"})
        assert store.load().phase is PhaseState.NOT_STARTED

    def test_save_without_channel(self):
        with pytest.raises(RuntimeError, match="GITHUB_STATE"):
            RunnerStatePhaseStore({}).save(_setup_done())


class TestSelectPhaseStore:
    def test_cleanup_disabled(self, tmp_path: Path):
        """No-reversal mode has no store at all."""
        assert select_phase_store(
            cleanup_enabled=False, state_file=tmp_path / "x.json", environ={}
        ) is None

    def test_explicit_file_wins(self, tmp_path: Path, runner_files):
        store = select_phase_store(
            cleanup_enabled=True, state_file=tmp_path / "x.json", environ=runner_files
        )
        assert isinstance(store, FilePhaseStore)
        assert store.path == tmp_path / "x.json"

    def test_runner_state_channel(self, runner_files):
        store = select_phase_store(cleanup_enabled=True, environ=runner_files)
        assert isinstance(store, RunnerStatePhaseStore)

    def test_runner_temp(self, tmp_path: Path):
        store = select_phase_store(cleanup_enabled=True, environ={"RUNNER_TEMP": str(tmp_path)})
        assert isinstance(store, FilePhaseStore)
        assert store.path.parent == tmp_path

    def test_user_cache_fallback(self):
        store = select_phase_store(cleanup_enabled=True, environ={})
        assert isinstance(store, FilePhaseStore)
        assert store.path == DEFAULT_STATE_FILE.expanduser()
