"""
Phase marker persistence — where the main invocation leaves its note
for the post invocation.

Two backends:

    RunnerStatePhaseStore   the runner's saved-state channel
                            (GITHUB_STATE → STATE_k0s_phase)
    FilePhaseStore          a JSON file, written atomically
                            (write to temp file, then rename)

The no-reversal mode has no store at all; callers receive ``None`` from
``select_phase_store`` and the post phase degrades to a no-op.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from pathlib import Path

from pydantic import ValidationError

from k0s_action.core.models.phase import PhaseMarker
from k0s_action.core.services import runner_io

logger = logging.getLogger(__name__)

STATE_KEY = "k0s_phase"
DEFAULT_STATE_FILE = Path("~/.cache/k0s-action/phase.json")
_STATE_FILE_NAME = "k0s-action-phase.json"


class PhaseStore(ABC):
    """Load/save the phase marker."""

    @abstractmethod
    def load(self) -> PhaseMarker:
        """Return the persisted marker, or a fresh NotStarted one."""

    @abstractmethod
    def save(self, marker: PhaseMarker) -> None:
        """Persist ``marker``."""


def _parse_marker(raw: str, source: str) -> PhaseMarker:
    try:
        return PhaseMarker.model_validate(json.loads(raw))
    except json.JSONDecodeError as e:
        logger.warning("Corrupt phase marker in %s: %s; treating as not started", source, e)
    except ValidationError as e:
        logger.warning("Invalid phase marker in %s: %s; treating as not started", source, e)
    return PhaseMarker()


class FilePhaseStore(PhaseStore):
    """Phase marker stored as a small JSON document on disk."""

    def __init__(self, path: Path):
        self.path = path.expanduser()

    def load(self) -> PhaseMarker:
        if not self.path.is_file():
            logger.debug("No phase marker at %s, not started", self.path)
            return PhaseMarker()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot read phase marker %s: %s; treating as not started", self.path, e)
            return PhaseMarker()
        return _parse_marker(raw, str(self.path))

    def save(self, marker: PhaseMarker) -> None:
        marker.touch()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(marker.model_dump(mode="json"), indent=2) + "\n"

        _fd, tmp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=".phase_",
            suffix=".tmp",
        )
        tmp = Path(tmp_path)
        try:
            with open(_fd, "w", encoding="utf-8") as fh:
                fh.write(content)
            tmp.replace(self.path)
            logger.debug("Phase marker saved to %s (%s)", self.path, marker.phase.value)
        except Exception:
            tmp.unlink(missing_ok=True)
            logger.error("Failed to save phase marker to %s", self.path)
            raise

    def __repr__(self) -> str:
        return f"<FilePhaseStore path={str(self.path)!r}>"


class RunnerStatePhaseStore(PhaseStore):
    """Phase marker carried by the runner between main and post."""

    def __init__(self, environ: MutableMapping[str, str] | None = None):
        self._environ = environ

    def load(self) -> PhaseMarker:
        raw = runner_io.get_state(STATE_KEY, self._environ)
        if not raw:
            return PhaseMarker()
        return _parse_marker(raw, f"STATE_{STATE_KEY}")

    def save(self, marker: PhaseMarker) -> None:
        marker.touch()
        payload = json.dumps(marker.model_dump(mode="json"))
        if not runner_io.save_state(STATE_KEY, payload, self._environ):
            raise RuntimeError("GITHUB_STATE is not set; cannot persist phase marker")

    def __repr__(self) -> str:
        return "<RunnerStatePhaseStore>"


def select_phase_store(
    *,
    cleanup_enabled: bool,
    state_file: Path | None = None,
    environ: MutableMapping[str, str] | None = None,
) -> PhaseStore | None:
    """Pick the store for this run.

    An explicit ``state_file`` wins; otherwise the runner state channel
    is used when present, then a file in the job's ``RUNNER_TEMP`` (wiped
    between jobs), then a file under the user cache. ``None`` selects the
    no-reversal mode.
    """
    if not cleanup_enabled:
        return None
    if state_file is not None:
        return FilePhaseStore(state_file)
    if runner_io.has_state_channel(environ):
        return RunnerStatePhaseStore(environ)
    env = os.environ if environ is None else environ
    runner_temp = env.get("RUNNER_TEMP", "")
    if runner_temp:
        return FilePhaseStore(Path(runner_temp) / _STATE_FILE_NAME)
    return FilePhaseStore(DEFAULT_STATE_FILE)
