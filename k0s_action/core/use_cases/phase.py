"""
Phase coordinator — pairs the main and post invocations of one job.

The coordinator either has a ``PhaseStore`` (with-reversal mode) or has
``None`` (no-reversal mode). Setup, install and readiness code is the
same in both; only the post phase changes:

    main  → run setup; with a store, record SetupDone before the first
            host mutation
    post  → with a store and SetupDone recorded, run cleanup and record
            Reversed; otherwise do nothing
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Literal

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.config.loader import ActionInputs
from k0s_action.core.models.phase import PhaseMarker, PhaseState
from k0s_action.core.persistence.phase_store import PhaseStore
from k0s_action.core.services import runner_io
from k0s_action.core.services.cleanup import CleanupReport, reverse_installation
from k0s_action.core.use_cases.setup import SetupResult, run_setup

logger = logging.getLogger(__name__)

Phase = Literal["main", "post"]


@dataclass
class DispatchResult:
    phase: Phase
    setup: SetupResult | None = None
    cleanup: CleanupReport | None = None


class PhaseCoordinator:
    """Routes an invocation to setup or cleanup via the phase marker."""

    def __init__(self, runner: CommandRunner, store: PhaseStore | None):
        self.runner = runner
        self.store = store

    @property
    def supports_reversal(self) -> bool:
        return self.store is not None

    @staticmethod
    def _mark_setup_done(store: PhaseStore) -> None:
        # A main invocation always opens a new pairing.
        store.save(PhaseMarker().advance(PhaseState.SETUP_DONE))
        logger.debug("Phase marker: %s", PhaseState.SETUP_DONE.value)

    def run_main(self, inputs: ActionInputs, **setup_kwargs: Any) -> SetupResult:
        """Run the setup pipeline (errors propagate)."""
        on_commit = None
        if self.store is not None:
            on_commit = partial(self._mark_setup_done, self.store)
        return run_setup(inputs, self.runner, on_commit=on_commit, **setup_kwargs)

    def run_post(self, marker: PhaseMarker | None = None) -> CleanupReport | None:
        """Run cleanup if the main invocation left a SetupDone marker.

        Never raises; returns None when nothing was owed. ``marker`` lets
        a caller that already read the store pass it in.
        """
        if self.store is None:
            logger.info("Cleanup disabled, nothing to restore")
            return None

        if marker is None:
            marker = self.store.load()
        if not marker.reversal_owed:
            logger.info("No setup recorded (phase: %s), nothing to restore", marker.phase.value)
            return None

        with runner_io.group("Cleaning up and restoring system state"):
            logger.info("Starting cleanup...")
            report = reverse_installation(self.runner)

            try:
                self.store.save(marker.advance(PhaseState.REVERSED))
            except Exception as e:
                logger.warning("Could not record cleanup in phase marker: %s", e)

            if report.ok:
                logger.info("✓ System state restored")
            else:
                runner_io.warning(
                    "Cleanup encountered errors: "
                    + "; ".join(str(w) for w in report.warnings)
                )
        return report

    @staticmethod
    def next_phase(marker: PhaseMarker | None) -> Phase:
        """Which phase an invocation without an explicit phase should run."""
        if marker is not None and marker.phase is PhaseState.SETUP_DONE:
            return "post"
        # Nothing recorded, or the previous pairing already finished.
        return "main"

    def dispatch(self, inputs: ActionInputs, **setup_kwargs: Any) -> DispatchResult:
        """Run whichever phase the marker calls for. The marker is read once."""
        marker = self.store.load() if self.store is not None else None
        phase = self.next_phase(marker)
        logger.debug("Dispatching to %s phase", phase)
        if phase == "main":
            return DispatchResult(phase="main", setup=self.run_main(inputs, **setup_kwargs))
        return DispatchResult(phase="post", cleanup=self.run_post(marker))
