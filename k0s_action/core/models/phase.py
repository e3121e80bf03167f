"""
PhaseMarker — the handoff between the main and post invocations.

The two invocations share no memory. Main records that setup has run;
post reads the record exactly once to decide whether reversal is owed.

    NotStarted ──(main)──▶ SetupDone ──(post)──▶ Reversed
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PhaseState(str, Enum):
    NOT_STARTED = "NotStarted"
    SETUP_DONE = "SetupDone"
    REVERSED = "Reversed"


_ALLOWED: dict[PhaseState, frozenset[PhaseState]] = {
    PhaseState.NOT_STARTED: frozenset({PhaseState.SETUP_DONE}),
    PhaseState.SETUP_DONE: frozenset({PhaseState.REVERSED}),
    PhaseState.REVERSED: frozenset(),
}


class PhaseMarker(BaseModel):
    """Serialized phase record. Never reset once written."""

    schema_version: int = 1
    phase: PhaseState = PhaseState.NOT_STARTED
    updated_at: str = Field(default_factory=_now_iso)

    @property
    def has_run_setup(self) -> bool:
        return self.phase is not PhaseState.NOT_STARTED

    @property
    def reversal_owed(self) -> bool:
        return self.phase is PhaseState.SETUP_DONE

    def advance(self, target: PhaseState) -> PhaseMarker:
        """Return a new marker in ``target`` state.

        Raises:
            ValueError: If the transition is not part of the workflow.
        """
        if target not in _ALLOWED[self.phase]:
            raise ValueError(f"Illegal phase transition {self.phase.value} → {target.value}")
        return PhaseMarker(phase=target)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()
