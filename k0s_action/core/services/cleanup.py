"""
Cleanup engine — undo every host change the setup phase may have made.

Runs with no memory of what setup actually did, so it rediscovers:
if no k0s binary is found there is nothing to undo and no command runs.
Otherwise every step in ``REVERSAL_STEPS`` is attempted, in order, even
when an earlier one failed. Failures become ``CleanupWarning``s; this
module never raises into the caller.

    setup mutation                       reversal step
    ──────────────────────────────────   ─────────────────────
    k0s start                            k0s stop
    k0s install controller (+ state)     k0s reset
    /usr/local/bin/k0s                   rm -f the binary
    CNI plugin dirs                      rm -rf /etc/cni, /opt/cni
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.errors import CleanupWarning
from k0s_action.core.services.k0s_common import (
    CNI_DIRS,
    K0S_BINARY,
    k0s_argv,
    k0s_installed,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReversalStep:
    """One independent cleanup command."""

    id: str
    description: str
    argv: tuple[str, ...]
    timeout: int = 120


@dataclass
class CleanupReport:
    """What the cleanup engine did."""

    skipped: bool = False
    attempted: list[str] = field(default_factory=list)
    warnings: list[CleanupWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings

    def to_dict(self) -> dict[str, Any]:
        return {
            "skipped": self.skipped,
            "attempted": list(self.attempted),
            "warnings": [{"step": w.step, "message": w.message} for w in self.warnings],
            "ok": self.ok,
        }


def reversal_steps(
    k0s: str,
    binary: Path = K0S_BINARY,
    cni_dirs: tuple[Path, ...] = CNI_DIRS,
) -> list[ReversalStep]:
    """The ordered reversal plan."""
    steps = [
        ReversalStep("k0s-stop", "Stopping k0s service", (k0s, "stop")),
        ReversalStep("k0s-reset", "Resetting k0s", (k0s, "reset"), timeout=300),
        ReversalStep("remove-binary", "Removing k0s binary", ("rm", "-f", str(binary))),
    ]
    for path in cni_dirs:
        steps.append(ReversalStep(
            f"remove-{path.as_posix().strip('/').replace('/', '-')}",
            f"Removing {path}",
            ("rm", "-rf", str(path)),
        ))
    return steps


def reverse_installation(
    runner: CommandRunner,
    *,
    binary: Path = K0S_BINARY,
    cni_dirs: tuple[Path, ...] = CNI_DIRS,
) -> CleanupReport:
    """Stop, reset and remove k0s. Never raises."""
    report = CleanupReport()
    logger.info("Stopping k0s cluster...")

    if not k0s_installed(runner, binary):
        logger.info("  k0s not installed, skipping cleanup")
        report.skipped = True
        return report

    for step in reversal_steps(k0s_argv(runner, binary), binary, cni_dirs):
        logger.info("  %s...", step.description)
        report.attempted.append(step.id)
        try:
            receipt = runner.run(step.id, *step.argv, sudo=True, timeout=step.timeout)
        except Exception as e:
            report.warnings.append(CleanupWarning(step.id, f"unexpected error: {e}"))
            continue
        if not receipt.ok:
            report.warnings.append(CleanupWarning(step.id, receipt.reason))

    for w in report.warnings:
        logger.warning("  cleanup step %s", w)

    if report.ok:
        logger.info("  k0s cluster stopped and reset")
    else:
        logger.warning("  k0s cleanup finished with %d warning(s)", len(report.warnings))
    return report
