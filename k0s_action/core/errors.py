"""
Error taxonomy for the setup pipeline.

Every ``SetupError`` is fatal for the main phase: the CLI prints it as
a runner error annotation and exits non-zero. Cleanup never raises;
its problems are collected as ``CleanupWarning`` records instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from k0s_action.core.models.cluster import DiagnosticSection, ReadinessLayer


class SetupError(Exception):
    """Base class for fatal setup-pipeline failures."""


class UnsupportedPlatform(SetupError):
    """The host CPU architecture has no k0s binary."""

    def __init__(self, machine: str):
        super().__init__(f"Unsupported architecture: {machine}")
        self.machine = machine


class VersionResolutionError(SetupError):
    """'latest' could not be resolved to a concrete release tag."""


class InstallError(SetupError):
    """Downloading or placing the k0s binary failed."""


class InstallVerificationError(InstallError):
    """The installed binary did not execute cleanly."""


class LaunchError(SetupError):
    """A cluster launch step failed."""

    def __init__(self, step: str, message: str):
        super().__init__(f"{step}: {message}")
        self.step = step


class ReadinessError(SetupError):
    """The cluster will never become ready (e.g. no kubectl to ask with)."""


class ReadinessTimeout(ReadinessError):
    """The cluster did not become ready within the configured timeout."""

    def __init__(
        self,
        layer: ReadinessLayer | None,
        elapsed: float,
        diagnostics: tuple[DiagnosticSection, ...] = (),
        cycles: int = 0,
    ):
        stage = layer.value if layer is not None else "unknown"
        super().__init__(
            f"Timeout waiting for cluster to be ready "
            f"(last failed layer: {stage}, elapsed {elapsed:.0f}s)"
        )
        self.layer = layer
        self.elapsed = elapsed
        self.diagnostics = diagnostics
        self.cycles = cycles


class DNSVerificationError(SetupError):
    """In-cluster DNS did not resolve the probe name."""


@dataclass(frozen=True)
class CleanupWarning:
    """A non-fatal cleanup step failure."""

    step: str
    message: str

    def __str__(self) -> str:
        return f"{self.step}: {self.message}"
