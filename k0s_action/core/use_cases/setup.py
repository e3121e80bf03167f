"""
Setup use case — the main-phase pipeline.

    probe arch → resolve version → [commit] → install → launch → readiness → DNS

``on_commit`` is called right before the first host mutation; the phase
coordinator uses it to record that cleanup is owed, so a setup that dies
halfway still gets reversed by the post phase.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, MutableMapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.config.loader import ActionInputs
from k0s_action.core.errors import ReadinessError, ReadinessTimeout
from k0s_action.core.models.cluster import (
    ClusterHandle,
    DiagnosticSection,
    Fatal,
    ReadinessVerdict,
    TimedOut,
)
from k0s_action.core.models.platform import InstallRequest, ResolvedRelease
from k0s_action.core.services import runner_io
from k0s_action.core.services.dns_check import verify_dns
from k0s_action.core.services.installer import install_binary
from k0s_action.core.services.k0s_common import KUBECONFIG_PATH
from k0s_action.core.services.launcher import launch_cluster
from k0s_action.core.services.platform_probe import detect_architecture
from k0s_action.core.services.readiness import check_readiness
from k0s_action.core.services.release import resolve_release

logger = logging.getLogger(__name__)


@dataclass
class SetupResult:
    """Everything the main phase produced."""

    release: ResolvedRelease | None = None
    k0s_version: str = ""
    handle: ClusterHandle | None = None
    verdict: ReadinessVerdict | None = None
    dns_verified: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.release.tag if self.release else None,
            "architecture": self.release.architecture.value if self.release else None,
            "download_url": self.release.download_url if self.release else None,
            "k0s_version": self.k0s_version,
            "kubeconfig": self.handle.credentials_path if self.handle else None,
            "readiness": self.verdict.kind if self.verdict else "skipped",
            "dns_verified": self.dns_verified,
        }


def emit_diagnostics(sections: tuple[DiagnosticSection, ...] | list[DiagnosticSection]) -> None:
    """Print the diagnostic bundle to stdout, grouped."""
    with runner_io.group("Diagnostic Information"):
        for section in sections:
            click.echo(f"=== {section.title} ===")
            click.echo(section.output or "(no output)")


def raise_for_verdict(verdict: ReadinessVerdict) -> None:
    """Turn a failing verdict into the matching error (after printing diagnostics)."""
    if isinstance(verdict, TimedOut):
        emit_diagnostics(verdict.diagnostics)
        raise ReadinessTimeout(
            verdict.last_observed_stage, verdict.elapsed, verdict.diagnostics, cycles=verdict.cycles,
        )
    if isinstance(verdict, Fatal):
        raise ReadinessError(verdict.reason)


def run_setup(
    inputs: ActionInputs,
    runner: CommandRunner,
    *,
    machine: str | None = None,
    fetch: Callable[[str], Any] | None = None,
    download: Callable[[str, Path], str] | None = None,
    on_commit: Callable[[], None] | None = None,
    kubeconfig_path: Path = KUBECONFIG_PATH,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    environ: MutableMapping[str, str] | None = None,
) -> SetupResult:
    """Install k0s, start a single-node cluster, and wait for it.

    Raises:
        SetupError: Any fatal pipeline failure (see ``core.errors``).
    """
    result = SetupResult()

    with runner_io.group("Installing k0s"):
        logger.info("Starting k0s setup...")
        logger.info(
            "Configuration: version=%s, wait-for-ready=%s, timeout=%ss, dns-readiness=%s",
            inputs.version,
            str(inputs.wait_for_ready).lower(),
            inputs.timeout,
            str(inputs.dns_readiness).lower(),
        )

        request = InstallRequest(
            requested_version=inputs.version,
            architecture=detect_architecture(machine),
        )
        result.release = resolve_release(request, fetch=fetch)

        if on_commit is not None:
            on_commit()

        result.k0s_version = install_binary(result.release, runner, download=download)

    with runner_io.group("Starting k0s cluster"):
        result.handle = launch_cluster(
            runner,
            settle_seconds=inputs.settle_seconds,
            kubeconfig_path=kubeconfig_path,
            sleep=sleep,
            environ=environ,
        )

    config = inputs.to_readiness_config()

    if inputs.wait_for_ready:
        with runner_io.group("Waiting for cluster ready"):
            result.verdict = check_readiness(
                runner, result.handle, config, clock=clock, sleep=sleep
            )
        raise_for_verdict(result.verdict)

        if config.deep_check_enabled:
            with runner_io.group("Verifying cluster DNS"):
                verify_dns(runner, result.handle, config, clock=clock, sleep=sleep)
            result.dns_verified = True
    elif config.deep_check_enabled:
        logger.warning("dns-readiness requires wait-for-ready; skipping DNS check")

    logger.info("✓ k0s setup completed successfully!")
    return result
