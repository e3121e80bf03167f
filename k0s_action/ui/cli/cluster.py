"""
CLI commands for working with an existing cluster.

Thin wrappers over the readiness, DNS and cleanup services, for
re-checking a cluster or restoring a host by hand.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import click

from k0s_action.core.errors import SetupError
from k0s_action.ui.cli.helpers import fail, get_runner


@click.command("check")
@click.option(
    "--kubeconfig",
    type=click.Path(dir_okay=False),
    default=None,
    help="Admin kubeconfig (default: $KUBECONFIG or ~/.kube/config).",
)
@click.option("--timeout", type=int, default=300, show_default=True, help="Seconds to wait.")
@click.option("--poll-interval", type=int, default=5, show_default=True)
@click.option("--dns-readiness/--no-dns-readiness", default=False, help="Also verify DNS.")
@click.option("--dns-timeout", type=int, default=120, show_default=True)
@click.pass_context
def check(
    ctx: click.Context,
    kubeconfig: str | None,
    timeout: int,
    poll_interval: int,
    dns_readiness: bool,
    dns_timeout: int,
) -> None:
    """Wait for an already-launched cluster to become ready."""
    from pydantic import ValidationError

    from k0s_action.core.models.cluster import ClusterHandle, ReadinessConfig
    from k0s_action.core.services.dns_check import verify_dns
    from k0s_action.core.services.readiness import check_readiness
    from k0s_action.core.use_cases.setup import raise_for_verdict

    try:
        config = ReadinessConfig(
            timeout_seconds=timeout,
            poll_interval_seconds=poll_interval,
            deep_check_enabled=dns_readiness,
            dns_timeout_seconds=dns_timeout,
        )
    except ValidationError as e:
        fail(f"Invalid readiness options: {e}")
        return

    path = kubeconfig or os.environ.get("KUBECONFIG") or str(Path("~/.kube/config").expanduser())
    handle = ClusterHandle(credentials_path=path)
    runner = get_runner(ctx)

    try:
        verdict = check_readiness(runner, handle, config)
        raise_for_verdict(verdict)
        if config.deep_check_enabled:
            verify_dns(runner, handle, config)
    except SetupError as e:
        fail(str(e))
        return

    click.secho("✓ Cluster is ready", fg="green")


@click.command("cleanup")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def cleanup(ctx: click.Context, as_json: bool) -> None:
    """Stop and remove k0s from this host now (ignores the phase marker)."""
    from k0s_action.core.services import runner_io
    from k0s_action.core.services.cleanup import reverse_installation

    with runner_io.group("Cleaning up and restoring system state"):
        report = reverse_installation(get_runner(ctx))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
        return

    if report.skipped:
        click.echo("Nothing to clean up")
    elif report.ok:
        click.secho("✓ System state restored", fg="green")
    else:
        click.secho(f"⚠️  Cleanup finished with {len(report.warnings)} warning(s):", fg="yellow")
        for w in report.warnings:
            click.echo(f"   • {w}")


@click.command("detect")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def detect(ctx: click.Context, as_json: bool) -> None:
    """Show host architecture, requested version and install state."""
    from k0s_action.core.config.loader import ConfigError, load_inputs
    from k0s_action.core.errors import UnsupportedPlatform
    from k0s_action.core.persistence.phase_store import select_phase_store
    from k0s_action.core.services.k0s_common import K0S_BINARY, k0s_argv, k0s_installed
    from k0s_action.core.services.platform_probe import detect_architecture

    try:
        inputs = load_inputs(config_path=ctx.obj.get("config_path"))
    except ConfigError as e:
        fail(str(e))
        return

    runner = get_runner(ctx)

    try:
        arch: str | None = detect_architecture().value
        arch_error = ""
    except UnsupportedPlatform as e:
        arch, arch_error = None, str(e)

    installed = k0s_installed(runner)
    installed_version = ""
    if installed:
        receipt = runner.run("k0s-version", k0s_argv(runner), "version", timeout=30)
        installed_version = receipt.output.strip() if receipt.ok else ""

    store = select_phase_store(cleanup_enabled=inputs.cleanup, state_file=ctx.obj.get("state_file"))
    phase = store.load().phase.value if store is not None else None

    result = {
        "architecture": arch,
        "architecture_error": arch_error or None,
        "requested_version": inputs.version,
        "installed": installed,
        "installed_version": installed_version or None,
        "binary_path": str(K0S_BINARY),
        "cleanup_enabled": inputs.cleanup,
        "phase": phase,
        "inputs": inputs.model_dump(),
    }

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    click.secho("☸️  k0s host status:", fg="cyan", bold=True)
    if arch:
        click.echo(f"   🖥️  Architecture: {arch}")
    else:
        click.secho(f"   🖥️  {arch_error}", fg="red")
    click.echo(f"   📦 Requested version: {inputs.version}")
    if installed:
        click.secho(f"   🔧 k0s: {installed_version or 'installed'}", fg="green")
    else:
        click.echo("   🔧 k0s: not installed")
    click.echo(f"   🧹 Cleanup: {'enabled' if inputs.cleanup else 'disabled'}"
               + (f" (phase: {phase})" if phase else ""))
