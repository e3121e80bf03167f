"""
setup-k0s — CLI entrypoint.

Usage:
    python -m k0s_action.main --help
    python -m k0s_action.main main          # setup phase
    python -m k0s_action.main post          # cleanup phase
    python -m k0s_action.main run           # pick the phase from the marker

Inputs come from flags, the runner's INPUT_* variables, or a YAML file
given with --config (in that order of precedence).
"""

from __future__ import annotations

import functools
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from k0s_action import __version__
from k0s_action.core.config.loader import ActionInputs, ConfigError, load_inputs
from k0s_action.core.errors import SetupError
from k0s_action.core.observability.logging_config import resolve_level, setup_logging
from k0s_action.core.persistence.phase_store import select_phase_store
from k0s_action.core.services import runner_io
from k0s_action.core.use_cases.phase import PhaseCoordinator
from k0s_action.ui.cli.helpers import fail, get_runner

logger = logging.getLogger(__name__)


def input_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the action input flags. Unset flags stay None (env/file apply)."""
    options = [
        click.option("--version", "version", default=None, help="k0s release tag, or 'latest'."),
        click.option(
            "--wait-for-ready/--no-wait-for-ready",
            "wait_for_ready",
            default=None,
            help="Wait until the cluster is usable.",
        ),
        click.option("--timeout", type=int, default=None, help="Readiness timeout in seconds."),
        click.option(
            "--dns-readiness/--no-dns-readiness",
            "dns_readiness",
            default=None,
            help="Also verify in-cluster DNS once ready.",
        ),
        click.option("--dns-timeout", type=int, default=None, help="DNS check timeout in seconds."),
        click.option("--poll-interval", type=int, default=None, help="Seconds between readiness checks."),
        click.option(
            "--settle-seconds",
            type=int,
            default=None,
            help="Wait after service start before reading the kubeconfig.",
        ),
        click.option(
            "--cleanup/--no-cleanup",
            "cleanup",
            default=None,
            help="Record setup so the post phase can restore the host.",
        ),
    ]
    for option in reversed(options):
        func = option(func)

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        overrides = {name: kwargs.pop(name) for name in list(kwargs) if name in ActionInputs.model_fields}
        return func(*args, overrides=overrides, **kwargs)

    return wrapper


def resolve_inputs(ctx: click.Context, overrides: dict[str, Any]) -> ActionInputs:
    return load_inputs(config_path=ctx.obj.get("config_path"), overrides=overrides)


def make_coordinator(ctx: click.Context, inputs: ActionInputs) -> PhaseCoordinator:
    store = select_phase_store(
        cleanup_enabled=inputs.cleanup,
        state_file=ctx.obj.get("state_file"),
    )
    return PhaseCoordinator(get_runner(ctx), store)


@click.group()
@click.version_option(version=__version__, prog_name="setup-k0s")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False, dir_okay=False),
    default=None,
    help="YAML file with action inputs.",
)
@click.option(
    "--state-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Phase marker file (default: runner state, then $RUNNER_TEMP).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    state_file: str | None,
) -> None:
    """setup-k0s — single-node k0s cluster for CI jobs."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["state_file"] = Path(state_file) if state_file else None

    # ── Logging setup (once, at process start) ──────────────────
    level = resolve_level(
        debug=debug,
        verbose=verbose,
        quiet=quiet,
        env_level=os.environ.get("K0S_LOG_LEVEL"),
        runner_debug=os.environ.get("RUNNER_DEBUG"),
    )
    setup_logging(
        level=level,
        log_file=os.environ.get("K0S_LOG_FILE"),
        log_file_level=os.environ.get("K0S_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )


@cli.command("main")
@input_options
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Print a JSON summary.")
@click.pass_context
def main_phase(ctx: click.Context, overrides: dict[str, Any], as_json: bool) -> None:
    """Install k0s, start the cluster and wait until it is ready."""
    try:
        inputs = resolve_inputs(ctx, overrides)
        result = make_coordinator(ctx, inputs).run_main(inputs)
    except (ConfigError, SetupError) as e:
        fail(str(e))
        return

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))


@cli.command("post")
@input_options
@click.pass_context
def post_phase(ctx: click.Context, overrides: dict[str, Any]) -> None:
    """Restore the host if the main phase recorded a setup. Never fails."""
    try:
        inputs = resolve_inputs(ctx, overrides)
    except ConfigError as e:
        runner_io.warning(f"Invalid inputs in post phase ({e}); using defaults")
        inputs = ActionInputs()

    try:
        make_coordinator(ctx, inputs).run_post()
    except Exception as e:
        # The post phase must never fail the job.
        logger.debug("Post phase error", exc_info=True)
        runner_io.warning(f"Cleanup encountered errors: {e}")


@cli.command("run")
@input_options
@click.pass_context
def run_phase(ctx: click.Context, overrides: dict[str, Any]) -> None:
    """Run main on the first invocation and post on the paired one."""
    try:
        inputs = resolve_inputs(ctx, overrides)
    except ConfigError as e:
        fail(str(e))
        return

    coordinator = make_coordinator(ctx, inputs)
    try:
        dispatched = coordinator.dispatch(inputs)
    except SetupError as e:
        fail(str(e))
        return
    logger.debug("Ran %s phase", dispatched.phase)


# ── Register command groups ─────────────────────────────────────

from k0s_action.ui.cli.cluster import check, cleanup, detect  # noqa: E402

cli.add_command(check)
cli.add_command(cleanup)
cli.add_command(detect)


if __name__ == "__main__":
    cli()
