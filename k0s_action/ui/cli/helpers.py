"""
Shared helpers for CLI commands.
"""

from __future__ import annotations

import sys

import click

from k0s_action.adapters.base import CommandRunner
from k0s_action.adapters.shell.command import ShellCommandRunner
from k0s_action.core.services import runner_io


def get_runner(ctx: click.Context) -> CommandRunner:
    """The command runner for this invocation (tests inject one via ctx.obj)."""
    obj = ctx.ensure_object(dict)
    runner = obj.get("runner")
    if runner is None:
        runner = ShellCommandRunner()
        obj["runner"] = runner
    return runner


def fail(message: str) -> None:
    """Report a fatal error to the runner and exit non-zero."""
    runner_io.error(message)
    sys.exit(1)
