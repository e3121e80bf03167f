"""
Runner I/O — outputs, exported variables, saved state and log annotations.

The CI runner exchanges data with a step through files named by
environment variables:

    GITHUB_OUTPUT   step outputs        (name=value lines)
    GITHUB_ENV      env for later steps (name=value lines)
    GITHUB_STATE    state for the post invocation, read back as STATE_<name>

Outside a runner (local runs, tests without those variables) outputs and
exports fall back to plain log lines and the current process environment.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from pathlib import Path

import click

logger = logging.getLogger(__name__)


def _environ(environ: MutableMapping[str, str] | None) -> MutableMapping[str, str]:
    return os.environ if environ is None else environ


def _append_kv(path: str, name: str, value: str) -> None:
    """Append ``name=value`` to a runner command file.

    Multi-line values use the heredoc form with a random delimiter.
    """
    with Path(path).open("a", encoding="utf-8") as fh:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4().hex}"
            fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            fh.write(f"{name}={value}\n")


# ═══════════════════════════════════════════════════════════════════
#  Outputs / environment / state
# ═══════════════════════════════════════════════════════════════════


def set_output(name: str, value: str, environ: MutableMapping[str, str] | None = None) -> None:
    """Publish a step output."""
    env = _environ(environ)
    target = env.get("GITHUB_OUTPUT")
    if target:
        _append_kv(target, name, value)
    else:
        click.echo(f"{name}={value}")
    logger.debug("Output %s=%s", name, value)


def export_variable(
    name: str,
    value: str,
    environ: MutableMapping[str, str] | None = None,
) -> None:
    """Export an env var for later steps and for this process."""
    env = _environ(environ)
    env[name] = value
    target = env.get("GITHUB_ENV")
    if target:
        _append_kv(target, name, value)
    logger.info("%s exported: %s", name, value)


def save_state(name: str, value: str, environ: MutableMapping[str, str] | None = None) -> bool:
    """Persist a value for the post invocation.

    Returns:
        False when no runner state file is configured.
    """
    target = _environ(environ).get("GITHUB_STATE")
    if not target:
        return False
    _append_kv(target, name, value)
    return True


def get_state(name: str, environ: MutableMapping[str, str] | None = None) -> str:
    """Read a value saved by the main invocation ('' if absent)."""
    return _environ(environ).get(f"STATE_{name}", "")


def has_state_channel(environ: MutableMapping[str, str] | None = None) -> bool:
    return bool(_environ(environ).get("GITHUB_STATE"))


# ═══════════════════════════════════════════════════════════════════
#  Annotations
# ═══════════════════════════════════════════════════════════════════


def error(message: str) -> None:
    click.echo(f"::error::{_escape(message)}")


def warning(message: str) -> None:
    click.echo(f"::warning::{_escape(message)}")


@contextmanager
def group(title: str) -> Iterator[None]:
    """Collapsible log group; always closed, even on error."""
    click.echo(f"::group::{title}")
    try:
        yield
    finally:
        click.echo("::endgroup::")


def _escape(message: str) -> str:
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
