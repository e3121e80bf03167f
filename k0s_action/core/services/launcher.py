"""
Cluster launcher — register, start, extract credentials, publish.

Strict order; any failing step raises ``LaunchError``. Nothing is undone
inline: the post-phase cleanup engine is the only cleanup path and must
cope with a half-launched host.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, MutableMapping
from pathlib import Path

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.errors import LaunchError
from k0s_action.core.models.cluster import K0S_SERVICE_NAME, ClusterHandle
from k0s_action.core.services import runner_io
from k0s_action.core.services.k0s_common import KUBECONFIG_PATH, k0s_argv

logger = logging.getLogger(__name__)

OUTPUT_NAME = "kubeconfig"
ENV_NAME = "KUBECONFIG"


def _step(runner: CommandRunner, step: str, *argv: str, timeout: int = 120) -> str:
    receipt = runner.run(step, *argv, sudo=True, timeout=timeout)
    if not receipt.ok:
        raise LaunchError(step, receipt.reason)
    return receipt.output


def write_credentials(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` readable by the owner only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        fh.write(content)
    os.chmod(path, 0o600)


def launch_cluster(
    runner: CommandRunner,
    *,
    settle_seconds: int = 10,
    kubeconfig_path: Path = KUBECONFIG_PATH,
    sleep: Callable[[float], None] = time.sleep,
    environ: MutableMapping[str, str] | None = None,
) -> ClusterHandle:
    """Bring up a single-node controller and publish its kubeconfig.

    Raises:
        LaunchError: Naming the step that failed.
    """
    k0s = k0s_argv(runner)

    logger.info("Starting k0s as controller...")
    _step(runner, "k0s-install-controller", k0s, "install", "controller", "--single")
    _step(runner, "k0s-start", k0s, "start")

    # Credentials appear asynchronously with no signal to poll.
    logger.info("Waiting for kubeconfig generation (%ss)...", settle_seconds)
    sleep(settle_seconds)

    logger.info("Extracting kubeconfig...")
    admin_config = _step(runner, "k0s-kubeconfig", k0s, "kubeconfig", "admin", timeout=60)
    if not admin_config.strip():
        raise LaunchError("k0s-kubeconfig", "k0s returned an empty kubeconfig")

    path = kubeconfig_path.expanduser()
    try:
        write_credentials(path, admin_config)
    except OSError as e:
        raise LaunchError("write-kubeconfig", f"Cannot write {path}: {e}") from e

    runner_io.set_output(OUTPUT_NAME, str(path), environ)
    runner_io.export_variable(ENV_NAME, str(path), environ)

    logger.info("✓ k0s cluster started successfully")
    return ClusterHandle(credentials_path=str(path), service_name=K0S_SERVICE_NAME)
