"""
k0s shared constants and command helpers.

Imported by the installer, launcher, readiness and cleanup services.
Must NOT import from any of them to avoid circular imports.
"""

from __future__ import annotations

from pathlib import Path

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.models.command import Receipt

# ═══════════════════════════════════════════════════════════════════
#  Constants
# ═══════════════════════════════════════════════════════════════════

K0S_BINARY = Path("/usr/local/bin/k0s")
KUBECONFIG_PATH = Path("~/.kube/config")
SYSTEM_NAMESPACE = "kube-system"

# Directories the CNI plugin leaves behind that `k0s reset` does not remove.
CNI_DIRS: tuple[Path, ...] = (Path("/etc/cni"), Path("/opt/cni"))


# ═══════════════════════════════════════════════════════════════════
#  Shared Helpers
# ═══════════════════════════════════════════════════════════════════


def k0s_installed(runner: CommandRunner, binary: Path = K0S_BINARY) -> bool:
    """Whether a k0s binary is on PATH or at the install location."""
    return runner.which("k0s") is not None or binary.exists()


def k0s_argv(runner: CommandRunner, binary: Path = K0S_BINARY) -> str:
    """The k0s executable to call: PATH first, then the install location."""
    return runner.which("k0s") or str(binary)


def kubectl_argv(runner: CommandRunner, kubeconfig: str | None = None) -> list[str] | None:
    """The kubectl invocation to use, or None if none is available.

    Prefers a standalone kubectl; falls back to the one embedded in k0s.
    """
    if runner.which("kubectl"):
        argv = ["kubectl"]
    elif runner.which("k0s"):
        argv = ["k0s", "kubectl"]
    else:
        return None
    if kubeconfig:
        argv.extend(["--kubeconfig", kubeconfig])
    return argv


def run_kubectl(
    runner: CommandRunner,
    base: list[str],
    command_id: str,
    *args: str,
    timeout: int = 15,
) -> Receipt:
    """Run a kubectl subcommand through ``runner``."""
    return runner.run(command_id, *base, *args, timeout=timeout)
