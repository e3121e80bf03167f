"""
Installer — download the k0s binary and place it at the system path.

    download → scratch dir → `install -m 0755` → /usr/local/bin/k0s → `k0s version`

Re-running simply overwrites. The scratch copy is removed on every exit
path. The installed path is exactly what the cleanup engine removes.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
import tempfile
import urllib.request
from collections.abc import Callable
from pathlib import Path

from k0s_action import __version__
from k0s_action.adapters.base import CommandRunner
from k0s_action.core.errors import InstallError, InstallVerificationError
from k0s_action.core.models.platform import ResolvedRelease
from k0s_action.core.services.k0s_common import K0S_BINARY

logger = logging.getLogger(__name__)

_USER_AGENT = f"setup-k0s/{__version__}"


def download_file(url: str, dest: Path, timeout: int = 300) -> str:
    """Stream ``url`` into ``dest``.

    Returns:
        The sha256 hex digest of the downloaded file.
    """
    hasher = hashlib.sha256()
    req = urllib.request.Request(url, headers={"User-Agent": _USER_AGENT})
    with urllib.request.urlopen(req, timeout=timeout) as resp, open(dest, "wb") as fh:
        for chunk in iter(lambda: resp.read(64 * 1024), b""):
            hasher.update(chunk)
            fh.write(chunk)
    return hasher.hexdigest()


def install_binary(
    release: ResolvedRelease,
    runner: CommandRunner,
    *,
    target: Path = K0S_BINARY,
    download: Callable[[str, Path], str] | None = None,
) -> str:
    """Install ``release`` to ``target`` and verify it runs.

    Args:
        release: Concrete release to fetch.
        runner: Executes the privileged install and the version check.
        target: Install location.
        download: ``(url, dest) -> sha256``; defaults to ``download_file``.

    Returns:
        The version string the binary reports.

    Raises:
        InstallError: Download or placement failed.
        InstallVerificationError: The binary does not execute cleanly.
    """
    fetch = download or download_file
    scratch = Path(tempfile.mkdtemp(prefix="k0s-"))
    try:
        tmp_binary = scratch / "k0s"
        logger.info("Downloading from: %s", release.download_url)
        try:
            digest = fetch(release.download_url, tmp_binary)
        except Exception as e:
            raise InstallError(f"Download failed for {release.download_url}: {e}") from e
        logger.debug("Downloaded %s (sha256 %s)", tmp_binary, digest)

        receipt = runner.run(
            "k0s-install-binary",
            "install", "-m", "0755", str(tmp_binary), str(target),
            sudo=True,
        )
        if not receipt.ok:
            raise InstallError(f"Cannot install k0s to {target}: {receipt.reason}")
    finally:
        shutil.rmtree(scratch, ignore_errors=True)

    logger.info("Verifying installation...")
    receipt = runner.run("k0s-version", str(target), "version", timeout=30)
    if not receipt.ok:
        raise InstallVerificationError(
            f"{target} did not execute cleanly: {receipt.reason}"
        )

    version = receipt.output.strip()
    logger.info("✓ k0s %s installed successfully", version or release.tag)
    return version
