"""
Environment probe — host CPU architecture → k0s binary architecture.

Pure lookup. Adding an architecture is a one-line change to ``ARCH_MAP``.
"""

from __future__ import annotations

import logging
import platform

from k0s_action.core.errors import UnsupportedPlatform
from k0s_action.core.models.platform import Architecture

logger = logging.getLogger(__name__)

ARCH_MAP: dict[str, Architecture] = {
    "x86_64": Architecture.AMD64,
    "amd64": Architecture.AMD64,      # BSDs, Windows
    "aarch64": Architecture.ARM64,
    "arm64": Architecture.ARM64,      # macOS reports arm64
    "armv7l": Architecture.ARM,
}


def detect_architecture(machine: str | None = None) -> Architecture:
    """Resolve the canonical binary architecture.

    Args:
        machine: Raw machine string; defaults to ``platform.machine()``.

    Raises:
        UnsupportedPlatform: For anything not in ``ARCH_MAP``.
    """
    raw = platform.machine() if machine is None else machine
    arch = ARCH_MAP.get(raw.strip().lower())
    if arch is None:
        raise UnsupportedPlatform(raw)
    logger.info("Architecture: %s -> %s", raw, arch.value)
    return arch
