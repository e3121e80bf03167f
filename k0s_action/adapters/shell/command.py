"""
Shell command runner — the SINGLE PLACE where ``subprocess.run`` is called.

Commands are executed as argument lists (never through a shell).
Root-requiring commands get a ``sudo`` prefix unless we already run
as root. CI runners provide passwordless sudo; there is no password
prompt handling here.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.models.command import Command, Receipt

logger = logging.getLogger(__name__)

# Keep receipts small; journal dumps can be large.
_MAX_CAPTURE = 20_000


def _is_root() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


class ShellCommandRunner(CommandRunner):
    """Execute host commands and capture output."""

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        return shutil.which("sh") is not None

    def which(self, tool: str) -> str | None:
        return shutil.which(tool)

    def execute(self, command: Command) -> Receipt:
        argv = list(command.argv)
        if command.sudo and not _is_root():
            argv = ["sudo", *argv]

        logger.debug("Executing: %s", " ".join(argv))
        start = time.monotonic()

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=command.timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                runner=self.name,
                command_id=command.id,
                error=f"Command timed out after {command.timeout}s",
                metadata={"command": command.display, "timeout": command.timeout},
            )
        except FileNotFoundError:
            return Receipt.failure(
                runner=self.name,
                command_id=command.id,
                error=f"Executable not found: {argv[0]}",
                return_code=127,
                metadata={"command": command.display},
            )
        except Exception as e:
            logger.exception("Subprocess error: %s", command.display)
            return Receipt.failure(
                runner=self.name,
                command_id=command.id,
                error=f"Command execution error: {e}",
                metadata={"command": command.display},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = (result.stdout or "")[-_MAX_CAPTURE:]
        stderr = (result.stderr or "")[-_MAX_CAPTURE:]

        if result.returncode == 0:
            return Receipt.success(
                runner=self.name,
                command_id=command.id,
                output=output,
                stderr=stderr,
                duration_ms=elapsed_ms,
                metadata={"command": command.display},
            )

        return Receipt.failure(
            runner=self.name,
            command_id=command.id,
            error=stderr.strip() or f"Command exited with code {result.returncode}",
            output=output,
            stderr=stderr,
            return_code=result.returncode,
            duration_ms=elapsed_ms,
            metadata={"command": command.display},
        )
