"""
Host command requests and their receipts.

A service builds a ``Command``, hands it to a ``CommandRunner`` and reads
back a ``Receipt``. Runners report failures in the receipt instead of
raising; whether a failed step is fatal is the calling service's call.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "failed"]


class Command(BaseModel):
    """One host command, addressed by a stable step id such as ``k0s-start``."""

    id: str
    argv: list[str]
    sudo: bool = False              # prefix with sudo when not already root
    timeout: int = 60

    @property
    def display(self) -> str:
        words = ["sudo", *self.argv] if self.sudo else self.argv
        return " ".join(words)


class Receipt(BaseModel):
    """What a runner observed while executing one ``Command``.

    Timeouts, missing binaries and non-zero exits all land here with
    ``status="failed"``.
    """

    runner: str
    command_id: str
    status: ReceiptStatus = "ok"
    return_code: int | None = None

    output: str = ""
    stderr: str = ""
    error: str | None = None

    started_at: str = Field(
        default_factory=lambda: datetime.now(UTC).isoformat(),
    )
    duration_ms: int = 0
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @property
    def reason(self) -> str:
        """One-line failure reason: error text, then stderr, then the exit code."""
        text = self.error or self.stderr or f"exit code {self.return_code}"
        return text.strip()

    @classmethod
    def success(cls, runner: str, command_id: str, output: str = "", **kwargs: Any) -> Receipt:
        """Receipt for a command that exited 0 (unless ``return_code`` says otherwise)."""
        kwargs.setdefault("return_code", 0)
        return cls(runner=runner, command_id=command_id, output=output, **kwargs)

    @classmethod
    def failure(cls, runner: str, command_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(
            runner=runner, command_id=command_id, status="failed", error=error, **kwargs,
        )
