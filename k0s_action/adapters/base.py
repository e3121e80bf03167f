"""
Runner base — the protocol contract between services and the host.

Services never call ``subprocess`` directly. They build ``Command``
objects and hand them to a ``CommandRunner``, which returns a
``Receipt``. This is what lets the readiness and cleanup engines be
exercised without a real host.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from k0s_action.core.models.command import Command, Receipt


class CommandRunner(ABC):
    """Abstract base class for command runners.

    Runners perform host side effects and return receipts.
    They NEVER raise exceptions; failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether this runner can execute anything at all."""

    @abstractmethod
    def which(self, tool: str) -> str | None:
        """Resolve ``tool`` on PATH, or None if absent. Never raises."""

    @abstractmethod
    def execute(self, command: Command) -> Receipt:
        """Execute the command and return a receipt.

        MUST never raise exceptions. All failures are captured
        in the Receipt with status='failed'.
        """

    def run(
        self,
        command_id: str,
        *argv: str,
        sudo: bool = False,
        timeout: int = 60,
    ) -> Receipt:
        """Shorthand: build a Command and execute it."""
        return self.execute(
            Command(id=command_id, argv=list(argv), sudo=sudo, timeout=timeout)
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
