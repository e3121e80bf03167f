"""
Mock runner — universal test double for host commands.

Returns success for everything by default. Responses can be configured
per command id, either as a single receipt or as a sequence consumed
one call at a time (the last entry repeats), which is how tests script
a cluster that becomes healthy on the Nth poll.
"""

from __future__ import annotations

from collections.abc import Iterable

from k0s_action.adapters.base import CommandRunner
from k0s_action.core.models.command import Command, Receipt


class MockRunner(CommandRunner):
    """Universal mock runner for testing."""

    def __init__(
        self,
        runner_name: str = "mock",
        available: bool = True,
        tools: Iterable[str] = ("k0s", "kubectl", "sh"),
        default_output: str = "",
    ):
        self._name = runner_name
        self._available = available
        self._tools = set(tools)
        self._default_output = default_output
        self._responses: dict[str, list[Receipt]] = {}
        self._call_log: list[Command] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[Command]:
        """All commands this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def called_ids(self) -> list[str]:
        return [c.id for c in self._call_log]

    def calls_for(self, command_id: str) -> list[Command]:
        return [c for c in self._call_log if c.id == command_id]

    def is_available(self) -> bool:
        return self._available

    def which(self, tool: str) -> str | None:
        return f"/usr/local/bin/{tool}" if tool in self._tools else None

    def set_tools(self, *tools: str) -> None:
        self._tools = set(tools)

    def set_response(self, command_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific command id."""
        self._responses[command_id] = [receipt]

    def set_output(self, command_id: str, output: str) -> None:
        """Configure a successful response with ``output``."""
        self.set_response(
            command_id, Receipt.success(runner=self._name, command_id=command_id, output=output)
        )

    def set_failure(self, command_id: str, error: str = "Mock failure") -> None:
        """Configure a specific command to fail."""
        self._responses[command_id] = [
            Receipt.failure(
                runner=self._name, command_id=command_id, error=error, return_code=1
            )
        ]

    def set_sequence(self, command_id: str, receipts: list[Receipt]) -> None:
        """Responses consumed in order; the last one repeats."""
        if not receipts:
            raise ValueError("sequence must not be empty")
        self._responses[command_id] = list(receipts)

    def ok(self, command_id: str, output: str = "") -> Receipt:
        return Receipt.success(runner=self._name, command_id=command_id, output=output)

    def fail(self, command_id: str, error: str = "Mock failure") -> Receipt:
        return Receipt.failure(
            runner=self._name, command_id=command_id, error=error, return_code=1
        )

    def execute(self, command: Command) -> Receipt:
        self._call_log.append(command)

        queue = self._responses.get(command.id)
        if queue:
            if len(queue) > 1:
                return queue.pop(0)
            return queue[0]

        return Receipt.success(
            runner=self._name,
            command_id=command.id,
            output=self._default_output,
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
