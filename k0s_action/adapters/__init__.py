"""
Runners — the host-execution layer.

    CommandRunner       abstract protocol
    ShellCommandRunner  real subprocess execution
    MockRunner          scripted test double
"""

from k0s_action.adapters.base import CommandRunner
from k0s_action.adapters.mock import MockRunner
from k0s_action.adapters.shell.command import ShellCommandRunner

__all__ = ["CommandRunner", "MockRunner", "ShellCommandRunner"]
