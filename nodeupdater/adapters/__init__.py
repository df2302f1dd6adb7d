"""Adapters — command runners for host tools.

Public re-exports for convenient access.
"""

from nodeupdater.adapters.base import CommandRunner
from nodeupdater.adapters.mock import MockCommandRunner
from nodeupdater.adapters.shell.command import ShellCommandRunner

__all__ = [
    "CommandRunner",
    "MockCommandRunner",
    "ShellCommandRunner",
]
