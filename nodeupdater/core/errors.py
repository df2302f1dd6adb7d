"""
Error kinds raised by the node updater.

Every failure the agent can surface derives from ``NodeUpdaterError``
so the CLI (and any external reconciliation loop) can catch one type.
The subclasses map to how a caller should react:

    HostStateError          host is in a state we cannot act on; never retry
    CommandError            an external host tool exited non-zero
    ImageInspectionError    no inspector could read the image metadata
    NotCoreOSVariantError   operation unsupported on this host variant
    StatusParseError        a host tool emitted malformed structured output
    HostIdentityError       host OS identity unknown; fatal at startup
"""

from __future__ import annotations

import shlex


class NodeUpdaterError(Exception):
    """Base class for all node updater errors."""


class HostStateError(NodeUpdaterError):
    """The host deployment state is inconsistent or ambiguous."""


class NotBootedError(HostStateError):
    """No deployment in the status query is marked as booted."""

    def __init__(self, message: str = "not currently booted in a deployment"):
        super().__init__(message)


class RepoRefError(HostStateError):
    """The local OS content repository has zero or several refs."""


class CommandError(NodeUpdaterError):
    """An external command failed.

    Carries the full command line and the captured (combined) output
    so the failure can be diagnosed from the log alone.
    """

    def __init__(
        self,
        command: str,
        args: tuple[str, ...] | list[str] = (),
        output: str = "",
        returncode: int | None = None,
        reason: str = "",
    ):
        self.command = command
        self.args_list = list(args)
        self.output = output
        self.returncode = returncode
        detail = reason or output.strip()
        super().__init__(f"error running {self.cmdline}: {detail}")

    @property
    def cmdline(self) -> str:
        return shlex.join([self.command, *self.args_list])


class ImageInspectionError(NodeUpdaterError):
    """Every configured image inspector failed."""


class NotCoreOSVariantError(NodeUpdaterError):
    """Raised by every mutating operation on hosts without atomic updates."""

    def __init__(self, message: str = "operating system is not a CoreOS variant"):
        super().__init__(message)


class StatusParseError(NodeUpdaterError):
    """Structured output from a host tool could not be parsed."""


class HostIdentityError(NodeUpdaterError):
    """The host operating system could not be identified."""


class ConfigError(NodeUpdaterError):
    """Raised when agent configuration is invalid or unreadable."""


class PluginError(NodeUpdaterError):
    """Plugin registration or execution problem."""


class PluginStoppedError(PluginError):
    """A plugin returned because the shared stop signal was set."""
