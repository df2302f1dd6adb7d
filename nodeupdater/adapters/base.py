"""
Command runner base — the protocol contract between the updater and host tools.

Every host-tool invocation (rpm-ostree, skopeo, podman, ostree) goes
through a CommandRunner. The updater never calls ``subprocess``
directly, so tests can swap in a deterministic fake and the production
path binds to real external commands.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod

from nodeupdater.core.errors import CommandError

logger = logging.getLogger(__name__)


class CommandRunner(ABC):
    """Abstract base class for all command runners.

    Runners return the combined output of a command on success and
    raise ``CommandError`` on failure. Unlike a best-effort check, a
    runner never hides a non-zero exit.

    To create a new runner:
        1. Subclass CommandRunner
        2. Implement name, is_available, run
    """

    def __init__(self, retry_delay: float = 5.0):
        self.retry_delay = retry_delay

    @property
    @abstractmethod
    def name(self) -> str:
        """The runner identifier (e.g., 'shell', 'mock')."""

    @abstractmethod
    def is_available(self, command: str) -> bool:
        """Check whether ``command`` can be executed. Never raises."""

    @abstractmethod
    def run(self, command: str, *args: str) -> str:
        """Run a command and return its combined stdout/stderr.

        Raises:
            CommandError: The command could not be started or exited non-zero.
        """

    def run_with_retries(self, retries: int, command: str, *args: str) -> str:
        """Run a command, retrying up to ``retries`` attempts in total.

        Meant for commands that pull data over the network. The delay
        between attempts grows linearly (``retry_delay * attempt``).

        Raises:
            CommandError: The last failure, once the budget is spent.
        """
        attempts = max(retries, 1)
        attempt = 1
        while True:
            try:
                return self.run(command, *args)
            except CommandError as e:
                if attempt >= attempts:
                    logger.error("%s failed after %d attempts", command, attempts)
                    raise
                delay = self.retry_delay * attempt
                logger.warning(
                    "Attempt %d/%d of %s failed, retrying in %.1fs: %s",
                    attempt,
                    attempts,
                    command,
                    delay,
                    e,
                )
                time.sleep(delay)
                attempt += 1

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
