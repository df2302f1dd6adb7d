"""
Shell command runner — execute host tools and capture their output.

This is the most fundamental runner: it execs a program (never through
a shell), captures stdout and stderr interleaved, and wraps failures
with the invoked command line for diagnostics.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess

from nodeupdater.adapters.base import CommandRunner
from nodeupdater.core.errors import CommandError

logger = logging.getLogger(__name__)


class ShellCommandRunner(CommandRunner):
    """Run external commands with ``subprocess.run``.

    Args:
        timeout: Seconds before a command is killed (None = no limit).
        retry_delay: Base delay for ``run_with_retries``.
    """

    def __init__(self, timeout: float | None = None, retry_delay: float = 5.0):
        super().__init__(retry_delay=retry_delay)
        self.timeout = timeout

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self, command: str) -> bool:
        return shutil.which(command) is not None

    def run(self, command: str, *args: str) -> str:
        cmdline = shlex.join([command, *args])
        logger.info("Running captured: %s", cmdline)

        try:
            result = subprocess.run(
                [command, *args],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise CommandError(command, args, reason=f"executable not found: {e}") from e
        except subprocess.TimeoutExpired as e:
            output = e.output if isinstance(e.output, str) else ""
            raise CommandError(
                command, args, output=output, reason=f"timed out after {self.timeout}s"
            ) from e
        except OSError as e:
            raise CommandError(command, args, reason=str(e)) from e

        output = result.stdout or ""
        if result.returncode != 0:
            logger.debug("%s exited %d:\n%s", cmdline, result.returncode, output)
            raise CommandError(command, args, output=output, returncode=result.returncode)

        return output
