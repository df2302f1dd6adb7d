"""
Mock runner — universal test double for host-tool invocations.

Responds to commands by the longest matching argv prefix, and records
every call so tests can assert exactly which host commands ran (and,
just as often, which did not).
"""

from __future__ import annotations

from nodeupdater.adapters.base import CommandRunner
from nodeupdater.core.errors import CommandError


class MockCommandRunner(CommandRunner):
    """Deterministic command runner for tests.

    By default every command succeeds with ``default_output``. Responses
    are keyed by argv prefix: ``set_response(("rpm-ostree", "kargs"), ...)``
    matches ``rpm-ostree kargs`` as well as ``rpm-ostree kargs --append=x``.
    A list of outputs is consumed one per call (last one repeats).
    """

    def __init__(
        self,
        runner_name: str = "mock",
        available: bool = True,
        default_output: str = "",
    ):
        super().__init__(retry_delay=0.0)
        self._name = runner_name
        self._available = available
        self._missing: set[str] = set()
        self._default_output = default_output
        self._responses: dict[tuple[str, ...], list[str | CommandError]] = {}
        self._call_log: list[tuple[str, ...]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[tuple[str, ...]]:
        """Every argv this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_matching(self, *prefix: str) -> list[tuple[str, ...]]:
        """Calls whose argv starts with ``prefix``."""
        return [c for c in self._call_log if c[: len(prefix)] == prefix]

    def is_available(self, command: str) -> bool:
        return self._available and command not in self._missing

    def set_unavailable(self, *commands: str) -> None:
        """Report ``commands`` as not installed; other commands are unaffected."""
        self._missing.update(commands)

    def set_response(self, prefix: tuple[str, ...], *outputs: str) -> None:
        """Set the output(s) for commands starting with ``prefix``."""
        self._responses[tuple(prefix)] = list(outputs) or [""]

    def set_failure(
        self,
        prefix: tuple[str, ...],
        output: str = "mock failure",
        returncode: int = 1,
    ) -> None:
        """Configure commands starting with ``prefix`` to fail."""
        command, *args = prefix
        self._responses[tuple(prefix)] = [
            CommandError(command, args, output=output, returncode=returncode)
        ]

    def set_sequence(self, prefix: tuple[str, ...], *results: str | CommandError) -> None:
        """Mix successes and failures, consumed one per call."""
        self._responses[tuple(prefix)] = list(results)

    def run(self, command: str, *args: str) -> str:
        argv = (command, *args)
        self._call_log.append(argv)

        match = None
        for prefix in self._responses:
            if argv[: len(prefix)] == prefix and (match is None or len(prefix) > len(match)):
                match = prefix
        if match is None:
            return self._default_output

        queue = self._responses[match]
        result = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(result, CommandError):
            raise result
        return result

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
        self._missing.clear()
