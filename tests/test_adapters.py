"""
Tests for the command runner protocol: shell runner, retries, and mock.
"""

from unittest.mock import patch

import pytest

from nodeupdater.adapters.mock import MockCommandRunner
from nodeupdater.adapters.shell.command import ShellCommandRunner
from nodeupdater.core.errors import CommandError, NodeUpdaterError

# ── Shell Runner Tests ───────────────────────────────────────────────


class TestShellCommandRunner:
    def test_name(self):
        assert ShellCommandRunner().name == "shell"

    def test_is_available(self):
        runner = ShellCommandRunner()
        assert runner.is_available("sh")
        assert not runner.is_available("definitely-not-a-real-binary-xyz")

    def test_run_returns_output(self):
        assert ShellCommandRunner().run("echo", "hello") == "hello\n"

    def test_stdout_and_stderr_combined(self):
        output = ShellCommandRunner().run("sh", "-c", "echo out; echo err >&2")
        assert "out" in output
        assert "err" in output

    def test_failure_carries_command_line_and_output(self):
        with pytest.raises(CommandError) as exc_info:
            ShellCommandRunner().run("sh", "-c", "echo boom >&2; exit 3")

        err = exc_info.value
        assert err.returncode == 3
        assert "boom" in err.output
        assert err.cmdline.startswith("sh -c")
        assert "error running sh -c" in str(err)
        assert isinstance(err, NodeUpdaterError)

    def test_missing_executable(self):
        with pytest.raises(CommandError) as exc_info:
            ShellCommandRunner().run("definitely-not-a-real-binary-xyz", "--help")
        assert exc_info.value.returncode is None
        assert "not found" in str(exc_info.value)

    def test_timeout(self):
        runner = ShellCommandRunner(timeout=0.2)
        with pytest.raises(CommandError) as exc_info:
            runner.run("sleep", "5")
        assert "timed out" in str(exc_info.value)

    def test_no_shell_interpretation(self):
        output = ShellCommandRunner().run("echo", "$HOME; echo nope")
        assert output == "$HOME; echo nope\n"


# ── Retry Tests ──────────────────────────────────────────────────────


class TestRunWithRetries:
    def test_succeeds_after_transient_failures(self):
        runner = MockCommandRunner()
        runner.set_sequence(
            ("podman", "pull"),
            CommandError("podman", ["pull"], output="timeout"),
            CommandError("podman", ["pull"], output="timeout"),
            "ok",
        )
        assert runner.run_with_retries(5, "podman", "pull", "img") == "ok"
        assert len(runner.calls_matching("podman", "pull")) == 3

    def test_budget_exhausted_raises_last_error(self):
        runner = MockCommandRunner()
        runner.set_failure(("podman", "pull"), output="registry unreachable")
        with pytest.raises(CommandError, match="registry unreachable"):
            runner.run_with_retries(5, "podman", "pull", "img")
        assert len(runner.calls_matching("podman", "pull")) == 5

    def test_linear_delay(self):
        runner = MockCommandRunner()
        runner.retry_delay = 2.0
        runner.set_failure(("podman", "pull"))
        with patch("nodeupdater.adapters.base.time.sleep") as sleep:
            with pytest.raises(CommandError):
                runner.run_with_retries(4, "podman", "pull", "img")
        assert [c.args[0] for c in sleep.call_args_list] == [2.0, 4.0, 6.0]

    def test_first_success_no_sleep(self):
        runner = MockCommandRunner(default_output="fine")
        with patch("nodeupdater.adapters.base.time.sleep") as sleep:
            assert runner.run_with_retries(5, "podman", "pull", "img") == "fine"
        sleep.assert_not_called()
        assert runner.call_count == 1

    @pytest.mark.parametrize("retries", [0, 1])
    def test_tiny_budget_single_attempt(self, retries):
        runner = MockCommandRunner()
        error = CommandError("podman", ["pull"], output="denied")
        runner.set_sequence(("podman", "pull"), error)
        with patch("nodeupdater.adapters.base.time.sleep") as sleep:
            with pytest.raises(CommandError) as exc_info:
                runner.run_with_retries(retries, "podman", "pull", "img")
        assert exc_info.value is error
        assert runner.call_count == 1
        sleep.assert_not_called()


# ── Mock Runner Tests ────────────────────────────────────────────────


class TestMockCommandRunner:
    def test_default_output(self):
        mock = MockCommandRunner(default_output="[mock]")
        assert mock.run("anything", "at", "all") == "[mock]"
        assert mock.call_count == 1

    def test_longest_prefix_wins(self):
        mock = MockCommandRunner()
        mock.set_response(("rpm-ostree",), "generic")
        mock.set_response(("rpm-ostree", "status", "--json"), "json")
        assert mock.run("rpm-ostree", "status", "--json") == "json"
        assert mock.run("rpm-ostree", "status") == "generic"

    def test_failure(self):
        mock = MockCommandRunner()
        mock.set_failure(("ostree", "refs"), output="no repo", returncode=2)
        with pytest.raises(CommandError) as exc_info:
            mock.run("ostree", "refs", "--repo", "/x")
        assert exc_info.value.returncode == 2

    def test_call_log(self):
        mock = MockCommandRunner()
        mock.run("a", "1")
        mock.run("b", "2")
        mock.run("a", "3")
        assert mock.call_log[0] == ("a", "1")
        assert mock.calls_matching("a") == [("a", "1"), ("a", "3")]

    def test_reset(self):
        mock = MockCommandRunner()
        mock.set_response(("a",), "x")
        mock.run("a")
        mock.reset()
        assert mock.call_count == 0
        assert mock.run("a") == ""

    def test_is_available(self):
        assert MockCommandRunner(available=True).is_available("x")
        assert not MockCommandRunner(available=False).is_available("x")

    def test_set_unavailable(self):
        mock = MockCommandRunner()
        mock.set_unavailable("skopeo")
        assert not mock.is_available("skopeo")
        assert mock.is_available("podman")
        mock.reset()
        assert mock.is_available("skopeo")
