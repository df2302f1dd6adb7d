"""
Tests for the update and status use cases.
"""

from unittest.mock import MagicMock, patch

import pytest

from nodeupdater.adapters.mock import MockCommandRunner
from nodeupdater.core.errors import (
    CommandError,
    ConfigError,
    NotBootedError,
    NotCoreOSVariantError,
)
from nodeupdater.core.models.deployment import Deployment
from nodeupdater.core.models.kernel_args import KernelArgument
from nodeupdater.core.updater import NotCoreOSClient, RpmOstreeClient
from nodeupdater.core.updater.base import NodeUpdaterClient
from nodeupdater.core.use_cases.status import get_node_status
from nodeupdater.core.use_cases.update import apply_update, rebase_with_cleanup

IMAGE = "quay.io/openshift/os@sha256:new"
OLD_IMAGE = "quay.io/openshift/os@sha256:old"


@pytest.fixture
def fake():
    client = MagicMock(spec=NodeUpdaterClient)
    client.variant = "coreos"
    client.get_booted_os_image_url.return_value = (OLD_IMAGE, "414.1")
    client.rebase.return_value = True
    client.set_kernel_args.return_value = ""
    return client


# ── apply_update ────────────────────────────────────────────────


class TestApplyUpdate:
    def test_rebases_when_image_differs(self, fake):
        result = apply_update(fake, IMAGE, "/run/content", inhibit=False)

        fake.rebase.assert_called_once_with(IMAGE, "/run/content")
        assert result.rebased
        assert result.changed
        assert result.previous_image_url == OLD_IMAGE
        assert result.previous_version == "414.1"

    def test_skips_rebase_when_already_booted(self, fake):
        fake.get_booted_os_image_url.return_value = (IMAGE, "414.2")
        result = apply_update(fake, IMAGE, "/run/content", inhibit=False)

        fake.rebase.assert_not_called()
        assert not result.rebased
        assert not result.changed

    def test_empty_image_leaves_os_alone(self, fake):
        apply_update(fake, "", "/run/content", kernel_args=[KernelArgument.add("x")], inhibit=False)
        fake.get_booted_os_image_url.assert_not_called()
        fake.rebase.assert_not_called()
        fake.set_kernel_args.assert_called_once()

    def test_kernel_args_after_rebase(self, fake):
        calls = []
        fake.rebase.side_effect = lambda *a: calls.append("rebase") or True
        fake.set_kernel_args.side_effect = lambda a: calls.append("kargs") or "ok"

        kargs = [KernelArgument.add("nosmt"), KernelArgument.remove("quiet")]
        result = apply_update(fake, IMAGE, "/c", kernel_args=kargs, inhibit=False)

        assert calls == ["rebase", "kargs"]
        fake.set_kernel_args.assert_called_once_with(kargs)
        assert result.kernel_args_requested == ["add:nosmt", "remove:quiet"]
        assert result.kernel_args_output == "ok"

    def test_no_kernel_args_no_call(self, fake):
        apply_update(fake, IMAGE, "/c", inhibit=False)
        fake.set_kernel_args.assert_not_called()

    def test_silent_kernel_args_count_as_change(self, fake):
        fake.get_booted_os_image_url.return_value = (IMAGE, "414.2")
        fake.set_kernel_args.return_value = ""

        result = apply_update(fake, IMAGE, "/c", kernel_args=[KernelArgument.add("x")], inhibit=False)
        assert result.kernel_args_applied
        assert result.changed
        assert result.kernel_args_output == ""

    def test_kernel_args_already_in_effect(self, fake):
        fake.get_booted_os_image_url.return_value = (IMAGE, "414.2")
        fake.set_kernel_args.return_value = None

        result = apply_update(fake, IMAGE, "/c", kernel_args=[KernelArgument.remove("x")], inhibit=False)
        assert not result.kernel_args_applied
        assert not result.changed
        assert result.to_dict()["kernel_args_applied"] is False

    def test_rebase_needs_content_dir(self, fake):
        with pytest.raises(ConfigError, match="no OS content directory"):
            apply_update(fake, IMAGE, None, kernel_args=[KernelArgument.add("x")], inhibit=False)
        fake.rebase.assert_not_called()
        fake.set_kernel_args.assert_not_called()

    def test_content_dir_unused_when_already_booted(self, fake):
        fake.get_booted_os_image_url.return_value = (IMAGE, "414.2")
        result = apply_update(fake, IMAGE, None, inhibit=False)
        assert not result.rebased

    def test_kernel_args_only_needs_no_content_dir(self, fake):
        result = apply_update(fake, "", None, kernel_args=[KernelArgument.add("x")], inhibit=False)
        assert result.changed
        fake.rebase.assert_not_called()

    def test_failed_rebase_cleans_up_and_reraises(self, fake):
        error = CommandError("rpm-ostree", ["rebase"], output="boom")
        fake.rebase.side_effect = error

        with pytest.raises(CommandError) as exc_info:
            apply_update(fake, IMAGE, "/c", kernel_args=[KernelArgument.add("x")], inhibit=False)

        assert exc_info.value is error
        fake.remove_pending_deployment.assert_called_once()
        fake.set_kernel_args.assert_not_called()

    def test_cleanup_failure_does_not_mask_rebase_error(self, fake):
        fake.rebase.side_effect = NotBootedError()
        fake.remove_pending_deployment.side_effect = CommandError("rpm-ostree", ["cleanup"])

        with pytest.raises(NotBootedError):
            apply_update(fake, IMAGE, "/c", inhibit=False)

    def test_rebase_is_inhibited(self, fake):
        with patch("nodeupdater.core.use_cases.update.inhibited") as inhibited:
            apply_update(fake, IMAGE, "/c", inhibit=True)
        inhibited.assert_called_once_with(enabled=True)
        inhibited.return_value.__enter__.assert_called_once()

    def test_to_dict(self, fake):
        data = apply_update(fake, IMAGE, "/c", inhibit=False).to_dict()
        assert data["image_url"] == IMAGE
        assert data["rebased"] is True
        assert data["changed"] is True

    def test_not_coreos_host(self, cmdline_file):
        client = NotCoreOSClient(cmdline_path=str(cmdline_file))
        with pytest.raises(NotCoreOSVariantError):
            apply_update(client, IMAGE, "/c", inhibit=False)


class TestApplyUpdateWithRpmOstree:
    """The whole pass against the mock host tools."""

    def test_full_pass(self, status_json):
        runner = MockCommandRunner()
        runner.set_response(
            ("rpm-ostree", "status", "--json"),
            status_json({"booted": True, "custom-origin": [f"pivot://{OLD_IMAGE}", "x"]}),
        )
        runner.set_response(
            ("skopeo", "inspect"),
            '{"Labels": {"com.coreos.ostree-commit": "abc", "version": "2"}}',
        )
        runner.set_response(("rpm-ostree", "kargs"), "root=/dev/sda1 quiet\n")
        client = RpmOstreeClient(runner, rpm_ostree_cmd="rpm-ostree")

        result = apply_update(
            client,
            IMAGE,
            "/run/content",
            kernel_args=[KernelArgument.remove("quiet")],
            inhibit=False,
        )

        assert result.rebased
        assert runner.calls_matching("rpm-ostree", "rebase")[0][3] == "/run/content/srv/repo:abc"
        assert runner.call_log[-1] == ("rpm-ostree", "kargs", "--delete=quiet")

    def test_second_pass_is_noop(self, status_json):
        runner = MockCommandRunner()
        runner.set_response(
            ("rpm-ostree", "status", "--json"),
            status_json({"booted": True, "custom-origin": [f"pivot://{IMAGE}", "x"]}),
        )
        runner.set_response(("rpm-ostree", "kargs"), "root=/dev/sda1\n")
        client = RpmOstreeClient(runner, rpm_ostree_cmd="rpm-ostree")

        result = apply_update(
            client, IMAGE, "/c", kernel_args=[KernelArgument.remove("quiet")], inhibit=False,
        )

        assert not result.changed
        assert runner.calls_matching("skopeo") == []
        assert runner.calls_matching("rpm-ostree", "rebase") == []

    def test_failed_rebase_runs_cleanup(self, status_json):
        runner = MockCommandRunner()
        runner.set_response(("rpm-ostree", "status", "--json"), status_json({"booted": True}))
        runner.set_response(("skopeo", "inspect"), '{"Labels": {"com.coreos.ostree-commit": "abc"}}')
        runner.set_failure(("rpm-ostree", "rebase"), output="error: Transaction in progress")
        client = RpmOstreeClient(runner, rpm_ostree_cmd="rpm-ostree")

        with pytest.raises(CommandError, match="Transaction in progress"):
            apply_update(client, IMAGE, "/c", inhibit=False)
        assert runner.call_log[-1] == ("rpm-ostree", "cleanup", "-p")

    def test_silent_kargs_command_is_a_change(self):
        runner = MockCommandRunner()
        client = RpmOstreeClient(runner, rpm_ostree_cmd="rpm-ostree")

        result = apply_update(client, "", None, kernel_args=[KernelArgument.add("nosmt")], inhibit=False)

        assert runner.call_log == [("rpm-ostree", "kargs", "--append=nosmt")]
        assert result.kernel_args_applied
        assert result.changed
        assert result.kernel_args_output == ""


class TestRebaseWithCleanup:
    def test_success(self, fake):
        assert rebase_with_cleanup(fake, IMAGE, "/c") is True
        fake.remove_pending_deployment.assert_not_called()

    def test_failure_removes_pending_deployment(self, fake):
        error = CommandError("rpm-ostree", ["rebase"], output="boom")
        fake.rebase.side_effect = error

        with pytest.raises(CommandError) as exc_info:
            rebase_with_cleanup(fake, IMAGE, "/c")
        assert exc_info.value is error
        fake.remove_pending_deployment.assert_called_once_with()

    def test_cleanup_failure_is_logged(self, fake, caplog):
        caplog.set_level("WARNING")
        fake.rebase.side_effect = NotBootedError()
        fake.remove_pending_deployment.side_effect = CommandError("rpm-ostree", ["cleanup"], output="busy")

        with pytest.raises(NotBootedError):
            rebase_with_cleanup(fake, IMAGE, "/c")
        assert "Failed to remove pending deployment" in caplog.text


# ── get_node_status ─────────────────────────────────────────────


class TestNodeStatus:
    def test_coreos(self, fake):
        fake.get_booted_deployment.return_value = Deployment(id="d0", checksum="abc", booted=True)
        fake.get_kernel_args.return_value = ["quiet"]

        result = get_node_status(fake)
        assert result.coreos
        assert result.error is None
        assert result.image_url == OLD_IMAGE
        data = result.to_dict()
        assert data["booted"]["id"] == "d0"
        assert data["kernel_args"] == ["quiet"]

    def test_host_error_captured(self, fake):
        fake.get_booted_deployment.side_effect = NotBootedError()
        result = get_node_status(fake)
        assert result.error == "not currently booted in a deployment"
        assert result.to_dict() == {
            "variant": "coreos",
            "coreos": True,
            "error": "not currently booted in a deployment",
        }

    def test_not_coreos(self, cmdline_file):
        result = get_node_status(NotCoreOSClient(cmdline_path=str(cmdline_file)))
        assert result.variant == "not-coreos"
        assert not result.coreos
        assert result.error is None
        assert result.image_url == ""
        assert "quiet" in result.kernel_args

    def test_unreadable_cmdline(self, tmp_path):
        result = get_node_status(NotCoreOSClient(cmdline_path=str(tmp_path / "none")))
        assert result.error
