"""
Tests for host identity and updater variant selection.
"""

import logging
from pathlib import Path

import pytest

from nodeupdater.adapters.mock import MockCommandRunner
from nodeupdater.core.errors import HostIdentityError
from nodeupdater.core.host.os_release import parse_os_release, read_os_release
from nodeupdater.core.models.config import AgentConfig
from nodeupdater.core.updater import (
    NotCoreOSClient,
    RpmOstreeClient,
    new_node_updater_client,
)


class TestParseOsRelease:
    def test_quoted_and_unquoted(self):
        release = parse_os_release('ID="fedora"\nVARIANT_ID=coreos\nVERSION_ID=39\n')
        assert release.id == "fedora"
        assert release.variant_id == "coreos"
        assert release.version_id == "39"

    def test_comments_and_blanks_skipped(self):
        release = parse_os_release("# comment\n\nID=rhcos\nnot a pair\n")
        assert release.id == "rhcos"
        assert release.fields == {"ID": "rhcos"}

    def test_id_like(self):
        release = parse_os_release('ID=rhcos\nID_LIKE="rhel fedora"\n')
        assert release.id_like == ["rhel", "fedora"]


class TestCoreOSVariant:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("ID=rhcos", True),
            ("ID=scos", True),
            ("ID=fedora\nVARIANT_ID=coreos", True),
            ("ID=fedora\nVARIANT_ID=workstation", False),
            ("ID=fedora", False),
            ('ID="rhel"\nVERSION_ID="7.9"', False),
            ("ID=ubuntu", False),
        ],
    )
    def test_is_coreos_variant(self, text, expected):
        assert parse_os_release(text).is_coreos_variant is expected


class TestReadOsRelease:
    def test_reads_file(self, coreos_release: Path):
        release = read_os_release(coreos_release)
        assert release.id == "rhcos"
        assert release.pretty_name.startswith("Red Hat Enterprise Linux CoreOS")

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(HostIdentityError, match="failed to query operating system"):
            read_os_release(tmp_path / "nope")

    def test_no_id(self, tmp_path: Path):
        path = tmp_path / "os-release"
        path.write_text('NAME="Mystery"\n')
        with pytest.raises(HostIdentityError, match="does not define an ID"):
            read_os_release(path)


class TestVariantSelection:
    def test_coreos_gets_rpm_ostree_client(self, coreos_release: Path):
        runner = MockCommandRunner()
        config = AgentConfig(os_release_path=str(coreos_release), pull_retries=3)
        client = new_node_updater_client(config, runner=runner)

        assert isinstance(client, RpmOstreeClient)
        assert client.variant == "coreos"
        assert client.runner is runner
        assert client.resolver.inspectors[1].pull_retries == 3
        # choosing the variant runs no host command
        assert runner.call_count == 0

    def test_non_coreos_gets_stub_and_warns(self, rhel_release: Path, caplog):
        config = AgentConfig(os_release_path=str(rhel_release), cmdline_path="/x/cmdline")
        with caplog.at_level(logging.WARNING):
            client = new_node_updater_client(config)

        assert isinstance(client, NotCoreOSClient)
        assert client.cmdline_path == "/x/cmdline"
        assert "not a CoreOS variant" in caplog.text

    def test_unknown_host_is_fatal(self, tmp_path: Path):
        config = AgentConfig(os_release_path=str(tmp_path / "missing"))
        with pytest.raises(HostIdentityError):
            new_node_updater_client(config)
