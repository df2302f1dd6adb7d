"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import json
import logging
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from nodeupdater.adapters.mock import MockCommandRunner
from nodeupdater.core.updater.rpm_ostree import RpmOstreeClient

RPM_OSTREE = "rpm-ostree"


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """CLI invocations reconfigure the root logger; undo that per test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def runner() -> MockCommandRunner:
    """A fresh mock runner; every command succeeds with empty output."""
    return MockCommandRunner()


@pytest.fixture
def client(runner: MockCommandRunner) -> RpmOstreeClient:
    """rpm-ostree client wired to the mock runner."""
    return RpmOstreeClient(runner, rpm_ostree_cmd=RPM_OSTREE)


@pytest.fixture
def status_json() -> Callable[..., str]:
    """Build an ``rpm-ostree status --json`` document.

    Each positional argument is a dict of Deployment fields; missing
    fields get plausible defaults.
    """

    def _build(*deployments: dict) -> str:
        docs = []
        for i, d in enumerate(deployments):
            doc = {
                "id": f"rhcos-{i}",
                "osname": "rhcos",
                "serial": i,
                "checksum": f"{i:064x}",
                "version": f"4.{i}",
                "timestamp": 1700000000 + i,
                "booted": False,
                "origin": "",
                # keys we don't model must be ignored
                "requested-packages": [],
                "pinned": False,
            }
            doc.update(d)
            docs.append(doc)
        return json.dumps({"deployments": docs, "transaction": None, "cached-update": None})

    return _build


@pytest.fixture
def coreos_release(tmp_path: Path) -> Path:
    path = tmp_path / "os-release-rhcos"
    path.write_text(textwrap.dedent("""\
        NAME="Red Hat Enterprise Linux CoreOS"
        ID="rhcos"
        ID_LIKE="rhel fedora"
        VERSION_ID="4.14"
        PRETTY_NAME="Red Hat Enterprise Linux CoreOS 414.92"
        VARIANT_ID=coreos
    """))
    return path


@pytest.fixture
def rhel_release(tmp_path: Path) -> Path:
    path = tmp_path / "os-release-rhel"
    path.write_text(textwrap.dedent("""\
        NAME="Red Hat Enterprise Linux Server"
        ID="rhel"
        ID_LIKE="fedora"
        VERSION_ID="7.9"
        PRETTY_NAME="Red Hat Enterprise Linux Server 7.9 (Maipo)"
    """))
    return path


@pytest.fixture
def cmdline_file(tmp_path: Path) -> Path:
    path = tmp_path / "cmdline"
    path.write_text("BOOT_IMAGE=/vmlinuz root=/dev/sda1 ro quiet\n")
    return path
