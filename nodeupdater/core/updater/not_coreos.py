"""
Not-CoreOS client — the node updater for hosts without atomic updates.

Presents the same capability set as ``RpmOstreeClient`` but never runs a
host command. Every mutating operation raises ``NotCoreOSVariantError``,
so callers can treat "this host can't do that" as one error kind.
"""

from __future__ import annotations

import logging
from pathlib import Path

from nodeupdater.core.errors import NotCoreOSVariantError
from nodeupdater.core.models.deployment import Deployment
from nodeupdater.core.models.kernel_args import KernelArgument
from nodeupdater.core.updater.base import NodeUpdaterClient

logger = logging.getLogger(__name__)

CMDLINE_FILE = "/proc/cmdline"


class NotCoreOSClient(NodeUpdaterClient):
    """Node updater for legacy and non-CoreOS operating systems."""

    def __init__(self, cmdline_path: str = CMDLINE_FILE):
        self.cmdline_path = cmdline_path

    @property
    def variant(self) -> str:
        return "not-coreos"

    def get_booted_deployment(self) -> Deployment:
        return Deployment()

    def get_booted_os_image_url(self) -> tuple[str, str]:
        raise NotCoreOSVariantError()

    def get_status(self) -> str:
        raise NotCoreOSVariantError()

    def get_kernel_args(self) -> list[str]:
        """Read the live kernel command line; no rpm-ostree here."""
        return Path(self.cmdline_path).read_text(encoding="utf-8").split()

    def rebase(self, image_url: str, os_image_content_dir: str) -> bool:
        logger.info("Rebase is not supported on this system.")
        raise NotCoreOSVariantError()

    def remove_pending_deployment(self) -> None:
        raise NotCoreOSVariantError()

    def set_kernel_args(self, args: list[KernelArgument]) -> str | None:
        raise NotCoreOSVariantError()

    def run_rpm_ostree(self, noun: str, *args: str) -> str:
        raise NotCoreOSVariantError()
