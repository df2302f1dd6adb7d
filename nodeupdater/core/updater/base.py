"""
Node updater client — the capability set callers depend on.

Two implementations exist: ``RpmOstreeClient`` for CoreOS variants and
``NotCoreOSClient`` for everything else. The variant is chosen once, at
construction (see ``new_node_updater_client``); callers never branch
on which one they hold.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from nodeupdater.core.models.deployment import Deployment
from nodeupdater.core.models.kernel_args import KernelArgument


class NodeUpdaterClient(ABC):
    """How to interact with the host around content deployment."""

    @property
    @abstractmethod
    def variant(self) -> str:
        """Short host variant name ('coreos' or 'not-coreos')."""

    @abstractmethod
    def get_booted_deployment(self) -> Deployment:
        """Return the deployment the host is currently booted into."""

    @abstractmethod
    def get_booted_os_image_url(self) -> tuple[str, str]:
        """Return ``(image_url, version)`` of the booted deployment.

        ``image_url`` is empty when the booted deployment was not
        produced from an image by this agent.
        """

    @abstractmethod
    def get_kernel_args(self) -> list[str]:
        """Return the host's current kernel arguments, one per token."""

    @abstractmethod
    def get_status(self) -> str:
        """Return multi-line human-readable deployment status."""

    @abstractmethod
    def rebase(self, image_url: str, os_image_content_dir: str) -> bool:
        """Rebase the host onto the OS commit carried by ``image_url``.

        Returns whether a change was made.
        """

    @abstractmethod
    def remove_pending_deployment(self) -> None:
        """Remove any staged-but-not-booted deployment."""

    @abstractmethod
    def set_kernel_args(self, args: list[KernelArgument]) -> str | None:
        """Apply kernel argument mutations.

        Returns the host tool output (possibly empty) when a command ran,
        or None when the host already matched and nothing was issued.
        """

    @abstractmethod
    def run_rpm_ostree(self, noun: str, *args: str) -> str:
        """Run an arbitrary rpm-ostree subcommand."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} variant={self.variant!r}>"
