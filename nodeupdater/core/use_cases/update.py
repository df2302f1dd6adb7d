"""
Update use case — one reconciliation pass of the node's OS.

Brings the host to the desired image and kernel arguments. Safe to
call repeatedly: when the booted deployment already came from the
desired image the rebase is skipped, and kernel argument changes that
are already in effect produce no host command.

When to call this is the caller's business; so is retrying a failed pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from nodeupdater.core.errors import ConfigError, NodeUpdaterError
from nodeupdater.core.host.inhibit import inhibited
from nodeupdater.core.models.kernel_args import KernelArgument
from nodeupdater.core.updater.base import NodeUpdaterClient

logger = logging.getLogger(__name__)


@dataclass
class UpdateResult:
    """What a reconciliation pass did."""

    image_url: str = ""
    previous_image_url: str = ""
    previous_version: str = ""
    rebased: bool = False
    kernel_args_requested: list[str] = field(default_factory=list)
    kernel_args_applied: bool = False   # a kargs command ran, whatever it printed
    kernel_args_output: str = ""

    @property
    def changed(self) -> bool:
        return self.rebased or self.kernel_args_applied

    def to_dict(self) -> dict:
        return {
            "image_url": self.image_url,
            "previous_image_url": self.previous_image_url,
            "previous_version": self.previous_version,
            "rebased": self.rebased,
            "changed": self.changed,
            "kernel_args_requested": self.kernel_args_requested,
            "kernel_args_applied": self.kernel_args_applied,
            "kernel_args_output": self.kernel_args_output,
        }


def apply_update(
    client: NodeUpdaterClient,
    image_url: str,
    os_image_content_dir: str | None,
    kernel_args: list[KernelArgument] | None = None,
    inhibit: bool = True,
) -> UpdateResult:
    """Reconcile the host against ``image_url`` and ``kernel_args``.

    Args:
        client: Node updater for this host.
        image_url: Desired OS image reference ("" to leave the OS alone).
        os_image_content_dir: Directory holding the extracted OS content.
            Only required when a rebase actually has to run.
        kernel_args: Kernel argument mutations to apply after the rebase.
        inhibit: Hold a power-state inhibitor while rebasing.

    Raises:
        ConfigError: A rebase is needed but no content directory was given.
        NodeUpdaterError: Any failure from the host. A failed rebase has
            its pending deployment cleaned up before the error propagates.
    """
    kernel_args = kernel_args or []
    result = UpdateResult(
        image_url=image_url,
        kernel_args_requested=[f"{k.operation.value}:{k.name}" for k in kernel_args],
    )

    if image_url:
        current_url, current_version = client.get_booted_os_image_url()
        result.previous_image_url = current_url
        result.previous_version = current_version

        if current_url == image_url:
            logger.info("Already booted into %s (%s), skipping rebase", image_url, current_version)
        elif not os_image_content_dir:
            raise ConfigError(
                f"cannot rebase to {image_url}: no OS content directory "
                "(pass --content-dir or set os_image_content_dir)"
            )
        else:
            with inhibited(enabled=inhibit):
                result.rebased = rebase_with_cleanup(client, image_url, os_image_content_dir)

    if kernel_args:
        output = client.set_kernel_args(kernel_args)
        result.kernel_args_applied = output is not None
        result.kernel_args_output = output or ""
        if result.kernel_args_applied:
            logger.info("Kernel arguments updated")
        else:
            logger.info("Kernel arguments already reconciled")

    return result


def rebase_with_cleanup(client: NodeUpdaterClient, image_url: str, os_image_content_dir: str) -> bool:
    """Rebase, removing the pending deployment if the rebase fails.

    The original error is re-raised; a failed cleanup is only logged.
    """
    try:
        return client.rebase(image_url, os_image_content_dir)
    except NodeUpdaterError:
        logger.error("Rebase to %s failed, removing pending deployment", image_url)
        try:
            client.remove_pending_deployment()
        except NodeUpdaterError as cleanup_error:
            logger.warning("Failed to remove pending deployment: %s", cleanup_error)
        raise
