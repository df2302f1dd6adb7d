"""Node updater clients.

``new_node_updater_client`` is the only place the host variant is
decided. It runs once per process; the returned client is used for
every later operation.
"""

from __future__ import annotations

import logging

from nodeupdater.adapters.base import CommandRunner
from nodeupdater.adapters.shell.command import ShellCommandRunner
from nodeupdater.core.host.os_release import read_os_release
from nodeupdater.core.models.config import AgentConfig
from nodeupdater.core.updater.base import NodeUpdaterClient
from nodeupdater.core.updater.image_resolver import ImageResolver
from nodeupdater.core.updater.not_coreos import NotCoreOSClient
from nodeupdater.core.updater.rpm_ostree import RpmOstreeClient

logger = logging.getLogger(__name__)

__all__ = [
    "NodeUpdaterClient",
    "NotCoreOSClient",
    "RpmOstreeClient",
    "new_node_updater_client",
]


def new_node_updater_client(
    config: AgentConfig | None = None,
    runner: CommandRunner | None = None,
) -> NodeUpdaterClient:
    """Build the node updater for the running host.

    Args:
        config: Agent settings (defaults when None).
        runner: Command runner for host tools. Defaults to a
            ``ShellCommandRunner`` configured from ``config``.

    Raises:
        HostIdentityError: The host OS could not be identified. This is
            fatal; the agent cannot pick a capability profile without it.
    """
    config = config or AgentConfig()
    host = read_os_release(config.os_release_path)

    if not host.is_coreos_variant:
        logger.warning(
            "Host operating system %r is not a CoreOS variant. "
            "Update functionality is disabled.",
            host.id,
        )
        return NotCoreOSClient(cmdline_path=config.cmdline_path)

    runner = runner or ShellCommandRunner(
        timeout=config.command_timeout,
        retry_delay=config.retry_delay,
    )
    resolver = ImageResolver.default(
        runner,
        auth_file=config.auth_file,
        pull_retries=config.pull_retries,
    )
    logger.debug("Host %s is a CoreOS variant, using rpm-ostree", host.id)
    return RpmOstreeClient(
        runner,
        resolver=resolver,
        rpm_ostree_cmd=config.rpm_ostree_cmd,
        origin_description=config.custom_origin_description,
    )
