"""
rpm-ostree client — the node updater for CoreOS variants.

Host state is never cached: every call re-reads it from rpm-ostree,
because an operator may have rebased the host between two passes.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from nodeupdater.adapters.base import CommandRunner
from nodeupdater.core.errors import NotBootedError, StatusParseError
from nodeupdater.core.models.deployment import PIVOT_SCHEME, Deployment, DeploymentState
from nodeupdater.core.models.kernel_args import KernelArgOperation, KernelArgument
from nodeupdater.core.updater.base import NodeUpdaterClient
from nodeupdater.core.updater.image_resolver import ImageResolver
from nodeupdater.core.updater.kargs import quote_space_split

logger = logging.getLogger(__name__)

RPM_OSTREE_CMD = "/usr/bin/rpm-ostree"
DEFAULT_ORIGIN_DESCRIPTION = "Managed by node-os-updater"


def repo_path(os_image_content_dir: str) -> str:
    """OSTree repo location inside an extracted OS content directory."""
    return str(Path(os_image_content_dir) / "srv" / "repo")


class RpmOstreeClient(NodeUpdaterClient):
    """Node updater backed by rpm-ostree.

    Args:
        runner: Executes every host command.
        resolver: Image → commit resolution cascade. Defaults to
            skopeo, podman, local repo over the same runner.
        rpm_ostree_cmd: Path to the rpm-ostree binary.
        origin_description: Human text stored next to the custom origin.
    """

    def __init__(
        self,
        runner: CommandRunner,
        resolver: ImageResolver | None = None,
        rpm_ostree_cmd: str = RPM_OSTREE_CMD,
        origin_description: str = DEFAULT_ORIGIN_DESCRIPTION,
    ):
        self.runner = runner
        self.resolver = resolver or ImageResolver.default(runner)
        self.rpm_ostree_cmd = rpm_ostree_cmd
        self.origin_description = origin_description

    @property
    def variant(self) -> str:
        return "coreos"

    def run_rpm_ostree(self, noun: str, *args: str) -> str:
        return self.runner.run(self.rpm_ostree_cmd, noun, *args)

    # ── Deployment state ────────────────────────────────────────

    def get_deployments(self) -> DeploymentState:
        """Parse ``rpm-ostree status --json``."""
        output = self.run_rpm_ostree("status", "--json")
        try:
            return DeploymentState.model_validate(json.loads(output))
        except (ValueError, ValidationError) as e:
            logger.error("Unparseable rpm-ostree status output:\n%s", output)
            raise StatusParseError(
                f"failed to parse `rpm-ostree status --json` output: {e}"
            ) from e

    def get_booted_deployment(self) -> Deployment:
        booted = self.get_deployments().booted()
        if booted is None:
            raise NotBootedError()
        return booted

    def get_status(self) -> str:
        return self.run_rpm_ostree("status")

    def get_booted_os_image_url(self) -> tuple[str, str]:
        booted = self.get_booted_deployment()
        return booted.pivot_image_url, booted.version

    def get_kernel_args(self) -> list[str]:
        return quote_space_split(self.run_rpm_ostree("kargs"))

    # ── Rebase ──────────────────────────────────────────────────

    def rebase(self, image_url: str, os_image_content_dir: str) -> bool:
        booted = self.get_booted_deployment()

        logger.info("Updating OS to %s", image_url)
        if booted.pivot_image_url:
            logger.info("Previous pivot: %s", booted.pivot_image_url)
        elif booted.custom_origin_url:
            logger.info("Previous custom origin: %s", booted.custom_origin_url)
        else:
            logger.info("Current origin is not custom")

        repo = repo_path(os_image_content_dir)
        resolved = self.resolver.resolve(image_url, repo)
        logger.info(
            "Resolved %s to %s via %s%s",
            image_url,
            resolved.describe(),
            resolved.source,
            f" (ref {resolved.ref})" if resolved.ref else "",
        )

        # Shown by `rpm-ostree status` as the origin, and read back
        # by get_booted_os_image_url after reboot
        custom_url = f"{PIVOT_SCHEME}{image_url}"
        logger.info(
            "Executing rebase from repo path %s with customImageURL %s and checksum %s",
            repo,
            custom_url,
            resolved.checksum,
        )
        self.run_rpm_ostree(
            "rebase",
            "--experimental",
            f"{repo}:{resolved.checksum}",
            "--custom-origin-url",
            custom_url,
            "--custom-origin-description",
            self.origin_description,
        )
        return True

    def remove_pending_deployment(self) -> None:
        self.run_rpm_ostree("cleanup", "-p")

    # ── Kernel arguments ────────────────────────────────────────

    def set_kernel_args(self, args: list[KernelArgument]) -> str | None:
        """Apply kernel argument mutations in a single rpm-ostree call.

        Composite arguments ("cat=kitten puppy=dog") are split and treated
        as independent tokens. Removing an argument that is not present
        is a no-op, and if nothing needs changing no command is issued
        and None is returned.
        """
        flags: list[str] = []
        current: list[str] | None = None

        for karg in args:
            for token in quote_space_split(karg.name):
                if karg.operation == KernelArgOperation.ADD:
                    flags.append(f"--append={token}")
                    continue

                if current is None:
                    current = self.get_kernel_args()
                if _in_use(token, current):
                    flags.append(f"--delete={token}")
                else:
                    logger.debug("Kernel argument %s not present, nothing to delete", token)

        if not flags:
            return None
        return self.run_rpm_ostree("kargs", *flags)


def _in_use(token: str, current: list[str]) -> bool:
    return any(arg.startswith(token) for arg in current)
