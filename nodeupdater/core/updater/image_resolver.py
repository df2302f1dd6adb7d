"""
Image resolver — map a desired OS image reference to an OSTree commit.

Resolution is a cascade, each stage only reached when the previous one
comes up empty:

    1. skopeo inspect          read labels straight from the registry
    2. podman pull + inspect   for registries skopeo can't read metadata from
    3. local repository        the single ref in the extracted OS content repo

Stages 1 and 2 are an ordered list of ``ImageInspector``s, tried until
one returns metadata. Stage 3 only runs when that metadata carries no
commit label.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pydantic import ValidationError

from nodeupdater.adapters.base import CommandRunner
from nodeupdater.core.errors import (
    CommandError,
    ImageInspectionError,
    NodeUpdaterError,
    RepoRefError,
    StatusParseError,
)
from nodeupdater.core.models.image import (
    OSTREE_COMMIT_LABEL,
    ImageInspection,
    ResolvedCommit,
)

logger = logging.getLogger(__name__)

# Number of attempts for commands that pull data from the network
NUM_RETRIES_NET_COMMANDS = 5

# Pull secret written by the cluster for the kubelet
KUBELET_AUTH_FILE = "/var/lib/kubelet/config.json"


def _auth_args(auth_file: str | None) -> list[str]:
    if auth_file and Path(auth_file).is_file():
        return ["--authfile", auth_file]
    return []


def _parse_inspection(output: str, tool: str) -> ImageInspection:
    try:
        data = json.loads(output)
        if isinstance(data, list):
            if not data:
                raise ValueError("empty inspection array")
            data = data[0]
        return ImageInspection.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.error("Unparseable %s inspect output:\n%s", tool, output)
        raise StatusParseError(f"failed to parse {tool} inspect output: {e}") from e


# ── Inspectors ──────────────────────────────────────────────────


class ImageInspector(ABC):
    """One way of reading an image's metadata.

    ``command`` names the host tool the inspector needs; the resolver
    skips the inspector when the runner cannot find it.
    """

    command: str | None = None

    def __init__(self, runner: CommandRunner, auth_file: str | None = KUBELET_AUTH_FILE):
        self.runner = runner
        self.auth_file = auth_file

    @property
    @abstractmethod
    def name(self) -> str:
        """Inspector identifier, used in logs."""

    @abstractmethod
    def inspect(self, image_url: str) -> ImageInspection:
        """Return image metadata or raise ``NodeUpdaterError``."""


class SkopeoInspector(ImageInspector):
    """Read image metadata from the registry without pulling layers."""

    command = "skopeo"

    @property
    def name(self) -> str:
        return "skopeo"

    def inspect(self, image_url: str) -> ImageInspection:
        args = ["inspect", "--no-tags", *_auth_args(self.auth_file), f"docker://{image_url}"]
        output = self.runner.run(self.command, *args)
        return _parse_inspection(output, self.name)


class PodmanInspector(ImageInspector):
    """Pull the image locally, inspect it, then remove it again.

    The pull is retried because it is a network operation. Removal is
    best effort: its failure is logged and never changes the result.
    """

    command = "podman"

    def __init__(
        self,
        runner: CommandRunner,
        auth_file: str | None = KUBELET_AUTH_FILE,
        pull_retries: int = NUM_RETRIES_NET_COMMANDS,
    ):
        super().__init__(runner, auth_file)
        self.pull_retries = pull_retries

    @property
    def name(self) -> str:
        return "podman"

    def inspect(self, image_url: str) -> ImageInspection:
        try:
            self.runner.run_with_retries(
                self.pull_retries,
                self.command,
                "pull",
                "-q",
                *_auth_args(self.auth_file),
                image_url,
            )
            output = self.runner.run(self.command, "inspect", "--type=image", image_url)
            return _parse_inspection(output, self.name)
        finally:
            self._remove(image_url)

    def _remove(self, image_url: str) -> None:
        try:
            self.runner.run(self.command, "rmi", image_url)
        except CommandError as e:
            logger.warning("Failed to remove pulled image %s: %s", image_url, e)


# ── Local repository ────────────────────────────────────────────


class LocalRepoResolver:
    """Resolve the commit from the extracted OS content repository.

    Only unambiguous when the repo holds exactly one ref.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def list_refs(self, repo: str) -> list[str]:
        output = self.runner.run("ostree", "refs", "--repo", repo)
        return [line.strip() for line in output.splitlines() if line.strip()]

    def rev_parse(self, repo: str, ref: str) -> str:
        return self.runner.run("ostree", "rev-parse", "--repo", repo, ref).strip()

    def resolve(self, repo: str) -> tuple[str, str]:
        """Return ``(ref, checksum)`` for the repo's only ref.

        Raises:
            RepoRefError: Zero or more than one ref exist.
        """
        refs = self.list_refs(repo)
        if not refs:
            raise RepoRefError(f"no refs found in repo {repo}")
        if len(refs) > 1:
            raise RepoRefError(f"multiple refs found in repo {repo}: {', '.join(refs)}")

        ref = refs[0]
        logger.info("Using ref %s", ref)
        return ref, self.rev_parse(repo, ref)


# ── Resolver ────────────────────────────────────────────────────


class ImageResolver:
    """Run the resolution cascade for one image reference."""

    def __init__(
        self,
        inspectors: list[ImageInspector],
        repo_resolver: LocalRepoResolver,
    ):
        if not inspectors:
            raise ValueError("ImageResolver needs at least one inspector")
        self.inspectors = inspectors
        self.repo_resolver = repo_resolver

    @classmethod
    def default(
        cls,
        runner: CommandRunner,
        auth_file: str | None = KUBELET_AUTH_FILE,
        pull_retries: int = NUM_RETRIES_NET_COMMANDS,
    ) -> ImageResolver:
        """skopeo first, podman as fallback, local repo last."""
        return cls(
            inspectors=[
                SkopeoInspector(runner, auth_file),
                PodmanInspector(runner, auth_file, pull_retries),
            ],
            repo_resolver=LocalRepoResolver(runner),
        )

    def inspect(self, image_url: str) -> ImageInspection:
        """Try each inspector in order; return the first success.

        Inspectors whose host tool is not installed are skipped.

        Raises:
            ImageInspectionError: Every inspector failed or was skipped.
        """
        last_error: NodeUpdaterError | None = None
        reasons: list[str] = []
        for i, inspector in enumerate(self.inspectors):
            if inspector.command and not inspector.runner.is_available(inspector.command):
                logger.info("%s not found, skipping %s inspect", inspector.command, inspector.name)
                reasons.append(f"{inspector.command} not found")
                continue
            if i > 0:
                logger.info("Falling back to using %s inspect", inspector.name)
            try:
                return inspector.inspect(image_url)
            except NodeUpdaterError as e:
                logger.info("%s inspect of %s failed: %s", inspector.name, image_url, e)
                reasons.append(str(e))
                last_error = e

        raise ImageInspectionError(
            f"unable to inspect {image_url}: {'; '.join(reasons)}"
        ) from last_error

    def resolve(self, image_url: str, repo: str) -> ResolvedCommit:
        """Resolve ``image_url`` to the OSTree commit to rebase onto.

        The commit label takes priority; the local repo is only consulted
        when the image does not carry one.
        """
        inspection = self.inspect(image_url)
        version = inspection.ostree_version

        if inspection.ostree_commit:
            resolved = ResolvedCommit(checksum=inspection.ostree_commit, version=version)
            logger.info("Pivoting to: %s", resolved.describe())
            return resolved

        logger.info("No %s label found in metadata! Inspecting...", OSTREE_COMMIT_LABEL)
        ref, checksum = self.repo_resolver.resolve(repo)
        return ResolvedCommit(checksum=checksum, version=version, source="repo-ref", ref=ref)
