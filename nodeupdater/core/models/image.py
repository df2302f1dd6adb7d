"""
Image inspection model — the metadata we read from an OS container image.

Both ``skopeo inspect`` and ``podman inspect`` emit capitalised keys
(``Digest``, ``Labels``, ...). Only two labels matter to the updater:
the OSTree commit checksum and the display version.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

OSTREE_COMMIT_LABEL = "com.coreos.ostree-commit"
OSTREE_VERSION_LABEL = "version"


class ImageInspection(BaseModel):
    """Transient result of inspecting an image reference."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(default="", alias="Name")
    digest: str = Field(default="", alias="Digest")
    repo_digests: list[str] | None = Field(default_factory=list, alias="RepoDigests")
    created: str | None = Field(default=None, alias="Created")
    labels: dict[str, str] | None = Field(default_factory=dict, alias="Labels")  # podman may emit null
    architecture: str = Field(default="", alias="Architecture")
    os: str = Field(default="", alias="Os")
    layers: list[str] | None = Field(default_factory=list, alias="Layers")

    @property
    def ostree_commit(self) -> str:
        return (self.labels or {}).get(OSTREE_COMMIT_LABEL, "")

    @property
    def ostree_version(self) -> str:
        return (self.labels or {}).get(OSTREE_VERSION_LABEL, "")


@dataclass
class ResolvedCommit:
    """The OS commit an image reference resolved to."""

    checksum: str
    version: str = ""
    source: str = "image-label"     # image-label, repo-ref
    ref: str = ""

    def describe(self) -> str:
        if self.version:
            return f"{self.version} ({self.checksum})"
        return self.checksum
