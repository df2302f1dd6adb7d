"""
Deployment models — typed view of ``rpm-ostree status --json``.

A Deployment is one bootable OS revision in the host's ordered
deployment list. These are read-only snapshots: they are produced
fresh on every status query and never cached, since an operator can
rebase the host behind our back at any time.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

# Scheme tag for custom origins written by our own rebases
PIVOT_SCHEME = "pivot://"


class Deployment(BaseModel):
    """A single deployment on a node.

    The zero value (``Deployment()``) is meaningful: it is what hosts
    without a deployment store report.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    osname: str = ""
    serial: int = 0                 # revision ordinal within the OS family
    checksum: str = ""
    version: str = ""
    timestamp: int = 0
    booted: bool = False
    origin: str = ""
    custom_origin: list[str] = Field(default_factory=list, alias="custom-origin")

    @property
    def custom_origin_url(self) -> str:
        return self.custom_origin[0] if self.custom_origin else ""

    @property
    def custom_origin_description(self) -> str:
        return self.custom_origin[1] if len(self.custom_origin) > 1 else ""

    @property
    def pivot_image_url(self) -> str:
        """Image reference that produced this deployment, or "".

        Only custom origins carrying the pivot scheme are ours; anything
        else (e.g. a manual ``rpm-ostree rebase``) is not image-sourced.
        """
        url = self.custom_origin_url
        if url.startswith(PIVOT_SCHEME):
            return url[len(PIVOT_SCHEME):]
        return ""


class DeploymentState(BaseModel):
    """Zero or more deployments, in the host tool's order.

    Subset of the ``rpm-ostree status --json`` document.
    """

    model_config = ConfigDict(extra="ignore")

    deployments: list[Deployment] = Field(default_factory=list)

    def booted(self) -> Deployment | None:
        """Return the booted deployment, or None.

        The host tool should never report more than one booted entry.
        If it does, the first in list order wins.
        """
        booted = [d for d in self.deployments if d.booted]
        if not booted:
            return None
        if len(booted) > 1:
            logger.warning(
                "%d deployments report booted=true; using the first (%s)",
                len(booted),
                booted[0].id,
            )
        return booted[0]
