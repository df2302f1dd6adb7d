"""
Status use case — thin node summary for upstream status reporting.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from nodeupdater.core.errors import NodeUpdaterError, NotCoreOSVariantError
from nodeupdater.core.models.deployment import Deployment
from nodeupdater.core.updater.base import NodeUpdaterClient


@dataclass
class NodeStatus:
    """Aggregated node OS status."""

    variant: str = ""
    booted: Deployment | None = None
    image_url: str = ""
    version: str = ""
    kernel_args: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def coreos(self) -> bool:
        return self.variant == "coreos"

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dictionary."""
        result: dict = {"variant": self.variant, "coreos": self.coreos}
        if self.error:
            result["error"] = self.error
            return result

        if self.booted is not None:
            result["booted"] = {
                "id": self.booted.id,
                "osname": self.booted.osname,
                "checksum": self.booted.checksum,
                "version": self.booted.version,
                "origin": self.booted.origin,
            }
        result["image_url"] = self.image_url
        result["version"] = self.version
        result["kernel_args"] = self.kernel_args
        return result


def get_node_status(client: NodeUpdaterClient) -> NodeStatus:
    """Collect the node summary; host errors land in ``error``."""
    result = NodeStatus(variant=client.variant)

    try:
        result.booted = client.get_booted_deployment()
        result.kernel_args = client.get_kernel_args()
    except (NodeUpdaterError, OSError) as e:
        result.error = str(e)
        return result

    try:
        result.image_url, result.version = client.get_booted_os_image_url()
    except NotCoreOSVariantError:
        # no image-based deployments on this host
        pass
    except NodeUpdaterError as e:
        result.error = str(e)

    return result
