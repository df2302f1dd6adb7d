"""
Domain models — Pydantic types for the node updater.

All models are re-exported here for convenient access:

    from nodeupdater.core.models import Deployment, KernelArgument, ImageInspection
"""

from nodeupdater.core.models.config import AgentConfig
from nodeupdater.core.models.deployment import PIVOT_SCHEME, Deployment, DeploymentState
from nodeupdater.core.models.image import (
    OSTREE_COMMIT_LABEL,
    OSTREE_VERSION_LABEL,
    ImageInspection,
    ResolvedCommit,
)
from nodeupdater.core.models.kernel_args import KernelArgOperation, KernelArgument

__all__ = [
    # config.py
    "AgentConfig",
    # deployment.py
    "Deployment",
    "DeploymentState",
    "PIVOT_SCHEME",
    # image.py
    "ImageInspection",
    "OSTREE_COMMIT_LABEL",
    "OSTREE_VERSION_LABEL",
    "ResolvedCommit",
    # kernel_args.py
    "KernelArgOperation",
    "KernelArgument",
]
