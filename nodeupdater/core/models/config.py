"""
Agent configuration model — loaded from agent.yml.

Every field has a default so the agent runs without any config file
on a stock CoreOS host.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class AgentConfig(BaseModel):
    """Node updater settings."""

    # ── Host identity & tools ────────────────────────────────────
    os_release_path: str = "/etc/os-release"
    cmdline_path: str = "/proc/cmdline"
    rpm_ostree_cmd: str = "/usr/bin/rpm-ostree"
    command_timeout: float | None = None   # seconds; None = wait forever

    # ── Image resolution ────────────────────────────────────────
    auth_file: str = "/var/lib/kubelet/config.json"   # pull secret
    pull_retries: int = Field(default=5, ge=1)
    retry_delay: float = Field(default=5.0, ge=0)

    # ── Rebase ──────────────────────────────────────────────────
    custom_origin_description: str = "Managed by node-os-updater"
    os_image_content_dir: str | None = None
    inhibit_power: bool = True

    # ── Plugins ─────────────────────────────────────────────────
    plugins: list[str] = Field(default_factory=lambda: ["dummy"])
