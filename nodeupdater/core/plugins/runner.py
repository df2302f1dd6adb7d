"""
Plugin runner — fan out every registered plugin, fan in their results.

One thread per plugin, all sharing one stop event. The runner blocks
until every plugin has returned and reports each one's terminal error.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from nodeupdater.core.plugins.base import Plugin
from nodeupdater.core.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PluginReceipt(BaseModel):
    """Outcome of one plugin run."""

    plugin: str
    kind: str
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"


@dataclass
class PluginReport:
    """Result of running all plugins."""

    receipts: list[PluginReceipt] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.receipts)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.failed)

    @property
    def errors(self) -> dict[str, str]:
        return {r.plugin: r.error or "" for r in self.receipts if r.failed}

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "ok" if self.all_ok else "failed",
            "total": self.total,
            "failed": self.failed,
            "receipts": [r.model_dump(mode="json") for r in self.receipts],
        }


def _run_one(plugin: Plugin, stop: threading.Event) -> PluginReceipt:
    started_at = _now_iso()
    start = time.monotonic()
    error: str | None = None
    try:
        plugin.run(stop)
    except Exception as e:
        error = str(e) or e.__class__.__name__

    return PluginReceipt(
        plugin=plugin.name,
        kind=plugin.kind,
        status="failed" if error else "ok",
        started_at=started_at,
        ended_at=_now_iso(),
        duration_ms=int((time.monotonic() - start) * 1000),
        error=error,
    )


def run_plugins(registry: PluginRegistry, stop: threading.Event) -> PluginReport:
    """Run every registered plugin concurrently and wait for all of them.

    Args:
        registry: Plugins to run.
        stop: Shared cancellation signal, handed to every plugin.

    Returns:
        PluginReport with one receipt per plugin, in registration order.
    """
    report = PluginReport()
    plugins = registry.plugins
    if not plugins:
        logger.info("No plugins registered")
        return report

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=len(plugins),
        thread_name_prefix="plugin",
    ) as pool:
        futures = [pool.submit(_run_one, p, stop) for p in plugins]
        report.receipts = [f.result() for f in futures]

    for receipt in report.receipts:
        if receipt.failed:
            logger.error("plugin %s: %s", receipt.plugin, receipt.error)
        else:
            logger.info("plugin %s finished", receipt.plugin)

    return report
