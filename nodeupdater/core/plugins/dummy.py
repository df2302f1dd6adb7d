"""
Dummy plugin — a no-op that demonstrates the plugin contract.
"""

from __future__ import annotations

import threading

from nodeupdater.core.errors import PluginStoppedError
from nodeupdater.core.plugins.base import KIND_PLUGIN, Plugin


class DummyPlugin(Plugin):
    """Blocks until stopped, then reports the stop as its terminal error."""

    @property
    def name(self) -> str:
        return "dummy"

    @property
    def kind(self) -> str:
        return KIND_PLUGIN

    def run(self, stop: threading.Event) -> None:
        stop.wait()
        raise PluginStoppedError(f"plugin {self.name}: received stop signal")
