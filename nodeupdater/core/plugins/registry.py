"""
Plugin registry — explicit, append-only set of plugins.

Built once at process start and handed to the harness by reference;
there is no module-level registry that plugins mutate on import.
"""

from __future__ import annotations

import logging

from nodeupdater.core.errors import PluginError
from nodeupdater.core.plugins.base import Plugin

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Ordered collection of registered plugins."""

    def __init__(self) -> None:
        self._plugins: list[Plugin] = []

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        return tuple(self._plugins)

    def __len__(self) -> int:
        return len(self._plugins)

    def names(self) -> list[str]:
        return [p.name for p in self._plugins]

    def register(self, plugin: Plugin) -> None:
        """Register a plugin. Each name may be registered only once.

        Raises:
            PluginError: A plugin with the same name is already registered.
        """
        if plugin.name in self.names():
            raise PluginError(f"plugin already registered: {plugin.name}")
        self._plugins.append(plugin)
        logger.info("plugin registered: %s as type %s", plugin.name, plugin.kind)
