"""Plugin harness — explicit registry plus concurrent runner."""

from __future__ import annotations

from nodeupdater.core.errors import PluginError
from nodeupdater.core.plugins.base import Plugin
from nodeupdater.core.plugins.dummy import DummyPlugin
from nodeupdater.core.plugins.registry import PluginRegistry
from nodeupdater.core.plugins.runner import PluginReceipt, PluginReport, run_plugins

# Built-in plugins that can be enabled by name from agent.yml
BUILTIN_PLUGINS: dict[str, type[Plugin]] = {
    "dummy": DummyPlugin,
}

__all__ = [
    "BUILTIN_PLUGINS",
    "DummyPlugin",
    "Plugin",
    "PluginReceipt",
    "PluginRegistry",
    "PluginReport",
    "builtin_registry",
    "run_plugins",
]


def builtin_registry(enabled: list[str]) -> PluginRegistry:
    """Build a registry holding the named built-in plugins.

    Raises:
        PluginError: An unknown plugin name was requested.
    """
    registry = PluginRegistry()
    for name in enabled:
        plugin_cls = BUILTIN_PLUGINS.get(name)
        if plugin_cls is None:
            raise PluginError(
                f"unknown plugin '{name}'. Available: {', '.join(sorted(BUILTIN_PLUGINS))}"
            )
        registry.register(plugin_cls())
    return registry
