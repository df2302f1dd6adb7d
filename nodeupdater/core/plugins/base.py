"""
Plugin base — the contract between the harness and a plugin.

A plugin is a named, kind-tagged unit with one blocking operation,
``run(stop)``. It returns (or raises) when it is done; raising is how
a plugin reports its terminal error. ``stop`` is cooperative: the
plugin must watch it and return promptly once it is set.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod

KIND_PLUGIN = "plugin"
KIND_DAEMON = "daemon"


class Plugin(ABC):
    """Abstract base class for all plugins."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique plugin name."""

    @property
    def kind(self) -> str:
        """'plugin' or 'daemon'."""
        return KIND_PLUGIN

    @abstractmethod
    def run(self, stop: threading.Event) -> None:
        """Run until done or until ``stop`` is set."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} kind={self.kind!r}>"
