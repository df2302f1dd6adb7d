"""Node OS Updater — node-side agent for image-based OS updates."""

__version__ = "0.1.0"
