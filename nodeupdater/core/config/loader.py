"""
Configuration loader — reads agent.yml into the AgentConfig model.

Lookup order:
    explicit path (--config)  >  NODEUPDATER_CONFIG env var  >  /etc/node-os-updater/agent.yml

A missing file at the default location is not an error: the agent
then runs on built-in defaults. An explicitly requested file must exist.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from nodeupdater.core.errors import ConfigError
from nodeupdater.core.models.config import AgentConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "NODEUPDATER_CONFIG"
DEFAULT_CONFIG_PATH = Path("/etc/node-os-updater/agent.yml")

__all__ = ["ConfigError", "find_config_file", "load_config"]


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Return the config file to load, or None to use defaults.

    Raises:
        ConfigError: An explicitly requested file does not exist.
    """
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"Config file not found: {explicit}")
        return explicit

    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        path = Path(from_env)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path} (from ${CONFIG_ENV_VAR})")
        return path

    if DEFAULT_CONFIG_PATH.is_file():
        return DEFAULT_CONFIG_PATH
    return None


def load_config(path: Path | None = None) -> AgentConfig:
    """Load and validate agent configuration.

    Args:
        path: Explicit path to agent.yml. If None, uses the lookup order.

    Returns:
        Validated AgentConfig.

    Raises:
        ConfigError: If the file is unreadable or invalid.
    """
    path = find_config_file(path)
    if path is None:
        logger.debug("No config file found, using defaults")
        return AgentConfig()

    logger.debug("Loading agent config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # The YAML may wrap everything under an "agent" key or be flat
    agent_data = data.get("agent", data)

    try:
        config = AgentConfig.model_validate(agent_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid agent configuration in {path}: {e}") from e

    logger.info("Loaded agent config from %s", path)
    return config
