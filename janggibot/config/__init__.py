"""Configuration management for janggibot."""

from janggibot.config.env import load_environment_file
from janggibot.config.loader import (
    Config,
    ControllerBackend,
    PlayMode,
    get_default_config,
    load_config,
)

__all__ = [
    "Config",
    "ControllerBackend",
    "PlayMode",
    "get_default_config",
    "load_config",
    "load_environment_file",
]
