"""Configuration management for polycat."""

from __future__ import annotations

from polycat.config.config import (
    ConfigManager,
    get_config,
    init_config,
    reload_config,
    reset_config,
    set_config,
)
from polycat.models import Config

__all__ = [
    "Config",
    "ConfigManager",
    "get_config",
    "init_config",
    "reload_config",
    "reset_config",
    "set_config",
]
