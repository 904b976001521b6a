"""Configuration management for polycat.

Provides centralized configuration with TOML support and validation, loaded
hierarchically from defaults -> config file -> environment -> CLI.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import toml

from polycat.models import (
    BrandingConfig,
    CatalogSourceConfig,
    Config,
    LocaleConfig,
    ObservabilityConfig,
)
from polycat.utils.exceptions import ConfigurationError
from polycat.utils.logging_config import setup_logging

CONFIG_FILENAME = "polycat.toml"

# Environment variable -> dotted config path
ENV_MAPPINGS: dict[str, str] = {
    # Locale
    "POLYCAT_DEFAULT_LOCALE": "locale.default_locale",
    "POLYCAT_FALLBACK_LOCALE": "locale.fallback_locale",
    "POLYCAT_PREFERENCE_KEY": "locale.preference_key",
    "POLYCAT_PREFERENCE_FILE": "locale.preference_file",
    "POLYCAT_TITLE_RESYNC_DELAY": "locale.title_resync_delay",
    # Branding
    "POLYCAT_SITE_NAME": "branding.site_name",
    "POLYCAT_BRANDING_PLACEHOLDER": "branding.placeholder",
    # Catalog sources
    "POLYCAT_CATALOG_KIND": "catalogs.kind",
    "POLYCAT_AUTH_ROOT": "catalogs.authenticated_root",
    "POLYCAT_UNAUTH_ROOT": "catalogs.unauthenticated_root",
    "POLYCAT_REQUEST_TIMEOUT": "catalogs.request_timeout",
    # Observability
    "POLYCAT_LOG_LEVEL": "observability.log_level",
    "POLYCAT_LOG_FILE": "observability.log_file",
    "POLYCAT_STRUCTURED_LOGGING": "observability.structured_logging",
    "POLYCAT_LOG_CORRELATION_ID": "observability.log_correlation_id",
}

# Paths whose values stay strings even when they look numeric
_STRING_PATHS = frozenset(
    {
        "locale.default_locale",
        "locale.fallback_locale",
        "locale.preference_key",
        "locale.preference_file",
        "branding.site_name",
        "branding.placeholder",
        "catalogs.authenticated_root",
        "catalogs.unauthenticated_root",
        "observability.log_file",
    }
)

# Global configuration instance
_config_manager: ConfigManager | None = None


def _parse_env_value(raw: str, path: str) -> bool | int | float | str:
    if path in _STRING_PATHS:
        return raw
    if path == "observability.log_level":
        return raw.upper()
    if path == "catalogs.kind":
        return raw.lower()
    low = raw.lower()
    if low in {"true", "1", "yes", "on"}:
        return True
    if low in {"false", "0", "no", "off"}:
        return False
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_file: str | Path | None = None, configure_logging: bool = True):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for polycat.toml
            configure_logging: Apply the observability section to logging

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        if configure_logging:
            self._setup_logging()

    def _find_config_file(
        self,
        config_file: str | Path | None,
    ) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / CONFIG_FILENAME,
            Path.home() / ".config" / "polycat" / CONFIG_FILENAME,
            Path.home() / f".{CONFIG_FILENAME}",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file is not None:
            if not self.config_file.exists():
                msg = f"Config file not found: {self.config_file}"
                raise ConfigurationError(msg)
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                msg = f"Failed to read config file {self.config_file}: {e}"
                raise ConfigurationError(msg) from e

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}
        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw, cfg_path))
        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def apply_overrides(self, overrides: dict[str, Any]) -> Config:
        """Apply dotted-path overrides (e.g. from CLI options) and revalidate."""
        data = self.config.model_dump(mode="json")
        for path, value in overrides.items():
            if value is not None:
                _set_nested(data, path, value)
        try:
            self.config = Config(**data)
        except Exception as e:
            msg = f"Invalid configuration override: {e}"
            raise ConfigurationError(msg) from e
        return self.config

    def export(self, fmt: str = "toml") -> str:
        """Export current configuration as a string in the given format.

        Args:
            fmt: one of "toml" or "json"

        """
        data = self.config.model_dump(mode="json", exclude_none=True)
        fmt = (fmt or "toml").lower()
        if fmt == "toml":
            return toml.dumps(data)
        if fmt == "json":
            return json.dumps(data, indent=2)
        msg = f"Unsupported export format: {fmt}"
        raise ConfigurationError(msg)

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        try:
            setup_logging(self.config.observability)
        except (OSError, ValueError) as e:
            logging.getLogger("polycat").warning("Failed to configure logging: %s", e)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(config_file: str | Path | None = None) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file)
    return _config_manager


def reload_config() -> Config:
    """Reload configuration from file."""
    if _config_manager is None:
        msg = "Configuration not initialized"
        raise ConfigurationError(msg)

    _config_manager.config = _config_manager._load_config()  # noqa: SLF001
    _config_manager._setup_logging()  # noqa: SLF001
    return _config_manager.config


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime.

    Components that snapshot config must re-read values to pick up changes.
    """
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(None, configure_logging=False)
    _config_manager.config = new_config
    _config_manager._setup_logging()  # noqa: SLF001


def reset_config() -> None:
    """Forget the global configuration manager."""
    global _config_manager
    _config_manager = None


def get_locale_config() -> LocaleConfig:
    """Get locale configuration."""
    return get_config().locale


def get_branding_config() -> BrandingConfig:
    """Get branding configuration."""
    return get_config().branding


def get_catalog_source_config() -> CatalogSourceConfig:
    """Get catalog source configuration."""
    return get_config().catalogs


def get_observability_config() -> ObservabilityConfig:
    """Get observability configuration."""
    return get_config().observability
