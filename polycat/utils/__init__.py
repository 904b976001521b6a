"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from polycat.utils.events import Event, EventBus, EventHandler, EventType, publish
from polycat.utils.exceptions import (
    CatalogError,
    CatalogFetchError,
    CatalogFormatError,
    ConfigurationError,
    PolycatError,
    ValidationError,
)
from polycat.utils.logging_config import get_logger, setup_logging

__all__ = [
    # Exceptions
    "CatalogError",
    "CatalogFetchError",
    "CatalogFormatError",
    "ConfigurationError",
    # Events
    "Event",
    "EventBus",
    "EventHandler",
    "EventType",
    "PolycatError",
    "ValidationError",
    # Logging
    "get_logger",
    "publish",
    "setup_logging",
]
