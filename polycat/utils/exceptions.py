"""Exception hierarchy for polycat.

Catalog errors are raised by fetchers and caught at the loader boundary;
nothing in this hierarchy escapes the locale runtime's public operations.
"""

from __future__ import annotations

from typing import Any


class PolycatError(Exception):
    """Base exception for all polycat errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize polycat error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(PolycatError):
    """Data validation errors."""


class ConfigurationError(ValidationError):
    """Configuration validation errors."""


class CatalogError(PolycatError):
    """Message catalog errors."""


class CatalogFetchError(CatalogError):
    """A catalog resource could not be reached."""


class CatalogFormatError(CatalogError):
    """A catalog resource was reached but its payload is unusable."""
