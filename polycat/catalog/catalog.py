"""Message catalog helpers."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Dict

from polycat.catalog.locales import SUPPORTED_LOCALES
from polycat.utils.exceptions import CatalogFormatError

MessageCatalog = Dict[str, Any]


def lookup(catalog: Mapping[str, Any] | None, key: str) -> str | None:
    """Resolve ``key`` in ``catalog``.

    A literal top-level key wins; otherwise the key is walked as a dot path
    through nested mappings. Only string leaves are hits.
    """
    if not catalog or not key:
        return None

    value = catalog.get(key)
    if isinstance(value, str):
        return value

    node: Any = catalog
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def validate_catalog(payload: Any, name: str) -> MessageCatalog:
    """Check that a fetched payload is a usable catalog.

    Raises:
        CatalogFormatError: payload is not a non-empty mapping

    """
    if not isinstance(payload, Mapping):
        raise CatalogFormatError(
            f"Catalog '{name}' is not a mapping",
            {"type": type(payload).__name__},
        )
    if not payload:
        raise CatalogFormatError(f"Catalog '{name}' is empty")
    return copy.deepcopy(dict(payload))


def count_messages(catalog: Mapping[str, Any]) -> int:
    """Count string leaves in a catalog."""
    total = 0
    for value in catalog.values():
        if isinstance(value, Mapping):
            total += count_messages(value)
        elif isinstance(value, str):
            total += 1
    return total


def empty_catalogs() -> dict[str, MessageCatalog]:
    """One empty catalog per supported locale."""
    return {locale_id: {} for locale_id in SUPPORTED_LOCALES}
