"""Tests for message catalog helpers."""

from __future__ import annotations

import pytest

from polycat.catalog.catalog import count_messages, empty_catalogs, lookup, validate_catalog
from polycat.catalog.locales import SUPPORTED_LOCALES
from polycat.utils.exceptions import CatalogFormatError

pytestmark = [pytest.mark.unit, pytest.mark.catalog]


CATALOG = {
    "menu": {"home": "Home", "count": 3, "nested": {"deep": "Deep"}},
    "flat.key": "Literal",
    "menu.home": "Shadowed",
}


class TestLookup:
    """Test key resolution inside one catalog."""

    def test_dot_path(self):
        assert lookup(CATALOG, "menu.nested.deep") == "Deep"

    def test_literal_key_wins(self):
        assert lookup(CATALOG, "flat.key") == "Literal"
        assert lookup(CATALOG, "menu.home") == "Shadowed"

    def test_non_string_leaf_is_a_miss(self):
        assert lookup(CATALOG, "menu.count") is None
        assert lookup(CATALOG, "menu") is None

    def test_missing(self):
        assert lookup(CATALOG, "menu.away") is None
        assert lookup(CATALOG, "") is None
        assert lookup({}, "menu.home") is None
        assert lookup(None, "menu.home") is None


class TestValidateCatalog:
    """Test payload validation."""

    def test_accepts_mapping_and_copies(self):
        payload = {"common": {"appName": "X"}}
        catalog = validate_catalog(payload, "en-US.json")
        assert catalog == payload
        catalog["common"]["appName"] = "Y"
        assert payload["common"]["appName"] == "X"

    @pytest.mark.parametrize("payload", [[], "text", 42, None])
    def test_rejects_non_mapping(self, payload):
        with pytest.raises(CatalogFormatError):
            validate_catalog(payload, "en-US.json")

    def test_rejects_empty(self):
        with pytest.raises(CatalogFormatError, match="empty"):
            validate_catalog({}, "en-US.json")


def test_count_messages():
    assert count_messages(CATALOG) == 4


def test_empty_catalogs():
    catalogs = empty_catalogs()
    assert list(catalogs) == list(SUPPORTED_LOCALES)
    assert all(catalog == {} for catalog in catalogs.values())
