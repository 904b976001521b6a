"""Pytest configuration and shared fixtures for polycat tests."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any

import pytest

from polycat.catalog.locales import INDEX_RESOURCE, SUPPORTED_LOCALES
from polycat.config.config import ENV_MAPPINGS, reset_config
from polycat.models import SourceContext
from polycat.utils.exceptions import CatalogFetchError

CONTEXTS = (SourceContext.AUTHENTICATED.value, SourceContext.UNAUTHENTICATED.value)
MAIN = SourceContext.AUTHENTICATED.value


def pytest_configure(config):
    """Register all project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("asyncio", "marks tests as async (deselect with '-m \"not asyncio\"')"),
        ("unit", "marks tests as unit tests"),
        ("catalog", "marks tests as catalog loading tests"),
        ("runtime", "marks tests as locale runtime tests"),
        ("config", "marks tests as configuration tests"),
        ("cli", "marks tests as CLI tests"),
        ("observability", "marks tests as logging/event tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def _clear_polycat_env(monkeypatch):
    """Keep POLYCAT_* variables from the outer environment out of tests."""
    for name in ENV_MAPPINGS:
        monkeypatch.delenv(name, raising=False)
    yield
    reset_config()


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)


def make_catalog(locale_id: str, context: str) -> dict[str, Any]:
    """Small catalog tagged with the locale and context it was served for."""
    return {
        "source": context,
        "locale": locale_id,
        "common": {
            "appName": "V2Board Admin",
            "welcome": "Welcome to V2Board Admin",
        },
        "menu": {"home": f"Home [{locale_id}]"},
        "title": {"dashboard": f"Dashboard [{locale_id}]"},
    }


def build_resources(
    locales: tuple[str, ...] = SUPPORTED_LOCALES,
    index_contexts: tuple[str, ...] = (),
) -> dict[tuple[str, str], Any]:
    """Resource table keyed by (context, resource name).

    Per-locale resources live in the main (authenticated) root only and are
    tagged ``"main"``. Each context in ``index_contexts`` also gets an index
    of every locale, tagged with that context.
    """
    resources: dict[tuple[str, str], Any] = {}
    for locale_id in locales:
        resources[(MAIN, f"{locale_id}.json")] = make_catalog(locale_id, "main")
    for context in index_contexts:
        resources[(context, INDEX_RESOURCE)] = {
            locale_id: make_catalog(locale_id, context) for locale_id in locales
        }
    return resources


class FakeCatalogFetcher:
    """In-memory fetcher; exceptions stored as values are raised.

    ``hold`` blocks every fetch until the event is set.
    """

    def __init__(self, resources: dict[tuple[str, str], Any] | None = None):
        self.resources = resources if resources is not None else build_resources()
        self.calls: list[tuple[str, str]] = []
        self.hold: asyncio.Event | None = None
        self.closed = False

    async def fetch(self, context, resource):
        key = (SourceContext(context).value, resource)
        self.calls.append(key)
        if self.hold is not None:
            await self.hold.wait()
        if key not in self.resources:
            raise CatalogFetchError(f"Catalog resource not found: {resource}")
        value = self.resources[key]
        if isinstance(value, Exception):
            raise value
        return copy.deepcopy(value)

    async def close(self):
        self.closed = True


@pytest.fixture
def fake_fetcher():
    """Fetcher with every locale in the main root and an index per context."""
    return FakeCatalogFetcher(build_resources(index_contexts=CONTEXTS))


@pytest.fixture
def catalog_tree(tmp_path: Path) -> dict[str, Path]:
    """On-disk catalogs laid out as deployed.

    The main root ``locales/`` holds every locale's own file plus the
    authenticated index; ``locales/auth/`` is the unauthenticated root and
    starts empty.
    """
    roots = {
        SourceContext.AUTHENTICATED.value: tmp_path / "locales",
        SourceContext.UNAUTHENTICATED.value: tmp_path / "locales" / "auth",
    }
    for root in roots.values():
        root.mkdir(parents=True, exist_ok=True)
    for locale_id in SUPPORTED_LOCALES:
        (roots[MAIN] / f"{locale_id}.json").write_text(
            json.dumps(make_catalog(locale_id, "main"), ensure_ascii=False),
            encoding="utf-8",
        )
    index = {
        "ja-JP": make_catalog("ja-JP", "authenticated-index"),
        "fr-FR": {"menu": {"home": "Accueil"}},
    }
    (roots[MAIN] / INDEX_RESOURCE).write_text(json.dumps(index), encoding="utf-8")
    return roots
