"""Catalog resource fetchers.

A fetcher resolves a (source context, resource name) pair to a raw catalog
payload. The two source contexts are independent namespaces: each has its
own root directory or base URL.
"""

from __future__ import annotations

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiohttp

from polycat.models import CatalogSourceKind, SourceContext
from polycat.utils.exceptions import CatalogFetchError, CatalogFormatError
from polycat.utils.logging_config import get_logger

if TYPE_CHECKING:
    from polycat.models import CatalogSourceConfig

logger = get_logger(__name__)


class CatalogFetcher(ABC):
    """Base class for catalog resource fetchers."""

    @abstractmethod
    async def fetch(self, context: SourceContext, resource: str) -> Any:
        """Fetch and decode one resource.

        Raises:
            CatalogFetchError: the resource could not be reached
            CatalogFormatError: the resource is not valid JSON

        """

    async def close(self) -> None:
        """Release any held resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False


class FileCatalogFetcher(CatalogFetcher):
    """Reads catalogs as JSON files from one directory per source context."""

    def __init__(self, authenticated_root: str | Path, unauthenticated_root: str | Path):
        self.roots: dict[SourceContext, Path] = {
            SourceContext.AUTHENTICATED: Path(authenticated_root),
            SourceContext.UNAUTHENTICATED: Path(unauthenticated_root),
        }

    def resolve(self, context: SourceContext, resource: str) -> Path:
        """Path of ``resource`` inside the root for ``context``."""
        return self.roots[SourceContext(context)] / resource

    async def fetch(self, context: SourceContext, resource: str) -> Any:
        path = self.resolve(context, resource)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError as e:
            raise CatalogFetchError(
                f"Catalog resource not found: {path}",
                {"context": SourceContext(context).value, "resource": resource},
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise CatalogFetchError(
                f"Failed to read catalog resource {path}: {e}",
                {"context": SourceContext(context).value, "resource": resource},
            ) from e

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise CatalogFormatError(
                f"Invalid JSON in catalog resource {path}: {e}",
                {"context": SourceContext(context).value, "resource": resource},
            ) from e


class HttpCatalogFetcher(CatalogFetcher):
    """Fetches catalogs over HTTP from one base URL per source context."""

    def __init__(
        self,
        authenticated_url: str,
        unauthenticated_url: str,
        timeout: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.base_urls: dict[SourceContext, str] = {
            SourceContext.AUTHENTICATED: authenticated_url.rstrip("/"),
            SourceContext.UNAUTHENTICATED: unauthenticated_url.rstrip("/"),
        }
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session = session
        self._owns_session = session is None

    def resolve(self, context: SourceContext, resource: str) -> str:
        """URL of ``resource`` for ``context``."""
        return f"{self.base_urls[SourceContext(context)]}/{resource}"

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self.session

    async def fetch(self, context: SourceContext, resource: str) -> Any:
        url = self.resolve(context, resource)
        details = {"context": SourceContext(context).value, "resource": resource, "url": url}
        session = await self._get_session()
        try:
            async with session.get(url) as response:
                if response.status != 200:
                    raise CatalogFetchError(
                        f"Catalog request failed with HTTP {response.status}: {url}",
                        {**details, "status": response.status},
                    )
                body = await response.text(encoding="utf-8")
        except asyncio.TimeoutError as e:
            raise CatalogFetchError(f"Catalog request timed out: {url}", details) from e
        except aiohttp.ClientError as e:
            raise CatalogFetchError(f"Catalog request failed: {url}: {e}", details) from e
        except UnicodeDecodeError as e:
            raise CatalogFormatError(f"Catalog response is not UTF-8: {url}", details) from e

        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise CatalogFormatError(f"Invalid JSON from {url}: {e}", details) from e

    async def close(self) -> None:
        if self.session is not None and self._owns_session and not self.session.closed:
            await self.session.close()
        self.session = None


def build_fetcher(config: CatalogSourceConfig) -> CatalogFetcher:
    """Create the fetcher selected by ``config.kind``."""
    kind = CatalogSourceKind(config.kind)
    if kind == CatalogSourceKind.HTTP:
        logger.debug(
            "Using HTTP catalog fetcher (%s | %s)",
            config.authenticated_root,
            config.unauthenticated_root,
        )
        return HttpCatalogFetcher(
            config.authenticated_root,
            config.unauthenticated_root,
            timeout=config.request_timeout,
        )
    logger.debug(
        "Using file catalog fetcher (%s | %s)",
        config.authenticated_root,
        config.unauthenticated_root,
    )
    return FileCatalogFetcher(config.authenticated_root, config.unauthenticated_root)
