"""Tests for file and HTTP catalog fetchers."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from polycat.catalog.fetcher import FileCatalogFetcher, HttpCatalogFetcher, build_fetcher
from polycat.models import CatalogSourceConfig, CatalogSourceKind, SourceContext
from polycat.utils.exceptions import CatalogFetchError, CatalogFormatError

pytestmark = [pytest.mark.unit, pytest.mark.catalog]


class TestFileCatalogFetcher:
    """Test reading catalogs from per-context directories."""

    @pytest.mark.asyncio
    async def test_contexts_are_separate_roots(self, tmp_path):
        for name in ("a", "u"):
            (tmp_path / name).mkdir()
            (tmp_path / name / "index.json").write_text(f'{{"root": "{name}"}}', encoding="utf-8")
        fetcher = FileCatalogFetcher(tmp_path / "a", tmp_path / "u")
        auth = await fetcher.fetch(SourceContext.AUTHENTICATED, "index.json")
        unauth = await fetcher.fetch(SourceContext.UNAUTHENTICATED, "index.json")
        assert auth == {"root": "a"}
        assert unauth == {"root": "u"}

    @pytest.mark.asyncio
    async def test_missing_resource(self, tmp_path):
        fetcher = FileCatalogFetcher(tmp_path / "a", tmp_path / "u")
        with pytest.raises(CatalogFetchError, match="not found"):
            await fetcher.fetch(SourceContext.AUTHENTICATED, "en-US.json")

    @pytest.mark.asyncio
    async def test_invalid_json(self, tmp_path):
        (tmp_path / "en-US.json").write_text("{broken", encoding="utf-8")
        fetcher = FileCatalogFetcher(tmp_path, tmp_path / "u")
        with pytest.raises(CatalogFormatError):
            await fetcher.fetch(SourceContext.AUTHENTICATED, "en-US.json")

    def test_resolve(self, tmp_path):
        fetcher = FileCatalogFetcher(tmp_path / "a", tmp_path / "u")
        assert fetcher.resolve(SourceContext.UNAUTHENTICATED, "index.json") == tmp_path / "u" / "index.json"


class TestHttpCatalogFetcher:
    """Test fetching catalogs over HTTP."""

    def test_resolve_strips_trailing_slash(self):
        fetcher = HttpCatalogFetcher("https://cdn.example/i18n/", "https://cdn.example/i18n/auth")
        assert fetcher.resolve(SourceContext.AUTHENTICATED, "en-US.json") == "https://cdn.example/i18n/en-US.json"
        assert (
            fetcher.resolve(SourceContext.UNAUTHENTICATED, "index.json")
            == "https://cdn.example/i18n/auth/index.json"
        )

    @pytest.mark.asyncio
    async def test_fetch_success(self):
        fetcher = HttpCatalogFetcher("https://cdn.example/a", "https://cdn.example/u")
        mock_resp = AsyncMock()
        mock_resp.status = 200
        mock_resp.text = AsyncMock(return_value='{"menu": {"home": "Home"}}')
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = mock_resp
            try:
                payload = await fetcher.fetch(SourceContext.UNAUTHENTICATED, "en-US.json")
            finally:
                await fetcher.close()
        assert payload == {"menu": {"home": "Home"}}
        mock_get.assert_called_once_with("https://cdn.example/u/en-US.json")

    @pytest.mark.asyncio
    async def test_non_200_status(self):
        fetcher = HttpCatalogFetcher("https://cdn.example/a", "https://cdn.example/u")
        mock_resp = AsyncMock()
        mock_resp.status = 404
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = mock_resp
            try:
                with pytest.raises(CatalogFetchError) as exc_info:
                    await fetcher.fetch(SourceContext.AUTHENTICATED, "fa-IR.json")
            finally:
                await fetcher.close()
        assert exc_info.value.details["status"] == 404

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        fetcher = HttpCatalogFetcher("https://cdn.example/a", "https://cdn.example/u")
        mock_resp = AsyncMock()
        mock_resp.status = 200
        mock_resp.text = AsyncMock(return_value="<html>")
        with patch("aiohttp.ClientSession.get") as mock_get:
            mock_get.return_value.__aenter__.return_value = mock_resp
            try:
                with pytest.raises(CatalogFormatError):
                    await fetcher.fetch(SourceContext.AUTHENTICATED, "en-US.json")
            finally:
                await fetcher.close()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [asyncio.TimeoutError(), aiohttp.ClientConnectionError("refused")],
    )
    async def test_transport_errors(self, error):
        fetcher = HttpCatalogFetcher("https://cdn.example/a", "https://cdn.example/u")
        with patch("aiohttp.ClientSession.get", side_effect=error):
            try:
                with pytest.raises(CatalogFetchError):
                    await fetcher.fetch(SourceContext.AUTHENTICATED, "en-US.json")
            finally:
                await fetcher.close()

    @pytest.mark.asyncio
    async def test_does_not_close_borrowed_session(self):
        session = MagicMock()
        session.closed = False
        session.close = AsyncMock()
        fetcher = HttpCatalogFetcher("https://a.example", "https://u.example", session=session)
        await fetcher.close()
        session.close.assert_not_awaited()


class TestBuildFetcher:
    """Test fetcher selection from configuration."""

    def test_file(self, tmp_path):
        config = CatalogSourceConfig(
            authenticated_root=str(tmp_path / "a"),
            unauthenticated_root=str(tmp_path / "u"),
        )
        assert isinstance(build_fetcher(config), FileCatalogFetcher)

    def test_http(self):
        config = CatalogSourceConfig(
            kind=CatalogSourceKind.HTTP,
            authenticated_root="https://cdn.example/a",
            unauthenticated_root="https://cdn.example/u",
            request_timeout=3.0,
        )
        fetcher = build_fetcher(config)
        assert isinstance(fetcher, HttpCatalogFetcher)
        assert fetcher.timeout.total == 3.0
