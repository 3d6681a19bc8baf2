"""
Tests for sitemap-based page discovery.
"""
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.features.scan.services.discovery.sitemap import (
    extract_locations,
    fetch_page_urls,
    sitemap_url_for,
)

SITEMAP = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://example.gov.in/</loc></url>
  <url><loc>
      https://example.gov.in/about
  </loc></url>
  <url><loc>/relative/ignored</loc></url>
  <url><LOC>https://example.gov.in/contact</LOC></url>
</urlset>
"""


def response(status_code=200, text=""):
    return httpx.Response(status_code, text=text, request=httpx.Request("GET", "https://example.gov.in/sitemap.xml"))


class TestExtractLocations:

    def test_keeps_absolute_urls_in_order(self):
        assert extract_locations(SITEMAP, 50) == [
            "https://example.gov.in/",
            "https://example.gov.in/about",
            "https://example.gov.in/contact",
        ]

    def test_respects_cap(self):
        assert extract_locations(SITEMAP, 2) == ["https://example.gov.in/", "https://example.gov.in/about"]

    def test_sitemap_url(self):
        assert sitemap_url_for("https://example.gov.in/") == "https://example.gov.in/sitemap.xml"


class TestFetchPageUrls:

    @pytest.mark.asyncio
    async def test_returns_sitemap_pages(self):
        with patch("httpx.AsyncClient.get", new=AsyncMock(return_value=response(text=SITEMAP))) as get:
            urls = await fetch_page_urls("https://example.gov.in", max_urls=10)

        assert len(urls) == 3
        get.assert_awaited_once_with("https://example.gov.in/sitemap.xml")

    @pytest.mark.asyncio
    async def test_missing_sitemap_falls_back_to_site(self):
        with patch("httpx.AsyncClient.get", new=AsyncMock(return_value=response(404, "not found"))):
            assert await fetch_page_urls("https://example.gov.in") == ["https://example.gov.in"]

    @pytest.mark.asyncio
    async def test_network_error_falls_back_to_site(self):
        with patch("httpx.AsyncClient.get", new=AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))):
            assert await fetch_page_urls("https://example.gov.in") == ["https://example.gov.in"]

    @pytest.mark.asyncio
    async def test_empty_sitemap_falls_back_to_site(self):
        with patch("httpx.AsyncClient.get", new=AsyncMock(return_value=response(text="<urlset></urlset>"))):
            assert await fetch_page_urls("https://example.gov.in") == ["https://example.gov.in"]
