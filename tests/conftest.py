"""Pytest fixtures for Spyglass crawler tests."""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from tempfile import TemporaryDirectory

import httpx
import pytest

from spyglass.config import CrawlerConfig, CrawlLimits
from spyglass.fetcher import parse_document
from spyglass.http_client import HttpFetcher
from spyglass.types import LxmlDocument


@pytest.fixture
def crawler_config() -> CrawlerConfig:
    """Create a CrawlerConfig suitable for mocked crawls.

    Retries are disabled so unmatched mock requests fail immediately
    instead of backing off.
    """
    return CrawlerConfig(
        timeout=5.0,
        max_retries=0,
        limits=CrawlLimits(max_fetch_workers=4),
    )


@pytest.fixture
async def fetcher() -> AsyncGenerator[HttpFetcher, None]:
    """HttpFetcher over a plain non-redirecting client (pytest-httpx intercepts it)."""
    client = httpx.AsyncClient(follow_redirects=False)
    http_fetcher = HttpFetcher(client, timeout=5.0, owns_client=True)
    yield http_fetcher
    await http_fetcher.aclose()


@pytest.fixture
def temp_output_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for report files.

    Yields:
        Path to temporary directory
    """
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_html() -> str:
    """Return a landing page that links to every resource category.

    Contains:
    - Two stylesheets (one with a multi-token rel) and a favicon link
    - An in-scope script, an out-of-scope script and an inline script
    - Internal, subdomain and external anchors, plus fragment, javascript:
      and mailto: anchors that must be dropped
    - Two images
    """
    return """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Example Corp</title>
    <link rel="stylesheet" href="/css/main.css">
    <link rel="Stylesheet preload" href="https://cdn.example.com/theme.css">
    <link rel="icon" href="/favicon.ico">
    <script src="/js/app.js"></script>
    <script src="https://cdn.other.net/lib.js"></script>
    <script>var inline = true;</script>
</head>
<body>
    <a href="/admin/login">Login</a>
    <a href="about">About</a>
    <a href="https://blog.example.com/post?id=1">Blog</a>
    <a href="https://github.com/example/repo">GitHub</a>
    <a href="#top">Top</a>
    <a href="javascript:void(0)">Noop</a>
    <a href="mailto:security@example.com">Mail</a>
    <a href="/admin/login">Login again</a>
    <img src="/img/logo.png">
    <img src="https://images.example.com/hero.jpg">
</body>
</html>"""


@pytest.fixture
def sample_document(sample_html: str) -> LxmlDocument:
    """Parsed sample_html."""
    return parse_document(sample_html.encode())


def urlset(*urls: str) -> str:
    """Build a namespaced sitemap listing ``urls``."""
    entries = "".join(f"<url><loc>{url}</loc></url>" for url in urls)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}</urlset>'
    )


def sitemap_index(*sitemaps: str) -> str:
    """Build a namespaced sitemap index listing ``sitemaps``."""
    entries = "".join(f"<sitemap><loc>{url}</loc></sitemap>" for url in sitemaps)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">{entries}'
        "</sitemapindex>"
    )
