"""Recursive sitemap expansion.

Sitemap seeds (from robots.txt and the ``/sitemap.xml`` probe) are crawled
breadth-first in batches:

- every batch is fetched concurrently through the worker pool
- ``<url><loc>`` values become collected links
- ``<sitemap><loc>`` values ending in ``.xml`` become the next batch
- namespaces are ignored, so namespaced and bare sitemaps parse the same way
- a per-crawl seen set plus the ``max_sitemaps`` / ``max_urls`` caps bound
  both depth and breadth, which also stops sitemap-index cycles

A sitemap that fails to fetch or parse contributes nothing; it never aborts
the batch.
"""

import logging
from dataclasses import dataclass, field

from lxml import etree

from spyglass.exceptions import SitemapError
from spyglass.http_client import HttpFetcher
from spyglass.pool import MAX_FETCH_WORKERS, gather_in_pool
from spyglass.utils import unique

logger = logging.getLogger(__name__)

MAX_SITEMAPS = 200
MAX_SITEMAP_URLS = 5000

URL_LOC_XPATH = "//*[local-name()='url']/*[local-name()='loc']"
SITEMAP_LOC_XPATH = "//*[local-name()='sitemap']/*[local-name()='loc']"


def is_sitemap_url(url: str) -> bool:
    """Sitemap documents we follow end in ``.xml`` (case-insensitive)."""
    return url.lower().endswith(".xml")


def parse_sitemap_document(content: bytes) -> tuple[list[str], list[str]]:
    """Parse a sitemap or sitemap index.

    Args:
        content: Raw XML body

    Returns:
        Tuple of (page URLs from ``url/loc``, child sitemaps from ``sitemap/loc``)

    Raises:
        SitemapError: If the content is not XML
    """
    parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(content, parser=parser)
    except etree.XMLSyntaxError as e:
        raise SitemapError(f"Invalid XML: {e}") from e
    if root is None:
        raise SitemapError("Empty or unparsable XML document")

    page_urls = _loc_values(root, URL_LOC_XPATH)
    child_sitemaps = [url for url in _loc_values(root, SITEMAP_LOC_XPATH) if is_sitemap_url(url)]
    return page_urls, child_sitemaps


def _loc_values(root: etree._Element, xpath: str) -> list[str]:
    values = (str(node.text or "").strip() for node in root.xpath(xpath))
    return [value for value in values if value]


@dataclass
class SitemapCrawlState:
    """Progress of one sitemap expansion."""

    pending: list[str]
    links: list[str] = field(default_factory=list)
    seen: set[str] = field(default_factory=set)

    def next_batch(self, max_sitemaps: int) -> list[str]:
        """Unseen pending sitemaps, limited to the remaining visit cap."""
        remaining = max_sitemaps - len(self.seen)
        fresh = [url for url in self.pending if url not in self.seen]
        return fresh[: max(0, remaining)]


class SitemapExpander:
    """Expands sitemap seeds into the page URLs they list.

    Example:
        >>> expander = SitemapExpander(fetcher)
        >>> urls = await expander.expand(["https://example.com/sitemap.xml"])
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        max_sitemaps: int = MAX_SITEMAPS,
        max_urls: int = MAX_SITEMAP_URLS,
        max_workers: int = MAX_FETCH_WORKERS,
    ) -> None:
        """Initialize sitemap expander.

        Args:
            fetcher: HTTP fetcher for sitemap documents
            max_sitemaps: Maximum distinct sitemap documents fetched
            max_urls: Maximum page URLs collected
            max_workers: Concurrent fetches per batch
        """
        self.fetcher = fetcher
        self.max_sitemaps = max_sitemaps
        self.max_urls = max_urls
        self.max_workers = max_workers

    async def expand(self, seeds: list[str]) -> list[str]:
        """Crawl the sitemap graph reachable from ``seeds``.

        Returns:
            De-duplicated page URLs, at most ``max_urls``
        """
        state = await self.crawl(seeds)
        links = unique(state.links)
        logger.info(f"Crawling Sitemaps: {len(links)}")
        return links

    async def crawl(self, seeds: list[str]) -> SitemapCrawlState:
        """Run the bounded breadth-first expansion and return its final state."""
        normalized = unique(seed.strip() for seed in seeds if seed and seed.strip())
        state = SitemapCrawlState(pending=[url for url in normalized if is_sitemap_url(url)])

        while (
            state.pending
            and len(state.seen) < self.max_sitemaps
            and len(state.links) < self.max_urls
        ):
            batch = state.next_batch(self.max_sitemaps)
            if not batch:
                break

            state.seen.update(batch)
            page_links, child_sitemaps = await self._crawl_batch(batch)
            state.links.extend(page_links)
            del state.links[self.max_urls :]
            state.pending = unique(child_sitemaps)

        unvisited = [url for url in state.pending if url not in state.seen]
        if unvisited and len(state.seen) >= self.max_sitemaps:
            logger.warning(
                f"Sitemap limit reached ({self.max_sitemaps}); "
                f"{len(unvisited)} sitemaps not visited"
            )
        return state

    async def _crawl_batch(self, batch: list[str]) -> tuple[list[str], list[str]]:
        results = await gather_in_pool(batch, self.parse_sitemap, self.max_workers)
        page_links: list[str] = []
        child_sitemaps: list[str] = []
        for links, children in results:
            page_links.extend(links)
            child_sitemaps.extend(children)
        return page_links, child_sitemaps

    async def parse_sitemap(self, sitemap_url: str) -> tuple[list[str], list[str]]:
        """Fetch and parse one sitemap; failures yield ``([], [])``."""
        response = await self.fetcher.fetch(sitemap_url)
        if response is None or not response.is_success:
            status = "no response" if response is None else f"status {response.status_code}"
            logger.debug(f"Skipping sitemap {sitemap_url}: {status}")
            return [], []

        try:
            return parse_sitemap_document(response.content)
        except SitemapError as e:
            logger.warning(f"Invalid sitemap {sitemap_url}: {e}")
            return [], []
