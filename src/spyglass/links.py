"""Link extraction for the crawled page.

Categories are extracted in a fixed order, because earlier categories feed
later stages (robots.txt ``Sitemap:`` entries become sitemap seeds):

1. robots_links   - Disallow/Allow/Sitemap values from ``{base}/robots.txt``
2. sitemap_links  - sitemap seeds (robots entries + ``{base}/sitemap.xml`` probe)
3. css_links      - ``link[rel=stylesheet]/@href``
4. js_links       - ``script[src]/@src``
5. internal_links - ``a[href]`` inside the page's registrable domain
6. external_links - ``a[href]`` resolving to an http(s) URL outside it
7. images         - ``img[src]/@src``

The two network-backed categories come first; the five document categories are
a fixed table of (category, extractor) pairs and are pure functions of the page
URL and parsed document.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from typing import cast

from spyglass.http_client import HttpFetcher
from spyglass.scope import (
    base_url_for,
    registrable_domain,
    resolve_link,
    url_domain,
    url_host,
)
from spyglass.types import LinkCategory, LxmlDocument, LxmlElement
from spyglass.utils import unique

logger = logging.getLogger(__name__)

ROBOTS_DIRECTIVES = ("Disallow", "Allow", "Sitemap")


@dataclass
class PageLinks:
    """Link lists of one page, each ordered and de-duplicated."""

    robots_links: list[str] = field(default_factory=list)
    sitemap_links: list[str] = field(default_factory=list)
    css_links: list[str] = field(default_factory=list)
    js_links: list[str] = field(default_factory=list)
    internal_links: list[str] = field(default_factory=list)
    external_links: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)

    def items(self) -> Iterator[tuple[LinkCategory, list[str]]]:
        """Iterate categories in extraction order."""
        for category in LINK_CATEGORIES:
            yield category, getattr(self, category)


LINK_CATEGORIES: tuple[LinkCategory, ...] = (
    "robots_links",
    "sitemap_links",
    "css_links",
    "js_links",
    "internal_links",
    "external_links",
    "images",
)


def _elements(document: LxmlDocument, xpath: str) -> Iterator[LxmlElement]:
    for item in document.xpath(xpath):
        # XPath can return strings for some expressions; only keep elements
        if hasattr(item, "get"):
            yield cast("LxmlElement", item)


def collect_attribute_links(
    document: LxmlDocument, xpath: str, attribute: str, page_url: str
) -> list[str]:
    """Resolve ``attribute`` of every element matching ``xpath``."""
    elements = _elements(document, xpath)
    links = (resolve_link(page_url, element.get(attribute)) for element in elements)
    return unique(link for link in links if link)


def extract_stylesheets(page_url: str, document: LxmlDocument) -> list[str]:
    """Stylesheet links (``rel`` containing the ``stylesheet`` token)."""
    hrefs = (
        element.get("href")
        for element in _elements(document, "//link[@rel][@href]")
        if "stylesheet" in (element.get("rel") or "").lower().split()
    )
    links = (resolve_link(page_url, href) for href in hrefs)
    return unique(link for link in links if link)


def extract_scripts(page_url: str, document: LxmlDocument) -> list[str]:
    """External script sources."""
    return collect_attribute_links(document, "//script[@src]", "src", page_url)


def extract_images(page_url: str, document: LxmlDocument) -> list[str]:
    """Image sources."""
    return collect_attribute_links(document, "//img[@src]", "src", page_url)


def extract_internal_links(page_url: str, document: LxmlDocument) -> list[str]:
    """Anchors whose resolved host shares the page's registrable domain."""
    scope = url_domain(page_url)
    internal: list[str] = []
    for element in _elements(document, "//a[@href]"):
        link = resolve_link(page_url, element.get("href"))
        if not link:
            continue
        host = url_host(link)
        if not host:
            continue
        if scope and registrable_domain(host) != scope:
            continue
        internal.append(link)
    return unique(internal)


def extract_external_links(page_url: str, document: LxmlDocument) -> list[str]:
    """Anchors whose resolved http(s) URL is outside the page's registrable domain.

    Protocol-relative hrefs (``//other.com/x``) resolve against the page scheme.
    """
    scope = url_domain(page_url)
    external: list[str] = []
    for element in _elements(document, "//a[@href]"):
        link = resolve_link(page_url, element.get("href"))
        if not link:
            continue
        if scope and registrable_domain(url_host(link)) == scope:
            continue
        external.append(link)
    return unique(external)


DocumentExtractor = Callable[[str, LxmlDocument], list[str]]

DOCUMENT_EXTRACTORS: tuple[tuple[LinkCategory, DocumentExtractor], ...] = (
    ("css_links", extract_stylesheets),
    ("js_links", extract_scripts),
    ("internal_links", extract_internal_links),
    ("external_links", extract_external_links),
    ("images", extract_images),
)


def extract_document_links(page_url: str, document: LxmlDocument) -> dict[LinkCategory, list[str]]:
    """Run the document extractor table against a parsed page."""
    extracted: dict[LinkCategory, list[str]] = {}
    for category, extractor in DOCUMENT_EXTRACTORS:
        extracted[category] = extractor(page_url, document)
        logger.info(f"Extracting {CATEGORY_LABELS[category]}: {len(extracted[category])}")
    return extracted


CATEGORY_LABELS: dict[LinkCategory, str] = {
    "robots_links": "robots Links",
    "sitemap_links": "Sitemap Links",
    "css_links": "CSS Links",
    "js_links": "JavaScript Links",
    "internal_links": "Internal Links",
    "external_links": "External Links",
    "images": "Image Links",
}


def parse_robots(body: str, base_url: str) -> tuple[list[str], list[str]]:
    """Parse robots.txt directives.

    Every ``Disallow``/``Allow``/``Sitemap`` value is resolved against the site
    base; ``Sitemap`` values ending in ``.xml`` are also returned as seeds.

    Args:
        body: robots.txt content
        base_url: ``scheme://host[:port]`` of the site

    Returns:
        Tuple of (resolved directive links, sitemap seeds)

    Examples:
        >>> body = "Disallow: /admin\\nSitemap: /sitemap.xml"
        >>> parse_robots(body, "https://example.com")[1]
        ['https://example.com/sitemap.xml']
    """
    links: list[str] = []
    sitemaps: list[str] = []
    for line in body.splitlines():
        if not line.startswith(ROBOTS_DIRECTIVES):
            continue
        parts = line.split(": ", 1)
        if len(parts) != 2:
            continue
        value = parts[1].strip()
        if not value:
            continue

        resolved = resolve_link(base_url, value)
        if resolved:
            links.append(resolved)
            if line.startswith("Sitemap") and resolved.lower().endswith(".xml"):
                sitemaps.append(resolved)
    return unique(links), unique(sitemaps)


class LinkExtractor:
    """Extracts every link category for a fetched page.

    Example:
        >>> extractor = LinkExtractor(fetcher)
        >>> links = await extractor.extract(page.url, page.document)
        >>> links.internal_links
        ['https://example.com/about', ...]
    """

    def __init__(self, fetcher: HttpFetcher) -> None:
        """Initialize with the crawl's fetcher (used for robots.txt and sitemap probes)."""
        self.fetcher = fetcher

    async def extract(self, page_url: str, document: LxmlDocument) -> PageLinks:
        """Extract all categories, in order, for the final page URL."""
        base_url = base_url_for(page_url)
        links = PageLinks()

        links.robots_links, robots_sitemaps = await self.robots(f"{base_url}/robots.txt", base_url)
        links.sitemap_links = await self.sitemap(f"{base_url}/sitemap.xml", robots_sitemaps)

        for category, values in extract_document_links(page_url, document).items():
            setattr(links, category, values)
        return links

    async def robots(self, robots_url: str, base_url: str) -> tuple[list[str], list[str]]:
        """Fetch and parse robots.txt; missing or failing robots.txt yields no links."""
        response = await self.fetcher.fetch(robots_url)
        if response is None or not response.is_success:
            status = "Error" if response is None else response.status_code
            logger.info(f"Looking for robots.txt: {'Not Found' if status == 404 else status}")
            return [], []

        links, sitemaps = parse_robots(response.text, base_url)
        logger.info(f"Extracting robots Links: {len(links)}")
        return links, sitemaps

    async def sitemap(self, sitemap_url: str, discovered: list[str]) -> list[str]:
        """Probe ``/sitemap.xml`` and merge it after robots-declared sitemaps."""
        seeds = list(discovered)
        response = await self.fetcher.fetch(sitemap_url)
        if response is not None and response.is_success:
            logger.info("Looking for sitemap.xml: Found")
            seeds.append(sitemap_url)
        else:
            status = "Error" if response is None else response.status_code
            logger.info(f"Looking for sitemap.xml: {'Not Found' if status == 404 else status}")
        return unique(seeds)
