"""URL harvesting from script files.

Scripts are not executed or parsed as JavaScript. Each in-scope script body is
scanned with one URL-shaped regex, and every match goes through the same
sanitizer pipeline: strip trailing punctuation, require an absolute http(s)
URL, require the page's registrable domain.
"""

import logging
import re

from spyglass.http_client import HttpFetcher
from spyglass.pool import MAX_FETCH_WORKERS, gather_in_pool
from spyglass.scope import is_http_url, registrable_domain, url_domain, url_host
from spyglass.utils import unique

logger = logging.getLogger(__name__)

MAX_JS_TARGETS = 50
MAX_JS_URLS_PER_FILE = 200
MAX_JS_URLS_TOTAL = 1000

JS_URL_PATTERN = re.compile(r"https?://[\w\-.~:/?#\[\]@!$&'()*+,;=%]+")
TRAILING_PUNCTUATION = re.compile(r"[\"'`,;\])]+\Z")


def sanitize_extracted_url(url: str) -> str:
    """Strip punctuation that the URL pattern swallows from surrounding code.

    Examples:
        >>> sanitize_extracted_url("https://example.com/api');")
        'https://example.com/api'
    """
    return TRAILING_PUNCTUATION.sub("", url)


def extract_urls_from_text(
    text: str, scope: str | None, limit: int = MAX_JS_URLS_PER_FILE
) -> list[str]:
    """Find in-scope absolute URLs in script text.

    Args:
        text: Script body
        scope: Registrable domain URLs must belong to (None keeps nothing)
        limit: Maximum URLs returned

    Returns:
        De-duplicated URLs in order of appearance
    """
    if not scope:
        return []

    found: list[str] = []
    seen: set[str] = set()
    for match in JS_URL_PATTERN.finditer(text):
        url = sanitize_extracted_url(match.group(0))
        if not url or url in seen or not is_http_url(url):
            continue
        if registrable_domain(url_host(url)) != scope:
            continue
        seen.add(url)
        found.append(url)
        if len(found) >= limit:
            break
    return found


class ScriptExpander:
    """Fetches in-scope scripts and harvests the URLs they contain.

    Example:
        >>> expander = ScriptExpander(fetcher)
        >>> urls = await expander.expand(links.js_links, page.url)
    """

    def __init__(
        self,
        fetcher: HttpFetcher,
        *,
        max_targets: int = MAX_JS_TARGETS,
        max_urls_per_file: int = MAX_JS_URLS_PER_FILE,
        max_urls_total: int = MAX_JS_URLS_TOTAL,
        max_workers: int = MAX_FETCH_WORKERS,
    ) -> None:
        """Initialize script expander.

        Args:
            fetcher: HTTP fetcher for script files
            max_targets: Maximum script files fetched
            max_urls_per_file: Maximum URLs kept per script
            max_urls_total: Maximum URLs kept overall
            max_workers: Concurrent script fetches
        """
        self.fetcher = fetcher
        self.max_targets = max_targets
        self.max_urls_per_file = max_urls_per_file
        self.max_urls_total = max_urls_total
        self.max_workers = max_workers

    def select_targets(self, script_urls: list[str], page_url: str) -> list[str]:
        """In-scope, de-duplicated script URLs, capped at ``max_targets``."""
        scope = url_domain(page_url)
        if not scope:
            return []
        targets = [
            url
            for url in unique(script_urls)
            if is_http_url(url) and registrable_domain(url_host(url)) == scope
        ]
        if len(targets) > self.max_targets:
            logger.debug(f"Capping script targets at {self.max_targets} of {len(targets)}")
        return targets[: self.max_targets]

    async def expand(self, script_urls: list[str], page_url: str) -> list[str]:
        """Harvest in-scope URLs from the page's scripts."""
        targets = self.select_targets(script_urls, page_url)
        if not targets:
            return []

        scope = url_domain(page_url)

        async def scan(script_url: str) -> list[str]:
            return await self.scan_script(script_url, scope)

        per_file = await gather_in_pool(targets, scan, self.max_workers)
        urls = unique(url for file_urls in per_file for url in file_urls)[: self.max_urls_total]
        logger.info(f"Crawling JavaScripts: {len(urls)}")
        return urls

    async def scan_script(self, script_url: str, scope: str | None) -> list[str]:
        """Fetch one script and extract its URLs; failures yield ``[]``."""
        response = await self.fetcher.fetch(script_url)
        if response is None or not response.is_success:
            status = "no response" if response is None else f"status {response.status_code}"
            logger.debug(f"Skipping script {script_url}: {status}")
            return []
        return extract_urls_from_text(response.text, scope, self.max_urls_per_file)
