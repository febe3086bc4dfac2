"""Main page retrieval with scope-checked redirect following.

The fetcher is a small state machine::

    FETCHING -> SUCCESS       2xx response
    FETCHING -> REDIRECTING   301/302/303/307/308 to the same registrable domain
    FETCHING -> FAILED        no response, other status, cross-scope redirect,
                              or more than ``max_redirects`` hops
    REDIRECTING -> FETCHING   follow Location, hop counter + 1

On success the body is parsed with lxml and paired with the URL actually
fetched, which becomes the base for all link extraction.
"""

import logging
from dataclasses import dataclass
from enum import Enum

import lxml.html
from lxml import etree

from spyglass.http_client import HTTPResponse, HttpFetcher
from spyglass.scope import resolve_location, same_scope_url
from spyglass.types import LxmlDocument

logger = logging.getLogger(__name__)

REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})
MAX_MAIN_REDIRECTS = 2

EMPTY_DOCUMENT = "<html><head></head><body></body></html>"


class FetchState(Enum):
    """States of the main page fetch."""

    FETCHING = "fetching"
    REDIRECTING = "redirecting"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class FetchedPage:
    """Successfully fetched main page."""

    url: str  # Final URL after followed redirects
    status_code: int
    document: LxmlDocument


@dataclass
class FetchOutcome:
    """Terminal result of PageFetcher.fetch()."""

    state: FetchState
    page: FetchedPage | None = None
    message: str | None = None
    status_code: int | None = None
    redirects: int = 0

    @property
    def ok(self) -> bool:
        """True when the page was fetched."""
        return self.state is FetchState.SUCCESS and self.page is not None


def parse_document(content: bytes | str) -> LxmlDocument:
    """Parse an HTML body, returning an empty document for blank or unparsable input."""
    try:
        return lxml.html.document_fromstring(content)
    except (etree.LxmlError, ValueError):
        return lxml.html.document_fromstring(EMPTY_DOCUMENT)


class PageFetcher:
    """Fetches the crawl's main page.

    Example:
        >>> outcome = await PageFetcher(fetcher).fetch("https://example.com/")
        >>> if outcome.ok:
        ...     print(outcome.page.url)
    """

    def __init__(self, fetcher: HttpFetcher, max_redirects: int = MAX_MAIN_REDIRECTS) -> None:
        """Initialize page fetcher.

        Args:
            fetcher: Fetcher that does not follow redirects
            max_redirects: Same-scope redirect hops to follow
        """
        self.fetcher = fetcher
        self.max_redirects = max_redirects

    async def fetch(self, target: str) -> FetchOutcome:
        """Fetch and parse the main page, following same-scope redirects."""
        current = target
        redirects = 0

        while True:
            response = await self.fetcher.fetch(current)
            if response is None:
                logger.warning(f"Failed to fetch target {current}")
                return FetchOutcome(
                    FetchState.FAILED, message="Failed to fetch target", redirects=redirects
                )

            if response.is_success:
                return FetchOutcome(
                    FetchState.SUCCESS,
                    page=self._page(current, response),
                    status_code=response.status_code,
                    redirects=redirects,
                )

            next_url = self.followable_redirect(current, response, redirects)
            if next_url is None:
                logger.warning(f"Main page {current} returned status {response.status_code}")
                return FetchOutcome(
                    FetchState.FAILED,
                    message=f"HTTP status {response.status_code}",
                    status_code=response.status_code,
                    redirects=redirects,
                )

            logger.debug(f"Following redirect {current} -> {next_url}")
            redirects += 1
            current = next_url

    def followable_redirect(
        self, current: str, response: HTTPResponse, redirects: int
    ) -> str | None:
        """Return the next URL if this response is a redirect we may follow."""
        if response.status_code not in REDIRECT_CODES:
            return None
        if redirects >= self.max_redirects:
            logger.info(f"Redirect limit ({self.max_redirects}) reached at {current}")
            return None

        location = response.location
        if not location:
            return None

        next_url = resolve_location(current, location)
        if not same_scope_url(current, next_url):
            logger.info(f"Refusing cross-scope redirect {current} -> {next_url}")
            return None
        return next_url

    @staticmethod
    def _page(url: str, response: HTTPResponse) -> FetchedPage:
        return FetchedPage(
            url=url,
            status_code=response.status_code,
            document=parse_document(response.content),
        )
