"""HTTP fetch capability shared by every crawl stage.

Provides:
- HTTPResponse, a small immutable snapshot of an httpx response
- create_http_client(), an httpx client with retries, a fixed User-Agent,
  switchable TLS verification and redirects left to the caller
- HttpFetcher, which applies the crawl-wide timeout and turns transport
  failures into ``None`` so callers only branch on status codes

Redirects are never followed automatically: the target profiler needs to see
the raw ``Location`` header and the page fetcher follows redirects itself,
one scope check per hop.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from types import TracebackType
from typing import TYPE_CHECKING

import httpx
from httpx_retries import Retry, RetryTransport

if TYPE_CHECKING:
    from spyglass.config import CrawlerConfig

logger = logging.getLogger(__name__)

RETRY_STATUSES = [429, 500, 502, 503, 504]


@dataclass(frozen=True, slots=True)
class HTTPResponse:
    """Snapshot of an HTTP response.

    Header names are lower-cased.
    """

    status_code: int
    headers: dict[str, str]
    content: bytes
    url: str

    @property
    def text(self) -> str:
        """Decode content as UTF-8 text."""
        return self.content.decode("utf-8", errors="replace")

    @property
    def is_success(self) -> bool:
        """True for 2xx responses."""
        return 200 <= self.status_code < 300

    @property
    def location(self) -> str:
        """Stripped ``Location`` header, or an empty string."""
        return self.headers.get("location", "").strip()

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> HTTPResponse:
        """Build a snapshot from an httpx response whose body has been read."""
        return cls(
            status_code=response.status_code,
            headers={key.lower(): value for key, value in response.headers.items()},
            content=response.content,
            url=str(response.url),
        )


def create_http_client(config: CrawlerConfig) -> httpx.AsyncClient:
    """Create httpx client with retry logic and crawl-wide defaults.

    Args:
        config: Crawler configuration

    Returns:
        Configured httpx AsyncClient that does not follow redirects
    """
    retry_policy = Retry(
        total=config.max_retries,
        backoff_factor=config.retry_backoff - 1.0,
        status_forcelist=RETRY_STATUSES,
        respect_retry_after_header=True,
        allowed_methods=["HEAD", "GET"],
    )

    base_transport = httpx.AsyncHTTPTransport(
        verify=config.verify_ssl,
        limits=httpx.Limits(
            max_connections=config.limits.max_fetch_workers * 4,
            max_keepalive_connections=config.limits.max_fetch_workers * 2,
        ),
        retries=0,
    )

    return httpx.AsyncClient(
        transport=RetryTransport(transport=base_transport, retry=retry_policy),
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=False,
        headers={"User-Agent": config.user_agent, "Accept": "*/*"},
    )


class HttpFetcher:
    """GET-only fetcher used by every stage of a crawl.

    Example:
        >>> async with HttpFetcher.from_config(CrawlerConfig()) as fetcher:
        ...     response = await fetcher.fetch("https://example.com/robots.txt")
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout: float = 10.0,
        owns_client: bool = True,
    ) -> None:
        """Initialize fetcher.

        Args:
            client: httpx client to send requests with
            timeout: Per-request timeout in seconds
            owns_client: Close the client in aclose() (False for injected test clients)
        """
        self._client = client
        self.timeout = timeout
        self._owns_client = owns_client

    @classmethod
    def from_config(cls, config: CrawlerConfig) -> HttpFetcher:
        """Create a fetcher that owns a freshly configured client."""
        return cls(create_http_client(config), timeout=config.timeout, owns_client=True)

    async def get(self, url: str) -> HTTPResponse:
        """Perform GET request.

        Raises:
            httpx.HTTPError: On transport failures
            httpx.InvalidURL: If the URL cannot be requested
        """
        response = await self._client.get(url, timeout=self.timeout)
        return HTTPResponse.from_httpx(response)

    async def fetch(self, url: str) -> HTTPResponse | None:
        """Perform GET request, returning None instead of raising.

        Args:
            url: Absolute URL to fetch

        Returns:
            Response snapshot (any status code), or None if no response was received
        """
        try:
            return await self.get(url)
        except httpx.HTTPError as e:
            logger.debug(f"HTTP error for {url}: {type(e).__name__}: {e}")
        except (httpx.InvalidURL, ValueError) as e:
            logger.debug(f"Invalid URL {url!r}: {e}")
        return None

    async def aclose(self) -> None:
        """Close the underlying client if this fetcher owns it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> HttpFetcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()
