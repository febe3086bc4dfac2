"""Reconnaissance crawl of a single target.

Stages, in order:

1. Anchor: profile the target's redirect behavior (or reuse the profile an
   upstream headers module stored) and decide whether to re-anchor to HTTPS.
2. Fetch: retrieve the main page, following same-scope redirects only.
3. Extract: robots, sitemap seeds, stylesheets, scripts, internal and external
   anchors, images.
4. Expand: crawl sitemap graphs and in-scope scripts for more URLs.
5. Rank: compute stats and the high-signal URL list.

Nothing here is fatal: a crawl whose main page cannot be fetched returns a
CrawlResult carrying only its target and an ``error`` message.
"""

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from typing import Any

from spyglass.config import CrawlerConfig
from spyglass.context import ScanContext
from spyglass.exceptions import CrawlError
from spyglass.fetcher import FetchedPage, PageFetcher
from spyglass.http_client import HttpFetcher
from spyglass.javascript import ScriptExpander
from spyglass.links import LINK_CATEGORIES, LinkExtractor
from spyglass.scope import is_http_url
from spyglass.scoring import HIGH_SIGNAL_LIMIT, PREVIEW_FALLBACK, rank_high_signal
from spyglass.sitemap import SitemapExpander
from spyglass.target import AnchorDecision, TargetProfile, profile_target, reanchor_decision
from spyglass.utils import unique

logger = logging.getLogger(__name__)

# Every bucket that contributes to total_urls, in report order
URL_BUCKETS = (*LINK_CATEGORIES, "urls_inside_sitemap", "urls_inside_js")

COUNT_KEYS = {
    "robots_links": "robots_count",
    "sitemap_links": "sitemap_count",
    "css_links": "css_count",
    "js_links": "js_count",
    "internal_links": "internal_count",
    "external_links": "external_count",
    "images": "images_count",
    "urls_inside_sitemap": "sitemap_url_count",
    "urls_inside_js": "js_url_count",
}


@dataclass
class CrawlTarget:
    """Where the crawl was asked to go and where it actually went."""

    original: str
    effective: str
    reanchored: bool = False
    reason: str = ""
    reason_code: str = "no-redirect"

    @classmethod
    def from_anchor(cls, original: str, anchor: AnchorDecision) -> "CrawlTarget":
        return cls(
            original=original,
            effective=anchor.effective_target,
            reanchored=anchor.reanchor,
            reason=anchor.reason,
            reason_code=anchor.reason_code,
        )


@dataclass
class CrawlStats:
    """Counts and URL sets computed once, after all extraction completes."""

    robots_count: int = 0
    sitemap_count: int = 0
    css_count: int = 0
    js_count: int = 0
    internal_count: int = 0
    external_count: int = 0
    images_count: int = 0
    sitemap_url_count: int = 0
    js_url_count: int = 0
    total_unique: int = 0
    total_urls: list[str] = field(default_factory=list)
    high_signal_count: int = 0
    high_signal_urls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CrawlResult:
    """Result of crawling one target."""

    target: CrawlTarget
    robots_links: list[str] = field(default_factory=list)
    sitemap_links: list[str] = field(default_factory=list)
    css_links: list[str] = field(default_factory=list)
    js_links: list[str] = field(default_factory=list)
    internal_links: list[str] = field(default_factory=list)
    external_links: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    urls_inside_sitemap: list[str] = field(default_factory=list)
    urls_inside_js: list[str] = field(default_factory=list)
    stats: CrawlStats | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """False when the crawl produced no link data."""
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Run-record form; failed crawls carry only ``target`` and ``error``."""
        target = asdict(self.target)
        if self.error is not None:
            return {"target": target, "error": self.error}

        data: dict[str, Any] = {"target": target}
        for bucket in URL_BUCKETS:
            data[bucket] = list(getattr(self, bucket))
        data["stats"] = self.stats.to_dict() if self.stats else {}
        return data


def calculate_stats(
    result: CrawlResult,
    high_signal_limit: int = HIGH_SIGNAL_LIMIT,
    preview_fallback: int = PREVIEW_FALLBACK,
) -> CrawlStats:
    """Compute stats from the final state of a result."""
    stats = CrawlStats()
    for bucket, key in COUNT_KEYS.items():
        setattr(stats, key, len(getattr(result, bucket)))

    stats.total_urls = unique(url for bucket in URL_BUCKETS for url in getattr(result, bucket))
    stats.total_unique = len(stats.total_urls)
    stats.high_signal_urls = rank_high_signal(
        stats.total_urls, limit=high_signal_limit, fallback=preview_fallback
    )
    stats.high_signal_count = len(stats.high_signal_urls)
    return stats


class Crawler:
    """Crawls one target's main page and the resources it links to.

    Example:
        >>> crawler = Crawler(CrawlerConfig(timeout=5.0))
        >>> result = await crawler.crawl("http://example.com")
        >>> result.target.reason_code
        'http->https'
    """

    def __init__(
        self,
        config: CrawlerConfig | None = None,
        fetcher: HttpFetcher | None = None,
    ) -> None:
        """Initialize crawler.

        Args:
            config: Crawler configuration (defaults when None)
            fetcher: Optional HTTP fetcher (for testing with mocks or sharing a client);
                     when None, each crawl creates and closes its own
        """
        self.config = config or CrawlerConfig()
        self.fetcher = fetcher

    async def crawl(
        self,
        target: str,
        profile: TargetProfile | Mapping[str, Any] | None = None,
    ) -> CrawlResult:
        """Crawl a target.

        Args:
            target: Absolute http(s) URL
            profile: Target profile collected upstream; probed here when None

        Returns:
            CrawlResult; ``error`` is set when the main page could not be used
        """
        result = CrawlResult(target=CrawlTarget(original=target, effective=target))
        owns_fetcher = self.fetcher is None
        fetcher = self.fetcher or HttpFetcher.from_config(self.config)

        try:
            if not is_http_url(target):
                raise CrawlError(f"Invalid target URL: {target}")

            anchor = await self.resolve_anchor(target, fetcher, profile)
            result.target = CrawlTarget.from_anchor(target, anchor)
            logger.info(f"Re-Anchor: {anchor.effective_target} ({anchor.reason_code})")

            page_fetcher = PageFetcher(fetcher, max_redirects=self.config.limits.max_main_redirects)
            outcome = await page_fetcher.fetch(anchor.effective_target)
            if not outcome.ok or outcome.page is None:
                raise CrawlError(outcome.message or "Failed to fetch target")

            result.target.effective = outcome.page.url
            await self._crawl_page_resources(result, outcome.page, fetcher)

        except CrawlError as e:
            logger.warning(f"Crawler: {e}")
            result.error = str(e)
        except Exception as e:
            logger.warning(f"Crawler exception: {type(e).__name__}: {e}")
            result.error = str(e) or type(e).__name__
        finally:
            if owns_fetcher:
                await fetcher.aclose()

        return result

    async def resolve_anchor(
        self,
        target: str,
        fetcher: HttpFetcher,
        profile: TargetProfile | Mapping[str, Any] | None,
    ) -> AnchorDecision:
        """Decide the effective crawl root, probing the target if no profile was given."""
        if profile is None:
            profile = await profile_target(target, fetcher)
        return reanchor_decision(target, profile)

    async def _crawl_page_resources(
        self, result: CrawlResult, page: FetchedPage, fetcher: HttpFetcher
    ) -> None:
        limits = self.config.limits

        links = await LinkExtractor(fetcher).extract(page.url, page.document)
        for category, values in links.items():
            setattr(result, category, values)

        sitemap_expander = SitemapExpander(
            fetcher,
            max_sitemaps=limits.max_sitemaps,
            max_urls=limits.max_sitemap_urls,
            max_workers=limits.max_fetch_workers,
        )
        result.urls_inside_sitemap = await sitemap_expander.expand(result.sitemap_links)

        script_expander = ScriptExpander(
            fetcher,
            max_targets=limits.max_js_targets,
            max_urls_per_file=limits.max_js_urls_per_file,
            max_urls_total=limits.max_js_urls_total,
            max_workers=limits.max_fetch_workers,
        )
        result.urls_inside_js = await script_expander.expand(result.js_links, page.url)

        result.stats = calculate_stats(result, limits.high_signal_limit, limits.preview_fallback)


async def run_crawler(context: ScanContext) -> CrawlResult:
    """Crawl ``context.target`` and record the result on the context.

    Stores ``result.to_dict()`` as ``context.run["modules"]["crawler"]`` and,
    for successful crawls, adds every discovered URL to the ``urls`` artifact.
    """
    crawler = Crawler(context.config, fetcher=context.fetcher)
    result = await crawler.crawl(context.target, profile=context.target_profile_snapshot())

    context.modules["crawler"] = result.to_dict()
    if result.stats is not None:
        context.add_artifact("urls", result.stats.total_urls)
    logger.info("Crawler completed")
    return result
