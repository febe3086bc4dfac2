"""Custom exceptions for Spyglass."""


class SpyglassError(Exception):
    """Base exception for all Spyglass errors."""


class ConfigError(SpyglassError):
    """Raised when configuration is invalid or cannot be loaded."""


class CrawlError(SpyglassError):
    """Raised when the main page of a crawl cannot be used.

    Never escapes Crawler.crawl(); it is converted into the ``error`` field of
    the returned CrawlResult.
    """


class SitemapError(SpyglassError):
    """Raised when a sitemap document cannot be parsed."""
