"""URL resolution and registrable-domain scope checks.

Every "same site" decision in the crawler goes through same_scope_host(), which
compares registrable domains (``example.co.uk`` for ``www.example.co.uk``)
computed from the public suffix list. Resolution helpers never raise: malformed
input yields None (or the input unchanged, for redirect locations).
"""

from functools import lru_cache
from urllib.parse import urljoin, urlsplit, urlunsplit

import tldextract

# Bundled suffix-list snapshot only: no network fetch, no disk cache
_EXTRACTOR = tldextract.TLDExtract(suffix_list_urls=(), cache_dir=None)

SAFE_SCHEMES = {"http", "https"}
DEFAULT_PORTS = {"http": 80, "https": 443}
DISCARDED_LINK_PREFIXES = ("#", "javascript:", "mailto:")


@lru_cache(maxsize=4096)
def registrable_domain(host: str | None) -> str:
    """Return the registrable domain of a hostname.

    Hosts without a public suffix (IP addresses, ``localhost``, intranet names)
    are their own registrable domain.

    Examples:
        >>> registrable_domain("www.example.co.uk")
        'example.co.uk'
        >>> registrable_domain("127.0.0.1")
        '127.0.0.1'
    """
    value = (host or "").strip().lower().rstrip(".")
    if not value:
        return ""
    extracted = _EXTRACTOR(value)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}"
    return value


def same_scope_host(left: str | None, right: str | None) -> bool:
    """True when two hostnames share a registrable domain."""
    left_host = (left or "").strip().lower()
    right_host = (right or "").strip().lower()
    if not left_host or not right_host:
        return False
    if left_host == right_host:
        return True

    left_reg = registrable_domain(left_host)
    return bool(left_reg) and left_reg == registrable_domain(right_host)


def url_host(url: str) -> str | None:
    """Lower-cased hostname of a URL, or None when it has none or is malformed."""
    try:
        parsed = urlsplit(url)
        # Accessing .port validates it ("http://x:99999" raises ValueError)
        parsed.port
    except ValueError:
        return None
    return parsed.hostname or None


def url_domain(url: str) -> str | None:
    """Registrable domain of a URL's host, or None."""
    host = url_host(url)
    return registrable_domain(host) if host else None


def same_scope_url(left_url: str, right_url: str) -> bool:
    """True when two URLs point into the same registrable domain."""
    return same_scope_host(url_host(left_url), url_host(right_url))


def is_http_url(url: str) -> bool:
    """True for absolute http(s) URLs with a valid host."""
    try:
        scheme = urlsplit(url).scheme.lower()
    except ValueError:
        return False
    return scheme in SAFE_SCHEMES and url_host(url) is not None


def resolve_location(request_url: str, location: str) -> str:
    """Resolve a redirect ``Location`` against the URL that was requested.

    Falls back to the raw location when it cannot be resolved.
    """
    try:
        return urljoin(request_url, location.strip())
    except ValueError:
        return location


def resolve_link(base: str, link: str | None) -> str | None:
    """Resolve an href/src value against a page URL.

    The base is normalized to end with ``/`` before RFC 3986 resolution, so
    relative references resolve beneath the page URL. Fragment-only,
    ``javascript:`` and ``mailto:`` links are dropped, as is anything that does
    not resolve to an http(s) URL with a valid host (``data:``, ``tel:``, ``ftp:``).

    Examples:
        >>> resolve_link("http://example.com", "/admin/login")
        'http://example.com/admin/login'
        >>> resolve_link("http://example.com", "mailto:root@example.com") is None
        True
        >>> resolve_link("http://example.com", "ftp://example.com/pub/") is None
        True
    """
    value = (link or "").strip()
    if not value or value.lower().startswith(DISCARDED_LINK_PREFIXES):
        return None

    normalized_base = base if base.endswith("/") else f"{base}/"
    try:
        resolved = urljoin(normalized_base, value)
    except ValueError:
        return None
    return resolved if is_http_url(resolved) else None


def normalize_path(path: str) -> str:
    """Empty paths compare equal to ``/``."""
    return path or "/"


def origin_netloc(scheme: str, host: str, port: int | None) -> str:
    """Build ``host[:port]``, omitting the scheme's default port."""
    netloc = f"[{host}]" if ":" in host else host
    if port and port != DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"
    return netloc


def base_url_for(page_url: str) -> str:
    """``scheme://host[:port]`` of a page URL.

    Examples:
        >>> base_url_for("https://Example.com:443/docs/page?x=1")
        'https://example.com'
        >>> base_url_for("http://example.com:8080/")
        'http://example.com:8080'
    """
    parsed = urlsplit(page_url)
    scheme = parsed.scheme.lower()
    return f"{scheme}://{origin_netloc(scheme, parsed.hostname or '', parsed.port)}"


def canonical_url_for(original_url: str, canonical_url: str) -> str:
    """Rebuild the original path and query on the canonical scheme, host and port.

    Used when a redirect only upgrades the scheme: the path the user asked for
    is preserved even if the redirect pointed somewhere else on the same site.

    Examples:
        >>> canonical_url_for("http://example.com/a?b=1", "https://example.com/")
        'https://example.com/a?b=1'
    """
    try:
        original = urlsplit(original_url)
        canonical = urlsplit(canonical_url)
        scheme = canonical.scheme.lower()
        netloc = origin_netloc(scheme, canonical.hostname or "", canonical.port)
    except ValueError:
        return original_url
    return urlunsplit((scheme, netloc, normalize_path(original.path), original.query, ""))
