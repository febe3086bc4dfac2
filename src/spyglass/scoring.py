"""Security-relevance ranking of discovered URLs.

A URL's score depends only on its path and query string:

- +4 if the path contains a high-signal token (admin panels, auth endpoints,
  APIs, config/backup locations, ...)
- +2 if the path is at least two segments deep (two or more ``/``)
- +1 if a query string is present

URLs whose path ends in a static-asset extension are excluded outright,
whatever tokens they contain.
"""

from urllib.parse import urlsplit

from spyglass.utils import unique

HIGH_SIGNAL_LIMIT = 250
PREVIEW_FALLBACK = 20

HIGH_SIGNAL_TOKENS = (
    "admin",
    "login",
    "signin",
    "auth",
    "account",
    "dashboard",
    "api",
    "graphql",
    "config",
    "env",
    ".git",
    "backup",
    "wp-admin",
    "wp-login",
    "wp-json",
    "xmlrpc",
    "server-status",
    "server-info",
    "debug",
    "upload",
    "internal",
    "token",
    "secret",
    "password",
)

LOW_SIGNAL_EXTENSIONS = (
    # images
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".ico", ".webp", ".bmp", ".tif", ".tiff", ".avif",
    # styles
    ".css", ".scss", ".less",
    # scripts
    ".js", ".mjs", ".map",
    # archives
    ".zip", ".gz", ".tgz", ".tar", ".rar", ".7z", ".bz2",
    # media
    ".mp3", ".mp4", ".m4a", ".wav", ".ogg", ".flac", ".avi", ".mov", ".wmv", ".webm", ".mkv",
    # fonts
    ".woff", ".woff2", ".ttf", ".otf", ".eot",
)  # fmt: skip


def score_url(url: str) -> int | None:
    """Score a URL, or return None when it is excluded.

    Examples:
        >>> score_url("https://example.com/admin/login")
        6
        >>> score_url("https://example.com/about")
        0
        >>> score_url("https://example.com/admin/logo.png") is None
        True
    """
    try:
        parsed = urlsplit(url)
    except ValueError:
        return None

    path = parsed.path.lower()
    if path.endswith(LOW_SIGNAL_EXTENSIONS):
        return None

    score = 0
    if any(token in path for token in HIGH_SIGNAL_TOKENS):
        score += 4
    if path.count("/") >= 2:
        score += 2
    if parsed.query:
        score += 1
    return score


def rank_high_signal(
    urls: list[str],
    limit: int = HIGH_SIGNAL_LIMIT,
    fallback: int = PREVIEW_FALLBACK,
) -> list[str]:
    """Rank URLs by score (highest first, shorter URLs first on ties).

    Args:
        urls: Candidate URLs
        limit: Maximum ranked URLs returned
        fallback: Preview size when candidates exist but none scores above zero

    Returns:
        Ranked high-signal URLs
    """
    scored: list[tuple[str, int]] = []
    for url in unique(urls):
        score = score_url(url)
        if score is not None:
            scored.append((url, score))

    ranked = sorted(scored, key=lambda item: (-item[1], len(item[0])))
    positive = [url for url, score in ranked if score > 0]
    if positive:
        return positive[:limit]
    return [url for url, _ in ranked][:fallback]
