"""Type definitions and protocols for spyglass.

Literal aliases for the classification surfaces (redirect modes, confidence
levels, link categories) plus protocols for lxml types, which ship incomplete
type stubs.
"""

from typing import Any, Literal, Protocol

RedirectMode = Literal["none", "http_to_https", "same_scope_redirect", "cross_scope_redirect"]
Confidence = Literal["low", "medium", "high"]
ReasonCode = Literal["http->https", "same-scope", "cross-scope", "profile-failed", "no-redirect"]

# Order matters: this is the order categories are extracted and reported in
LinkCategory = Literal[
    "robots_links",
    "sitemap_links",
    "css_links",
    "js_links",
    "internal_links",
    "external_links",
    "images",
]


class LxmlElement(Protocol):
    """Protocol for lxml Element objects."""

    def get(self, key: str) -> str | None:
        """Get attribute value."""
        ...


class LxmlDocument(Protocol):
    """Protocol for parsed lxml HTML documents (HtmlElement)."""

    def xpath(self, expr: str) -> list[Any]:
        """Execute XPath query."""
        ...
