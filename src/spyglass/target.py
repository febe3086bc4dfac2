"""Target profiling and re-anchoring.

Before crawling, one probing request is sent to the target with redirects
disabled. The relationship between the target and any ``Location`` it returns
is classified into a TargetProfile:

- ``none``: no redirect (or no response at all)
- ``http_to_https``: scheme upgrade within the same scope (high confidence)
- ``same_scope_redirect``: redirect inside the same registrable domain
- ``cross_scope_redirect``: redirect to another registrable domain

The anchor resolver then decides whether the crawl re-anchors to the redirect
target. Only high-confidence HTTP to HTTPS upgrades re-anchor; anything else
keeps the original target and lets the page fetcher deal with redirects.
"""

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any, Protocol
from urllib.parse import urlsplit

from spyglass.config import CrawlerConfig
from spyglass.http_client import HttpFetcher
from spyglass.scope import (
    canonical_url_for,
    resolve_location,
    same_scope_host,
)
from spyglass.types import Confidence, ReasonCode, RedirectMode

logger = logging.getLogger(__name__)

REASON_NO_REDIRECT = "No stable redirect behavior detected"
REASON_PROFILE_FAILED = "Target profiling failed"
REASON_HTTP_TO_HTTPS = "Canonical HTTP to HTTPS redirect detected"
REASON_SAME_SCOPE = "Redirect detected within the same target scope"
REASON_CROSS_SCOPE = "Redirect target is outside original scope"

# Classification surface consumed by reports; keep in sync with consumers
REASON_CODES: dict[str, ReasonCode] = {
    "http_to_https": "http->https",
    "same_scope_redirect": "same-scope",
    "cross_scope_redirect": "cross-scope",
}


class ResponseLike(Protocol):
    """Anything with a header mapping, e.g. HTTPResponse or httpx.Response."""

    @property
    def headers(self) -> Mapping[str, str]: ...


@dataclass(frozen=True, slots=True)
class TargetProfile:
    """Redirect classification of a crawl target."""

    original_url: str
    effective_url: str
    mode: RedirectMode = "none"
    confidence: Confidence = "low"
    reason: str = REASON_NO_REDIRECT
    location: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Snapshot form stored in run records by upstream modules."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], target: str = "") -> "TargetProfile":
        """Rebuild a profile from a stored snapshot, tolerating missing keys."""
        original = str(data.get("original_url") or target)
        location = data.get("location")
        return cls(
            original_url=original,
            effective_url=str(data.get("effective_url") or ""),
            mode=data.get("mode") or "none",
            confidence=data.get("confidence") or "low",
            reason=str(data.get("reason") or ""),
            location=str(location) if location else None,
        )


@dataclass(frozen=True, slots=True)
class AnchorDecision:
    """Whether a crawl re-anchors to the profiled redirect target."""

    reanchor: bool
    effective_target: str
    reason_code: ReasonCode
    reason: str


def default_profile(target: str) -> TargetProfile:
    """Profile for a target that did not redirect."""
    return TargetProfile(original_url=target, effective_url=target)


def failed_profile(target: str) -> TargetProfile:
    """Profile for a target whose probe or parse raised."""
    return TargetProfile(original_url=target, effective_url=target, reason=REASON_PROFILE_FAILED)


def classify_redirect(target: str, location: str) -> TargetProfile:
    """Classify a resolved redirect location relative to the target.

    Raises:
        ValueError: If either URL is malformed
    """
    original = urlsplit(target)
    resolved = urlsplit(location)

    if (
        original.scheme.lower() == "http"
        and resolved.scheme.lower() == "https"
        and same_scope_host(original.hostname, resolved.hostname)
    ):
        return TargetProfile(
            original_url=target,
            effective_url=canonical_url_for(target, location),
            mode="http_to_https",
            confidence="high",
            reason=REASON_HTTP_TO_HTTPS,
            location=location,
        )

    if same_scope_host(original.hostname, resolved.hostname):
        return TargetProfile(
            original_url=target,
            effective_url=target,
            mode="same_scope_redirect",
            confidence="medium",
            reason=REASON_SAME_SCOPE,
            location=location,
        )

    return TargetProfile(
        original_url=target,
        effective_url=target,
        mode="cross_scope_redirect",
        confidence="low",
        reason=REASON_CROSS_SCOPE,
        location=location,
    )


async def profile_target(
    target: str,
    fetcher: HttpFetcher | None = None,
    *,
    verify_ssl: bool = False,
    timeout: float = 10.0,
    response: ResponseLike | None = None,
) -> TargetProfile:
    """Probe a target once and classify its redirect behavior.

    Args:
        target: Absolute http(s) URL to profile
        fetcher: Fetcher to probe with; a temporary one is created when None
        verify_ssl: TLS verification for the temporary fetcher
        timeout: Request timeout for the temporary fetcher
        response: Response already collected upstream (skips the probe)

    Returns:
        TargetProfile; never raises
    """
    try:
        if response is None:
            response = await _probe(target, fetcher, verify_ssl=verify_ssl, timeout=timeout)
        if response is None:
            return default_profile(target)

        location = str(response.headers.get("location") or "").strip()
        if not location:
            return default_profile(target)

        return classify_redirect(target, resolve_location(target, location))
    except Exception as e:
        logger.debug(f"Target profiling failed for {target}: {e}")
        return failed_profile(target)


async def _probe(
    target: str,
    fetcher: HttpFetcher | None,
    *,
    verify_ssl: bool,
    timeout: float,
) -> ResponseLike | None:
    if fetcher is not None:
        return await fetcher.fetch(target)

    config = CrawlerConfig(verify_ssl=verify_ssl, timeout=timeout)
    async with HttpFetcher.from_config(config) as temporary:
        return await temporary.fetch(target)


def reason_code_for(profile: TargetProfile | Mapping[str, Any] | None) -> ReasonCode:
    """Map a profile to its short reason code.

    Examples:
        >>> reason_code_for({"mode": "http_to_https"})
        'http->https'
        >>> reason_code_for({"mode": "none", "reason": "Target profiling failed"})
        'profile-failed'
    """
    if isinstance(profile, TargetProfile):
        mode, reason = profile.mode, profile.reason
    elif isinstance(profile, Mapping):
        mode, reason = str(profile.get("mode") or ""), str(profile.get("reason") or "")
    else:
        mode, reason = "", ""

    code = REASON_CODES.get(mode)
    if code is not None:
        return code
    if "failed" in reason.lower():
        return "profile-failed"
    return "no-redirect"


def reanchor_decision(
    target: str, profile: TargetProfile | Mapping[str, Any] | None
) -> AnchorDecision:
    """Decide whether the crawl should start from the profiled redirect target.

    Accepts a TargetProfile or the dictionary snapshot an upstream headers
    module stored; anything else is treated as an empty profile.
    """
    if isinstance(profile, Mapping):
        profile = TargetProfile.from_dict(profile, target)
    if not isinstance(profile, TargetProfile):
        profile = TargetProfile(original_url=target, effective_url="", reason="")

    reason_code = reason_code_for(profile)
    if profile.mode == "http_to_https" and profile.confidence == "high" and profile.effective_url:
        return AnchorDecision(
            reanchor=True,
            effective_target=profile.effective_url,
            reason_code=reason_code,
            reason=profile.reason,
        )
    return AnchorDecision(
        reanchor=False,
        effective_target=target,
        reason_code=reason_code,
        reason=profile.reason,
    )
