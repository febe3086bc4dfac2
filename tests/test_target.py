"""Tests for target profiling and the anchor resolver."""

from typing import Any

import httpx
import pytest
from pytest_httpx import HTTPXMock

from spyglass.http_client import HTTPResponse, HttpFetcher
from spyglass.target import (
    REASON_CROSS_SCOPE,
    REASON_HTTP_TO_HTTPS,
    REASON_NO_REDIRECT,
    REASON_PROFILE_FAILED,
    REASON_SAME_SCOPE,
    TargetProfile,
    classify_redirect,
    failed_profile,
    profile_target,
    reanchor_decision,
    reason_code_for,
)


def redirect_response(location: str, status_code: int = 301) -> HTTPResponse:
    return HTTPResponse(
        status_code=status_code,
        headers={"location": location},
        content=b"",
        url="http://example.com/",
    )


class ExplodingFetcher:
    """Fetcher stand-in whose requests raise unexpectedly."""

    async def fetch(self, url: str) -> HTTPResponse | None:
        raise RuntimeError(f"boom: {url}")


class TestClassifyRedirect:
    """Tests for classify_redirect()."""

    def test_http_to_https_same_host(self) -> None:
        """Test scheme upgrade on the same host is high confidence and keeps the path."""
        profile = classify_redirect("http://example.com/login?next=1", "https://example.com/")

        assert profile.mode == "http_to_https"
        assert profile.confidence == "high"
        assert profile.effective_url == "https://example.com/login?next=1"
        assert profile.reason == REASON_HTTP_TO_HTTPS
        assert profile.location == "https://example.com/"

    def test_http_to_https_same_registrable_domain(self) -> None:
        """Test scheme upgrade onto a sibling host is still an upgrade."""
        profile = classify_redirect("http://example.com/", "https://www.example.com/")

        assert profile.mode == "http_to_https"
        assert profile.effective_url == "https://www.example.com/"

    def test_same_scope_redirect(self) -> None:
        """Test a redirect within the registrable domain keeps the original target."""
        profile = classify_redirect("https://example.com/", "https://www.example.com/home")

        assert profile.mode == "same_scope_redirect"
        assert profile.confidence == "medium"
        assert profile.effective_url == "https://example.com/"
        assert profile.reason == REASON_SAME_SCOPE

    def test_cross_scope_redirect(self) -> None:
        """Test a redirect to another registrable domain is low confidence."""
        profile = classify_redirect("http://example.com/", "https://example.org/")

        assert profile.mode == "cross_scope_redirect"
        assert profile.confidence == "low"
        assert profile.effective_url == "http://example.com/"
        assert profile.reason == REASON_CROSS_SCOPE


class TestProfileTarget:
    """Tests for profile_target()."""

    @pytest.mark.asyncio
    async def test_probe_http_to_https(self, httpx_mock: HTTPXMock, fetcher: HttpFetcher) -> None:
        """Test a probed 301 to HTTPS is classified as an upgrade."""
        httpx_mock.add_response(
            url="http://example.com/admin",
            status_code=301,
            headers={"Location": "https://example.com/admin"},
        )

        profile = await profile_target("http://example.com/admin", fetcher)

        assert profile.mode == "http_to_https"
        assert profile.effective_url == "https://example.com/admin"

    @pytest.mark.asyncio
    async def test_relative_location_resolved(
        self, httpx_mock: HTTPXMock, fetcher: HttpFetcher
    ) -> None:
        """Test a relative Location is resolved against the target."""
        httpx_mock.add_response(
            url="https://example.com/",
            status_code=302,
            headers={"Location": "/en/"},
        )

        profile = await profile_target("https://example.com/", fetcher)

        assert profile.mode == "same_scope_redirect"
        assert profile.location == "https://example.com/en/"

    @pytest.mark.asyncio
    async def test_no_location(self, httpx_mock: HTTPXMock, fetcher: HttpFetcher) -> None:
        """Test a plain 200 yields the default profile."""
        httpx_mock.add_response(url="https://example.com/", html="<html></html>")

        profile = await profile_target("https://example.com/", fetcher)

        assert profile.mode == "none"
        assert profile.confidence == "low"
        assert profile.effective_url == "https://example.com/"
        assert profile.reason == REASON_NO_REDIRECT

    @pytest.mark.asyncio
    async def test_no_response(self, httpx_mock: HTTPXMock, fetcher: HttpFetcher) -> None:
        """Test a connection failure yields the default profile."""
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

        profile = await profile_target("https://example.com/", fetcher)

        assert profile.mode == "none"
        assert profile.reason == REASON_NO_REDIRECT

    @pytest.mark.asyncio
    async def test_prefetched_response_skips_probe(self) -> None:
        """Test an upstream response is classified without any request."""
        profile = await profile_target(
            "http://example.com/",
            response=redirect_response("https://example.com/"),
        )

        assert profile.mode == "http_to_https"

    @pytest.mark.asyncio
    async def test_unexpected_failure(self) -> None:
        """Test unexpected errors produce the failed profile instead of raising."""
        exploding: Any = ExplodingFetcher()

        profile = await profile_target("https://example.com/", exploding)

        assert profile == failed_profile("https://example.com/")
        assert profile.reason == REASON_PROFILE_FAILED


class TestReasonCode:
    """Tests for reason_code_for()."""

    @pytest.mark.parametrize(
        ("profile", "expected"),
        [
            ({"mode": "http_to_https"}, "http->https"),
            ({"mode": "same_scope_redirect"}, "same-scope"),
            ({"mode": "cross_scope_redirect"}, "cross-scope"),
            ({"mode": "none", "reason": "Target profiling failed"}, "profile-failed"),
            ({"mode": "none", "reason": REASON_NO_REDIRECT}, "no-redirect"),
            ({}, "no-redirect"),
            (None, "no-redirect"),
        ],
    )
    def test_reason_code_table(self, profile: dict[str, Any] | None, expected: str) -> None:
        """Test the mode/reason to reason code table."""
        assert reason_code_for(profile) == expected

    def test_accepts_profile_object(self) -> None:
        """Test TargetProfile instances map the same way as snapshots."""
        assert reason_code_for(failed_profile("https://example.com/")) == "profile-failed"


class TestReanchorDecision:
    """Tests for reanchor_decision()."""

    def test_reanchors_on_high_confidence_upgrade(self) -> None:
        """Test only high-confidence HTTP to HTTPS upgrades re-anchor."""
        profile = classify_redirect("http://example.com/", "https://example.com/")

        decision = reanchor_decision("http://example.com/", profile)

        assert decision.reanchor is True
        assert decision.effective_target == "https://example.com/"
        assert decision.reason_code == "http->https"

    def test_snapshot_dictionary(self) -> None:
        """Test the stored snapshot form is accepted."""
        snapshot = classify_redirect("http://example.com/a", "https://example.com/").to_dict()

        decision = reanchor_decision("http://example.com/a", snapshot)

        assert decision.reanchor is True
        assert decision.effective_target == "https://example.com/a"

    def test_low_confidence_upgrade_does_not_reanchor(self) -> None:
        """Test an upgrade mode without high confidence keeps the target."""
        decision = reanchor_decision(
            "http://example.com/",
            {"mode": "http_to_https", "confidence": "medium", "effective_url": "https://x.com/"},
        )

        assert decision.reanchor is False
        assert decision.effective_target == "http://example.com/"

    @pytest.mark.parametrize(
        ("location", "code"),
        [
            ("https://www.example.com/", "same-scope"),
            ("https://example.org/", "cross-scope"),
        ],
    )
    def test_other_redirects_keep_target(self, location: str, code: str) -> None:
        """Test same-scope and cross-scope redirects never re-anchor."""
        profile = classify_redirect("https://example.com/", location)

        decision = reanchor_decision("https://example.com/", profile)

        assert decision.reanchor is False
        assert decision.effective_target == "https://example.com/"
        assert decision.reason_code == code

    def test_missing_profile(self) -> None:
        """Test no profile at all keeps the target."""
        decision = reanchor_decision("https://example.com/", None)

        assert decision.reanchor is False
        assert decision.reason_code == "no-redirect"
        assert decision.reason == ""


class TestTargetProfileSnapshot:
    """Tests for TargetProfile.to_dict() / from_dict()."""

    def test_round_trip(self) -> None:
        """Test a profile survives its snapshot form."""
        profile = classify_redirect("http://example.com/", "https://example.com/")

        assert TargetProfile.from_dict(profile.to_dict()) == profile

    def test_missing_keys_fall_back(self) -> None:
        """Test partial snapshots fill in defaults."""
        profile = TargetProfile.from_dict({}, target="https://example.com/")

        assert profile.original_url == "https://example.com/"
        assert profile.mode == "none"
        assert profile.confidence == "low"
        assert profile.location is None
