"""Tests for per-request middleware decisions."""

import pytest

from cache_policy.renderers.middleware import (
    PolicyMiddleware,
    RequestDecision,
    encode_cookie_header,
    merge_vary,
    parse_cookie_header,
)


@pytest.fixture
def middleware(configuration):
    return PolicyMiddleware(configuration)


class TestCookieHeader:
    """Test Cookie header parsing and encoding"""

    def test_parse(self):
        assert parse_cookie_header("a=1; b=two;c=%20x") == {"a": "1", "b": "two", "c": " x"}

    def test_first_occurrence_wins(self):
        assert parse_cookie_header("a=1; a=2") == {"a": "1"}

    def test_malformed_parts_skipped(self):
        assert parse_cookie_header("novalue; =x; ok=1") == {"ok": "1"}

    def test_encode(self):
        assert encode_cookie_header({"a": "1", "b": "x y"}) == "a=1; b=x%20y"


class TestMergeVary:
    """Test Vary header merging"""

    def test_no_existing_value(self):
        assert merge_vary(None, ["Host", "Cookie"]) == "Host, Cookie"

    def test_existing_entries_kept_once(self):
        assert merge_vary("Accept-Encoding, host", ["Host", "Cookie"]) == (
            "Accept-Encoding, host, Cookie"
        )


class TestProcessRequest:
    """Test request-side decisions"""

    def test_disallowed_method_rejected(self, middleware):
        decision = middleware.process_request("TRACE", "dashboard-host", "/", {})

        assert not decision.allowed
        assert decision.status == 403
        assert decision.body == "Unsupported method."
        assert decision.resolved is None
        assert decision.backend_id is None

    def test_method_case_insensitive(self, middleware):
        assert middleware.process_request("get", "dashboard-host", "/", {}).allowed

    def test_header_rules_applied(self, middleware):
        decision = middleware.process_request(
            "GET",
            "dashboard-host",
            "/hello",
            {
                "Accept-Language": "fr",
                "referer": "https://elsewhere",
                "User-Agent": "curl/8",
                "X-Custom": "kept",
            },
        )

        assert decision.allowed
        assert decision.backend_id == "dashboard"
        headers = decision.headers
        assert headers["Accept-Language"] == "fr"
        assert "referer" not in headers
        assert "Referer" not in headers
        assert headers["User-Agent"] == "Cached-Request"
        assert headers["X-Custom"] == "kept"

    def test_substitution_without_original_header(self, middleware):
        """Forced values are set even when the client sent nothing"""
        decision = middleware.process_request("GET", "dashboard-host", "/other", {})

        assert decision.headers["Accept-Language"] == "en-US"
        assert decision.headers["User-Agent"] == "Cached-Request"

    def test_allow_listed_cookies(self, middleware):
        decision = middleware.process_request(
            "GET",
            "dashboard-host",
            "/hello",
            {"Cookie": "tracking=abc; session=s1", "X-COOKIE-session": "forged"},
        )

        assert decision.headers["Cookie"] == "session=s1"
        assert decision.headers["X-COOKIE-session"] == "s1"

    def test_allow_listed_cookie_absent(self, middleware):
        """Stale carriers are removed and no empty Cookie header is left"""
        decision = middleware.process_request(
            "GET",
            "dashboard-host",
            "/hello",
            {"cookie": "tracking=abc", "X-COOKIE-session": "forged"},
        )

        assert "Cookie" not in decision.headers
        assert "cookie" not in decision.headers
        assert "X-COOKIE-session" not in decision.headers

    def test_no_cookies(self, middleware):
        decision = middleware.process_request(
            "GET", "dashboard-host", "/img/a.png", {"Cookie": "session=s1"}
        )
        assert "Cookie" not in decision.headers

    def test_all_cookies(self, middleware):
        decision = middleware.process_request(
            "GET", "dashboard-host", "/other", {"Cookie": "a=1; b=2"}
        )
        assert decision.headers["Cookie"] == "a=1; b=2"

    def test_proxied_request_rewrites_host(self, middleware):
        decision = middleware.process_request(
            "GET",
            "dashboard-host",
            "/s3_asset/logo.svg",
            {"host": "dashboard-host", "Origin": "https://x", "Cookie": "session=s1"},
        )

        assert decision.backend_id == "s3_proxy"
        assert decision.resolved.proxied_from == "dashboard"
        assert decision.headers["Host"] == "assets.example.com"
        assert "host" not in decision.headers
        assert decision.headers["Origin"] == "https://x"
        assert "Cookie" not in decision.headers

    def test_input_headers_not_mutated(self, middleware):
        headers = {"Referer": "x"}
        middleware.process_request("GET", "dashboard-host", "/", headers)
        assert headers == {"Referer": "x"}


class TestProcessResponse:
    """Test response-side decisions"""

    def test_vary_and_set_cookie_for_no_cookies(self, middleware):
        decision = middleware.process_request("GET", "dashboard-host", "/a.png", {})
        response = middleware.process_response(
            decision, {"Set-Cookie": "a=1", "Vary": "Accept-Encoding"}
        )

        assert "Set-Cookie" not in response
        assert response["Vary"] == "Accept-Encoding, Host"

    def test_allow_listed_cookies_keep_set_cookie(self, middleware):
        decision = middleware.process_request("GET", "dashboard-host", "/hello", {})
        response = middleware.process_response(decision, {"Set-Cookie": "session=s2"})

        assert response["Set-Cookie"] == "session=s2"
        assert response["Vary"] == "Accept-Language, Host, X-COOKIE-session"

    def test_all_cookies_vary_on_cookie(self, middleware):
        decision = middleware.process_request("GET", "unknown.example", "/", {})
        response = middleware.process_response(decision, {"vary": "cookie"})

        assert response["Vary"] == "cookie, Authorization, Host"
        assert "vary" not in response

    def test_rejected_request_untouched(self, middleware):
        decision = RequestDecision(allowed=False, status=403)
        assert middleware.process_response(decision, {"Set-Cookie": "a=1"}) == {
            "Set-Cookie": "a=1"
        }
