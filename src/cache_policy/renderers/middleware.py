"""Per-request HTTP middleware decisions derived from a Configuration.

:class:`PolicyMiddleware` tells a host application what to do with a
request before it reaches the cache (reject, rewrite headers, filter
cookies) and with the response before it is stored (Vary, Set-Cookie).
Wiring it into a server's request pipeline is left to the host application.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from urllib.parse import quote, unquote

from ..behaviors import Configuration
from ..common.logging import get_logger
from ..policy.cache_policy import CachePolicy, CookieMode, HeaderAction
from ..policy.tables import ALLOWED_METHODS
from ..resolution import ResolvedPolicy, resolve

logger = get_logger(__name__)

FORBIDDEN_STATUS = 403
FORBIDDEN_BODY = "Unsupported method."


def parse_cookie_header(value: str) -> dict[str, str]:
    """Parse a Cookie header into name/value pairs; first occurrence wins."""
    cookies: dict[str, str] = {}
    for part in value.split(";"):
        name, sep, val = part.strip().partition("=")
        if not sep or not name:
            continue
        cookies.setdefault(unquote(name), unquote(val))
    return cookies


def encode_cookie_header(cookies: Mapping[str, str]) -> str:
    return "; ".join(f"{quote(k, safe='')}={quote(v, safe='')}" for k, v in cookies.items())


def _pop_header(headers: dict[str, str], name: str) -> str | None:
    """Remove every case variant of a header, returning the first value."""
    lowered = name.lower()
    values = [headers.pop(k) for k in [k for k in headers if k.lower() == lowered]]
    return values[0] if values else None


@dataclass
class RequestDecision:
    """Outcome of request processing."""

    allowed: bool
    resolved: ResolvedPolicy | None = None
    headers: dict[str, str] = field(default_factory=dict)
    status: int | None = None
    body: str | None = None

    @property
    def backend_id(self) -> str | None:
        return self.resolved.backend_id if self.resolved else None


def apply_header_rules(policy: CachePolicy, headers: dict[str, str]) -> None:
    """Delete or force deny-listed headers not on the allow-list."""
    for rule in policy.headers.rules:
        _pop_header(headers, rule.name)
        if rule.action is HeaderAction.SUBSTITUTE:
            headers[rule.name] = rule.value or ""


def apply_cookie_policy(policy: CachePolicy, headers: dict[str, str]) -> None:
    """Filter request cookies and copy allow-listed ones into carrier headers."""
    cookies = policy.cookies
    if cookies.mode is CookieMode.ALL:
        return
    raw = _pop_header(headers, "Cookie")
    for _, carrier in cookies.carriers:
        _pop_header(headers, carrier)
    if cookies.mode is CookieMode.NONE or raw is None:
        return

    request_cookies = parse_cookie_header(raw)
    kept = {name: request_cookies[name] for name in cookies.names if name in request_cookies}
    for name, value in kept.items():
        headers[cookies.carrier_header(name)] = value
    if kept:
        headers["Cookie"] = encode_cookie_header(kept)


def merge_vary(existing: str | None, entries: Iterable[str]) -> str:
    """Append Vary entries not already present (case-insensitive)."""
    values = [v.strip() for v in (existing or "").split(",") if v.strip()]
    seen = {v.lower() for v in values}
    for entry in entries:
        if entry.lower() not in seen:
            seen.add(entry.lower())
            values.append(entry)
    return ", ".join(values)


class PolicyMiddleware:
    """Computes request and response manipulation for one configuration."""

    def __init__(self, configuration: Configuration) -> None:
        self.configuration = configuration

    def process_request(
        self, method: str, host: str, path: str, headers: Mapping[str, str]
    ) -> RequestDecision:
        """Decide how a request is forwarded to the cache.

        Args:
            method: HTTP method
            host: Request Host header
            path: Request path with optional query string
            headers: Request headers

        Returns:
            RequestDecision with the filtered upstream headers, or a 403
            rejection for methods outside the allow-list
        """
        if method.upper() not in ALLOWED_METHODS:
            logger.info("Request method rejected", method=method, path=path)
            return RequestDecision(
                allowed=False, status=FORBIDDEN_STATUS, body=FORBIDDEN_BODY
            )

        resolved = resolve(self.configuration, host, path)
        upstream = dict(headers)
        apply_header_rules(resolved.policy, upstream)
        apply_cookie_policy(resolved.policy, upstream)
        if resolved.host_override:
            _pop_header(upstream, "Host")
            upstream["Host"] = resolved.host_override

        return RequestDecision(allowed=True, resolved=resolved, headers=upstream)

    def process_response(
        self, decision: RequestDecision, headers: Mapping[str, str]
    ) -> dict[str, str]:
        """Add Vary entries and strip Set-Cookie before the response is cached."""
        response = dict(headers)
        if decision.resolved is None:
            return response

        policy = decision.resolved.policy
        if policy.cookies.strips_set_cookie:
            _pop_header(response, "Set-Cookie")
        vary = merge_vary(_pop_header(response, "Vary"), policy.vary)
        if vary:
            response["Vary"] = vary
        return response
