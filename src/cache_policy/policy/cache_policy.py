"""Canonical header/cookie forwarding and Vary policy.

Every renderer derives its request manipulation and cache-key computation
from a :class:`CachePolicy`; none of them re-interprets behavior directives.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from .settings import DEFAULT_SETTINGS, PolicySettings


class HeaderAction(str, Enum):
    """What happens to a deny-listed request header."""

    DELETE = "delete"
    SUBSTITUTE = "substitute"


@dataclass(frozen=True)
class HeaderRule:
    """A deny-list rule applied to one request header."""

    name: str
    action: HeaderAction
    value: str | None = None

    @classmethod
    def parse(cls, entry: str) -> "HeaderRule":
        """Parse a ``"Name"`` or ``"Name:Value"`` deny-list entry."""
        name, sep, value = entry.partition(":")
        name = name.strip()
        if sep:
            return cls(name=name, action=HeaderAction.SUBSTITUTE, value=value.strip())
        return cls(name=name, action=HeaderAction.DELETE)


@dataclass(frozen=True)
class HeaderPolicy:
    """Allow-listed headers plus the deny rules left after the allow-list."""

    allowed: tuple[str, ...]
    rules: tuple[HeaderRule, ...]

    def is_allowed(self, name: str) -> bool:
        lowered = name.lower()
        return any(h.lower() == lowered for h in self.allowed)


class CookieMode(str, Enum):
    """Cookie forwarding modes."""

    ALL = "all"
    NONE = "none"
    ALLOWLIST = "allowlist"


@dataclass(frozen=True)
class CookiePolicy:
    """How request cookies are forwarded and keyed."""

    mode: CookieMode
    names: tuple[str, ...] = ()
    carrier_prefix: str = DEFAULT_SETTINGS.cookie_carrier_prefix

    def allows(self, name: str) -> bool:
        if self.mode is CookieMode.ALL:
            return True
        if self.mode is CookieMode.NONE:
            return False
        return name in self.names

    def carrier_header(self, name: str) -> str:
        """Synthetic request header carrying a single cookie's value."""
        return f"{self.carrier_prefix}{name.replace('_', '-')}"

    @property
    def carriers(self) -> tuple[tuple[str, str], ...]:
        """(cookie name, carrier header) pairs, in declared order."""
        if self.mode is not CookieMode.ALLOWLIST:
            return ()
        return tuple((name, self.carrier_header(name)) for name in self.names)

    @property
    def strips_set_cookie(self) -> bool:
        return self.mode is CookieMode.NONE


@dataclass(frozen=True)
class CachePolicy:
    """The (forward headers, forward cookies, Vary) triple for one behavior."""

    headers: HeaderPolicy
    cookies: CookiePolicy
    vary: tuple[str, ...]

    @property
    def key_headers(self) -> tuple[str, ...]:
        """Vary entries contributed by request headers (no cookie entries)."""
        cookie_entries = {h for _, h in self.cookies.carriers}
        if self.cookies.mode is CookieMode.ALL:
            cookie_entries.add("Cookie")
        return tuple(h for h in self.vary if h not in cookie_entries)


def _unique(names: Sequence[str], *, fold_case: bool) -> tuple[str, ...]:
    seen: set[str] = set()
    out = []
    for name in names:
        key = name.lower() if fold_case else name
        if key not in seen:
            seen.add(key)
            out.append(name)
    return tuple(out)


def cookie_policy(
    cookies: str | Sequence[str], settings: PolicySettings | None = None
) -> CookiePolicy:
    """Build the cookie policy for an ``"all"``/``"none"``/name-list directive."""
    settings = settings or DEFAULT_SETTINGS
    prefix = settings.cookie_carrier_prefix
    if isinstance(cookies, str):
        mode = CookieMode(cookies.lower())
        if mode is CookieMode.ALLOWLIST:
            raise ValueError("Cookie allow-lists must be given as a list of names")
        return CookiePolicy(mode=mode, carrier_prefix=prefix)
    return CookiePolicy(
        mode=CookieMode.ALLOWLIST,
        names=_unique(cookies, fold_case=False),
        carrier_prefix=prefix,
    )


def normalize_policy(
    headers: Sequence[str],
    cookies: str | Sequence[str],
    settings: PolicySettings | None = None,
) -> CachePolicy:
    """Normalize behavior directives into a canonical CachePolicy.

    Args:
        headers: Allow-listed request header names
        cookies: "all", "none" or the allow-listed cookie names
        settings: Deny-list and carrier settings (defaults to the static tables)

    Returns:
        CachePolicy shared by every renderer
    """
    settings = settings or DEFAULT_SETTINGS
    allowed = _unique([h.strip() for h in headers if h.strip()], fold_case=True)
    allowed_lower = {h.lower() for h in allowed}

    rules = tuple(
        rule
        for rule in (HeaderRule.parse(entry) for entry in settings.removed_headers)
        if rule.name.lower() not in allowed_lower
    )
    header_policy = HeaderPolicy(allowed=allowed, rules=rules)
    cookie_pol = cookie_policy(cookies, settings)

    vary = list(allowed)
    vary.extend(h for h in settings.always_vary if h.lower() not in allowed_lower)
    if cookie_pol.mode is CookieMode.ALL:
        vary.append("Cookie")
    else:
        vary.extend(header for _, header in cookie_pol.carriers)

    return CachePolicy(
        headers=header_policy,
        cookies=cookie_pol,
        vary=_unique(vary, fold_case=True),
    )
