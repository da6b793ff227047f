"""Path pattern validation and compilation for cache behaviors.

Patterns follow CloudFront path-pattern rules, narrowed to keep every
enforcement point able to reproduce them:

- at most 255 characters
- ``A-Z a-z 0-9 _ - . $ / ~ " ' @ : +`` only (case sensitive)
- a mandatory leading slash
- at most one ``*`` wildcard, either right after the leading slash
  (``/*.jpg``) or at the very end (``/images/*``); no ``?`` wildcards
"""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from re import Pattern

from ..common.exceptions import InvalidPatternError

MAX_PATTERN_LENGTH = 255

# Optional query string followed by the end-of-string anchor.
END_URL_REGEX = r"(\?.*)?$"

_CHARS = r"""[A-Za-z0-9_\-.$/~"'@:+]*"""
_VALID_PATTERN = re.compile(rf"^/(\*{_CHARS}|{_CHARS}\*|{_CHARS})$")
_EXTENSION_SLASH = re.compile(r"^/(?=\*.)")
_ESCAPED = re.compile(r'[.+$"]')


def pattern_error(pattern: str) -> str | None:
    """Explain why a pattern is invalid.

    Returns:
        Reason string, or None if the pattern is valid
    """
    if not isinstance(pattern, str) or not pattern:
        return "pattern must be a non-empty string"
    if len(pattern) > MAX_PATTERN_LENGTH:
        return f"pattern exceeds {MAX_PATTERN_LENGTH} characters"
    if not pattern.startswith("/"):
        return "pattern must start with '/'"
    if "?" in pattern:
        return "single-character wildcards are not allowed"
    if pattern.count("*") > 1:
        return "at most one '*' wildcard is allowed"
    if not _VALID_PATTERN.match(pattern):
        if "*" in pattern:
            return "'*' must directly follow the leading slash or end the pattern"
        return "pattern contains unsupported characters"
    return None


def validate_pattern(pattern: str) -> bool:
    """Check a path pattern against the length, charset and wildcard rules."""
    return pattern_error(pattern) is None


@dataclass(frozen=True)
class Matcher:
    """Compiled, portable form of a validated path pattern.

    ``expression`` is a PCRE-compatible regex string that renderers can embed
    verbatim; ``matches`` evaluates the same expression in Python.
    """

    pattern: str
    expression: str
    _regex: Pattern[str] = field(repr=False, compare=False)

    def matches(self, path: str) -> bool:
        return self._regex.search(path) is not None

    def __str__(self) -> str:
        return self.expression


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Matcher:
    """Compile a path pattern into a Matcher.

    Args:
        pattern: Path pattern (e.g. "/api/*", "/*.png", "/exact")

    Returns:
        Matcher accepting the path with an optional query string

    Raises:
        InvalidPatternError: If the pattern is not valid
    """
    reason = pattern_error(pattern)
    if reason is not None:
        raise InvalidPatternError(pattern, reason=reason)

    expression = _EXTENSION_SLASH.sub("", pattern)
    expression = _ESCAPED.sub(lambda m: "\\" + m.group(0), expression)
    expression = expression.replace("*", ".*")
    expression = f"^{expression}{END_URL_REGEX}"
    return Matcher(pattern=pattern, expression=expression, _regex=re.compile(expression))


class PathPattern:
    """A validated path pattern with its compiled matcher"""

    __slots__ = ("pattern", "matcher")

    def __init__(self, pattern: str):
        """Initialize path pattern.

        Args:
            pattern: Path pattern (e.g., "/api/*", "/*.css", "/exact")

        Raises:
            InvalidPatternError: If the pattern is not valid
        """
        self.pattern = pattern
        self.matcher = compile_pattern(pattern)

    @property
    def is_wildcard(self) -> bool:
        return "*" in self.pattern

    @property
    def is_extension(self) -> bool:
        """True for the ``/*tail`` form, e.g. ``/*.jpg``."""
        return self.pattern.startswith("/*") and len(self.pattern) > 2

    def matches(self, path: str) -> bool:
        """Check if path matches this pattern"""
        return self.matcher.matches(path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathPattern):
            return NotImplemented
        return self.pattern == other.pattern

    def __hash__(self) -> int:
        return hash(self.pattern)

    def __str__(self) -> str:
        return self.pattern

    def __repr__(self) -> str:
        return f"PathPattern('{self.pattern}')"


def matches_any(patterns: tuple[PathPattern, ...], path: str) -> bool:
    """OR-combine several patterns against one path."""
    return any(p.matches(path) for p in patterns)
