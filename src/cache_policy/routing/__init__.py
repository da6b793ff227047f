"""Path pattern compilation for cache behaviors."""

from .patterns import (
    END_URL_REGEX,
    MAX_PATTERN_LENGTH,
    Matcher,
    PathPattern,
    compile_pattern,
    matches_any,
    pattern_error,
    validate_pattern,
)

__all__ = [
    "PathPattern",
    "Matcher",
    "compile_pattern",
    "validate_pattern",
    "pattern_error",
    "matches_any",
    "END_URL_REGEX",
    "MAX_PATTERN_LENGTH",
]
