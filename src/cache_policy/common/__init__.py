"""Common utilities and shared functionality."""

from .exceptions import (
    CachePolicyError,
    ConfigurationError,
    InvalidBackendError,
    InvalidPatternError,
    MisplacedWildcardBehaviorError,
    NoDefaultBackendError,
    UnresolvedProxyTargetError,
)
from .logging import get_logger, setup_logging

__all__ = [
    # Exceptions
    "CachePolicyError",
    "ConfigurationError",
    "InvalidBackendError",
    "InvalidPatternError",
    "MisplacedWildcardBehaviorError",
    "NoDefaultBackendError",
    "UnresolvedProxyTargetError",
    # Logging
    "get_logger",
    "setup_logging",
]
