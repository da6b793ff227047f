"""cache-policy - compile one cache configuration for three enforcement points.

A configuration of named backends, each with ordered path behaviors and a
default, is compiled once into an immutable :class:`Configuration`. The same
resolution semantics then drive a CloudFront distribution, a Varnish VCL
program and an HTTP middleware.
"""

from .behaviors import Backend, Behavior, Configuration
from .common.exceptions import (
    CachePolicyError,
    ConfigurationError,
    InvalidBackendError,
    InvalidPatternError,
    MisplacedWildcardBehaviorError,
    NoDefaultBackendError,
    UnresolvedProxyTargetError,
)
from .common.logging import get_logger, setup_logging
from .compiler import behavior_order, compile_configuration
from .decision_tree import (
    ALWAYS,
    NEVER,
    Branch,
    DecisionTree,
    all_of,
    any_of,
    compile_tree,
    render_decision_tree,
)
from .policy import CachePolicy, CookieMode, PolicySettings, normalize_policy
from .renderers import PolicyMiddleware, RequestDecision, cloudfront, render_vcl
from .resolution import ResolvedPolicy, resolve, resolve_backend, resolve_path
from .routing import Matcher, PathPattern, compile_pattern, validate_pattern

__version__ = "0.1.0"


__all__ = [
    # Compilation
    "compile_configuration",
    "behavior_order",
    "Configuration",
    "Backend",
    "Behavior",
    # Patterns
    "PathPattern",
    "Matcher",
    "compile_pattern",
    "validate_pattern",
    # Policy
    "CachePolicy",
    "CookieMode",
    "PolicySettings",
    "normalize_policy",
    # Resolution
    "ResolvedPolicy",
    "resolve",
    "resolve_backend",
    "resolve_path",
    # Decision trees
    "DecisionTree",
    "Branch",
    "ALWAYS",
    "NEVER",
    "any_of",
    "all_of",
    "compile_tree",
    "render_decision_tree",
    # Renderers
    "cloudfront",
    "render_vcl",
    "PolicyMiddleware",
    "RequestDecision",
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
