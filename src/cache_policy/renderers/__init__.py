"""Artifact renderers for the three enforcement points."""

from .cloudfront import cache_behavior, cloudfront, distribution_config
from .middleware import PolicyMiddleware, RequestDecision
from .varnish import render_vcl

__all__ = [
    "cloudfront",
    "distribution_config",
    "cache_behavior",
    "render_vcl",
    "PolicyMiddleware",
    "RequestDecision",
]
