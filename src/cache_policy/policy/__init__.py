"""Cache policy model: static tables, settings, input schema and normalization."""

from .cache_policy import (
    CachePolicy,
    CookieMode,
    CookiePolicy,
    HeaderAction,
    HeaderPolicy,
    HeaderRule,
    cookie_policy,
    normalize_policy,
)
from .models import BackendConfig, BehaviorConfig
from .settings import DEFAULT_SETTINGS, PolicySettings

__all__ = [
    "CachePolicy",
    "CookieMode",
    "CookiePolicy",
    "HeaderAction",
    "HeaderPolicy",
    "HeaderRule",
    "cookie_policy",
    "normalize_policy",
    "BackendConfig",
    "BehaviorConfig",
    "PolicySettings",
    "DEFAULT_SETTINGS",
]
