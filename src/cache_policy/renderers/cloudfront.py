"""CloudFront DistributionConfig generation (CloudFormation shape).

CloudFront evaluates CacheBehaviors first-match in array order, so no
decision tree is needed here; order comes straight from
:func:`cache_policy.compiler.behavior_order`.
"""

from typing import Any

from ..behaviors import Backend, Configuration, split_origin
from ..common.logging import get_logger
from ..compiler import behavior_order
from ..policy.cache_policy import CookieMode
from ..policy.tables import ALLOWED_METHODS, CACHED_METHODS, ERROR_CODES, S3_SUFFIX
from ..resolution import ResolvedPolicy, dereference

logger = get_logger(__name__)

# Forwarded in addition to the behavior's cache-key headers.
PROTO_HEADER = "CloudFront-Forwarded-Proto"

DEFAULT_VIEWER_CERTIFICATE = {
    "CloudFrontDefaultCertificate": True,
    "MinimumProtocolVersion": "TLSv1",
}


def cookie_config(resolved: ResolvedPolicy) -> dict[str, Any]:
    cookies = resolved.policy.cookies
    if cookies.mode is CookieMode.ALLOWLIST:
        return {"Forward": "whitelist", "WhitelistedNames": list(cookies.names)}
    return {"Forward": cookies.mode.value}


def cache_behavior(
    resolved: ResolvedPolicy, path_pattern: str | None = None
) -> dict[str, Any]:
    """Return a CacheBehavior mapping for one resolved behavior (and one pattern).

    Proxied behaviors forward with the target backend's default policy,
    matching what the other enforcement points do.
    """
    headers = list(resolved.policy.key_headers)
    if PROTO_HEADER not in headers:
        headers.append(PROTO_HEADER)

    result: dict[str, Any] = {
        "AllowedMethods": list(ALLOWED_METHODS),
        "CachedMethods": list(CACHED_METHODS),
        "Compress": True,
        "DefaultTTL": 0,
        "ForwardedValues": {
            "Cookies": cookie_config(resolved),
            "Headers": headers,
            "QueryString": True,
        },
        "MinTTL": 0,
        "TargetOriginId": resolved.backend_id,
        "ViewerProtocolPolicy": "redirect-to-https",
    }
    if path_pattern is not None:
        result["PathPattern"] = path_pattern
    return result


def origin_config(backend: Backend) -> dict[str, Any]:
    """Return the Origin entry for a backend."""
    parts = split_origin(backend.origin)
    host = parts.hostname or backend.origin
    origin: dict[str, Any] = {
        "Id": backend.id,
        "DomainName": host,
        "OriginPath": parts.path,
    }
    if host.endswith(S3_SUFFIX):
        origin["S3OriginConfig"] = {"OriginAccessIdentity": ""}
        return origin

    custom: dict[str, Any] = {"OriginSSLProtocols": ["TLSv1.2", "TLSv1.1"]}
    if parts.scheme == "http":
        custom["OriginProtocolPolicy"] = "http-only"
        custom["HTTPPort"] = parts.port or 80
    elif parts.scheme == "https":
        custom["OriginProtocolPolicy"] = "https-only"
        custom["HTTPSPort"] = parts.port or 443
    else:
        custom["OriginProtocolPolicy"] = "match-viewer"
    origin["CustomOriginConfig"] = custom
    return origin


def logging_config(log_target: str) -> dict[str, Any]:
    parts = split_origin(log_target)
    return {
        "Bucket": parts.hostname or log_target,
        "Prefix": parts.path,
        "IncludeCookies": False,
    }


def distribution_config(configuration: Configuration, backend_id: str) -> dict[str, Any]:
    """Return the DistributionConfig for one backend.

    Args:
        configuration: Compiled configuration
        backend_id: Backend whose aliases the distribution serves

    Returns:
        DistributionConfig mapping ready for JSON serialization
    """
    backend = configuration[backend_id]
    config: dict[str, Any] = {
        "Aliases": list(backend.aliases),
        "CacheBehaviors": [
            cache_behavior(dereference(configuration, backend, behavior), pattern.pattern)
            for pattern, behavior in behavior_order(backend)
        ],
        "Comment": "",
        "CustomErrorResponses": [
            {"ErrorCachingMinTTL": 0, "ErrorCode": code} for code in ERROR_CODES
        ],
        "DefaultCacheBehavior": cache_behavior(
            dereference(configuration, backend, backend.default)
        ),
        "DefaultRootObject": "",
        "Enabled": True,
        "Origins": [origin_config(b) for b in configuration],
        "ViewerCertificate": dict(backend.tls_cert)
        if backend.tls_cert is not None
        else dict(DEFAULT_VIEWER_CERTIFICATE),
        "HttpVersion": "http2",
    }
    if backend.log_target:
        config["Logging"] = logging_config(backend.log_target)
    return config


def cloudfront(configuration: Configuration) -> dict[str, dict[str, Any]]:
    """Return a DistributionConfig per backend, keyed by backend id."""
    distributions = {b.id: distribution_config(configuration, b.id) for b in configuration}
    logger.debug("CloudFront distributions rendered", count=len(distributions))
    return distributions
