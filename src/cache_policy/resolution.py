"""First-match resolution of (host, path) to the governing behavior.

Backends are selected by host alias in declared order, then behaviors by
path in declared order. The first hit wins; there is no best-match scoring,
so reordering overlapping entries changes the result.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from .behaviors import Backend, Behavior, Configuration
from .common.logging import get_logger
from .policy.cache_policy import CachePolicy

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedPolicy:
    """The single behavior governing a request, after at most one proxy hop."""

    backend_id: str
    behavior: Behavior
    host_override: str | None = None
    proxied_from: str | None = None

    @property
    def policy(self) -> CachePolicy:
        return self.behavior.policy

    @property
    def is_proxied(self) -> bool:
        return self.proxied_from is not None

    def effective_host(self, request_host: str) -> str:
        """Host header to send upstream for a request."""
        return self.host_override or request_host


def normalize_host(host: str) -> str:
    """Lowercase a Host header value and drop any port."""
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal, e.g. "[::1]:8080"
        return host.split("]", 1)[0] + "]"
    return host.rsplit(":", 1)[0] if host.count(":") == 1 else host


def host_matches(alias: str, host: str) -> bool:
    """Check a request host against one backend alias."""
    # Exact after lowercasing and port removal, not a substring test: CloudFront
    # aliases and VCL string equality can only express whole hostnames.
    return bool(host) and normalize_host(host) == alias


def resolve_backend(configuration: Configuration, host: str) -> Backend:
    """Return the first backend with an alias matching host, else the primary."""
    for backend in configuration:
        if any(host_matches(alias, host) for alias in backend.aliases):
            return backend
    return configuration.primary


def resolve_path(
    behaviors: Sequence[Behavior], default: Behavior, path: str
) -> Behavior:
    """Return the first behavior matching path, or default if none does."""
    for behavior in behaviors:
        if behavior.matches(path):
            return behavior
    return default


def dereference(
    configuration: Configuration, backend: Backend, behavior: Behavior
) -> ResolvedPolicy:
    """Follow a behavior's proxy target one hop to the target's default.

    The target's default is used as-is, even if it names a proxy target of
    its own; chains are never followed.
    """
    if behavior.proxy_target is None:
        return ResolvedPolicy(backend_id=backend.id, behavior=behavior)

    target = configuration[behavior.proxy_target]
    return ResolvedPolicy(
        backend_id=target.id,
        host_override=target.canonical_host,
        behavior=target.default,
        proxied_from=backend.id,
    )


def resolve(configuration: Configuration, host: str, path: str) -> ResolvedPolicy:
    """Resolve the governing policy for a request.

    Args:
        configuration: Compiled configuration
        host: Request Host header
        path: Request path, optionally with a query string

    Returns:
        ResolvedPolicy for the request; never fails on a compiled configuration
    """
    backend = resolve_backend(configuration, host)
    behavior = resolve_path(backend.behaviors, backend.default, path)
    resolved = dereference(configuration, backend, behavior)

    logger.debug(
        "Request resolved",
        host=host,
        path=path,
        backend=resolved.backend_id,
        proxied_from=resolved.proxied_from,
    )
    return resolved
