"""Compiled, immutable behavior tables.

Instances are produced by :func:`cache_policy.compiler.compile_configuration`
and are only ever read afterwards.
"""

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, InstanceOf, PrivateAttr, field_validator

from .policy.cache_policy import CachePolicy
from .routing.patterns import PathPattern, matches_any


class Behavior(BaseModel):
    """A path-scoped (or default) bundle of forwarding and caching rules."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    patterns: tuple[PathPattern, ...] | None = Field(
        description="Compiled path patterns; None matches every path"
    )
    policy: InstanceOf[CachePolicy] = Field(description="Normalized cache policy")
    proxy_target: str | None = Field(
        default=None, description="Backend id that handles matching requests"
    )

    @property
    def is_wildcard(self) -> bool:
        """True when the behavior matches every path."""
        return self.patterns is None

    def matches(self, path: str) -> bool:
        if self.patterns is None:
            return True
        return matches_any(self.patterns, path)

    @property
    def headers(self) -> tuple[str, ...]:
        return self.policy.headers.allowed


def split_origin(origin: str):
    """Parse an origin that may lack a scheme ("example.com/prefix")."""
    parts = urlsplit(origin)
    if not parts.hostname:
        parts = urlsplit(f"//{origin}")
    return parts


class Backend(BaseModel):
    """A named upstream origin plus its caching policy."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Backend identifier")
    origin: str = Field(min_length=1, description="Origin URL or hostname")
    aliases: tuple[str, ...] = Field(default=(), description="Lowercased hostname aliases")
    behaviors: tuple[Behavior, ...] = Field(default=(), description="Ordered path behaviors")
    default: Behavior = Field(description="Behavior used when no path matches")
    is_primary: bool = Field(default=False, description="Fallback for unknown hosts")
    tls_cert: Mapping[str, Any] | None = Field(
        default=None, description="Read-only viewer certificate settings"
    )
    log_target: str | None = Field(default=None, description="Access log bucket URL")

    @field_validator("tls_cert")
    @classmethod
    def freeze_tls_cert(cls, v: Mapping[str, Any] | None) -> Mapping[str, Any] | None:
        if v is None:
            return None
        return MappingProxyType(dict(v))

    @property
    def origin_host(self) -> str:
        return split_origin(self.origin).hostname or self.origin

    @property
    def canonical_host(self) -> str:
        """Host presented to this backend when a request is proxied to it."""
        return self.aliases[0] if self.aliases else self.origin_host

    @property
    def ordered_behaviors(self) -> tuple[Behavior, ...]:
        """Path behaviors followed by the default, in evaluation order."""
        return self.behaviors + (self.default,)


class Configuration(BaseModel):
    """Ordered, validated mapping of backend id to Backend."""

    model_config = ConfigDict(frozen=True)

    backends: tuple[Backend, ...] = Field(description="Backends in priority order")
    _index: Mapping[str, Backend] = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        self._index = MappingProxyType({b.id: b for b in self.backends})

    @property
    def primary(self) -> Backend:
        return next(b for b in self.backends if b.is_primary)

    @property
    def ids(self) -> tuple[str, ...]:
        return tuple(b.id for b in self.backends)

    def get(self, backend_id: str) -> Backend | None:
        return self._index.get(backend_id)

    def __getitem__(self, backend_id: str) -> Backend:
        return self._index[backend_id]

    def __contains__(self, backend_id: object) -> bool:
        return backend_id in self._index

    def __iter__(self) -> Iterator[Backend]:  # type: ignore[override]
        return iter(self.backends)

    def __len__(self) -> int:
        return len(self.backends)
