"""Input models for cache-policy configuration using Pydantic.

These models only check the shape of the raw input. Path patterns, proxy
targets and behavior ordering are checked by
:func:`cache_policy.compiler.compile_configuration`, which reports every
problem at once.
"""

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class BehaviorConfig(BaseModel):
    """Pydantic model for one behavior entry."""

    # No str_strip_whitespace: patterns are taken verbatim, so stray
    # whitespace fails pattern validation instead of being trimmed away.
    model_config = ConfigDict(frozen=True, extra="forbid")

    patterns: tuple[str, ...] | None = Field(
        default=None,
        validation_alias=AliasChoices("path", "patterns"),
        description="Path patterns; None matches every path",
    )
    headers: tuple[str, ...] = Field(
        default=(), description="Allow-listed request headers"
    )
    cookies: Literal["all", "none"] | tuple[str, ...] = Field(
        default="none", description='"all", "none" or allow-listed cookie names'
    )
    proxy_target: str | None = Field(
        default=None,
        validation_alias=AliasChoices("proxy", "proxy_target"),
        description="Backend id handling matching requests",
    )

    @field_validator("patterns", mode="before")
    @classmethod
    def wrap_single_pattern(cls, v: Any) -> Any:
        """Accept a single pattern string as well as a list."""
        if isinstance(v, str):
            return (v,)
        return v

    @field_validator("headers", mode="before")
    @classmethod
    def strip_header_names(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(n.strip() if isinstance(n, str) else n for n in v)
        return v

    @field_validator("cookies", mode="before")
    @classmethod
    def normalize_cookie_mode(cls, v: Any) -> Any:
        """Cookie modes are case-insensitive; cookie names are stripped."""
        if isinstance(v, str):
            return v.strip().lower()
        if isinstance(v, (list, tuple)):
            return tuple(n.strip() if isinstance(n, str) else n for n in v)
        return v

    @field_validator("proxy_target", mode="before")
    @classmethod
    def strip_proxy_target(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v

    @field_validator("headers", "cookies")
    @classmethod
    def validate_names(cls, v: Any) -> Any:
        """Header and cookie names must be non-empty."""
        if isinstance(v, tuple) and any(not name for name in v):
            raise ValueError("Names cannot be empty")
        return v


class BackendConfig(BaseModel):
    """Pydantic model for one backend entry."""

    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    origin: str = Field(min_length=1, description="Origin URL or hostname")
    aliases: tuple[str, ...] = Field(default=(), description="Hostname aliases")
    behaviors: tuple[BehaviorConfig, ...] = Field(
        default=(), description="Ordered path behaviors"
    )
    default: BehaviorConfig = Field(description="Behavior used when no path matches")
    is_primary: bool = Field(
        default=False,
        validation_alias=AliasChoices("primary", "is_primary"),
        description="Fallback backend for unknown hosts",
    )
    tls_cert: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("ssl_cert", "tls_cert"),
        description="Viewer certificate settings",
    )
    log_target: str | None = Field(
        default=None,
        validation_alias=AliasChoices("log", "log_target"),
        description="Access log bucket URL",
    )

    @field_validator("aliases")
    @classmethod
    def validate_aliases(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Validate and lowercase hostname aliases."""
        out = []
        for alias in v:
            if not alias or any(c.isspace() for c in alias) or "/" in alias:
                raise ValueError(f"Invalid hostname alias: {alias!r}")
            out.append(alias.lower())
        return tuple(out)

    @field_validator("default")
    @classmethod
    def validate_default(cls, v: BehaviorConfig) -> BehaviorConfig:
        """The default behavior applies to every path."""
        if v.patterns is not None:
            raise ValueError("Default behavior must not declare path patterns")
        return v
