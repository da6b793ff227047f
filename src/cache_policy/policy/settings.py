"""Settings model for policy normalization."""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .tables import ALWAYS_VARY, COOKIE_CARRIER_PREFIX, REMOVED_HEADERS


class PolicySettings(BaseModel):
    """Pydantic model for the process-wide policy defaults."""

    model_config = ConfigDict(
        str_strip_whitespace=True, frozen=True, extra="forbid"
    )

    removed_headers: tuple[str, ...] = Field(
        default=REMOVED_HEADERS,
        description='Deny-listed request headers ("Name" or "Name:Value")',
    )
    always_vary: tuple[str, ...] = Field(
        default=ALWAYS_VARY, description="Headers always folded into the cache key"
    )
    cookie_carrier_prefix: str = Field(
        default=COOKIE_CARRIER_PREFIX,
        min_length=1,
        description="Header prefix for per-cookie carriers",
    )

    @field_validator("removed_headers")
    @classmethod
    def validate_removed_headers(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Validate deny-list entry format."""
        for entry in v:
            name = entry.split(":", 1)[0].strip()
            if not name:
                raise ValueError(f"Deny-list entry has no header name: {entry!r}")
        return v

    @field_validator("cookie_carrier_prefix")
    @classmethod
    def validate_carrier_prefix(cls, v: str) -> str:
        """Carrier prefix must be a plausible header name fragment."""
        if not v.replace("-", "").replace("_", "").isalnum():
            raise ValueError(
                "Cookie carrier prefix must contain only alphanumerics, hyphens and underscores"
            )
        return v


DEFAULT_SETTINGS = PolicySettings()
