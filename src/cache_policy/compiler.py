"""Compile raw cache-policy input into an immutable Configuration.

Compilation is all-or-nothing: every pattern, proxy target and ordering
rule is checked, and all problems are reported together in one
:class:`ConfigurationError`.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

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
from .common.logging import get_logger
from .policy.cache_policy import normalize_policy
from .policy.models import BackendConfig, BehaviorConfig
from .policy.settings import DEFAULT_SETTINGS, PolicySettings
from .routing.patterns import PathPattern, pattern_error

logger = get_logger(__name__)


def _format_validation_error(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "backend"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def _parse_backends(
    raw: Mapping[str, Any], errors: list[CachePolicyError]
) -> dict[str, BackendConfig]:
    parsed: dict[str, BackendConfig] = {}
    for backend_id, entry in raw.items():
        if not isinstance(backend_id, str) or not backend_id.strip():
            errors.append(InvalidBackendError(str(backend_id), "backend id must be a non-empty string"))
            continue
        try:
            parsed[backend_id] = BackendConfig.model_validate(entry)
        except ValidationError as e:
            errors.append(InvalidBackendError(backend_id, _format_validation_error(e)))
    return parsed


def _check_behaviors(
    backend_id: str, config: BackendConfig, errors: list[CachePolicyError]
) -> None:
    for behavior in (*config.behaviors, config.default):
        for pattern in behavior.patterns or ():
            reason = pattern_error(pattern)
            if reason is not None:
                errors.append(InvalidPatternError(pattern, backend_id, reason))

    # The default always comes last; a match-all entry before it shadows it.
    for index, behavior in enumerate(config.behaviors):
        if behavior.patterns is None:
            errors.append(MisplacedWildcardBehaviorError(backend_id, index))


def _check_proxy_targets(
    parsed: dict[str, BackendConfig],
    known_ids: set[str],
    errors: list[CachePolicyError],
) -> None:
    for backend_id, config in parsed.items():
        for behavior in (*config.behaviors, config.default):
            target = behavior.proxy_target
            if target is not None and target not in known_ids:
                errors.append(UnresolvedProxyTargetError(backend_id, target))


def _primary_id(
    parsed: dict[str, BackendConfig], errors: list[CachePolicyError]
) -> str | None:
    flagged = tuple(bid for bid, config in parsed.items() if config.is_primary)
    if len(flagged) == 1:
        return flagged[0]
    if len(flagged) > 1:
        errors.append(
            NoDefaultBackendError(
                f"Only one backend may be primary, got: {', '.join(flagged)}", flagged
            )
        )
        return None
    if len(parsed) == 1:
        # A lone backend serves every host.
        return next(iter(parsed))
    errors.append(
        NoDefaultBackendError(
            "No backend is flagged primary; hosts matching no alias have no backend"
        )
    )
    return None


def _build_behavior(config: BehaviorConfig, settings: PolicySettings) -> Behavior:
    patterns = (
        None
        if config.patterns is None
        else tuple(PathPattern(p) for p in config.patterns)
    )
    return Behavior(
        patterns=patterns,
        policy=normalize_policy(config.headers, config.cookies, settings),
        proxy_target=config.proxy_target,
    )


def compile_configuration(
    raw: Mapping[str, Any], settings: PolicySettings | None = None
) -> Configuration:
    """Validate and normalize a raw configuration mapping.

    Args:
        raw: Mapping of backend id to backend settings, in priority order
        settings: Policy settings (defaults to the static tables)

    Returns:
        Immutable, fully validated Configuration

    Raises:
        ConfigurationError: With every problem found; nothing partial is returned
    """
    settings = settings or DEFAULT_SETTINGS
    errors: list[CachePolicyError] = []

    if not isinstance(raw, Mapping):
        raise ConfigurationError(
            [InvalidBackendError("<root>", "configuration must be a mapping of backend id to backend")]
        )
    if not raw:
        raise ConfigurationError([NoDefaultBackendError("Configuration has no backends")])

    parsed = _parse_backends(raw, errors)
    for backend_id, config in parsed.items():
        _check_behaviors(backend_id, config, errors)
    _check_proxy_targets(parsed, set(raw), errors)
    primary = _primary_id(parsed, errors) if parsed else None

    if errors:
        logger.warning("Configuration rejected", error_count=len(errors))
        raise ConfigurationError(errors)

    backends = tuple(
        Backend(
            id=backend_id,
            origin=config.origin,
            aliases=config.aliases,
            behaviors=tuple(_build_behavior(b, settings) for b in config.behaviors),
            default=_build_behavior(config.default, settings),
            is_primary=backend_id == primary,
            tls_cert=config.tls_cert,
            log_target=config.log_target,
        )
        for backend_id, config in parsed.items()
    )
    configuration = Configuration(backends=backends)

    logger.info(
        "Configuration compiled",
        backends=len(configuration),
        primary=primary,
        behaviors=sum(len(b.behaviors) for b in backends),
    )
    return configuration


def behavior_order(backend: Backend) -> tuple[tuple[PathPattern, Behavior], ...]:
    """Flatten a backend's behaviors into (pattern, behavior) pairs.

    Targets that run first-match natively (a CDN's cache behaviors list)
    encode this order as array position, so it must never be sorted.
    """
    return tuple(
        (pattern, behavior)
        for behavior in backend.behaviors
        for pattern in behavior.patterns or ()
    )
