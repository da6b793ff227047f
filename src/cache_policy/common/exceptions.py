"""Custom exceptions for cache policy compilation."""


class CachePolicyError(Exception):
    """Base exception for all cache policy errors."""

    pass


class InvalidPatternError(CachePolicyError):
    """Raised when a path pattern breaks the length, charset or wildcard rules."""

    def __init__(
        self, pattern: str, backend_id: str | None = None, reason: str = "invalid"
    ) -> None:
        self.pattern = pattern
        self.backend_id = backend_id
        self.reason = reason
        where = f" in backend '{backend_id}'" if backend_id else ""
        super().__init__(f"Invalid path pattern '{pattern}'{where}: {reason}")


class UnresolvedProxyTargetError(CachePolicyError):
    """Raised when a behavior proxies to a backend id that does not exist."""

    def __init__(self, backend_id: str, target: str) -> None:
        self.backend_id = backend_id
        self.target = target
        self.reason = f"unknown proxy target '{target}'"
        super().__init__(
            f"Backend '{backend_id}' proxies to unknown backend '{target}'"
        )


class MisplacedWildcardBehaviorError(CachePolicyError):
    """Raised when a match-all behavior would shadow the entries after it."""

    def __init__(self, backend_id: str, index: int) -> None:
        self.backend_id = backend_id
        self.index = index
        self.reason = "behavior without path patterns must be the default"
        super().__init__(
            f"Backend '{backend_id}' behavior #{index} has no path patterns "
            "and shadows every later entry"
        )


class NoDefaultBackendError(CachePolicyError):
    """Raised when hosts matching no alias have no primary backend to fall back to."""

    def __init__(self, reason: str, backend_ids: tuple[str, ...] = ()) -> None:
        self.backend_ids = backend_ids
        self.reason = reason
        super().__init__(reason)


class InvalidBackendError(CachePolicyError):
    """Raised when a backend entry is structurally invalid."""

    def __init__(self, backend_id: str, reason: str) -> None:
        self.backend_id = backend_id
        self.reason = reason
        super().__init__(f"Invalid backend '{backend_id}': {reason}")


class ConfigurationError(CachePolicyError):
    """Raised when a configuration fails to compile.

    Carries every error found, never a partially usable configuration.
    """

    def __init__(self, errors: list[CachePolicyError]) -> None:
        self.errors = list(errors)
        lines = "\n".join(f"  - {error}" for error in self.errors)
        super().__init__(
            f"Configuration has {len(self.errors)} error(s):\n{lines}"
        )
