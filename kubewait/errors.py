"""Exception hierarchy for kubewait.

KubeWaitError          -- base class, never raised directly.
ConfigError            -- invalid configuration value (env or flag).
InvalidTargetError     -- one or more watch arguments could not be parsed.
UnsupportedKindError   -- a watch argument names a kind outside pod/job/service.
NoTargetsError         -- nothing to wait for.
ListingError           -- the service -> pod resolution list call failed.
WaitTimeoutError       -- the deadline elapsed before every item was done.
"""

from __future__ import annotations


class KubeWaitError(Exception):
    """Base class for all kubewait errors."""


class ConfigError(KubeWaitError):
    """Raised when a configuration value is malformed or out of range."""


class InvalidTargetError(KubeWaitError):
    """Raised when watch arguments are malformed."""

    def __init__(self, message: str, arguments: list[str] | None = None) -> None:
        super().__init__(message)
        self.arguments = arguments or []


class UnsupportedKindError(InvalidTargetError):
    """Raised for a resource kind that cannot be waited on."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"unsupported kind '{kind}'")
        self.kind = kind


class NoTargetsError(KubeWaitError):
    """Raised when the caller supplies no items to wait for."""


class ListingError(KubeWaitError):
    """Raised when listing the pods backing a service fails."""

    def __init__(self, namespace: str, service: str, cause: Exception) -> None:
        super().__init__(f"listing pods for service {namespace}/{service} failed: {cause}")
        self.namespace = namespace
        self.service = service
        self.cause = cause


class WaitTimeoutError(KubeWaitError):
    """Raised when the wait deadline elapses."""

    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(f"timed out after {timeout_seconds:g}s")
        self.timeout_seconds = timeout_seconds
