"""Error types shared by the data and service layers."""

from enum import Enum


class NotFoundKind(str, Enum):
    """Which entity a lookup failed to resolve."""

    STOP = "stop"
    ROUTE = "route"


class NotFoundError(ValueError):
    """A stop or route could not be resolved. Not retryable."""

    kind: NotFoundKind

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"{self.kind.value.capitalize()} not found: {identifier}")


class StopNotFoundError(NotFoundError):
    kind = NotFoundKind.STOP


class RouteNotFoundError(NotFoundError):
    kind = NotFoundKind.ROUTE


class StoreTimeoutError(RuntimeError):
    """The data store did not answer in time or was unavailable.

    Transient: callers may retry with backoff. Nothing in the service layer retries.
    """
