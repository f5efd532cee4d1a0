"""Exception hierarchy for the metrics agent."""

from __future__ import annotations


class MetricsAgentError(Exception):
    """Base class for all metrics agent errors."""


class RuntimeUnavailableError(MetricsAgentError):
    """The container runtime cannot be reached or refused a listing."""


class ContainerNotFoundError(MetricsAgentError):
    """The runtime does not know the requested container."""


class SnapshotDecodeError(MetricsAgentError):
    """A raw stats payload could not be decoded into a Snapshot."""


class LimitsUpdateError(MetricsAgentError):
    """The runtime rejected a resource limits update.

    The message is the runtime's own explanation, passed through unchanged.
    """

    def __init__(self, container_id: str, message: str) -> None:
        super().__init__(message)
        self.container_id = container_id
        self.message = message
