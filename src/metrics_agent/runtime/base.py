"""Abstract container runtime interface.

The engine only needs four calls from a runtime. Keeping them behind this
interface lets tests drive the collector and queries with a fake runtime.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ContainerRuntime(ABC):
    """Data source for container listings, inspection, stats and updates.

    Implementations:
    - DockerRuntime: Docker Engine API via the docker SDK
    """

    @abstractmethod
    def list_containers(self, include_stopped: bool = False) -> list[dict[str, Any]]:
        """List containers as raw ``Id``/``Names``/``State``/``Created`` records.

        Raises:
            RuntimeUnavailableError: If the runtime cannot be reached
        """

    @abstractmethod
    def inspect(self, container_id: str) -> dict[str, Any]:
        """Return the raw inspect document for one container.

        Raises:
            ContainerNotFoundError: If the container does not exist
            RuntimeUnavailableError: On any other runtime failure
        """

    @abstractmethod
    def stats(self, container_id: str, stream: bool = False) -> dict[str, Any]:
        """Return one raw stats payload.

        With ``stream=True`` the runtime samples twice so the payload carries a
        valid previous reading; with ``stream=False`` it may not.
        """

    @abstractmethod
    def update(
        self,
        container_id: str,
        nano_cpus: int | None = None,
        memory_bytes: int | None = None,
        memory_swap_bytes: int | None = None,
    ) -> None:
        """Apply resource limits.

        Raises:
            LimitsUpdateError: If the runtime rejects the update
        """

    @abstractmethod
    def ping(self) -> bool:
        """Check if the runtime answers."""

    def close(self) -> None:
        """Release client resources."""
