"""ContainerRuntime implementation using the Docker Engine API."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import docker
from docker.errors import APIError, DockerException, NotFound
from requests.exceptions import RequestException

from metrics_agent.core.constants import DEFAULT_CALL_TIMEOUT_SECONDS, SHORT_ID_LENGTH
from metrics_agent.exceptions import (
    ContainerNotFoundError,
    LimitsUpdateError,
    RuntimeUnavailableError,
)
from metrics_agent.runtime.base import ContainerRuntime

logger = logging.getLogger(__name__)

# A streaming capture never reads more than this many frames.
MAX_STREAM_FRAMES = 2


def _has_previous_sample(payload: dict[str, Any]) -> bool:
    precpu = payload.get("precpu_stats") or {}
    return bool((precpu.get("cpu_usage") or {}).get("total_usage")) and bool(
        precpu.get("system_cpu_usage")
    )


class DockerRuntime(ContainerRuntime):
    """Docker-backed runtime.

    Every call is bounded by the client's socket timeout, so an unresponsive
    daemon fails the call instead of hanging the caller.

    Example:
        ```python
        runtime = DockerRuntime.connect(timeout=10.0)
        for record in runtime.list_containers():
            payload = runtime.stats(record["Id"], stream=True)
        ```
    """

    def __init__(self, client: docker.DockerClient) -> None:
        self._client = client

    @classmethod
    def connect(
        cls,
        base_url: str | None = None,
        timeout: float = DEFAULT_CALL_TIMEOUT_SECONDS,
    ) -> DockerRuntime:
        """Create a client and verify the daemon answers.

        Args:
            base_url: Daemon URL (e.g. ``unix:///var/run/docker.sock``); None uses the environment
            timeout: Socket timeout in seconds for every API call

        Raises:
            RuntimeUnavailableError: If the daemon cannot be reached
        """
        try:
            if base_url:
                client = docker.DockerClient(base_url=base_url, timeout=timeout)
            else:
                client = docker.from_env(timeout=timeout)
            client.ping()
        except (DockerException, RequestException) as e:
            raise RuntimeUnavailableError(f"Failed to connect to Docker: {e}") from e

        logger.info("Connected to Docker")
        return cls(client)

    @contextmanager
    def _call(self, action: str, container_id: str | None = None) -> Iterator[None]:
        target = f" for {container_id[:SHORT_ID_LENGTH]}" if container_id else ""
        try:
            yield
        except NotFound as e:
            raise ContainerNotFoundError(f"Container {container_id} not found") from e
        except (DockerException, RequestException) as e:
            raise RuntimeUnavailableError(f"{action}{target} failed: {e}") from e

    def list_containers(self, include_stopped: bool = False) -> list[dict[str, Any]]:
        with self._call("Container listing"):
            return list(self._client.api.containers(all=include_stopped))

    def inspect(self, container_id: str) -> dict[str, Any]:
        with self._call("Inspect", container_id):
            return self._client.api.inspect_container(container_id)

    def stats(self, container_id: str, stream: bool = False) -> dict[str, Any]:
        with self._call("Stats", container_id):
            if not stream:
                return self._client.api.stats(container_id, stream=False)

            frames = self._client.api.stats(container_id, stream=True, decode=True)
            payload: dict[str, Any] | None = None
            try:
                for count, frame in enumerate(frames, start=1):
                    payload = frame
                    if _has_previous_sample(frame) or count >= MAX_STREAM_FRAMES:
                        break
            finally:
                frames.close()

        if payload is None:
            raise RuntimeUnavailableError(f"Stats stream for {container_id} ended without data")
        return payload

    def update(
        self,
        container_id: str,
        nano_cpus: int | None = None,
        memory_bytes: int | None = None,
        memory_swap_bytes: int | None = None,
    ) -> None:
        payload: dict[str, int] = {}
        if nano_cpus is not None:
            payload["NanoCpus"] = nano_cpus
        if memory_bytes is not None:
            payload["Memory"] = memory_bytes
        if memory_swap_bytes is not None:
            payload["MemorySwap"] = memory_swap_bytes

        api = self._client.api
        try:
            # APIClient.update_container() has no NanoCpus parameter, so post
            # the update body directly.
            response = api._post_json(
                api._url("/containers/{0}/update", container_id), data=payload
            )
            api._raise_for_status(response)
        except APIError as e:
            raise LimitsUpdateError(container_id, str(e.explanation or e)) from e
        except (DockerException, RequestException) as e:
            raise LimitsUpdateError(container_id, str(e)) from e

        logger.info(f"Updated limits for {container_id}: {payload}")

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except (DockerException, RequestException):
            return False

    def close(self) -> None:
        self._client.close()
