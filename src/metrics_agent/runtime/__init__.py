"""Runtime module - container runtime clients."""

from __future__ import annotations

from metrics_agent.runtime.base import ContainerRuntime
from metrics_agent.runtime.docker_runtime import DockerRuntime

__all__ = ["ContainerRuntime", "DockerRuntime"]
