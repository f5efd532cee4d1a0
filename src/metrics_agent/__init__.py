"""metrics-agent - container metrics sidecar."""

from __future__ import annotations

__version__ = "1.2.3"

from metrics_agent.core.schemas import (  # noqa: E402
    AgentConfig,
    ContainerHistory,
    ContainerStats,
    ResourceLimits,
)
from metrics_agent.engine import MetricsEngine  # noqa: E402

__all__ = [
    "AgentConfig",
    "ContainerHistory",
    "ContainerStats",
    "MetricsEngine",
    "ResourceLimits",
    "__version__",
]
