"""Core module - configuration and schemas."""

from __future__ import annotations

from metrics_agent.core.config import config_from_env, load_config
from metrics_agent.core.constants import (
    MAX_HISTORY_POINTS,
    RUNNING_CPU_SENTINEL,
    SHORT_ID_LENGTH,
)
from metrics_agent.core.schemas import (
    AgentConfig,
    AllStats,
    ContainerHistory,
    ContainerInfo,
    ContainerOverview,
    ContainerStats,
    CPUStats,
    MemoryStats,
    MetricHistoryPoint,
    NetworkHistoryPoint,
    NetworkStats,
    RequestStats,
    ResourceLimits,
)

__all__ = [
    "MAX_HISTORY_POINTS",
    "RUNNING_CPU_SENTINEL",
    "SHORT_ID_LENGTH",
    "AgentConfig",
    "AllStats",
    "ContainerHistory",
    "ContainerInfo",
    "ContainerOverview",
    "ContainerStats",
    "CPUStats",
    "config_from_env",
    "load_config",
    "MemoryStats",
    "MetricHistoryPoint",
    "NetworkHistoryPoint",
    "NetworkStats",
    "RequestStats",
    "ResourceLimits",
]
