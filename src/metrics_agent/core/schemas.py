"""Pydantic schemas for the metrics agent.

This module defines the data contracts shared by the collector, the query
engine and the HTTP layer: agent configuration, per-container stats views,
history points and resource limit requests.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from metrics_agent.core.constants import (
    DEFAULT_ACCESS_LOG_PATH,
    DEFAULT_CALL_TIMEOUT_SECONDS,
    DEFAULT_INTERVAL_SECONDS,
    DEFAULT_PORT,
    MAX_HISTORY_POINTS,
)


class AgentConfig(BaseModel):
    """Top-level agent configuration.

    Loaded from YAML/JSON files and overlaid with environment variables.
    """

    interval_seconds: int = Field(
        default=DEFAULT_INTERVAL_SECONDS, ge=1, description="Collector sampling interval"
    )
    max_points: int = Field(
        default=MAX_HISTORY_POINTS, ge=1, description="Points retained per history series"
    )
    call_timeout_seconds: float = Field(
        default=DEFAULT_CALL_TIMEOUT_SECONDS, gt=0, description="Budget for one runtime call"
    )
    max_workers: int = Field(default=4, ge=1, le=64, description="Collector fan-out width")
    docker_host: str | None = Field(
        default=None, description="Docker daemon URL (defaults to DOCKER_HOST / local socket)"
    )
    access_log_path: Path = Field(default=Path(DEFAULT_ACCESS_LOG_PATH))
    auth_token: str | None = Field(default=None, description="Bearer token for the HTTP API")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)

    @field_validator("auth_token")
    @classmethod
    def empty_token_is_unset(cls, v: str | None) -> str | None:
        """Treat an empty token as not configured."""
        if v is not None and not v.strip():
            return None
        return v


class ContainerInfo(BaseModel):
    """One entry of the container listing."""

    id: str
    name: str
    status: str
    created: datetime
    started_at: datetime | None = None


class CPUStats(BaseModel):
    """CPU view of a container.

    ``estimated`` is True when ``usage_percent`` did not come from two counter
    readings (no cached rate and no valid previous sample).
    """

    usage_percent: float = Field(ge=0)
    cores: float = Field(ge=0)
    limit_cores: float = Field(ge=0)
    estimated: bool = False


class MemoryStats(BaseModel):
    usage_bytes: int = Field(ge=0)
    usage_mb: float = Field(ge=0)
    limit_bytes: int = Field(ge=0)
    limit_mb: float = Field(ge=0)
    usage_percent: float = Field(ge=0)


class NetworkStats(BaseModel):
    rx_bytes: int = Field(ge=0)
    rx_mb: float = Field(ge=0)
    tx_bytes: int = Field(ge=0)
    tx_mb: float = Field(ge=0)


class ContainerStats(BaseModel):
    """Combined live view: fresh memory/network snapshot plus cached CPU rate."""

    container_id: str
    container_name: str
    timestamp: datetime
    started_at: datetime | None = None
    cpu: CPUStats
    memory: MemoryStats
    network: NetworkStats


class NetworkHistoryPoint(BaseModel):
    """Cumulative network totals at one tick, in megabytes."""

    timestamp: datetime
    rx_mb: float
    tx_mb: float

    model_config = {"frozen": True}


class MetricHistoryPoint(BaseModel):
    """A single scalar (CPU percent or memory MB) at one tick."""

    timestamp: datetime
    value: float

    model_config = {"frozen": True}


class ContainerHistory(BaseModel):
    """The three bounded series stored for one container."""

    container_id: str
    network: list[NetworkHistoryPoint] = Field(default_factory=list)
    cpu: list[MetricHistoryPoint] = Field(default_factory=list)
    memory: list[MetricHistoryPoint] = Field(default_factory=list)


class AllStats(BaseModel):
    timestamp: datetime
    containers: list[ContainerStats] = Field(default_factory=list)


class ResourceLimits(BaseModel):
    """Requested resource limits. Unset or zero fields are left untouched."""

    cpu_cores: float | None = Field(default=None, ge=0, description="CPU cores (e.g. 1.5)")
    memory_mb: int | None = Field(default=None, ge=0, description="Memory limit in MB")


class RequestStats(BaseModel):
    """Request counts for one domain from the access log."""

    domain: str
    today: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)


class ContainerOverview(BaseModel):
    """Stats, history and (optionally) request counts in one response."""

    container_id: str
    stats: ContainerStats
    history: ContainerHistory
    requests: RequestStats | None = None
